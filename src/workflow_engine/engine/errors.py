"""Caller-facing failures raised by the engine.

Every failure is recoverable. `str(exc)` is the reason; `kind` is the stable
category the transport layer maps to a response.
"""

from __future__ import annotations


class WorkflowError(Exception):
    kind = "workflow_error"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class NotFoundError(WorkflowError):
    """A referenced definition, instance or action does not exist."""

    kind = "not_found"


class ConflictError(WorkflowError):
    """An id that must be unique is already taken."""

    kind = "conflict"


class InvalidDefinitionError(WorkflowError):
    """A definition (or a proposed change to one) breaks a structural rule."""

    kind = "invalid_definition"


class InvalidTransitionError(WorkflowError):
    """An action may not run from the instance's current state."""

    kind = "invalid_transition"


class InvalidItemError(WorkflowError):
    """An item handed to a store has no usable identifier."""

    kind = "invalid_item"
