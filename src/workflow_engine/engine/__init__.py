"""Core workflow domain: models, keyed storage, validation and transitions.

Nothing in this package logs or performs I/O beyond its in-memory stores
(`definition_file` aside, which only reads). Transport concerns live in
`workflow_engine.server` and `workflow_engine.cli`.
"""

from workflow_engine.engine.errors import (
    ConflictError,
    InvalidDefinitionError,
    InvalidItemError,
    InvalidTransitionError,
    NotFoundError,
    WorkflowError,
)
from workflow_engine.engine.models import (
    Action,
    HistoryEntry,
    State,
    WorkflowDefinition,
    WorkflowInstance,
)
from workflow_engine.engine.service import WorkflowEngine
from workflow_engine.engine.store import KeyedStore
from workflow_engine.engine.validator import ValidationResult, validate_definition

__all__ = [
    "Action",
    "ConflictError",
    "HistoryEntry",
    "InvalidDefinitionError",
    "InvalidItemError",
    "InvalidTransitionError",
    "KeyedStore",
    "NotFoundError",
    "State",
    "ValidationResult",
    "WorkflowDefinition",
    "WorkflowEngine",
    "WorkflowError",
    "WorkflowInstance",
    "validate_definition",
]
