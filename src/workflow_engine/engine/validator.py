"""Structural validation of workflow definitions.

The checks are referential and cardinality checks only: no reachability or
cycle analysis. Rules run in a fixed order and the first failure wins, so a
definition with several problems always reports the same one.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

from workflow_engine.engine.errors import InvalidDefinitionError
from workflow_engine.engine.models import WorkflowDefinition

TOO_FEW_STATES = "must have at least two states"
NO_ACTIONS = "must have at least one action"
INITIAL_STATE_COUNT = "must have exactly one initial state"
DUPLICATE_STATE_IDS = "duplicate state ids"
UNKNOWN_STATE = "action refers to unknown state"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    ok: bool
    reason: str = ""


VALID = ValidationResult(ok=True)


def validate_definition(definition: WorkflowDefinition) -> ValidationResult:
    """Check a definition without touching any store.

    Rules, in order:
      1. at least two states
      2. at least one action
      3. exactly one initial state
      4. no duplicate state ids
      5. every action's `to_state` and `from_states` entry names a known state
    """

    if len(definition.states) < 2:
        return ValidationResult(ok=False, reason=TOO_FEW_STATES)

    if len(definition.actions) < 1:
        return ValidationResult(ok=False, reason=NO_ACTIONS)

    initial_count = sum(1 for s in definition.states if s.is_initial)
    if initial_count != 1:
        return ValidationResult(ok=False, reason=INITIAL_STATE_COUNT)

    counts = Counter(definition.state_ids())
    if any(n > 1 for n in counts.values()):
        return ValidationResult(ok=False, reason=DUPLICATE_STATE_IDS)

    known = set(counts)
    for action in definition.actions:
        if action.to_state not in known:
            return ValidationResult(ok=False, reason=UNKNOWN_STATE)
        if any(state_id not in known for state_id in action.from_states):
            return ValidationResult(ok=False, reason=UNKNOWN_STATE)

    return VALID


def ensure_valid(definition: WorkflowDefinition) -> None:
    result = validate_definition(definition)
    if not result.ok:
        raise InvalidDefinitionError(result.reason)
