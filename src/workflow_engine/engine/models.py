"""Pydantic models for workflow definitions and running instances.

Attributes are snake_case in Python; the JSON representation uses camelCase
(`isInitial`, `fromStates`, ...). Either spelling is accepted on input.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class State(_CamelModel):
    """A named node of a workflow."""

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    is_initial: bool = False
    is_final: bool = False

    # Informational only; disabled states are still reachable.
    enabled: bool = True


class Action(_CamelModel):
    """A directed transition rule: from any of `from_states` to `to_state`."""

    id: str = Field(min_length=1)
    name: str = ""
    enabled: bool = True
    from_states: list[str] = Field(min_length=1)
    to_state: str
    description: str = ""


class WorkflowDefinition(_CamelModel):
    """The static description of a workflow.

    An empty `id` asks the engine to generate one on creation.
    """

    id: str = ""
    states: list[State] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)

    def state_ids(self) -> list[str]:
        return [s.id for s in self.states]

    def initial_state(self) -> State | None:
        for state in self.states:
            if state.is_initial:
                return state
        return None

    def find_state(self, state_id: str) -> State | None:
        for state in self.states:
            if state.id == state_id:
                return state
        return None

    def find_action(self, action_id: str) -> Action | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None


class HistoryEntry(_CamelModel):
    action_id: str
    timestamp: datetime


class WorkflowInstance(_CamelModel):
    """A live execution of one definition.

    `history` is append-only: one entry per successfully executed action, in
    execution order.
    """

    id: str
    definition_id: str
    current_state: str
    history: list[HistoryEntry] = Field(default_factory=list)
