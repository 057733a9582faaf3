"""Workflow engine: definition lifecycle and instance transitions.

The engine is the only component with behaviour. It never logs and never does
I/O beyond its two stores; failures are raised as `WorkflowError` subclasses
and left to the caller to report.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import UTC, datetime

from workflow_engine.engine.errors import (
    ConflictError,
    InvalidDefinitionError,
    InvalidTransitionError,
    NotFoundError,
)
from workflow_engine.engine.models import (
    Action,
    HistoryEntry,
    State,
    WorkflowDefinition,
    WorkflowInstance,
)
from workflow_engine.engine.store import KeyedStore
from workflow_engine.engine.validator import ensure_valid


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


def definition_store() -> KeyedStore[WorkflowDefinition]:
    return KeyedStore(key=lambda d: d.id)


def instance_store() -> KeyedStore[WorkflowInstance]:
    return KeyedStore(key=lambda i: i.id)


class WorkflowEngine:
    """Create and grow definitions; start and drive instances.

    Stores are injected so several engines (or a test) can share or isolate
    state explicitly. Mutations on one definition or one instance are
    serialized through the store's per-key lock; work on different ids runs
    concurrently.
    """

    def __init__(
        self,
        definitions: KeyedStore[WorkflowDefinition] | None = None,
        instances: KeyedStore[WorkflowInstance] | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._definitions = definitions if definitions is not None else definition_store()
        self._instances = instances if instances is not None else instance_store()
        self._clock = clock or _utc_now
        self._new_id = id_factory or _new_id

    # Definitions

    def create_definition(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        # Blank ids get a generated one; any other id is kept verbatim.
        definition_id = definition.id if definition.id.strip() else self._new_id()
        candidate = definition.model_copy(update={"id": definition_id}, deep=True)

        with self._definitions.locked(definition_id):
            if definition_id in self._definitions:
                raise ConflictError("already exists")
            ensure_valid(candidate)
            self._definitions.put(candidate)
        return candidate

    def get_definition(self, definition_id: str) -> WorkflowDefinition | None:
        return self._definitions.get(definition_id)

    def list_definitions(self) -> list[WorkflowDefinition]:
        return self._definitions.list()

    def list_states(self, definition_id: str) -> list[State]:
        return self._require_definition(definition_id).states

    def list_actions(self, definition_id: str) -> list[Action]:
        return self._require_definition(definition_id).actions

    def add_state(self, definition_id: str, state: State) -> State:
        with self._definitions.locked(definition_id):
            definition = self._require_definition(definition_id)
            if definition.find_state(state.id) is not None:
                raise ConflictError("state id already exists")
            if state.is_initial and definition.initial_state() is not None:
                raise InvalidDefinitionError("already an initial state")

            # `definition` is a private copy: a failed validation discards it
            # and the stored definition is left untouched.
            definition.states.append(state.model_copy(deep=True))
            self._commit(definition)
        return state

    def add_action(self, definition_id: str, action: Action) -> Action:
        with self._definitions.locked(definition_id):
            definition = self._require_definition(definition_id)
            if definition.find_action(action.id) is not None:
                raise ConflictError("action id already exists")

            definition.actions.append(action.model_copy(deep=True))
            self._commit(definition)
        return action

    def _commit(self, definition: WorkflowDefinition) -> None:
        ensure_valid(definition)
        self._definitions.put(definition)

    def _require_definition(self, definition_id: str) -> WorkflowDefinition:
        definition = self._definitions.get(definition_id)
        if definition is None:
            raise NotFoundError("not found")
        return definition

    # Instances

    def start_instance(self, definition_id: str) -> WorkflowInstance:
        definition = self._definitions.get(definition_id)
        if definition is None:
            raise NotFoundError("definition not found")

        initial = definition.initial_state()
        if initial is None:
            raise InvalidDefinitionError("no initial state")

        instance = WorkflowInstance(
            id=self._new_id(),
            definition_id=definition.id,
            current_state=initial.id,
        )
        self._instances.put(instance)
        return instance

    def execute_action(self, instance_id: str, action_id: str) -> WorkflowInstance:
        """Apply one action to an instance.

        Checks run in a fixed order: instance exists, its definition exists,
        the action exists, the action is enabled, the current state is one of
        the action's `from_states`, and the current state is not final. A
        final state admits no action even when an action lists it as a source.
        """

        with self._instances.locked(instance_id):
            instance = self._instances.get(instance_id)
            if instance is None:
                raise NotFoundError("instance not found")

            definition = self._definitions.get(instance.definition_id)
            if definition is None:
                raise NotFoundError("definition not found")

            action = definition.find_action(action_id)
            if action is None:
                raise NotFoundError("action not found")
            if not action.enabled:
                raise InvalidTransitionError("action disabled")
            if instance.current_state not in action.from_states:
                raise InvalidTransitionError("invalid transition")

            current = definition.find_state(instance.current_state)
            if current is not None and current.is_final:
                raise InvalidTransitionError("final state")

            instance.current_state = action.to_state
            instance.history.append(HistoryEntry(action_id=action.id, timestamp=self._clock()))
            self._instances.put(instance)
        return instance

    def get_instance(self, instance_id: str) -> WorkflowInstance | None:
        return self._instances.get(instance_id)

    def list_instances(self) -> list[WorkflowInstance]:
        return self._instances.list()
