"""Unit tests for the workflow engine: definitions, instances and transitions."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from workflow_engine.engine.errors import (
    ConflictError,
    InvalidDefinitionError,
    InvalidTransitionError,
    NotFoundError,
)
from workflow_engine.engine.models import Action, State, WorkflowDefinition, WorkflowInstance
from workflow_engine.engine.service import WorkflowEngine, definition_store, instance_store
from workflow_engine.engine.validator import validate_definition

# Definitions


def test_create_definition_stores_and_returns(
    engine: WorkflowEngine, definition: WorkflowDefinition
) -> None:
    created = engine.create_definition(definition)
    assert created.id == "order"
    assert engine.get_definition("order") == created
    assert [d.id for d in engine.list_definitions()] == ["order"]


def test_create_definition_generates_id_when_empty(
    engine: WorkflowEngine, make_definition: Callable[..., WorkflowDefinition]
) -> None:
    first = engine.create_definition(make_definition(""))
    second = engine.create_definition(make_definition("  "))
    assert first.id
    assert second.id
    assert first.id != second.id
    assert engine.get_definition(first.id) is not None


def test_create_definition_keeps_caller_id_verbatim(
    engine: WorkflowEngine, make_definition: Callable[..., WorkflowDefinition]
) -> None:
    created = engine.create_definition(make_definition(" abc"))
    assert created.id == " abc"
    assert engine.get_definition(" abc") is not None
    assert engine.get_definition("abc") is None


def test_create_definition_conflict_regardless_of_content(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    other = WorkflowDefinition(
        id=stored_definition.id,
        states=[State(id="X", is_initial=True), State(id="Y")],
        actions=[Action(id="go", from_states=["X"], to_state="Y")],
    )
    with pytest.raises(ConflictError) as excinfo:
        engine.create_definition(other)
    assert str(excinfo.value) == "already exists"
    assert engine.get_definition(stored_definition.id) == stored_definition


def test_create_definition_propagates_validator_reason(engine: WorkflowEngine) -> None:
    bad = WorkflowDefinition(id="bad", states=[State(id="A", is_initial=True)], actions=[])
    with pytest.raises(InvalidDefinitionError) as excinfo:
        engine.create_definition(bad)
    assert str(excinfo.value) == "must have at least two states"
    assert engine.get_definition("bad") is None


def test_list_states_and_actions(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    assert [s.id for s in engine.list_states("order")] == ["S0", "S1", "S2"]
    assert [a.id for a in engine.list_actions("order")] == ["a1", "a2"]

    with pytest.raises(NotFoundError, match="not found"):
        engine.list_states("missing")
    with pytest.raises(NotFoundError, match="not found"):
        engine.list_actions("missing")


def test_add_state_appends_and_persists(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    added = engine.add_state("order", State(id="S3", name="Archived"))
    assert added.id == "S3"

    stored = engine.get_definition("order")
    assert stored is not None
    assert [s.id for s in stored.states] == ["S0", "S1", "S2", "S3"]
    assert validate_definition(stored).ok


def test_add_state_failures(engine: WorkflowEngine, stored_definition: WorkflowDefinition) -> None:
    with pytest.raises(NotFoundError, match="not found"):
        engine.add_state("missing", State(id="S3"))
    with pytest.raises(ConflictError, match="state id already exists"):
        engine.add_state("order", State(id="S1"))


def test_second_initial_state_is_rejected_and_definition_unchanged(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    before = engine.get_definition("order")
    assert before is not None

    with pytest.raises(InvalidDefinitionError) as excinfo:
        engine.add_state("order", State(id="S9", is_initial=True))
    assert str(excinfo.value) == "already an initial state"

    after = engine.get_definition("order")
    assert after is not None
    assert len(after.states) == len(before.states)
    assert after.model_dump() == before.model_dump()


def test_add_state_rolls_back_when_revalidation_fails() -> None:
    # A definition stored without validation (e.g. through a shared store)
    # that has no initial state: appending any non-initial state still fails
    # validation and must leave the stored copy untouched.
    definitions = definition_store()
    broken = WorkflowDefinition(
        id="broken",
        states=[State(id="A"), State(id="B")],
        actions=[Action(id="go", from_states=["A"], to_state="B")],
    )
    definitions.put(broken)
    engine = WorkflowEngine(definitions=definitions)

    with pytest.raises(InvalidDefinitionError) as excinfo:
        engine.add_state("broken", State(id="C"))
    assert str(excinfo.value) == "must have exactly one initial state"

    stored = definitions.get("broken")
    assert stored is not None
    assert stored.model_dump() == broken.model_dump()


def test_add_action_appends_and_persists(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    action = Action(id="back", from_states=["S1"], to_state="S0")
    assert engine.add_action("order", action) == action
    assert [a.id for a in engine.list_actions("order")] == ["a1", "a2", "back"]


def test_add_action_failures_leave_definition_unchanged(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    before = engine.get_definition("order")
    assert before is not None

    with pytest.raises(NotFoundError, match="not found"):
        engine.add_action("missing", Action(id="x", from_states=["S0"], to_state="S1"))
    with pytest.raises(ConflictError, match="action id already exists"):
        engine.add_action("order", Action(id="a1", from_states=["S1"], to_state="S2"))
    with pytest.raises(InvalidDefinitionError) as excinfo:
        engine.add_action("order", Action(id="x", from_states=["S0"], to_state="ghost"))
    assert str(excinfo.value) == "action refers to unknown state"

    after = engine.get_definition("order")
    assert after is not None
    assert after.model_dump() == before.model_dump()


def test_caller_mutation_after_create_does_not_leak(
    engine: WorkflowEngine, definition: WorkflowDefinition
) -> None:
    engine.create_definition(definition)
    definition.states.clear()

    stored = engine.get_definition("order")
    assert stored is not None
    assert len(stored.states) == 3


# Instances


def test_start_instance_at_initial_state(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    instance = engine.start_instance("order")
    assert instance.id
    assert instance.definition_id == "order"
    assert instance.current_state == "S0"
    assert instance.history == []
    assert engine.get_instance(instance.id) == instance

    other = engine.start_instance("order")
    assert other.id != instance.id
    assert sorted(i.id for i in engine.list_instances()) == sorted([instance.id, other.id])


def test_start_instance_failures() -> None:
    definitions = definition_store()
    definitions.put(
        WorkflowDefinition(
            id="no-initial",
            states=[State(id="A"), State(id="B")],
            actions=[Action(id="go", from_states=["A"], to_state="B")],
        )
    )
    engine = WorkflowEngine(definitions=definitions)

    with pytest.raises(NotFoundError, match="definition not found"):
        engine.start_instance("missing")
    with pytest.raises(InvalidDefinitionError, match="no initial state"):
        engine.start_instance("no-initial")
    assert engine.list_instances() == []


def test_scenario_walk_to_final_state(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    instance = engine.start_instance("order")
    assert instance.current_state == "S0"

    instance = engine.execute_action(instance.id, "a1")
    assert instance.current_state == "S1"
    assert len(instance.history) == 1

    instance = engine.execute_action(instance.id, "a2")
    assert instance.current_state == "S2"
    assert len(instance.history) == 2

    with pytest.raises(InvalidTransitionError) as excinfo:
        engine.execute_action(instance.id, "a1")
    assert str(excinfo.value) == "invalid transition"


def test_history_records_actions_in_order_with_clock() -> None:
    start = datetime(2025, 1, 1, tzinfo=UTC)
    ticks = iter(start + timedelta(minutes=n) for n in range(10))
    engine = WorkflowEngine(clock=lambda: next(ticks))
    engine.create_definition(
        WorkflowDefinition(
            id="loop",
            states=[State(id="A", is_initial=True), State(id="B")],
            actions=[
                Action(id="go", from_states=["A"], to_state="B"),
                Action(id="back", from_states=["B"], to_state="A"),
            ],
        )
    )
    instance = engine.start_instance("loop")

    for action_id in ("go", "back", "go"):
        instance = engine.execute_action(instance.id, action_id)

    assert [h.action_id for h in instance.history] == ["go", "back", "go"]
    assert [h.timestamp for h in instance.history] == [
        start,
        start + timedelta(minutes=1),
        start + timedelta(minutes=2),
    ]
    assert instance.current_state == "B"

    stored = engine.get_instance(instance.id)
    assert stored == instance


def test_execute_action_lookup_failures(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    instance = engine.start_instance("order")

    with pytest.raises(NotFoundError, match="instance not found"):
        engine.execute_action("missing", "a1")
    with pytest.raises(NotFoundError, match="action not found"):
        engine.execute_action(instance.id, "zzz")


def test_execute_action_definition_vanished() -> None:
    instances = instance_store()
    engine = WorkflowEngine(instances=instances)
    instances.put(WorkflowInstance(id="orphan", definition_id="gone", current_state="S0"))
    with pytest.raises(NotFoundError, match="definition not found"):
        engine.execute_action("orphan", "a1")


def test_disabled_action_is_rejected(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    engine.add_action(
        "order", Action(id="skip", from_states=["S0"], to_state="S2", enabled=False)
    )
    instance = engine.start_instance("order")

    with pytest.raises(InvalidTransitionError, match="action disabled"):
        engine.execute_action(instance.id, "skip")

    stored = engine.get_instance(instance.id)
    assert stored is not None
    assert stored.current_state == "S0"
    assert stored.history == []


def test_final_state_refuses_actions_listing_it_as_source(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    engine.add_action("order", Action(id="reopen", from_states=["S2"], to_state="S0"))
    instance = engine.start_instance("order")
    engine.execute_action(instance.id, "a1")
    engine.execute_action(instance.id, "a2")

    with pytest.raises(InvalidTransitionError) as excinfo:
        engine.execute_action(instance.id, "reopen")
    assert str(excinfo.value) == "final state"

    stored = engine.get_instance(instance.id)
    assert stored is not None
    assert stored.current_state == "S2"
    assert len(stored.history) == 2


def test_instances_of_one_definition_are_independent(
    engine: WorkflowEngine, stored_definition: WorkflowDefinition
) -> None:
    first = engine.start_instance("order")
    second = engine.start_instance("order")
    engine.execute_action(first.id, "a1")

    loaded = engine.get_instance(second.id)
    assert loaded is not None
    assert loaded.current_state == "S0"
    assert loaded.history == []


def test_lookups_of_unknown_ids_leave_no_key_locks() -> None:
    definitions = definition_store()
    instances = instance_store()
    engine = WorkflowEngine(definitions=definitions, instances=instances)

    for n in range(1000):
        with pytest.raises(NotFoundError):
            engine.execute_action(f"missing-{n}", "a1")
        with pytest.raises(NotFoundError):
            engine.add_state(f"missing-{n}", State(id="S3"))

    assert instances.locked_keys() == 0
    assert definitions.locked_keys() == 0
