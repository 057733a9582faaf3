"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from workflow_engine.engine.models import Action, State, WorkflowDefinition
from workflow_engine.engine.service import WorkflowEngine


def _sample_definition(definition_id: str = "order") -> WorkflowDefinition:
    """S0 (initial) -a1-> S1 -a2-> S2 (final)."""
    return WorkflowDefinition(
        id=definition_id,
        states=[
            State(id="S0", name="Draft", is_initial=True),
            State(id="S1", name="Review"),
            State(id="S2", name="Done", is_final=True),
        ],
        actions=[
            Action(id="a1", name="Submit", from_states=["S0"], to_state="S1"),
            Action(id="a2", name="Approve", from_states=["S1"], to_state="S2"),
        ],
    )


@pytest.fixture
def make_definition() -> Callable[..., WorkflowDefinition]:
    """Provide a factory for the three-state sample definition."""
    return _sample_definition


@pytest.fixture
def engine() -> WorkflowEngine:
    """Provide an engine with fresh, empty stores."""
    return WorkflowEngine()


@pytest.fixture
def definition() -> WorkflowDefinition:
    """Provide the three-state sample definition (not yet stored)."""
    return _sample_definition()


@pytest.fixture
def stored_definition(engine: WorkflowEngine, definition: WorkflowDefinition) -> WorkflowDefinition:
    """Provide the sample definition after it has been created in `engine`."""
    return engine.create_definition(definition)
