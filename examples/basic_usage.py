#!/usr/bin/env python3
"""Programmatic engine usage example.

This demonstrates using the engine directly, without the HTTP server:

* create a definition (an order that is drafted, reviewed, then done)
* grow it with an extra state and action
* start an instance and drive it to the final state
"""

from __future__ import annotations

import argparse
from typing import Sequence

from workflow_engine.engine.errors import WorkflowError
from workflow_engine.engine.models import Action, State, WorkflowDefinition
from workflow_engine.engine.service import WorkflowEngine


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Drive a sample workflow (programmatic example).")
    parser.add_argument(
        "--actions",
        default="submit,reject,submit,approve",
        help='Comma-separated action ids to execute in order, e.g. "submit,approve"',
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    action_ids = [a.strip() for a in args.actions.split(",") if a.strip()]

    engine = WorkflowEngine()
    definition = engine.create_definition(
        WorkflowDefinition(
            id="order",
            states=[
                State(id="draft", name="Draft", is_initial=True),
                State(id="review", name="In review"),
                State(id="done", name="Done", is_final=True),
            ],
            actions=[
                Action(id="submit", name="Submit", from_states=["draft"], to_state="review"),
                Action(id="approve", name="Approve", from_states=["review"], to_state="done"),
            ],
        )
    )
    engine.add_action(
        definition.id,
        Action(id="reject", name="Reject", from_states=["review"], to_state="draft"),
    )

    instance = engine.start_instance(definition.id)
    print(f"Started instance {instance.id} in state {instance.current_state!r}")

    for action_id in action_ids:
        try:
            instance = engine.execute_action(instance.id, action_id)
        except WorkflowError as exc:
            print(f"{action_id}: refused ({exc})")
            return 1
        print(f"{action_id}: now in {instance.current_state!r}")

    print(f"History: {[entry.action_id for entry in instance.history]}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
