"""Read workflow definitions from a JSON file.

The file holds either a single definition object or a list of them, using the
same camelCase shape as the HTTP API.
"""

from __future__ import annotations

import json
from pathlib import Path

from workflow_engine.engine.models import WorkflowDefinition


def read_definitions(path: Path) -> list[WorkflowDefinition]:
    """Parse every definition in `path`.

    Raises:
        OSError: the file cannot be read.
        ValueError: the file is not JSON, has an unexpected shape, or an entry
            does not parse as a definition (pydantic's ValidationError is a
            ValueError).
    """

    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a definition object or a list of them")
    return [WorkflowDefinition.model_validate(item) for item in raw]
