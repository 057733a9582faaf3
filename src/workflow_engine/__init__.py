"""Workflow Engine.

Define finite-state workflows (states plus guarded actions), start instances
of them and drive each instance forward one action at a time:
- a pure definition validator
- an in-memory, thread-safe transition engine
- a thin FastAPI + CLI shim over the engine
"""

__version__ = "0.1.0"

from workflow_engine.engine.service import WorkflowEngine

__all__ = ["__version__", "WorkflowEngine"]
