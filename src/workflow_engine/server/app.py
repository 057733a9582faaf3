"""FastAPI app factory.

Endpoints are thin wrappers over `WorkflowEngine`: parse the request, call one
engine operation, map the result (or the raised `WorkflowError`) to a response.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workflow_engine import __version__
from workflow_engine.engine.definition_file import read_definitions
from workflow_engine.engine.errors import NotFoundError, WorkflowError
from workflow_engine.engine.models import Action, State, WorkflowDefinition, WorkflowInstance
from workflow_engine.engine.service import WorkflowEngine
from workflow_engine.server.config import ServerSettings
from workflow_engine.server.models import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[str, int] = {
    "not_found": 404,
    "conflict": 409,
    "invalid_definition": 400,
    "invalid_transition": 409,
    "invalid_item": 400,
}

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status: {"model": ErrorResponse} for status in sorted(set(STATUS_BY_KIND.values()))
}


def create_app(
    engine: WorkflowEngine | None = None, settings: ServerSettings | None = None
) -> FastAPI:
    settings = settings or ServerSettings()
    if engine is None:
        engine = WorkflowEngine()

    app = FastAPI(
        title="Workflow Engine",
        version=__version__,
        description="REST API for defining workflows and driving their instances.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Expose for request handlers and tests.
    app.state.settings = settings
    app.state.engine = engine

    origins = settings.parsed_cors_origins()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if settings.definitions_file is not None:
        _seed_definitions(engine, settings.definitions_file)

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
        status = STATUS_BY_KIND.get(exc.kind, 400)
        logger.warning(
            "Workflow request failed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "kind": exc.kind,
                "reason": exc.reason,
                "status": status,
            },
        )
        return JSONResponse(status_code=status, content={"detail": exc.reason, "kind": exc.kind})

    @app.get("/api/v1/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    # Definitions

    @app.post(
        "/api/v1/workflow-definitions",
        response_model=WorkflowDefinition,
        status_code=201,
        responses=_ERROR_RESPONSES,
    )
    def create_definition(definition: WorkflowDefinition) -> WorkflowDefinition:
        created = engine.create_definition(definition)
        logger.info(
            "Workflow definition created",
            extra={
                "definition_id": created.id,
                "states": len(created.states),
                "actions": len(created.actions),
            },
        )
        return created

    @app.get("/api/v1/workflow-definitions", response_model=list[WorkflowDefinition])
    def list_definitions() -> list[WorkflowDefinition]:
        return engine.list_definitions()

    @app.get(
        "/api/v1/workflow-definitions/{definition_id}",
        response_model=WorkflowDefinition,
        responses=_ERROR_RESPONSES,
    )
    def get_definition(definition_id: str) -> WorkflowDefinition:
        definition = engine.get_definition(definition_id)
        if definition is None:
            raise NotFoundError("not found")
        return definition

    @app.get(
        "/api/v1/workflow-definitions/{definition_id}/states",
        response_model=list[State],
        responses=_ERROR_RESPONSES,
    )
    def list_states(definition_id: str) -> list[State]:
        return engine.list_states(definition_id)

    @app.post(
        "/api/v1/workflow-definitions/{definition_id}/states",
        response_model=State,
        status_code=201,
        responses=_ERROR_RESPONSES,
    )
    def add_state(definition_id: str, state: State) -> State:
        added = engine.add_state(definition_id, state)
        logger.info(
            "State added", extra={"definition_id": definition_id, "state_id": added.id}
        )
        return added

    @app.get(
        "/api/v1/workflow-definitions/{definition_id}/actions",
        response_model=list[Action],
        responses=_ERROR_RESPONSES,
    )
    def list_actions(definition_id: str) -> list[Action]:
        return engine.list_actions(definition_id)

    @app.post(
        "/api/v1/workflow-definitions/{definition_id}/actions",
        response_model=Action,
        status_code=201,
        responses=_ERROR_RESPONSES,
    )
    def add_action(definition_id: str, action: Action) -> Action:
        added = engine.add_action(definition_id, action)
        logger.info(
            "Action added", extra={"definition_id": definition_id, "action_id": added.id}
        )
        return added

    # Instances

    @app.post(
        "/api/v1/workflow-instances",
        response_model=WorkflowInstance,
        status_code=201,
        responses=_ERROR_RESPONSES,
    )
    def start_instance(
        definition_id: str = Query(alias="definitionId", min_length=1),
    ) -> WorkflowInstance:
        instance = engine.start_instance(definition_id)
        logger.info(
            "Workflow instance started",
            extra={
                "instance_id": instance.id,
                "definition_id": definition_id,
                "state": instance.current_state,
            },
        )
        return instance

    @app.get("/api/v1/workflow-instances", response_model=list[WorkflowInstance])
    def list_instances() -> list[WorkflowInstance]:
        return engine.list_instances()

    @app.get(
        "/api/v1/workflow-instances/{instance_id}",
        response_model=WorkflowInstance,
        responses=_ERROR_RESPONSES,
    )
    def get_instance(instance_id: str) -> WorkflowInstance:
        instance = engine.get_instance(instance_id)
        if instance is None:
            raise NotFoundError("instance not found")
        return instance

    @app.post(
        "/api/v1/workflow-instances/{instance_id}/actions/{action_id}",
        response_model=WorkflowInstance,
        responses=_ERROR_RESPONSES,
    )
    def execute_action(instance_id: str, action_id: str) -> WorkflowInstance:
        instance = engine.execute_action(instance_id, action_id)
        logger.info(
            "Action executed",
            extra={
                "instance_id": instance_id,
                "action_id": action_id,
                "state": instance.current_state,
                "history_length": len(instance.history),
            },
        )
        return instance

    return app


def _seed_definitions(engine: WorkflowEngine, path: Path) -> None:
    """Create every definition listed in the configured definitions file.

    Errors propagate: a server should not start with half of its seed data.
    """

    definitions = read_definitions(path)
    for definition in definitions:
        created = engine.create_definition(definition)
        logger.info(
            "Seeded workflow definition",
            extra={"definition_id": created.id, "path": str(path)},
        )
