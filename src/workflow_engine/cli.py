"""CLI entrypoint: serve the API or validate definition files offline."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn
from pydantic import ValidationError

from workflow_engine import __version__
from workflow_engine.engine.definition_file import read_definitions
from workflow_engine.engine.validator import validate_definition
from workflow_engine.logging import configure_logging
from workflow_engine.server.app import create_app
from workflow_engine.server.config import ServerSettings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-engine",
        description="Define finite-state workflows and drive their instances",
    )
    parser.add_argument("--version", action="version", version=f"workflow-engine {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the REST API")
    serve.add_argument("--host", default=None, help="Bind address (overrides WORKFLOW_ENGINE_HOST)")
    serve.add_argument(
        "--port", type=int, default=None, help="Listen port (overrides WORKFLOW_ENGINE_PORT)"
    )

    validate = subparsers.add_parser(
        "validate", help="Check workflow definitions in a JSON file without starting a server"
    )
    validate.add_argument("path", type=Path, help="JSON file with one definition or a list")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ServerSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    if args.command == "validate":
        return _validate(args.path)

    if args.command == "serve":
        host = args.host or settings.host
        port = args.port or settings.port
        app = create_app(settings=settings)
        logger.info("Starting workflow API", extra={"host": host, "port": port})
        uvicorn.run(app, host=host, port=port, log_config=None)
        return 0

    parser.error(f"Unknown command: {args.command}")
    return 2


def _validate(path: Path) -> int:
    try:
        definitions = read_definitions(path)
    except (OSError, ValueError) as e:
        logger.error("Could not read definitions", extra={"path": str(path), "error": str(e)})
        print(f"Could not read {path}: {e}", file=sys.stderr)
        return 2

    failures = 0
    for index, definition in enumerate(definitions):
        label = definition.id or f"#{index}"
        result = validate_definition(definition)
        if result.ok:
            print(f"OK {label}")
        else:
            failures += 1
            print(f"INVALID {label}: {result.reason}")

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
