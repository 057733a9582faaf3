"""Configuration for the REST server and CLI.

Loaded from environment variables and a local `.env` file (if present). Tests
can point at a different env file with `ServerSettings(_env_file=path)`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """Settings for the workflow API.

    Environment variables:
    - LOG_LEVEL                          (optional)
    - WORKFLOW_ENGINE_HOST               (optional)
    - WORKFLOW_ENGINE_PORT               (optional)
    - WORKFLOW_ENGINE_CORS_ORIGINS       (optional)
    - WORKFLOW_ENGINE_DEFINITIONS_FILE   (optional)
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    host: str = Field(
        default="127.0.0.1",
        validation_alias="WORKFLOW_ENGINE_HOST",
        description="Interface the API server binds to",
    )
    port: int = Field(
        default=8000,
        validation_alias="WORKFLOW_ENGINE_PORT",
        description="Port the API server listens on",
        ge=1,
        le=65535,
    )

    cors_origins: str = Field(
        default="",
        validation_alias="WORKFLOW_ENGINE_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins. Empty disables CORS.",
    )

    definitions_file: Path | None = Field(
        default=None,
        validation_alias="WORKFLOW_ENGINE_DEFINITIONS_FILE",
        description=(
            "Optional JSON file of workflow definitions created when the app starts. "
            "An invalid definition aborts startup."
        ),
    )

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
