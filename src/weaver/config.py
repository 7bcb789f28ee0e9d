"""Configuration for weaver.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Core and runtime modules never read settings; they are built at the process
edge (CLI, HTTP app) and passed down.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WeaverSettings(BaseSettings):
    """Settings for the weave store, trace defaults and HTTP server.

    Environment variables:
    - LOG_LEVEL             (optional)
    - WEAVER_GRAPHS_PATH    (optional)
    - WEAVER_MAX_STEPS      (optional)
    - WEAVER_BRAID_WORKERS  (optional)
    - WEAVER_CORS_ORIGINS   (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `WeaverSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    graphs_path: Path = Field(
        default=Path("data/graphs"),
        validation_alias="WEAVER_GRAPHS_PATH",
        description="Directory where weave snapshots are persisted as *.weave.json",
    )

    max_steps: int = Field(
        default=1000,
        gt=0,
        validation_alias="WEAVER_MAX_STEPS",
        description="Default step budget for a single trace",
    )

    braid_workers: int | None = Field(
        default=None,
        gt=0,
        validation_alias="WEAVER_BRAID_WORKERS",
        description="Thread pool size for concurrent traces (None = executor default)",
    )

    # Dev-friendly CORS (Vite). Override via WEAVER_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="WEAVER_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
