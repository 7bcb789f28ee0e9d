"""FastAPI app factory.

Endpoints are thin wrappers over :class:`weaver.service.WeaveService`.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from weaver import __version__
from weaver.config import WeaverSettings
from weaver.errors import WeaveError, WeaveNotFound, WeaveReferenceError
from weaver.server.routes import router
from weaver.service import WeaveService
from weaver.store import WeaveStore

logger = logging.getLogger(__name__)


def _status_for(exc: WeaveError) -> int:
    if isinstance(exc, WeaveNotFound | WeaveReferenceError):
        return 404
    return 400


async def _weave_error_handler(_request: Request, exc: WeaveError) -> JSONResponse:
    status = _status_for(exc)
    logger.info(
        "Weave operation rejected",
        extra={"status": status, "operation": exc.operation, "error": exc.message},
    )
    return JSONResponse(status_code=status, content={"detail": exc.to_json()})


def create_app(settings: WeaverSettings | None = None) -> FastAPI:
    settings = settings or WeaverSettings()

    app = FastAPI(
        title="Weaver",
        version=__version__,
        description="REST API over weave graphs and the trace engine.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Expose settings and the service for request handlers.
    app.state.settings = settings
    app.state.service = WeaveService(
        store=WeaveStore(settings.graphs_path),
        max_steps=settings.max_steps,
        braid_workers=settings.braid_workers,
    )

    # Minimal dev-friendly CORS so a Vite dev server can call the API.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(WeaveError, _weave_error_handler)
    app.include_router(router, prefix="/api")
    return app
