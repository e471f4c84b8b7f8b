"""
FastAPI application entry point for the parks backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from parkguide.config import get_settings
from parkguide.db import ParkStore
from parkguide.dependencies import get_park_store
from parkguide.routes import (
    DEFAULT_INVALID_PAYLOAD_ERROR,
    INVALID_PAYLOAD_ERRORS,
    error_response,
    router,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


async def invalid_payload_handler(request: Request, exc: RequestValidationError):
    """Report schema failures as a generic 400, without field-level detail."""
    route = request.scope.get("route")
    name = getattr(route, "name", None)
    logger.info("Rejected invalid payload for %s: %s", request.url.path, exc.errors())
    return error_response(
        400, INVALID_PAYLOAD_ERRORS.get(name, DEFAULT_INVALID_PAYLOAD_ERROR)
    )


def create_app(store: ParkStore | None = None) -> FastAPI:
    """
    Build the app. Passing `store` wires that instance into every request
    instead of the process-wide one chosen from configuration.
    """
    settings = get_settings()
    app = FastAPI(title="Singapore Nature Parks API", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.add_exception_handler(RequestValidationError, invalid_payload_handler)
    if store is not None:
        app.dependency_overrides[get_park_store] = lambda: store
    return app


app = create_app()
