"""FastAPI application factory and error mapping."""

from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from styledna.config import Settings
from styledna.errors import CollaboratorError, NotFoundError, RateLimitError, ValidationError
from styledna.service import StyleStudio
from styledna.stores import RateLimiter
from styledna.web.routes import router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger("styledna.web")


def _error_body(message: str, details: list[dict[str, str]] | None = None) -> dict[str, object]:
    body: dict[str, object] = {"error": message}
    if details:
        body["details"] = details
    return body


def _request_validation_details(exc: RequestValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``field``/``reason`` pairs, dropping the ``body`` prefix."""
    details: list[dict[str, str]] = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(location) or "request", "reason": str(error.get("msg", "invalid"))})
    return details


async def _on_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(_error_body(str(exc.reason), exc.details()), status_code=400)


async def _on_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(_error_body("Invalid request", _request_validation_details(exc)), status_code=400)


async def _on_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(_error_body(str(exc)), status_code=404)


async def _on_rate_limit(request: Request, exc: RateLimitError) -> JSONResponse:
    headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after)))}
    return JSONResponse(_error_body(str(exc)), status_code=429, headers=headers)


async def _on_collaborator_error(request: Request, exc: CollaboratorError) -> JSONResponse:
    logger.warning("collaborator failure on %s (%s): %s", request.url.path, exc.kind, exc)
    return JSONResponse(_error_body(str(exc)), status_code=502)


def create_app(
    settings: Settings | None = None,
    *,
    studio: StyleStudio | None = None,
    limiter: RateLimiter | None = None,
) -> FastAPI:
    """Build the styledna FastAPI application.

    ``settings`` defaults to ``Settings.from_env()``. Pass ``studio`` or
    ``limiter`` to inject preconfigured components, e.g. with fake
    collaborators or a controllable clock.
    """
    settings = settings if settings is not None else Settings.from_env()
    studio = studio if studio is not None else StyleStudio.from_settings(settings)
    limiter = (
        limiter
        if limiter is not None
        else RateLimiter(max_requests=settings.rate_limit_max, window=settings.rate_limit_window)
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        studio.start()
        limiter.start()
        logger.info("styledna started")
        try:
            yield
        finally:
            limiter.stop()
            studio.close()
            logger.info("styledna stopped")

    app = FastAPI(title="styledna", lifespan=lifespan)
    app.state.settings = settings
    app.state.studio = studio
    app.state.limiter = limiter

    app.add_exception_handler(ValidationError, _on_validation_error)
    app.add_exception_handler(RequestValidationError, _on_request_validation_error)
    app.add_exception_handler(NotFoundError, _on_not_found)
    app.add_exception_handler(RateLimitError, _on_rate_limit)
    app.add_exception_handler(CollaboratorError, _on_collaborator_error)
    app.include_router(router)
    return app
