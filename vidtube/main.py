"""FastAPI app entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vidtube.core.config import settings
from vidtube.core.errors import ApiError, InternalError, ValidationError
from vidtube.routers import users

logger = logging.getLogger(__name__)


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    elif exc.__cause__ is not None:
        logger.debug("%s %s failed: %s (cause: %r)", request.method, request.url.path, exc.message, exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError("Invalid request payload", errors=jsonable_encoder(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError("Internal server error")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error.to_payload())


def create_app() -> FastAPI:
    """Build FastAPI application."""

    app = FastAPI(title="VidTube Accounts", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(users.router)

    @app.get("/healthz", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
