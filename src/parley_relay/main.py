# src/parley_relay/main.py
"""Main entry point for the Parley Relay application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from parley_relay.api.v1 import (
    auth_router,
    conversations_router,
    media_router,
    stream_router,
    users_router,
)
from parley_relay.core.context import build_context
from parley_relay.core.errors import RelayError, Unavailable
from parley_relay.core.logging import configure_logging
from parley_relay.core.settings import Settings, settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
RETRY_AFTER_SECONDS = "1"


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(config.log_level)
        context = build_context(config)
        app.state.context = context
        # Create the public room up front so the first client does not race for it.
        context.directory.get_or_create_default_conversation()
        logger.info("%s %s started", config.app_name, config.app_version)
        try:
            yield
        finally:
            context.close()
            logger.info("%s stopped", config.app_name)

    app = FastAPI(
        title=f"{config.app_name} API",
        description="Real-time message delivery backend for chat clients",
        version=config.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=config.cors_allow_methods,
        allow_headers=config.cors_allow_headers,
    )
    app.add_middleware(GZipMiddleware)

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
        headers = {"Retry-After": RETRY_AFTER_SECONDS} if isinstance(exc, Unavailable) else None
        if exc.status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error_code": exc.error_code},
            headers=headers,
        )

    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(conversations_router, prefix=API_PREFIX)
    app.include_router(stream_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(media_router, prefix=API_PREFIX)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint to verify the service is running."""
        return {"status": "ok"}

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic information about the API."""
        return {
            "name": config.app_name,
            "version": config.app_version,
            "description": "Real-time message delivery backend for chat clients",
            "docs": "/docs",
            "redoc": "/redoc",
        }

    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run("parley_relay.main:app", host=settings.host, port=settings.port, reload=settings.debug)


if __name__ == "__main__":
    main()
