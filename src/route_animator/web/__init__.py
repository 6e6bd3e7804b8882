from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from os import getenv

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from route_animator import __version__
from route_animator.config import Settings, get_settings
from route_animator.web.routers import api_router
from route_animator.web.workers.export import ExportOrchestrator


def create_app(
    settings: Settings | None = None,
    orchestrator: ExportOrchestrator | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Runtime settings; :func:`get_settings` when omitted.
        orchestrator: Export orchestrator to serve. When omitted one is built
            at startup from ``settings``, which probes for ffmpeg.

    Returns:
        The configured application. Worker threads start with the app's
        lifespan and stop when it shuts down.

    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings.upload_folder.mkdir(parents=True, exist_ok=True)
        settings.export_folder.mkdir(parents=True, exist_ok=True)
        if app.state.orchestrator is None:
            app.state.orchestrator = ExportOrchestrator.from_settings(settings)
        app.state.orchestrator.start()
        try:
            yield
        finally:
            app.state.orchestrator.shutdown()

    app = FastAPI(
        title="Route Animator",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator

    # Add middleware to compress responses larger than 500 bytes
    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.include_router(
        api_router,
    )
    return app


def run(
    *,
    port: int | None = None,
    host: str | None = None,
    reload: bool = False,
    log_level: str | None = None,
) -> None:
    """
    Start the web server for the Route Animator API.

    Args:
        port: The port number to run the server on (keyword-only).
            Defaults to the PORT environment variable if set, otherwise 2025.
        host: The host address to bind the server to (keyword-only).
            Defaults to '127.0.0.1' if not specified.
        reload: Enable auto-reload when code changes are detected (keyword-only).
        log_level: Uvicorn log level; the configured ``log_level`` by default.

    Example:
        >>> run()  # Runs on 127.0.0.1:2025
        >>> run(port=8000, host='0.0.0.0')  # Runs on 0.0.0.0:8000

    """
    env_port = getenv("PORT")
    if env_port and not port:
        port = int(env_port)
    if port is None:
        port = 2025

    if not host:
        host = "127.0.0.1"

    if log_level is None:
        log_level = get_settings().log_level

    import uvicorn  # noqa: PLC0415

    uvicorn.run(
        "route_animator.web:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
    )


if __name__ == "__main__":
    run()
