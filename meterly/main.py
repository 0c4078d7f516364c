"""Main module of the FastAPI application.

This module sets up the FastAPI application and the middleware to log incoming requests
and unhandled exceptions.
"""

import os
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from meterly.api.middleware import (
    add_request_id,
    exception_logging_middleware,
    log_requests,
    meterly_exception_handler,
    validation_exception_handler,
)
from meterly.api.router import TrailingSlashRouter
from meterly.api.v1.api import api_router
from meterly.core.config import Settings, settings
from meterly.core.container import build_runtime
from meterly.core.exceptions import MeterlyException
from meterly.core.logging import logger
from meterly.db.init_db import init_db

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def run_migrations() -> None:
    """Upgrade the database to the latest alembic revision."""
    logger.info("Running alembic migrations...")
    env = os.environ.copy()
    env["PYTHONPATH"] = PROJECT_ROOT
    subprocess.run(
        ["alembic", "upgrade", "head"],
        check=True,
        cwd=PROJECT_ROOT,
        env=env,
    )


def create_app(app_settings: Settings = settings) -> FastAPI:
    """Create the FastAPI application.

    The services are built in the lifespan, so importing this module never
    connects to the database.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the engine and services on startup and dispose the engine on shutdown."""
        if app_settings.RUN_ALEMBIC_MIGRATIONS:
            run_migrations()

        engine, services = build_runtime(app_settings)
        app.state.services = services
        try:
            await init_db(services.session_factory, app_settings)
            yield
        finally:
            await engine.dispose()

    # Create FastAPI app with our custom router and disable FastAPI's built-in redirects
    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        openapi_url="/openapi.json",
        lifespan=lifespan,
        router=TrailingSlashRouter(),
        redirect_slashes=False,  # Critical: disable FastAPI's built-in slash redirects
    )

    app.include_router(api_router)

    # Register middleware directly; the last registered runs outermost, so every
    # response, 500s included, is logged and carries the request id
    app.middleware("http")(exception_logging_middleware)
    app.middleware("http")(log_requests)
    app.middleware("http")(add_request_id)

    # Register exception handlers
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(ValidationError)(validation_exception_handler)
    app.exception_handler(MeterlyException)(meterly_exception_handler)

    return app


app = create_app()
