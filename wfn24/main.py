"""
WFN24 - Main FastAPI Application
Public football news/data API plus the admin CMS
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings
from wfn24 import auth
from wfn24.api_client import FootballApiClient
from wfn24.db import Database, get_database
from wfn24.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    InvalidFieldError,
    QueryError,
)
from wfn24.live import RelayPublisher
from wfn24.logging_config import configure_logging
from wfn24.responses import fail
from wfn24.routers import admin_router, public_router
from wfn24.routers.public import APP_NAME, APP_VERSION

logger = logging.getLogger("main")


def _build_api_client(database: Database, config) -> Optional[FootballApiClient]:
    try:
        return FootballApiClient(config=config, db=database)
    except ConfigurationError as e:
        logger.warning(f"{e}; external football data is disabled")
        return None


def register_exception_handlers(app: FastAPI) -> None:
    """Render storage and validation errors as the JSON envelope."""

    @app.exception_handler(QueryError)
    async def query_error_handler(request: Request, exc: QueryError):
        if exc.is_integrity_error:
            return fail("Record conflicts with existing data", status_code=409)
        logger.error(f"Query failed on {request.url.path}: {exc}")
        return fail("Database query failed", status_code=400)

    @app.exception_handler(InvalidFieldError)
    async def invalid_field_handler(request: Request, exc: InvalidFieldError):
        return fail(str(exc), status_code=400)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return fail(str(exc), status_code=400)

    @app.exception_handler(DatabaseConnectionError)
    async def connection_error_handler(request: Request, exc: DatabaseConnectionError):
        logger.error(f"Database unavailable: {exc}")
        return fail("Database unavailable", status_code=503)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return fail("Validation failed", status_code=422, details=exc.errors())


def create_app(
    database: Optional[Database] = None,
    api_client: Optional[FootballApiClient] = None,
    publisher: Optional[RelayPublisher] = None,
    config=None,
) -> FastAPI:
    """
    Build the web application.

    Args:
        database: Persistence gateway (defaults to get_database())
        api_client: API-Football client (built from settings when the key is set)
        publisher: Relay publisher for live score pushes
        config: Settings object (defaults to the process settings)
    """
    config = config or settings
    database = database or get_database()
    if api_client is None:
        api_client = _build_api_client(database, config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Fail fast if the database is unreachable; make sure the schema exists."""
        configure_logging()
        database.create_all()
        logger.info(f"{APP_NAME} {APP_VERSION} started")
        yield
        database.dispose()

    app = FastAPI(
        title=APP_NAME,
        description="Football news, live scores and league data",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.database = database
    app.state.api_client = api_client
    app.state.publisher = publisher or RelayPublisher()

    register_exception_handlers(app)
    app.include_router(public_router)
    app.include_router(auth.router)
    app.include_router(admin_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
