"""FastAPI application entry point for the frc-api service.

Owns the application lifespan: resolves backend configuration, starts every
datastore through a single DatastoreManager on startup and shuts them all down
on exit. Route handlers borrow the manager from ``app.state.datastores``.
"""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings, load_backend_config, load_config_source
from logging_config import configure_logging
from models.schemas import ServiceInfo
from routers import health
from services.lifecycle import DatastoreManager

logger = logging.getLogger(__name__)

SERVICE_NAME = "frc-api"
SERVICE_VERSION = "0.1.0"


def create_app(
    datastores: DatastoreManager | None = None,
    config_source: Mapping[str, str] | None = None,
) -> FastAPI:
    """Build the application.

    Tests pass their own DatastoreManager and key/value source; by default the
    source is the env file merged with the process environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Manage startup and shutdown of the datastores."""
        settings = get_settings()
        logger.info(
            "Starting %s v%s on port %d (env=%s)",
            SERVICE_NAME,
            SERVICE_VERSION,
            settings.port,
            settings.app_env,
        )

        manager = datastores or DatastoreManager()
        app.state.datastores = manager

        # Critical datastore failures propagate and abort startup
        source = config_source if config_source is not None else load_config_source()
        await manager.startup(load_backend_config(source))

        try:
            yield
        finally:
            logger.info("Shutting down %s", SERVICE_NAME)
            await manager.shutdown()

    application = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        description="API service backed by PostgreSQL, Redis, Neo4j and Elasticsearch.",
        lifespan=lifespan,
    )

    settings = get_settings()
    cors_origins = [
        origin.strip() for origin in settings.allowed_cors_origins.split(",") if origin.strip()
    ]
    application.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(health.router)

    @application.get("/")
    async def root() -> ServiceInfo:
        """Return basic service identification."""
        return ServiceInfo(
            service=SERVICE_NAME,
            version=SERVICE_VERSION,
            environment=settings.app_env,
        )

    return application


_settings = get_settings()
configure_logging(_settings.log_level, _settings.log_dir or None)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=_settings.port)
