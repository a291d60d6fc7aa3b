from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from liftlog.config.logging import setup_logging
from liftlog.config.settings import Settings
from liftlog.v1.core.exceptions import (
    LiftLogException,
    RequestContextMiddleware,
    general_exception_handler,
    http_exception_handler,
    liftlog_exception_handler,
)
from liftlog.v1.core.registries import extractor_registry
from liftlog.v1.healthz import router as health_router
from liftlog.v1.infra.jobs.routes import router as jobs_router
from liftlog.v1.infra.jobs.runtime import QueueRuntime
from liftlog.v1.workouts.registry_init import init_extractor_registry
from liftlog.v1.workouts.routes import router as exercises_router
from liftlog.v1.workouts.sink import PostgresUploadSink


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the queue runtime for the lifetime of the application."""
    settings: Settings = app.state.settings
    async with QueueRuntime(settings) as runtime:
        app.state.database = runtime.database
        app.state.job_store = runtime.store
        app.state.upload_sink = PostgresUploadSink(runtime.database, settings)
        if settings.embedded_workers:
            await runtime.start_workers()
        yield


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or Settings()

    # Initialize structured logging
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Asynchronous workout log processing",
        version=settings.version,
        debug=settings.debug,
        openapi_url="/v1/openapi.json" if settings.debug else None,
        docs_url="/v1/docs" if settings.debug else None,
        redoc_url="/v1/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Add middleware
    app.add_middleware(RequestContextMiddleware)

    # Add CORS middleware for development
    if settings.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Add exception handlers
    app.add_exception_handler(LiftLogException, liftlog_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers with /v1 prefix
    app.include_router(health_router, prefix="/v1", tags=["health"])
    app.include_router(jobs_router, prefix="/v1")
    app.include_router(exercises_router, prefix="/v1")

    # Freeze registries in non-development environments to prevent runtime modifications
    init_extractor_registry()
    if settings.environment != "development":
        extractor_registry.freeze()

    return app


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
    )
