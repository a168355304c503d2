"""
FastAPI Application Entry Point
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from radio_api.core.config import settings
from radio_api.core.async_database import engine, close_db
from radio_api.core.sentry import init_sentry
from radio_api.core.exceptions import setup_exception_handlers
from radio_api.api.routers import activity_logs, health
from radio_api.db.bootstrap import SchemaBootstrap, default_schema_steps
from radio_api.middleware.correlation_id import CorrelationIDMiddleware
from radio_api.services.activity_log_service import activity_log_service
from radio_api.utils.logger import setup_logging

logger = logging.getLogger(__name__)


async def announce_start(bootstrap: SchemaBootstrap) -> None:
    """Record system_start once the activity log table is usable"""
    results = await bootstrap.wait_ready()
    if results.get("activity_logs"):
        await activity_log_service.log_system_start()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events
    """
    setup_logging(
        log_level="DEBUG" if settings.DEBUG else "INFO",
        json_logs=not settings.DEBUG
    )
    init_sentry()

    # Schema setup runs in the background; requests are served meanwhile
    bootstrap = SchemaBootstrap(engine, default_schema_steps())
    app.state.schema_bootstrap = bootstrap
    bootstrap_task = bootstrap.start()
    announcer = asyncio.create_task(announce_start(bootstrap))

    logger.info("Application startup complete")

    yield

    if bootstrap_task.done() and bootstrap.is_ready("activity_logs"):
        await activity_log_service.log_system_stop()

    for task in (announcer, bootstrap_task):
        if not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    await close_db()
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

setup_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Correlation-ID"],
)

app.add_middleware(CorrelationIDMiddleware)

app.include_router(health.router, prefix=f"{settings.API_PREFIX}/health", tags=["Health"])
app.include_router(activity_logs.router, prefix=f"{settings.API_PREFIX}/activity-log", tags=["Activity Log"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "docs": "/api/docs",
        "version": settings.VERSION
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
