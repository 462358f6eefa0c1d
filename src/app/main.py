from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from app.api.middleware.error_handler import (
    handle_classification_error,
    handle_generic_error,
    handle_validation_error,
)
from app.api.middleware.logging import RequestLoggingMiddleware
from app.api.v1 import router as v1_router
from app.api.v1.health import router as health_router
from app.config import settings
from app.core.exceptions import ClassificationError
from app.core.logging import setup_logging
from app.db.session import AsyncSessionLocal
from app.jobs.engine import ReclassifyJobEngine
from app.jobs.store import JobStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    yield
    # Shutdown: running jobs are cancelled and end as failed
    await app.state.job_engine.shutdown()


def create_app(job_engine: ReclassifyJobEngine | None = None) -> FastAPI:
    setup_logging(settings.log_level, json_format=settings.log_json)

    app = FastAPI(
        title="Clinic Calendar Classification API",
        description="Calendar event classification and bulk reclassification jobs",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.job_engine = job_engine or ReclassifyJobEngine(
        AsyncSessionLocal, JobStore(ttl_seconds=settings.job_ttl_seconds)
    )

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers (order matters - most specific first)
    app.add_exception_handler(ClassificationError, handle_classification_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_generic_error)

    # Register routers
    app.include_router(health_router)
    app.include_router(v1_router)

    return app


app = create_app()
