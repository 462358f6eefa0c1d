"""FastAPI dependency injection for database sessions and the job engine."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.jobs.engine import ReclassifyJobEngine
from app.services.classification import ClassificationService


def get_job_engine(request: Request) -> ReclassifyJobEngine:
    """
    Get the application's reclassification engine.

    Args:
        request: Incoming request (the engine lives on ``app.state``)

    Returns:
        ReclassifyJobEngine instance shared by all requests
    """
    return request.app.state.job_engine


async def get_classification_service(
    db: AsyncSession = Depends(get_db),
) -> ClassificationService:
    """
    Get classification service instance.

    Args:
        db: Database session

    Returns:
        ClassificationService instance
    """
    return ClassificationService(db)
