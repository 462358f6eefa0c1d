from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_job_engine
from app.db.session import get_db
from app.jobs.engine import ReclassifyJobEngine

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


@router.get("/health/ready")
async def health_ready(
    db: AsyncSession = Depends(get_db),
    engine: ReclassifyJobEngine = Depends(get_job_engine),
):
    """Readiness check: database reachable, plus the number of tracked jobs."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "database": "disconnected", "error": type(e).__name__},
        )
    return {"status": "ready", "database": "connected", "jobs": len(engine.store)}
