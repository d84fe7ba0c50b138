import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketapi.config import settings
from marketapi.database.session import get_db
from marketapi.schemas.health import HealthCheckResponse
from marketapi.utils.date_utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Health check endpoint (DB 연결 포함)."""

    try:
        await run_in_threadpool(db.execute, text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {str(e)}")
        return HealthCheckResponse(
            status="degraded",
            database="unavailable",
            environment=settings.ENVIRONMENT,
            checked_at=utc_now(),
            error=type(e).__name__,
        )

    return HealthCheckResponse(environment=settings.ENVIRONMENT, checked_at=utc_now())
