"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from datetime import datetime, timezone
import logging

from app.database import get_db
from app.models.schemas import HealthCheckResponse
from app.services.llm_client import GenerationClient, get_generation_client

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    client: GenerationClient = Depends(get_generation_client),
):
    """
    Health check endpoint to verify system status.

    Returns:
        HealthCheckResponse with status of database and generation backend
    """
    # Check database connection
    db_status = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        db_status = "error"

    # The backend itself is not called; only the credential is checked
    backend_status = "ok" if getattr(client, "is_configured", True) else "unconfigured"

    overall_status = "healthy" if db_status == "ok" and backend_status == "ok" else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        generation_backend=backend_status,
        timestamp=datetime.now(timezone.utc),
    )
