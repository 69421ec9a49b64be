"""Health check and system endpoints."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db_session
from src.core.settings import get_settings
from src.schemas.base import HealthCheckResponse

router = APIRouter()
settings = get_settings()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(session: AsyncSession = Depends(get_db_session)):
    """
    Service health check endpoint.

    Reports database connectivity. Responds 503 when the database is
    unreachable.
    """
    started = time.perf_counter()
    try:
        result = await session.execute(text("SELECT 1 AS health_check"))
        healthy = result.scalar() == 1
        database = {
            "status": "healthy" if healthy else "unhealthy",
            "response_time_ms": round((time.perf_counter() - started) * 1000, 2),
            "details": "Connection successful" if healthy else "Unexpected database response",
        }
    except SQLAlchemyError as e:
        database = {
            "status": "unhealthy",
            "error": str(e),
            "details": "Database connection failed",
        }

    health = HealthCheckResponse(
        status=database["status"],
        timestamp=datetime.now(timezone.utc),
        version=settings.service_version,
        environment=settings.environment,
        dependencies={"database": database},
    )

    if health.status == "unhealthy":
        return JSONResponse(status_code=503, content=jsonable_encoder(health))
    return health


@router.get("/version")
async def version_info():
    """Get service version information."""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment,
        "api_version": "v1",
    }
