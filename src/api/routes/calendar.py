"""Unified calendar API endpoints."""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies.common import require_capability
from src.core.database import get_db_session
from src.middleware.auth import Capability, Identity
from src.middleware.logging import get_request_logger
from src.schemas.calendar import CalendarStatsResponse, UnifiedCalendarResponse
from src.services.calendar_service import CalendarService
from src.services.calendar_stats import CalendarStatsService
from src.services.errors import (
    CalendarAggregationError,
    CalendarPermissionError,
    CalendarServiceError,
    CalendarValidationError,
)
from src.services.event_filters import CalendarFilter

router = APIRouter()


def _to_http_exception(request: Request, error: CalendarServiceError) -> HTTPException:
    """Map a calendar service error onto its HTTP status and error code."""
    if isinstance(error, CalendarPermissionError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "permission_denied",
                "message": str(error),
                "code": "CALENDAR_PERMISSION_DENIED"
            }
        )
    if isinstance(error, CalendarValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "validation_failed",
                "message": str(error),
                "code": "CALENDAR_VALIDATION_ERROR",
                "validation_errors": [asdict(e) for e in error.validation_errors]
            }
        )

    get_request_logger(request).error("Calendar aggregation failed", error=str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "aggregation_failed",
            "message": "Failed to fetch calendar events",
            "code": "CALENDAR_AGGREGATION_ERROR"
        }
    )


@router.get("", response_model=UnifiedCalendarResponse)
async def get_unified_calendar(
    request: Request,
    start_date: Optional[str] = Query(None, description="Earliest event start (ISO 8601)"),
    end_date: Optional[str] = Query(None, description="Latest event start (ISO 8601)"),
    tags: Optional[str] = Query(None, description="Comma-separated tags, any match"),
    search: Optional[str] = Query(None, description="Case-insensitive title/description search"),
    source: Optional[str] = Query(None, description="all, catalog or organization"),
    country: Optional[str] = Query(None, description="Catalog event country, or 'all'"),
    region: Optional[str] = Query(None, description="Catalog event region, or 'all'"),
    type: Optional[str] = Query(None, description="Catalog type"),
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_capability(Capability.READ_CALENDAR)),
):
    """Get the caller's organization calendar: subscribed catalog events plus organization events."""
    try:
        filters = CalendarFilter.from_query(
            start_date=start_date,
            end_date=end_date,
            tags=tags,
            search=search,
            source=source,
            country=country,
            region=region,
            catalog_type=type,
        )
        return await CalendarService(session).get_unified_calendar(identity.tenant_id, filters)
    except (CalendarAggregationError, CalendarPermissionError, CalendarValidationError) as e:
        raise _to_http_exception(request, e)


@router.get("/stats", response_model=CalendarStatsResponse)
async def get_calendar_stats(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_capability(Capability.READ_CALENDAR)),
):
    """Get event and subscription counts for the caller's organization."""
    try:
        return await CalendarStatsService(session).get_calendar_stats(identity.tenant_id)
    except (CalendarAggregationError, CalendarPermissionError) as e:
        raise _to_http_exception(request, e)


@router.get("/month/{year}/{month}", response_model=UnifiedCalendarResponse)
async def get_events_by_month(
    request: Request,
    year: str,
    month: str,
    tags: Optional[str] = Query(None, description="Comma-separated tags, any match"),
    search: Optional[str] = Query(None, description="Case-insensitive title/description search"),
    source: Optional[str] = Query(None, description="all, catalog or organization"),
    country: Optional[str] = Query(None, description="Catalog event country, or 'all'"),
    region: Optional[str] = Query(None, description="Catalog event region, or 'all'"),
    type: Optional[str] = Query(None, description="Catalog type"),
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_capability(Capability.READ_CALENDAR)),
):
    """Get the caller's calendar for one month. Date filters are replaced by the month."""
    try:
        filters = CalendarFilter.from_query(
            tags=tags,
            search=search,
            source=source,
            country=country,
            region=region,
            catalog_type=type,
        )
        return await CalendarService(session).get_events_by_month(
            identity.tenant_id, year, month, filters
        )
    except (CalendarAggregationError, CalendarPermissionError, CalendarValidationError) as e:
        raise _to_http_exception(request, e)
