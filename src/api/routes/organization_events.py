"""Organization event API endpoints."""

from dataclasses import asdict
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies.common import require_tenant_capability
from src.core.database import get_db_session
from src.middleware.auth import Capability, Identity
from src.middleware.logging import get_request_logger
from src.schemas.base import CollectionMeta
from src.schemas.organization_event import (
    OrganizationEventBulkCreateRequest,
    OrganizationEventBulkCreateResponse,
    OrganizationEventCollectionResponse,
    OrganizationEventCreateRequest,
    OrganizationEventResponse,
    OrganizationEventUpdateRequest,
)
from src.schemas.subscription import MessageResponse
from src.services.errors import FilterValidationError
from src.services.event_filters import CalendarFilter
from src.services.organization_event_service import (
    OrganizationEventNotFoundError,
    OrganizationEventPermissionError,
    OrganizationEventService,
    OrganizationEventServiceError,
    OrganizationEventValidationError,
)

router = APIRouter()

EVENTS_PATH = "/tenants/{tenant_id}/events"

_ERROR_MAP = {
    OrganizationEventNotFoundError: (status.HTTP_404_NOT_FOUND, "not_found", "ORGANIZATION_EVENT_NOT_FOUND"),
    OrganizationEventValidationError: (
        status.HTTP_400_BAD_REQUEST, "validation_failed", "ORGANIZATION_EVENT_VALIDATION_ERROR"
    ),
    OrganizationEventPermissionError: (
        status.HTTP_403_FORBIDDEN, "permission_denied", "ORGANIZATION_EVENT_PERMISSION_DENIED"
    ),
}


def _to_http_exception(request: Request, error: OrganizationEventServiceError) -> HTTPException:
    status_code, name, code = _ERROR_MAP[type(error)]
    get_request_logger(request).warning("Organization event request rejected", code=code, error=str(error))
    return HTTPException(
        status_code=status_code,
        detail={"error": name, "message": str(error), "code": code}
    )


can_read = require_tenant_capability(Capability.READ_ORGANIZATION_EVENTS)
can_write = require_tenant_capability(Capability.WRITE_ORGANIZATION_EVENTS)
can_manage = require_tenant_capability(Capability.MANAGE_ORGANIZATION_EVENTS)


@router.get(
    EVENTS_PATH,
    response_model=OrganizationEventCollectionResponse,
    dependencies=[Depends(can_read)],
)
async def list_organization_events(
    tenant_id: UUID,
    start_date: Optional[str] = Query(None, description="Earliest event start (ISO 8601)"),
    end_date: Optional[str] = Query(None, description="Latest event start (ISO 8601)"),
    tags: Optional[str] = Query(None, description="Comma-separated tags, any match"),
    search: Optional[str] = Query(None, description="Case-insensitive title/description search"),
    session: AsyncSession = Depends(get_db_session),
):
    """List the organization's own events ordered by start date."""
    try:
        filters = CalendarFilter.from_query(
            start_date=start_date, end_date=end_date, tags=tags, search=search
        )
    except FilterValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "validation_failed",
                "message": str(e),
                "code": "ORGANIZATION_EVENT_VALIDATION_ERROR",
                "validation_errors": [asdict(error) for error in e.validation_errors]
            }
        )

    events = await OrganizationEventService(session).list_events(tenant_id, filters)
    return OrganizationEventCollectionResponse(data=events, meta=CollectionMeta(count=len(events)))


@router.get(
    f"{EVENTS_PATH}/{{event_id}}",
    response_model=OrganizationEventResponse,
    dependencies=[Depends(can_read)],
)
async def get_organization_event(
    request: Request,
    tenant_id: UUID,
    event_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Get one of the organization's events."""
    try:
        event = await OrganizationEventService(session).get_event(tenant_id, event_id)
    except OrganizationEventServiceError as e:
        raise _to_http_exception(request, e)
    return OrganizationEventResponse(data=event)


@router.post(
    EVENTS_PATH,
    response_model=OrganizationEventResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_organization_event(
    request: Request,
    tenant_id: UUID,
    body: OrganizationEventCreateRequest,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(can_write),
):
    """Create an event for the organization, authored by the caller."""
    try:
        event = await OrganizationEventService(session).create_event(tenant_id, identity.user_id, body)
    except OrganizationEventServiceError as e:
        raise _to_http_exception(request, e)
    return OrganizationEventResponse(data=event, message="Organization event created successfully")


@router.post(
    f"{EVENTS_PATH}/bulk",
    response_model=OrganizationEventBulkCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def bulk_create_organization_events(
    request: Request,
    tenant_id: UUID,
    body: OrganizationEventBulkCreateRequest,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(can_manage),
):
    """Create several events at once. Nothing is created if any event is invalid."""
    try:
        result = await OrganizationEventService(session).bulk_create_events(
            tenant_id, identity.user_id, body.events
        )
    except OrganizationEventServiceError as e:
        raise _to_http_exception(request, e)
    return OrganizationEventBulkCreateResponse(
        data=result, message=f"{result.count} organization events created successfully"
    )


@router.put(
    f"{EVENTS_PATH}/{{event_id}}",
    response_model=OrganizationEventResponse,
)
async def update_organization_event(
    request: Request,
    tenant_id: UUID,
    event_id: UUID,
    body: OrganizationEventUpdateRequest,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(can_write),
):
    """Update an event. Members may only update events they created."""
    try:
        event = await OrganizationEventService(session).update_event(
            tenant_id,
            event_id,
            identity.user_id,
            identity.can(Capability.MANAGE_ORGANIZATION_EVENTS),
            body,
        )
    except OrganizationEventServiceError as e:
        raise _to_http_exception(request, e)
    return OrganizationEventResponse(data=event, message="Organization event updated successfully")


@router.delete(
    f"{EVENTS_PATH}/{{event_id}}",
    response_model=MessageResponse,
)
async def delete_organization_event(
    request: Request,
    tenant_id: UUID,
    event_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(can_write),
):
    """Delete an event. Members may only delete events they created."""
    try:
        title = await OrganizationEventService(session).delete_event(
            tenant_id,
            event_id,
            identity.user_id,
            identity.can(Capability.MANAGE_ORGANIZATION_EVENTS),
        )
    except OrganizationEventServiceError as e:
        raise _to_http_exception(request, e)
    return MessageResponse(message=f'Organization event "{title}" deleted successfully')
