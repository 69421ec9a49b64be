"""Catalog and event subscription API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies.common import require_tenant_capability
from src.core.database import get_db_session
from src.middleware.auth import Capability
from src.middleware.logging import get_request_logger
from src.schemas.base import CollectionMeta
from src.schemas.subscription import (
    AvailableCatalogCollectionResponse,
    CatalogSubscriptionCollectionResponse,
    CatalogSubscriptionCreateRequest,
    CatalogSubscriptionResponse,
    CatalogSubscriptionUpdateRequest,
    EventSubscriptionCollectionResponse,
    EventSubscriptionResponse,
    EventSubscriptionStatusResponse,
    EventVisibilityRequest,
    MessageResponse,
)
from src.services.subscription_service import (
    SubscriptionConflictError,
    SubscriptionNotFoundError,
    SubscriptionPermissionError,
    SubscriptionService,
    SubscriptionServiceError,
    SubscriptionValidationError,
)

router = APIRouter()

EVENT_PATH = "/tenants/{tenant_id}/catalogs/{catalog_id}/events/{event_id}"

_ERROR_MAP = {
    SubscriptionNotFoundError: (status.HTTP_404_NOT_FOUND, "not_found", "SUBSCRIPTION_NOT_FOUND"),
    SubscriptionConflictError: (status.HTTP_409_CONFLICT, "conflict", "SUBSCRIPTION_CONFLICT"),
    SubscriptionValidationError: (status.HTTP_400_BAD_REQUEST, "validation_failed", "SUBSCRIPTION_VALIDATION_ERROR"),
    SubscriptionPermissionError: (status.HTTP_403_FORBIDDEN, "permission_denied", "SUBSCRIPTION_PERMISSION_DENIED"),
}


def _to_http_exception(request: Request, error: SubscriptionServiceError) -> HTTPException:
    status_code, name, code = _ERROR_MAP[type(error)]
    get_request_logger(request).warning("Subscription request rejected", code=code, error=str(error))
    return HTTPException(
        status_code=status_code,
        detail={"error": name, "message": str(error), "code": code}
    )


can_read = require_tenant_capability(Capability.READ_SUBSCRIPTIONS)
can_manage = require_tenant_capability(Capability.MANAGE_SUBSCRIPTIONS)


# Catalog subscriptions

@router.get(
    "/tenants/{tenant_id}/subscriptions",
    response_model=CatalogSubscriptionCollectionResponse,
    dependencies=[Depends(can_read)],
)
async def list_catalog_subscriptions(
    tenant_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """List the organization's catalog subscriptions, newest first."""
    subscriptions = await SubscriptionService(session).list_catalog_subscriptions(tenant_id)
    return CatalogSubscriptionCollectionResponse(
        data=subscriptions, meta=CollectionMeta(count=len(subscriptions))
    )


@router.get(
    "/tenants/{tenant_id}/subscriptions/available",
    response_model=AvailableCatalogCollectionResponse,
    dependencies=[Depends(can_read)],
)
async def list_available_catalogs(
    tenant_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """List active catalogs the organization has not subscribed to."""
    catalogs = await SubscriptionService(session).list_available_catalogs(tenant_id)
    return AvailableCatalogCollectionResponse(data=catalogs, meta=CollectionMeta(count=len(catalogs)))


@router.post(
    "/tenants/{tenant_id}/subscriptions",
    response_model=CatalogSubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(can_manage)],
)
async def subscribe_to_catalog(
    request: Request,
    tenant_id: UUID,
    body: CatalogSubscriptionCreateRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Subscribe the organization to a catalog."""
    try:
        subscription = await SubscriptionService(session).subscribe_to_catalog(tenant_id, body.catalog_id)
    except SubscriptionServiceError as e:
        raise _to_http_exception(request, e)
    return CatalogSubscriptionResponse(data=subscription, message="Successfully subscribed to catalog")


@router.put(
    "/tenants/{tenant_id}/subscriptions/{subscription_id}",
    response_model=CatalogSubscriptionResponse,
    dependencies=[Depends(can_manage)],
)
async def update_catalog_subscription(
    request: Request,
    tenant_id: UUID,
    subscription_id: UUID,
    body: CatalogSubscriptionUpdateRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Activate or deactivate a catalog subscription."""
    try:
        subscription = await SubscriptionService(session).update_catalog_subscription(
            tenant_id, subscription_id, is_active=body.is_active
        )
    except SubscriptionServiceError as e:
        raise _to_http_exception(request, e)
    return CatalogSubscriptionResponse(data=subscription, message="Subscription updated successfully")


@router.delete(
    "/tenants/{tenant_id}/subscriptions/{subscription_id}",
    response_model=MessageResponse,
    dependencies=[Depends(can_manage)],
)
async def unsubscribe_from_catalog(
    request: Request,
    tenant_id: UUID,
    subscription_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a catalog subscription."""
    try:
        catalog_name = await SubscriptionService(session).unsubscribe_from_catalog(tenant_id, subscription_id)
    except SubscriptionServiceError as e:
        raise _to_http_exception(request, e)
    return MessageResponse(message=f"Successfully unsubscribed from {catalog_name}")


# Event subscriptions

@router.get(
    "/tenants/{tenant_id}/event-subscriptions",
    response_model=EventSubscriptionCollectionResponse,
    dependencies=[Depends(can_read)],
)
async def list_event_subscriptions(
    tenant_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """List the organization's visible event subscriptions, newest first."""
    subscriptions = await SubscriptionService(session).list_event_subscriptions(tenant_id)
    return EventSubscriptionCollectionResponse(
        data=subscriptions, meta=CollectionMeta(count=len(subscriptions))
    )


@router.get(
    f"{EVENT_PATH}/subscription-status",
    response_model=EventSubscriptionStatusResponse,
    dependencies=[Depends(can_read)],
)
async def get_event_subscription_status(
    request: Request,
    tenant_id: UUID,
    catalog_id: UUID,
    event_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Report whether the organization has a subscription row for an event."""
    try:
        subscription_status = await SubscriptionService(session).get_event_subscription_status(
            tenant_id, catalog_id, event_id
        )
    except SubscriptionServiceError as e:
        raise _to_http_exception(request, e)
    return EventSubscriptionStatusResponse(data=subscription_status)


@router.post(
    f"{EVENT_PATH}/subscribe",
    response_model=EventSubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(can_manage)],
)
async def subscribe_to_event(
    request: Request,
    tenant_id: UUID,
    catalog_id: UUID,
    event_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Subscribe the organization to a single catalog event."""
    try:
        subscription = await SubscriptionService(session).subscribe_to_event(tenant_id, catalog_id, event_id)
    except SubscriptionServiceError as e:
        raise _to_http_exception(request, e)
    return EventSubscriptionResponse(data=subscription, message="Subscribed to event successfully")


@router.delete(
    f"{EVENT_PATH}/unsubscribe",
    response_model=MessageResponse,
    dependencies=[Depends(can_manage)],
)
async def unsubscribe_from_event(
    request: Request,
    tenant_id: UUID,
    catalog_id: UUID,
    event_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Remove the organization's subscription row for a single event."""
    try:
        title = await SubscriptionService(session).unsubscribe_from_event(tenant_id, catalog_id, event_id)
    except SubscriptionServiceError as e:
        raise _to_http_exception(request, e)
    return MessageResponse(message=f'Unsubscribed from "{title}" successfully')


@router.put(
    f"{EVENT_PATH}/visibility",
    response_model=EventSubscriptionResponse,
    dependencies=[Depends(can_manage)],
)
async def set_event_visibility(
    request: Request,
    tenant_id: UUID,
    catalog_id: UUID,
    event_id: UUID,
    body: EventVisibilityRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Show or hide a catalog event in the organization's calendar."""
    try:
        subscription = await SubscriptionService(session).set_event_visibility(
            tenant_id, catalog_id, event_id, body.is_visible
        )
    except SubscriptionServiceError as e:
        raise _to_http_exception(request, e)
    message = "Event is now visible" if body.is_visible else "Event is now hidden"
    return EventSubscriptionResponse(data=subscription, message=message)
