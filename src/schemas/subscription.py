"""Catalog and event subscription schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from .base import BaseSchema, CollectionMeta


class CatalogSummary(BaseSchema):
    """Catalog fields shown next to a subscription."""

    id: UUID
    name: str
    type: str
    description: Optional[str] = None
    is_active: bool = True
    event_count: Optional[int] = Field(None, description="Number of events in the catalog")


class CatalogSubscriptionResource(BaseSchema):
    """A tenant's subscription to a whole catalog."""

    id: UUID
    tenant_id: UUID
    catalog_id: UUID
    is_active: bool = Field(description="Inactive subscriptions contribute no events")
    subscribed_at: datetime
    catalog: Optional[CatalogSummary] = None


class CatalogSubscriptionCreateRequest(BaseSchema):
    """Request body for subscribing to a catalog."""

    catalog_id: UUID = Field(description="Catalog to subscribe to")


class CatalogSubscriptionUpdateRequest(BaseSchema):
    """Request body for activating or deactivating a subscription."""

    is_active: Optional[bool] = Field(None, description="New active flag; omitted leaves it unchanged")


class CatalogSubscriptionResponse(BaseSchema):
    data: CatalogSubscriptionResource
    message: Optional[str] = None


class CatalogSubscriptionCollectionResponse(BaseSchema):
    data: List[CatalogSubscriptionResource]
    meta: CollectionMeta


class AvailableCatalogCollectionResponse(BaseSchema):
    data: List[CatalogSummary]
    meta: CollectionMeta


class EventSummary(BaseSchema):
    """Catalog event fields shown next to an event subscription."""

    id: UUID
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    catalog: CatalogSummary


class EventSubscriptionResource(BaseSchema):
    """A tenant's subscription to, or visibility override for, one catalog event."""

    id: UUID
    tenant_id: UUID
    catalog_event_id: UUID
    is_visible: bool = Field(description="False hides the event even when its catalog is subscribed")
    subscribed_at: datetime
    event: Optional[EventSummary] = None


class EventVisibilityRequest(BaseSchema):
    """Request body for showing or hiding a catalog event."""

    is_visible: bool


class EventSubscriptionResponse(BaseSchema):
    data: EventSubscriptionResource
    message: Optional[str] = None


class EventSubscriptionCollectionResponse(BaseSchema):
    data: List[EventSubscriptionResource]
    meta: CollectionMeta


class EventSubscriptionStatus(BaseSchema):
    """Whether a tenant has an event subscription row for one event."""

    is_subscribed: bool
    is_visible: Optional[bool] = None
    subscription: Optional[EventSubscriptionResource] = None


class EventSubscriptionStatusResponse(BaseSchema):
    data: EventSubscriptionStatus


class MessageResponse(BaseSchema):
    message: str
