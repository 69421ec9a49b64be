"""Organization event schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from .base import BaseSchema, CollectionMeta
from .calendar import CreatorSummary


class OrganizationEventResource(BaseSchema):
    """A private event owned by one organization."""

    id: UUID
    tenant_id: UUID
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    is_recurring: bool = False
    recurrence_rule: Optional[str] = Field(None, description="Stored as given, never expanded")
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[CreatorSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrganizationEventCreateRequest(BaseSchema):
    """Request body for creating an organization event."""

    title: str = Field(min_length=1, max_length=500, description="Event title")
    description: Optional[str] = Field(None, description="Event description")
    start_date: datetime = Field(description="Start instant (ISO 8601, naive means UTC)")
    end_date: datetime = Field(description="End instant, not before start_date")
    is_recurring: bool = False
    recurrence_rule: Optional[str] = Field(None, max_length=500)
    tags: List[str] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None


class OrganizationEventUpdateRequest(BaseSchema):
    """Request body for updating an organization event. Omitted fields are left unchanged."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_recurring: Optional[bool] = None
    recurrence_rule: Optional[str] = Field(None, max_length=500)
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class OrganizationEventBulkCreateRequest(BaseSchema):
    """Request body for creating several organization events at once."""

    events: List[OrganizationEventCreateRequest] = Field(description="Events to create")


class OrganizationEventResponse(BaseSchema):
    data: OrganizationEventResource
    message: Optional[str] = None


class OrganizationEventCollectionResponse(BaseSchema):
    data: List[OrganizationEventResource]
    meta: CollectionMeta


class BulkCreateResult(BaseSchema):
    count: int = Field(description="Number of events created")
    ids: List[UUID] = Field(default_factory=list, description="Ids of the created events")


class OrganizationEventBulkCreateResponse(BaseSchema):
    data: BulkCreateResult
    message: Optional[str] = None
