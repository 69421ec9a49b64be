"""Unified calendar and calendar statistics schemas."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import Field

from .base import BaseSchema


class CreatorSummary(BaseSchema):
    """User who created an organization event."""

    id: UUID = Field(description="User UUID")
    first_name: str = Field(description="First name")
    last_name: str = Field(description="Last name")
    email: str = Field(description="Email address")


class CatalogSourceDetails(BaseSchema):
    """Provenance of a catalog event."""

    catalog_id: UUID = Field(description="Owning catalog")
    catalog_name: str = Field(description="Owning catalog name")
    catalog_type: str = Field(description="Owning catalog type")
    country: Optional[str] = Field(None, description="Country scope")
    region: Optional[str] = Field(None, description="Region scope")
    industries: List[str] = Field(default_factory=list, description="Relevant industries")
    subscription_type: Literal["catalog", "individual"] = Field(
        description="'individual' when visible only through its own event subscription"
    )


class OrganizationSourceDetails(BaseSchema):
    """Provenance of an organization event."""

    created_by: Optional[CreatorSummary] = Field(None, description="Creator, if still present")


class UnifiedEvent(BaseSchema):
    """A catalog or organization event in the merged calendar."""

    id: UUID = Field(description="Event UUID")
    title: str = Field(description="Event title")
    description: Optional[str] = Field(None, description="Event description")
    start_date: datetime = Field(description="Start instant (UTC)")
    end_date: datetime = Field(description="End instant (UTC)")
    is_recurring: bool = Field(False, description="Whether the event repeats")
    recurrence_rule: Optional[str] = Field(None, description="Stored recurrence rule, not expanded")
    tags: List[str] = Field(default_factory=list, description="Event tags")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Opaque event metadata")
    source: Literal["catalog", "organization"] = Field(description="Event collection")
    source_details: Union[CatalogSourceDetails, OrganizationSourceDetails] = Field(
        description="Provenance details for the event source"
    )
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")


class CalendarSummary(BaseSchema):
    """Counts describing a calendar result."""

    total: int = Field(description="Number of events returned")
    catalog_event_count: int = Field(description="Catalog events returned")
    organization_event_count: int = Field(description="Organization events returned")
    subscribed_catalog_count: int = Field(description="Active catalog subscriptions")
    individual_event_subscription_count: int = Field(description="Visible event subscriptions")


class CalendarFilterEcho(BaseSchema):
    """Filters that were applied, echoed for display."""

    start_date: Optional[str] = None
    end_date: Optional[str] = None
    tags: Optional[List[str]] = None
    search: Optional[str] = None
    source: str = "all"
    country: Optional[str] = None
    region: Optional[str] = None
    type: Optional[str] = None


class UnifiedCalendarResponse(BaseSchema):
    """Merged, chronologically ordered calendar."""

    events: List[UnifiedEvent] = Field(default_factory=list, description="Events by start date")
    summary: CalendarSummary
    filters: CalendarFilterEcho


class TypeBreakdown(BaseSchema):
    """Catalog subscriptions of one catalog type."""

    count: int = Field(description="Active catalog subscriptions of this type")
    events: int = Field(description="Events in those catalogs")


class UpcomingCounts(BaseSchema):
    """Visible events starting within the upcoming window."""

    total: int
    catalog_events: int
    organization_events: int
    window_days: int = Field(description="Length of the upcoming window in days")


class CalendarStatsResponse(BaseSchema):
    """Calendar statistics for a tenant."""

    total_events: int = Field(description="Visible catalog events plus organization events")
    catalog_events: int = Field(description="Distinct visible catalog events")
    organization_events: int = Field(description="Organization events")
    active_subscriptions: int = Field(description="Active catalog subscriptions")
    individual_event_subscriptions: int = Field(description="Visible event subscriptions")
    subscriptions_by_type: Dict[str, TypeBreakdown] = Field(
        default_factory=dict,
        description="Catalog subscriptions per catalog type; individual event subscriptions excluded"
    )
    upcoming: UpcomingCounts
