"""Pydantic schemas for request/response validation."""

from .base import *
from .calendar import *
from .subscription import *
from .organization_event import *

__all__ = [
    # Base schemas
    "BaseSchema",
    "CollectionMeta",
    "JSONAPIError",
    "JSONAPIErrorResponse",
    "HealthCheckResponse",

    # Calendar schemas
    "CreatorSummary",
    "CatalogSourceDetails",
    "OrganizationSourceDetails",
    "UnifiedEvent",
    "CalendarSummary",
    "CalendarFilterEcho",
    "UnifiedCalendarResponse",
    "TypeBreakdown",
    "UpcomingCounts",
    "CalendarStatsResponse",

    # Subscription schemas
    "CatalogSummary",
    "CatalogSubscriptionResource",
    "CatalogSubscriptionCreateRequest",
    "CatalogSubscriptionUpdateRequest",
    "CatalogSubscriptionResponse",
    "CatalogSubscriptionCollectionResponse",
    "AvailableCatalogCollectionResponse",
    "EventSummary",
    "EventSubscriptionResource",
    "EventVisibilityRequest",
    "EventSubscriptionResponse",
    "EventSubscriptionCollectionResponse",
    "EventSubscriptionStatus",
    "EventSubscriptionStatusResponse",
    "MessageResponse",

    # Organization event schemas
    "OrganizationEventResource",
    "OrganizationEventCreateRequest",
    "OrganizationEventUpdateRequest",
    "OrganizationEventBulkCreateRequest",
    "OrganizationEventResponse",
    "OrganizationEventCollectionResponse",
    "BulkCreateResult",
    "OrganizationEventBulkCreateResponse",
]
