"""Database models for the calendar service."""

from .base import BaseModel, TimestampMixin
from .tenant import Tenant
from .user import User, UserRole
from .catalog import Catalog, CatalogEvent, CatalogType
from .organization_event import OrganizationEvent
from .subscription import CatalogSubscription, EventSubscription

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "Tenant",
    "User",
    "UserRole",
    "Catalog",
    "CatalogEvent",
    "CatalogType",
    "OrganizationEvent",
    "CatalogSubscription",
    "EventSubscription",
]
