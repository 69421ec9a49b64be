"""Catalog and catalog event models for globally published calendars."""

import enum

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text, UUID
)
from sqlalchemy.orm import relationship

from .base import BaseModel, JSONType


class CatalogType(str, enum.Enum):
    """Kinds of catalogs published by the platform."""

    WORLD_SPECIAL_DAYS = "WORLD_SPECIAL_DAYS"
    NATIONAL_HOLIDAYS = "NATIONAL_HOLIDAYS"
    REGIONAL_HOLIDAYS = "REGIONAL_HOLIDAYS"


class Catalog(BaseModel):
    """
    A named, global collection of reusable events.

    Catalogs are owned by the platform, not by a tenant. Tenants opt in
    through ``CatalogSubscription``. Deleting a catalog deletes its events.
    """

    __tablename__ = "catalogs"

    name = Column(
        String(255),
        nullable=False,
        comment="Catalog display name"
    )
    description = Column(
        Text,
        comment="Catalog description"
    )
    type = Column(
        String(50),
        nullable=False,
        comment="Catalog type: WORLD_SPECIAL_DAYS, NATIONAL_HOLIDAYS, REGIONAL_HOLIDAYS"
    )
    is_active = Column(
        Boolean,
        default=True,
        nullable=False,
        comment="Inactive catalogs cannot receive new subscriptions"
    )

    events = relationship(
        "CatalogEvent",
        back_populates="catalog",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )
    subscriptions = relationship(
        "CatalogSubscription",
        back_populates="catalog",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('WORLD_SPECIAL_DAYS', 'NATIONAL_HOLIDAYS', 'REGIONAL_HOLIDAYS')",
            name="valid_catalog_type"
        ),
        Index("idx_catalogs_type", "type"),
        Index("idx_catalogs_is_active", "is_active"),
    )


class CatalogEvent(BaseModel):
    """
    One event inside a catalog.

    ``recurrence_rule`` is an RFC 5545 style RRULE string. It is stored and
    returned as-is; occurrences are never expanded.
    """

    __tablename__ = "catalog_events"

    catalog_id = Column(
        UUID(as_uuid=True),
        ForeignKey("catalogs.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning catalog"
    )

    title = Column(
        String(500),
        nullable=False,
        comment="Event title"
    )
    description = Column(
        Text,
        comment="Event description"
    )

    # Timing (UTC)
    start_date = Column(
        DateTime(timezone=True),
        nullable=False,
        comment="Event start instant"
    )
    end_date = Column(
        DateTime(timezone=True),
        nullable=False,
        comment="Event end instant"
    )
    is_recurring = Column(
        Boolean,
        default=False,
        nullable=False,
        comment="Whether the event repeats"
    )
    recurrence_rule = Column(
        String(500),
        comment="Opaque recurrence rule, never expanded"
    )

    # Classification
    tags = Column(
        JSONType,
        default=list,
        nullable=False,
        comment="Array of tags"
    )
    industries = Column(
        JSONType,
        default=list,
        nullable=False,
        comment="Industries the event is relevant to"
    )
    country = Column(
        String(100),
        comment="Country scope"
    )
    region = Column(
        String(100),
        comment="Region scope within the country"
    )

    # "metadata" is reserved on declarative classes
    event_metadata = Column(
        "metadata",
        JSONType,
        default=dict,
        comment="Additional metadata in JSON format"
    )

    catalog = relationship("Catalog", back_populates="events", lazy="select")
    subscriptions = relationship(
        "EventSubscription",
        back_populates="catalog_event",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        Index("idx_catalog_events_catalog_id", "catalog_id"),
        Index("idx_catalog_events_start_date", "start_date"),
        Index("idx_catalog_events_country", "country"),
        Index("idx_catalog_events_region", "region"),
    )
