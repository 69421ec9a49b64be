"""Tenant subscriptions to catalogs and to individual catalog events."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, UniqueConstraint, UUID
from sqlalchemy.orm import relationship

from .base import BaseModel, utcnow


class CatalogSubscription(BaseModel):
    """
    A tenant's blanket opt-in to every event of a catalog.

    Deactivated subscriptions stay in place but grant nothing.
    """

    __tablename__ = "catalog_subscriptions"

    tenant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        comment="Subscribing tenant"
    )
    catalog_id = Column(
        UUID(as_uuid=True),
        ForeignKey("catalogs.id", ondelete="CASCADE"),
        nullable=False,
        comment="Subscribed catalog"
    )
    is_active = Column(
        Boolean,
        default=True,
        nullable=False,
        comment="Inactive subscriptions are kept but inert"
    )
    subscribed_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="When the tenant subscribed"
    )

    tenant = relationship("Tenant", back_populates="catalog_subscriptions", lazy="select")
    catalog = relationship("Catalog", back_populates="subscriptions", lazy="select")

    __table_args__ = (
        UniqueConstraint("tenant_id", "catalog_id", name="unique_catalog_subscription_per_tenant"),
        Index("idx_catalog_subscriptions_tenant_active", "tenant_id", "is_active"),
    )


class EventSubscription(BaseModel):
    """
    A tenant's opt-in to one catalog event, independent of the catalog
    subscription.

    ``is_visible = False`` is a soft hide: the row stays and the event is
    suppressed for the tenant even when its catalog is subscribed.
    """

    __tablename__ = "event_subscriptions"

    tenant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        comment="Subscribing tenant"
    )
    catalog_event_id = Column(
        UUID(as_uuid=True),
        ForeignKey("catalog_events.id", ondelete="CASCADE"),
        nullable=False,
        comment="Subscribed catalog event"
    )
    is_visible = Column(
        Boolean,
        default=True,
        nullable=False,
        comment="Soft-hide flag"
    )
    subscribed_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="When the tenant subscribed"
    )

    tenant = relationship("Tenant", back_populates="event_subscriptions", lazy="select")
    catalog_event = relationship("CatalogEvent", back_populates="subscriptions", lazy="select")

    __table_args__ = (
        UniqueConstraint("tenant_id", "catalog_event_id", name="unique_event_subscription_per_tenant"),
        Index("idx_event_subscriptions_tenant_visible", "tenant_id", "is_visible"),
    )
