"""Tenant model for multi-tenant isolation."""

import uuid
from sqlalchemy import Boolean, Column, Index, String, UUID
from sqlalchemy.orm import relationship

from .base import TimestampMixin
from src.core.database import Base


class Tenant(Base, TimestampMixin):
    """
    Tenant model representing an organization using the calendar.
    Subscriptions, organization events and users belong to a tenant.
    """

    __tablename__ = "tenants"

    # Primary key
    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Primary key UUID"
    )

    # Basic information
    name = Column(
        String(255),
        nullable=False,
        comment="Organization name"
    )
    slug = Column(
        String(100),
        unique=True,
        nullable=False,
        comment="Unique URL-safe identifier"
    )
    country = Column(
        String(100),
        comment="Country the organization operates in"
    )
    industry = Column(
        String(100),
        comment="Industry sector"
    )

    # Status
    is_active = Column(
        Boolean,
        default=True,
        nullable=False,
        comment="Inactive tenants keep their data but cannot sign in"
    )

    # Relationships
    users = relationship("User", back_populates="tenant", lazy="select")
    catalog_subscriptions = relationship(
        "CatalogSubscription",
        back_populates="tenant",
        cascade="all, delete-orphan",
        lazy="select",
    )
    event_subscriptions = relationship(
        "EventSubscription",
        back_populates="tenant",
        cascade="all, delete-orphan",
        lazy="select",
    )
    organization_events = relationship(
        "OrganizationEvent",
        back_populates="tenant",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        Index("idx_tenants_slug", "slug"),
        Index("idx_tenants_is_active", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name='{self.name}', slug='{self.slug}')>"
