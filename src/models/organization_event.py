"""Private events owned by a single tenant."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, UUID
from sqlalchemy.orm import relationship

from .base import BaseModel, JSONType


class OrganizationEvent(BaseModel):
    """
    An event visible only to the tenant that owns it.

    ``created_by_id`` is a weak reference kept for display; removing the user
    leaves the event in place.
    """

    __tablename__ = "organization_events"

    tenant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning tenant"
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

    tags = Column(
        JSONType,
        default=list,
        nullable=False,
        comment="Array of tags"
    )
    event_metadata = Column(
        "metadata",
        JSONType,
        default=dict,
        comment="Additional metadata in JSON format"
    )

    created_by_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who created the event"
    )

    tenant = relationship("Tenant", back_populates="organization_events", lazy="select")
    created_by = relationship("User", lazy="select")

    __table_args__ = (
        Index("idx_organization_events_tenant_id", "tenant_id"),
        Index("idx_organization_events_start_date", "tenant_id", "start_date"),
    )
