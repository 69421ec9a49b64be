"""User model for calendar platform identity."""

import enum
import uuid
from typing import Any, Dict

from sqlalchemy import (
    Boolean, CheckConstraint, Column, ForeignKey, Index, String, UUID
)
from sqlalchemy.orm import relationship

from .base import TimestampMixin
from src.core.database import Base


class UserRole(str, enum.Enum):
    """Platform roles."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    USER = "USER"


class User(Base, TimestampMixin):
    """
    User model. Users belong to at most one tenant; super admins usually
    belong to none.

    Password hashing and token issuance live with the identity provider.
    Calendar code only reads users to show who created an organization event.
    """

    __tablename__ = "users"

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Primary key UUID for user identity"
    )

    tenant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
        comment="Organization the user belongs to"
    )

    email = Column(
        String(255),
        nullable=False,
        unique=True,
        comment="Primary email address, must be unique across platform"
    )

    first_name = Column(
        String(100),
        nullable=False,
        comment="User's first name"
    )

    last_name = Column(
        String(100),
        nullable=False,
        comment="User's last name"
    )

    role = Column(
        String(20),
        default=UserRole.USER.value,
        nullable=False,
        comment="Platform role: SUPER_ADMIN, ADMIN, USER"
    )

    is_active = Column(
        Boolean,
        default=True,
        nullable=False,
        comment="Whether the user may sign in"
    )

    tenant = relationship("Tenant", back_populates="users", lazy="select")

    __table_args__ = (
        CheckConstraint(
            "role IN ('SUPER_ADMIN', 'ADMIN', 'USER')",
            name="valid_user_role"
        ),
        Index("idx_users_tenant_id", "tenant_id"),
        Index("idx_users_email", "email"),
    )

    def to_summary(self) -> Dict[str, Any]:
        """Public fields shown next to content the user created."""
        return {
            "id": str(self.id),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
        }

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
