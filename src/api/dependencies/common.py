"""Common FastAPI dependencies."""

from typing import Callable
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from src.middleware.auth import Capability, Identity
from src.models.user import UserRole


def _forbidden(message: str, code: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "error": "forbidden",
            "message": message,
            "code": code
        }
    )


def get_identity(request: Request) -> Identity:
    """Build the caller identity from the authenticated request state."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "not_authenticated",
                "message": "User not authenticated",
                "code": "AUTHENTICATION_REQUIRED"
            }
        )

    tenant_id = getattr(request.state, "tenant_id", None)
    return Identity(
        user_id=UUID(str(user_id)),
        role=UserRole(getattr(request.state, "user_role", UserRole.USER.value)),
        tenant_id=UUID(str(tenant_id)) if tenant_id else None,
    )


def require_capability(capability: Capability) -> Callable[..., Identity]:
    """Dependency factory that rejects callers lacking ``capability``."""
    def capability_checker(identity: Identity = Depends(get_identity)) -> Identity:
        if not identity.can(capability):
            raise _forbidden(
                f"Role '{identity.role.value}' may not perform '{capability.value}'",
                "INSUFFICIENT_PERMISSIONS",
            )
        return identity
    return capability_checker


def ensure_tenant_access(identity: Identity, tenant_id: UUID) -> None:
    """Reject access to another organization unless the caller may access any tenant."""
    if not identity.can_access_tenant(tenant_id):
        raise _forbidden("You cannot access other organizations", "CROSS_TENANT_ACCESS")


def require_tenant_capability(capability: Capability) -> Callable[..., Identity]:
    """Dependency factory requiring ``capability`` and access to the ``tenant_id`` path parameter."""
    def tenant_checker(
        tenant_id: UUID,
        identity: Identity = Depends(require_capability(capability)),
    ) -> Identity:
        ensure_tenant_access(identity, tenant_id)
        return identity
    return tenant_checker
