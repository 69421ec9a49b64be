"""JWT authentication middleware and the role capability table."""

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, FrozenSet, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.settings import get_settings
from src.models.user import UserRole

logger = logging.getLogger(__name__)
settings = get_settings()

DEV_USER_ID = "00000000-0000-0000-0000-000000000000"


class Capability(str, enum.Enum):
    """Actions an identity may be allowed to perform."""

    READ_CALENDAR = "calendar:read"
    READ_SUBSCRIPTIONS = "subscriptions:read"
    MANAGE_SUBSCRIPTIONS = "subscriptions:manage"
    READ_ORGANIZATION_EVENTS = "organization_events:read"
    # Create events, and change or delete the ones the caller created
    WRITE_ORGANIZATION_EVENTS = "organization_events:write"
    # Change or delete any event of the tenant, and bulk create
    MANAGE_ORGANIZATION_EVENTS = "organization_events:manage"
    ACCESS_ANY_TENANT = "tenants:any"


ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[Capability]] = {
    UserRole.USER: frozenset({
        Capability.READ_CALENDAR,
        Capability.READ_SUBSCRIPTIONS,
        Capability.READ_ORGANIZATION_EVENTS,
        Capability.WRITE_ORGANIZATION_EVENTS,
    }),
    UserRole.ADMIN: frozenset({
        Capability.READ_CALENDAR,
        Capability.READ_SUBSCRIPTIONS,
        Capability.MANAGE_SUBSCRIPTIONS,
        Capability.READ_ORGANIZATION_EVENTS,
        Capability.WRITE_ORGANIZATION_EVENTS,
        Capability.MANAGE_ORGANIZATION_EVENTS,
    }),
    UserRole.SUPER_ADMIN: frozenset(Capability),
}


@dataclass(frozen=True)
class Identity:
    """The authenticated caller."""

    user_id: uuid.UUID
    role: UserRole
    tenant_id: Optional[uuid.UUID] = None

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return ROLE_CAPABILITIES.get(self.role, frozenset())

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def can_access_tenant(self, tenant_id: uuid.UUID) -> bool:
        return self.can(Capability.ACCESS_ANY_TENANT) or self.tenant_id == tenant_id


def _unauthorized(error: str, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={
            "errors": [{
                "status": "401",
                "code": code,
                "title": error,
                "detail": message,
            }]
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


def _claim_uuid(value) -> str:
    """Normalize a UUID claim. Claims must be UUID strings."""
    if not isinstance(value, str):
        raise TypeError(f"Expected a UUID string, got {type(value).__name__}")
    return str(uuid.UUID(value))


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Validates the bearer JWT and stores the caller on ``request.state``.

    Claims: ``sub`` (user UUID), ``role`` and optionally ``tenant_id``. With
    ``disable_auth`` a development super admin is used instead.
    """

    EXEMPT_PATHS = {
        "/",
        "/health",
        "/version",
        "/openapi.json",
        "/docs",
        "/redoc",
        "/favicon.ico"
    }

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        if settings.disable_auth:
            request.state.user_id = DEV_USER_ID
            request.state.user_role = UserRole.SUPER_ADMIN.value
            request.state.tenant_id = settings.dev_tenant_id
            return await call_next(request)

        authorization = request.headers.get("Authorization")
        if not authorization:
            logger.warning(f"Missing Authorization header for {request.url.path}")
            return _unauthorized(
                "missing_authorization",
                "Authorization header is required",
                "AUTHORIZATION_REQUIRED",
            )

        scheme, _, token = authorization.partition(" ")
        if scheme != "Bearer" or not token:
            logger.warning(f"Invalid authorization format for {request.url.path}")
            return _unauthorized(
                "invalid_authorization_format",
                "Authorization must be in 'Bearer <token>' format",
                "INVALID_AUTHORIZATION_FORMAT",
            )

        try:
            payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        except JWTError as e:
            logger.warning(f"JWT validation failed for {request.url.path}: {e}")
            return _unauthorized("invalid_token", "Invalid or expired JWT token", "INVALID_JWT_TOKEN")

        try:
            user_id = _claim_uuid(payload["sub"])
            role = UserRole(payload.get("role", UserRole.USER.value))
            tenant_id = payload.get("tenant_id")
            if tenant_id is not None:
                tenant_id = _claim_uuid(tenant_id)
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Malformed token claims for {request.url.path}")
            return _unauthorized(
                "invalid_token_payload",
                "Token must carry a UUID 'sub', a known 'role' and a UUID 'tenant_id' if present",
                "INVALID_TOKEN_PAYLOAD",
            )

        request.state.user_id = user_id
        request.state.user_role = role.value
        request.state.tenant_id = tenant_id
        logger.debug(f"Authenticated user {user_id} ({role.value}) for {request.url.path}")

        return await call_next(request)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})

    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
