"""Organization event management.

Organization events are private to one tenant. Any member with write access
may create them; only their creator or a tenant manager may change or
delete them afterwards.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.organization_event import OrganizationEvent
from src.models.tenant import Tenant
from src.models.user import User
from src.schemas.organization_event import (
    BulkCreateResult,
    OrganizationEventCreateRequest,
    OrganizationEventResource,
    OrganizationEventUpdateRequest,
)
from src.services.event_filters import CalendarFilter, tenant_organization_predicate
from src.utils.dates import ensure_utc

logger = logging.getLogger(__name__)

# Fields an update may set back to null
_NULLABLE_FIELDS = {"description", "recurrence_rule"}


class OrganizationEventServiceError(Exception):
    """Base exception for organization event service errors."""
    pass


class OrganizationEventNotFoundError(OrganizationEventServiceError):
    """Raised when a tenant or organization event cannot be found."""
    pass


class OrganizationEventValidationError(OrganizationEventServiceError):
    """Raised when event data is inconsistent."""
    pass


class OrganizationEventPermissionError(OrganizationEventServiceError):
    """Raised when the event belongs to another tenant or the caller may not change it."""
    pass


class OrganizationEventService:
    """
    CRUD over one tenant's organization events.

    Callers are expected to have checked that the acting identity may access
    ``tenant_id``; this service checks event ownership and authorship.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def list_events(
        self,
        tenant_id: uuid.UUID,
        filters: Optional[CalendarFilter] = None,
    ) -> List[OrganizationEventResource]:
        """
        List the tenant's events ordered by start date.

        Date bounds, tags and search apply as they do on the calendar;
        source, country, region and type are ignored.
        """
        predicate = tenant_organization_predicate(filters or CalendarFilter(), tenant_id)
        result = await self.db.execute(
            predicate.apply(
                select(OrganizationEvent, User)
                .outerjoin(User, User.id == OrganizationEvent.created_by_id)
                .order_by(OrganizationEvent.start_date, OrganizationEvent.id)
            )
        )
        return [
            self._resource(event, creator)
            for event, creator in result.all()
            if predicate.matches_tags(event.tags)
        ]

    async def get_event(self, tenant_id: uuid.UUID, event_id: uuid.UUID) -> OrganizationEventResource:
        """
        Get one event of ``tenant_id``.

        Raises:
            OrganizationEventNotFoundError: If the event does not exist
            OrganizationEventPermissionError: If it belongs to another tenant
        """
        event = await self._get_owned_event(tenant_id, event_id)
        return self._resource(event, await self._creator(event))

    async def create_event(
        self,
        tenant_id: uuid.UUID,
        created_by_id: Optional[uuid.UUID],
        data: OrganizationEventCreateRequest,
    ) -> OrganizationEventResource:
        """
        Create an event for ``tenant_id`` authored by ``created_by_id``.

        The author is only recorded when it is a known user.

        Raises:
            OrganizationEventNotFoundError: If the tenant does not exist
            OrganizationEventValidationError: If the event ends before it starts
        """
        await self._require_tenant(tenant_id)
        creator = await self._known_user(created_by_id)

        event = self._build_event(tenant_id, creator, data)
        self.db.add(event)
        await self.db.commit()

        logger.info(f"Organization event {event.id} created for tenant {tenant_id}")
        return self._resource(event, creator)

    async def bulk_create_events(
        self,
        tenant_id: uuid.UUID,
        created_by_id: Optional[uuid.UUID],
        events: List[OrganizationEventCreateRequest],
    ) -> BulkCreateResult:
        """
        Create several events in one transaction. Nothing is created if any
        event is invalid.

        Raises:
            OrganizationEventNotFoundError: If the tenant does not exist
            OrganizationEventValidationError: If ``events`` is empty or an event
                ends before it starts
        """
        if not events:
            raise OrganizationEventValidationError("At least one event is required")

        await self._require_tenant(tenant_id)
        creator = await self._known_user(created_by_id)

        rows = []
        for index, data in enumerate(events):
            try:
                rows.append(self._build_event(tenant_id, creator, data))
            except OrganizationEventValidationError as e:
                raise OrganizationEventValidationError(f"Event {index}: {e}") from e

        self.db.add_all(rows)
        await self.db.commit()

        logger.info(f"{len(rows)} organization events created for tenant {tenant_id}")
        return BulkCreateResult(count=len(rows), ids=[row.id for row in rows])

    async def update_event(
        self,
        tenant_id: uuid.UUID,
        event_id: uuid.UUID,
        actor_id: Optional[uuid.UUID],
        may_edit_any: bool,
        changes: OrganizationEventUpdateRequest,
    ) -> OrganizationEventResource:
        """
        Apply the fields set in ``changes``.

        Raises:
            OrganizationEventNotFoundError: If the event does not exist
            OrganizationEventPermissionError: If it belongs to another tenant, or
                the actor neither created it nor may edit any event
            OrganizationEventValidationError: If the result ends before it starts
        """
        event = await self._get_owned_event(tenant_id, event_id)
        self._check_author(event, actor_id, may_edit_any, "update")

        values = self._changed_values(changes)
        start = values.get("start_date", ensure_utc(event.start_date))
        end = values.get("end_date", ensure_utc(event.end_date))
        self._check_dates(start, end)

        for name, value in values.items():
            setattr(event, name, value)
        await self.db.commit()

        logger.info(f"Organization event {event_id} of tenant {tenant_id} updated by {actor_id}")
        return self._resource(event, await self._creator(event))

    async def delete_event(
        self,
        tenant_id: uuid.UUID,
        event_id: uuid.UUID,
        actor_id: Optional[uuid.UUID],
        may_edit_any: bool,
    ) -> str:
        """
        Delete one event.

        Returns:
            str: Title of the deleted event
        """
        event = await self._get_owned_event(tenant_id, event_id)
        self._check_author(event, actor_id, may_edit_any, "delete")

        title = event.title
        await self.db.delete(event)
        await self.db.commit()

        logger.info(f"Organization event {event_id} of tenant {tenant_id} deleted by {actor_id}")
        return title

    # Helpers

    async def _require_tenant(self, tenant_id: uuid.UUID) -> Tenant:
        tenant = await self.db.get(Tenant, tenant_id)
        if tenant is None:
            raise OrganizationEventNotFoundError(f"Organization {tenant_id} not found")
        return tenant

    async def _known_user(self, user_id: Optional[uuid.UUID]) -> Optional[User]:
        if user_id is None:
            return None
        return await self.db.get(User, user_id)

    async def _creator(self, event: OrganizationEvent) -> Optional[User]:
        return await self._known_user(event.created_by_id)

    async def _get_owned_event(self, tenant_id: uuid.UUID, event_id: uuid.UUID) -> OrganizationEvent:
        event = await self.db.get(OrganizationEvent, event_id)
        if event is None:
            raise OrganizationEventNotFoundError(f"Event {event_id} not found")
        if event.tenant_id != tenant_id:
            raise OrganizationEventPermissionError("This event does not belong to your organization")
        return event

    @staticmethod
    def _check_author(
        event: OrganizationEvent,
        actor_id: Optional[uuid.UUID],
        may_edit_any: bool,
        action: str,
    ) -> None:
        if may_edit_any:
            return
        if actor_id is None or event.created_by_id != actor_id:
            raise OrganizationEventPermissionError(
                f"You can only {action} events you created unless you are an admin"
            )

    @staticmethod
    def _check_dates(start, end) -> None:
        if start > end:
            raise OrganizationEventValidationError("start_date must not be after end_date")

    def _build_event(
        self,
        tenant_id: uuid.UUID,
        creator: Optional[User],
        data: OrganizationEventCreateRequest,
    ) -> OrganizationEvent:
        start, end = ensure_utc(data.start_date), ensure_utc(data.end_date)
        self._check_dates(start, end)
        return OrganizationEvent(
            id=uuid.uuid4(),
            tenant_id=tenant_id,
            title=data.title,
            description=data.description,
            start_date=start,
            end_date=end,
            is_recurring=data.is_recurring,
            recurrence_rule=data.recurrence_rule,
            tags=list(data.tags),
            event_metadata=dict(data.metadata or {}),
            created_by_id=creator.id if creator is not None else None,
        )

    @staticmethod
    def _changed_values(changes: OrganizationEventUpdateRequest) -> Dict[str, Any]:
        values = {}
        for name, value in changes.model_dump(exclude_unset=True).items():
            if value is None and name not in _NULLABLE_FIELDS:
                continue
            if name in ("start_date", "end_date"):
                value = ensure_utc(value)
            elif name == "metadata":
                name = "event_metadata"
            values[name] = value
        return values

    @staticmethod
    def _resource(event: OrganizationEvent, creator: Optional[User]) -> OrganizationEventResource:
        return OrganizationEventResource(
            id=event.id,
            tenant_id=event.tenant_id,
            title=event.title,
            description=event.description,
            start_date=ensure_utc(event.start_date),
            end_date=ensure_utc(event.end_date),
            is_recurring=bool(event.is_recurring),
            recurrence_rule=event.recurrence_rule,
            tags=list(event.tags or []),
            metadata=dict(event.event_metadata or {}),
            created_by=creator.to_summary() if creator is not None else None,
            created_at=ensure_utc(event.created_at),
            updated_at=ensure_utc(event.updated_at),
        )
