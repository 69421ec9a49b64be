"""Unified calendar aggregation for a tenant.

Merges the catalog events a tenant is subscribed to with the tenant's own
organization events into one chronologically ordered list.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.catalog import Catalog, CatalogEvent
from src.models.organization_event import OrganizationEvent
from src.models.user import User
from src.schemas.calendar import (
    CalendarSummary,
    CatalogSourceDetails,
    OrganizationSourceDetails,
    UnifiedCalendarResponse,
    UnifiedEvent,
)
from src.services.errors import (
    CalendarAggregationError,
    CalendarPermissionError,
    CalendarValidationError,
)
from src.services.event_filters import (
    CalendarFilter,
    CatalogEventPredicate,
    OrganizationEventPredicate,
    compile_filters,
)
from src.services.subscription_resolver import ResolvedSubscriptions, SubscriptionResolver
from src.utils.dates import ensure_utc, month_window, within
from src.utils.validators import CalendarMonthValidator

logger = logging.getLogger(__name__)


class CalendarService:
    """
    Builds the unified calendar for one tenant.

    The store handle is passed in by the caller. Catalog and organization
    events are fetched one after the other on that session; if either fetch
    fails the whole call fails and no partial calendar is returned.
    """

    def __init__(self, db_session: AsyncSession, resolver: Optional[SubscriptionResolver] = None):
        """
        Initialize the CalendarService.

        Args:
            db_session: Async database session
            resolver: Optional subscription resolver, defaults to one on ``db_session``
        """
        self.db = db_session
        self.resolver = resolver or SubscriptionResolver(db_session)

    async def get_unified_calendar(
        self,
        tenant_id: Optional[uuid.UUID],
        filters: Optional[CalendarFilter] = None,
    ) -> UnifiedCalendarResponse:
        """
        Get every event visible to ``tenant_id`` that matches ``filters``.

        Args:
            tenant_id: Tenant whose calendar is built
            filters: Optional filter options

        Returns:
            UnifiedCalendarResponse: Events ordered by start date, summary and filter echo

        Raises:
            CalendarPermissionError: If the caller has no tenant
            CalendarAggregationError: If the store fails
        """
        if tenant_id is None:
            raise CalendarPermissionError("User must belong to an organization")

        filters = filters or CalendarFilter()

        try:
            resolved = await self.resolver.resolve(tenant_id)
            catalog_predicate, organization_predicate = compile_filters(filters, resolved)

            catalog_events = []
            if catalog_predicate.should_query:
                catalog_events = await self._fetch_catalog_events(catalog_predicate, resolved)

            organization_events = []
            if organization_predicate.should_query:
                organization_events = await self._fetch_organization_events(organization_predicate)
        except SQLAlchemyError as e:
            logger.error(f"Failed to build calendar for tenant {tenant_id}: {e}")
            raise CalendarAggregationError("Failed to fetch calendar events") from e

        # sorted() is stable, so catalog events stay ahead of organization
        # events that start at the same instant
        events = sorted(catalog_events + organization_events, key=lambda e: e["start_date"])

        logger.info(
            f"Built calendar for tenant {tenant_id}: "
            f"{len(catalog_events)} catalog, {len(organization_events)} organization events"
        )

        return UnifiedCalendarResponse(
            events=[UnifiedEvent(**event) for event in events],
            summary=self._summarize(events, resolved),
            filters=filters.to_echo(),
        )

    async def get_events_by_month(
        self,
        tenant_id: Optional[uuid.UUID],
        year: Union[int, str],
        month: Union[int, str],
        filters: Optional[CalendarFilter] = None,
    ) -> UnifiedCalendarResponse:
        """
        Get the unified calendar restricted to one calendar month.

        Any date bounds in ``filters`` are replaced by the month window; the
        other filters still apply.

        Raises:
            CalendarValidationError: If year or month is not a valid integer
            CalendarPermissionError: If the caller has no tenant
            CalendarAggregationError: If the store fails
        """
        errors = CalendarMonthValidator.validate(year, month)
        if errors:
            raise CalendarValidationError("Invalid year or month", errors)

        year, month = CalendarMonthValidator.parse(year, month)
        start, end = month_window(year, month)
        filters = (filters or CalendarFilter()).with_date_range(start, end)

        calendar = await self.get_unified_calendar(tenant_id, filters)

        in_month = [event for event in calendar.events if within(event.start_date, start, end)]
        summary = calendar.summary.model_copy(update={
            "total": len(in_month),
            "catalog_event_count": sum(1 for e in in_month if e.source == "catalog"),
            "organization_event_count": sum(1 for e in in_month if e.source == "organization"),
        })
        return UnifiedCalendarResponse(events=in_month, summary=summary, filters=calendar.filters)

    async def _fetch_catalog_events(
        self,
        predicate: CatalogEventPredicate,
        resolved: ResolvedSubscriptions,
    ) -> List[Dict[str, Any]]:
        query = predicate.apply(
            select(CatalogEvent, Catalog.name, Catalog.type)
            .join(Catalog, Catalog.id == CatalogEvent.catalog_id)
            .order_by(CatalogEvent.start_date, CatalogEvent.id)
        )
        result = await self.db.execute(query)

        events = []
        for event, catalog_name, catalog_type in result.all():
            if not predicate.matches_tags(event.tags):
                continue
            events.append(self._catalog_entry(event, catalog_name, catalog_type, resolved))
        return events

    async def _fetch_organization_events(
        self,
        predicate: OrganizationEventPredicate,
    ) -> List[Dict[str, Any]]:
        query = predicate.apply(
            select(OrganizationEvent, User)
            .outerjoin(User, User.id == OrganizationEvent.created_by_id)
            .order_by(OrganizationEvent.start_date, OrganizationEvent.id)
        )
        result = await self.db.execute(query)

        events = []
        for event, creator in result.all():
            if not predicate.matches_tags(event.tags):
                continue
            events.append(self._organization_entry(event, creator))
        return events

    @staticmethod
    def _common_fields(event: Union[CatalogEvent, OrganizationEvent]) -> Dict[str, Any]:
        return {
            "id": event.id,
            "title": event.title,
            "description": event.description,
            "start_date": ensure_utc(event.start_date),
            "end_date": ensure_utc(event.end_date),
            "is_recurring": bool(event.is_recurring),
            "recurrence_rule": event.recurrence_rule,
            "tags": list(event.tags or []),
            "metadata": dict(event.event_metadata or {}),
            "created_at": ensure_utc(event.created_at),
        }

    def _catalog_entry(
        self,
        event: CatalogEvent,
        catalog_name: str,
        catalog_type: str,
        resolved: ResolvedSubscriptions,
    ) -> Dict[str, Any]:
        entry = self._common_fields(event)
        entry["source"] = "catalog"
        entry["source_details"] = CatalogSourceDetails(
            catalog_id=event.catalog_id,
            catalog_name=catalog_name,
            catalog_type=catalog_type,
            country=event.country,
            region=event.region,
            industries=list(event.industries or []),
            subscription_type=resolved.subscription_type_for(event.catalog_id),
        )
        return entry

    def _organization_entry(self, event: OrganizationEvent, creator: Optional[User]) -> Dict[str, Any]:
        entry = self._common_fields(event)
        entry["source"] = "organization"
        entry["source_details"] = OrganizationSourceDetails(
            created_by=creator.to_summary() if creator is not None else None,
        )
        return entry

    @staticmethod
    def _summarize(events: List[Dict[str, Any]], resolved: ResolvedSubscriptions) -> CalendarSummary:
        catalog_count = sum(1 for e in events if e["source"] == "catalog")
        return CalendarSummary(
            total=len(events),
            catalog_event_count=catalog_count,
            organization_event_count=len(events) - catalog_count,
            subscribed_catalog_count=resolved.catalog_subscription_count,
            individual_event_subscription_count=resolved.event_subscription_count,
        )
