"""Calendar statistics for a tenant."""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.settings import get_settings
from src.models.catalog import Catalog, CatalogEvent
from src.models.organization_event import OrganizationEvent
from src.models.subscription import CatalogSubscription
from src.schemas.calendar import CalendarStatsResponse, TypeBreakdown, UpcomingCounts
from src.services.errors import CalendarAggregationError, CalendarPermissionError
from src.services.event_filters import membership_clause
from src.services.subscription_resolver import ResolvedSubscriptions, SubscriptionResolver
from src.utils.dates import ensure_utc

logger = logging.getLogger(__name__)


class CalendarStatsService:
    """
    Counts the events in a tenant's calendar.

    Catalog counts use the same visibility gate as the unified calendar, so
    an event reachable through both a catalog and an event subscription is
    counted once and hidden events are not counted.
    """

    def __init__(self, db_session: AsyncSession, resolver: Optional[SubscriptionResolver] = None):
        self.db = db_session
        self.resolver = resolver or SubscriptionResolver(db_session)

    async def get_calendar_stats(
        self,
        tenant_id: Optional[uuid.UUID],
        now: Optional[datetime] = None,
    ) -> CalendarStatsResponse:
        """
        Get calendar statistics for ``tenant_id``.

        Args:
            tenant_id: Tenant whose calendar is counted
            now: Start of the upcoming window, defaults to the current time

        Raises:
            CalendarPermissionError: If the caller has no tenant
            CalendarAggregationError: If the store fails
        """
        if tenant_id is None:
            raise CalendarPermissionError("User must belong to an organization")

        window_days = get_settings().calendar_upcoming_window_days
        window_start = ensure_utc(now) if now else datetime.now(timezone.utc)
        window_end = window_start + timedelta(days=window_days)

        try:
            resolved = await self.resolver.resolve(tenant_id)

            catalog_events = await self._count_catalog_events(resolved)
            organization_events = await self._count_organization_events(tenant_id)
            by_type = await self._subscriptions_by_type(tenant_id)

            upcoming_catalog = await self._count_catalog_events(resolved, window_start, window_end)
            upcoming_organization = await self._count_organization_events(
                tenant_id, window_start, window_end
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to compute calendar stats for tenant {tenant_id}: {e}")
            raise CalendarAggregationError("Failed to compute calendar statistics") from e

        return CalendarStatsResponse(
            total_events=catalog_events + organization_events,
            catalog_events=catalog_events,
            organization_events=organization_events,
            active_subscriptions=resolved.catalog_subscription_count,
            individual_event_subscriptions=resolved.event_subscription_count,
            subscriptions_by_type=by_type,
            upcoming=UpcomingCounts(
                total=upcoming_catalog + upcoming_organization,
                catalog_events=upcoming_catalog,
                organization_events=upcoming_organization,
                window_days=window_days,
            ),
        )

    async def _count_catalog_events(
        self,
        resolved: ResolvedSubscriptions,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        if not resolved.has_any_subscription:
            return 0

        query = select(func.count(CatalogEvent.id)).where(membership_clause(resolved))
        if start is not None:
            query = query.where(CatalogEvent.start_date >= start, CatalogEvent.start_date < end)
        return (await self.db.execute(query)).scalar_one()

    async def _count_organization_events(
        self,
        tenant_id: uuid.UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        query = select(func.count(OrganizationEvent.id)).where(
            OrganizationEvent.tenant_id == tenant_id
        )
        if start is not None:
            query = query.where(
                OrganizationEvent.start_date >= start, OrganizationEvent.start_date < end
            )
        return (await self.db.execute(query)).scalar_one()

    async def _subscriptions_by_type(self, tenant_id: uuid.UUID) -> Dict[str, TypeBreakdown]:
        # Individually subscribed events are not folded into these counts
        event_counts = (
            select(CatalogEvent.catalog_id, func.count(CatalogEvent.id).label("event_count"))
            .group_by(CatalogEvent.catalog_id)
            .subquery()
        )
        query = (
            select(
                Catalog.type,
                func.count(CatalogSubscription.id),
                func.coalesce(func.sum(event_counts.c.event_count), 0),
            )
            .join(Catalog, Catalog.id == CatalogSubscription.catalog_id)
            .outerjoin(event_counts, event_counts.c.catalog_id == Catalog.id)
            .where(
                CatalogSubscription.tenant_id == tenant_id,
                CatalogSubscription.is_active.is_(True),
            )
            .group_by(Catalog.type)
        )
        result = await self.db.execute(query)
        return {
            catalog_type: TypeBreakdown(count=count, events=int(events))
            for catalog_type, count, events in result.all()
        }
