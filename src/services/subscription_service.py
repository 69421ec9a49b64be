"""Subscription management for tenants.

Tenants subscribe to whole catalogs or to single catalog events, and can hide
individual catalog events from their calendar. Changes take effect on the
next calendar read.
"""

import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.catalog import Catalog, CatalogEvent
from src.models.subscription import CatalogSubscription, EventSubscription
from src.models.tenant import Tenant
from src.schemas.subscription import (
    CatalogSubscriptionResource,
    CatalogSummary,
    EventSubscriptionResource,
    EventSubscriptionStatus,
    EventSummary,
)
from src.utils.dates import ensure_utc

logger = logging.getLogger(__name__)


class SubscriptionServiceError(Exception):
    """Base exception for subscription service errors."""
    pass


class SubscriptionNotFoundError(SubscriptionServiceError):
    """Raised when a tenant, catalog, event or subscription cannot be found."""
    pass


class SubscriptionConflictError(SubscriptionServiceError):
    """Raised when the subscription already exists."""
    pass


class SubscriptionValidationError(SubscriptionServiceError):
    """Raised when a subscription request is inconsistent."""
    pass


class SubscriptionPermissionError(SubscriptionServiceError):
    """Raised when a subscription belongs to another tenant."""
    pass


class SubscriptionService:
    """
    Catalog and event subscription management.

    Callers are expected to have checked that the acting identity may manage
    ``tenant_id``; this service only checks that the rows it touches belong
    to that tenant.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    # Catalog subscriptions

    async def list_catalog_subscriptions(self, tenant_id: uuid.UUID) -> List[CatalogSubscriptionResource]:
        """List every catalog subscription of ``tenant_id``, newest first, active or not."""
        result = await self.db.execute(
            select(CatalogSubscription, Catalog)
            .join(Catalog, Catalog.id == CatalogSubscription.catalog_id)
            .where(CatalogSubscription.tenant_id == tenant_id)
            .order_by(CatalogSubscription.subscribed_at.desc())
        )
        rows = result.all()
        counts = await self._event_counts([catalog.id for _, catalog in rows])

        return [
            self._catalog_subscription_resource(subscription, catalog, counts.get(catalog.id, 0))
            for subscription, catalog in rows
        ]

    async def list_available_catalogs(self, tenant_id: uuid.UUID) -> List[CatalogSummary]:
        """List active catalogs ``tenant_id`` has no subscription row for, by name."""
        subscribed = select(CatalogSubscription.catalog_id).where(
            CatalogSubscription.tenant_id == tenant_id
        )
        result = await self.db.execute(
            select(Catalog)
            .where(Catalog.is_active.is_(True), Catalog.id.not_in(subscribed))
            .order_by(Catalog.name)
        )
        catalogs = result.scalars().all()
        counts = await self._event_counts([catalog.id for catalog in catalogs])

        return [self._catalog_summary(catalog, counts.get(catalog.id, 0)) for catalog in catalogs]

    async def subscribe_to_catalog(
        self,
        tenant_id: uuid.UUID,
        catalog_id: uuid.UUID,
    ) -> CatalogSubscriptionResource:
        """
        Subscribe ``tenant_id`` to a catalog.

        Raises:
            SubscriptionNotFoundError: If the tenant or catalog does not exist
            SubscriptionValidationError: If the catalog is inactive
            SubscriptionConflictError: If a subscription row already exists
        """
        await self._require_tenant(tenant_id)

        catalog = await self.db.get(Catalog, catalog_id)
        if catalog is None:
            raise SubscriptionNotFoundError(f"Catalog {catalog_id} not found")
        if not catalog.is_active:
            raise SubscriptionValidationError("Cannot subscribe to an inactive catalog")

        existing = await self._find_catalog_subscription(tenant_id, catalog_id)
        if existing is not None:
            raise SubscriptionConflictError("Already subscribed to this catalog")

        subscription = CatalogSubscription(tenant_id=tenant_id, catalog_id=catalog_id, is_active=True)
        self.db.add(subscription)
        await self._commit("Already subscribed to this catalog")

        logger.info(f"Tenant {tenant_id} subscribed to catalog {catalog_id}")
        counts = await self._event_counts([catalog.id])
        return self._catalog_subscription_resource(subscription, catalog, counts.get(catalog.id, 0))

    async def update_catalog_subscription(
        self,
        tenant_id: uuid.UUID,
        subscription_id: uuid.UUID,
        is_active: Optional[bool] = None,
    ) -> CatalogSubscriptionResource:
        """
        Activate or deactivate a catalog subscription.

        Raises:
            SubscriptionNotFoundError: If the subscription does not exist
            SubscriptionPermissionError: If it belongs to another tenant
        """
        subscription = await self._get_owned_catalog_subscription(tenant_id, subscription_id)

        if is_active is not None:
            subscription.is_active = is_active
        await self.db.commit()

        logger.info(
            f"Catalog subscription {subscription_id} of tenant {tenant_id} "
            f"set active={subscription.is_active}"
        )
        catalog = await self.db.get(Catalog, subscription.catalog_id)
        counts = await self._event_counts([catalog.id])
        return self._catalog_subscription_resource(subscription, catalog, counts.get(catalog.id, 0))

    async def unsubscribe_from_catalog(self, tenant_id: uuid.UUID, subscription_id: uuid.UUID) -> str:
        """
        Delete a catalog subscription.

        Returns:
            str: Name of the catalog unsubscribed from
        """
        subscription = await self._get_owned_catalog_subscription(tenant_id, subscription_id)
        catalog = await self.db.get(Catalog, subscription.catalog_id)

        await self.db.delete(subscription)
        await self.db.commit()

        logger.info(f"Tenant {tenant_id} unsubscribed from catalog {subscription.catalog_id}")
        return catalog.name

    # Event subscriptions

    async def subscribe_to_event(
        self,
        tenant_id: uuid.UUID,
        catalog_id: uuid.UUID,
        event_id: uuid.UUID,
    ) -> EventSubscriptionResource:
        """
        Subscribe ``tenant_id`` to one catalog event.

        Raises:
            SubscriptionNotFoundError: If the tenant or event does not exist
            SubscriptionValidationError: If the event is not in ``catalog_id``
            SubscriptionConflictError: If the tenant already has a row for the event
        """
        await self._require_tenant(tenant_id)
        event, catalog = await self._get_catalog_event(catalog_id, event_id)

        existing = await self._find_event_subscription(tenant_id, event_id)
        if existing is not None:
            raise SubscriptionConflictError("Already subscribed to this event")

        subscription = EventSubscription(tenant_id=tenant_id, catalog_event_id=event_id, is_visible=True)
        self.db.add(subscription)
        await self._commit("Already subscribed to this event")

        logger.info(f"Tenant {tenant_id} subscribed to event {event_id}")
        return self._event_subscription_resource(subscription, event, catalog)

    async def unsubscribe_from_event(
        self,
        tenant_id: uuid.UUID,
        catalog_id: uuid.UUID,
        event_id: uuid.UUID,
    ) -> str:
        """
        Delete the tenant's subscription row for one event of ``catalog_id``.

        Returns:
            str: Title of the event unsubscribed from
        """
        event, _ = await self._get_catalog_event(catalog_id, event_id)
        subscription = await self._find_event_subscription(tenant_id, event_id)
        if subscription is None:
            raise SubscriptionNotFoundError("Subscription not found")

        await self.db.delete(subscription)
        await self.db.commit()

        logger.info(f"Tenant {tenant_id} unsubscribed from event {event_id}")
        return event.title

    async def set_event_visibility(
        self,
        tenant_id: uuid.UUID,
        catalog_id: uuid.UUID,
        event_id: uuid.UUID,
        is_visible: bool,
    ) -> EventSubscriptionResource:
        """
        Show or hide one catalog event in the tenant's calendar.

        Creates the event subscription row when the tenant has none, so an
        event reached only through its catalog can still be hidden.
        """
        await self._require_tenant(tenant_id)
        event, catalog = await self._get_catalog_event(catalog_id, event_id)

        subscription = await self._find_event_subscription(tenant_id, event_id)
        if subscription is None:
            subscription = EventSubscription(
                tenant_id=tenant_id, catalog_event_id=event_id, is_visible=is_visible
            )
            self.db.add(subscription)
        else:
            subscription.is_visible = is_visible
        await self._commit("Event subscription changed concurrently")

        logger.info(f"Tenant {tenant_id} set event {event_id} visible={is_visible}")
        return self._event_subscription_resource(subscription, event, catalog)

    async def get_event_subscription_status(
        self,
        tenant_id: uuid.UUID,
        catalog_id: uuid.UUID,
        event_id: uuid.UUID,
    ) -> EventSubscriptionStatus:
        event, catalog = await self._get_catalog_event(catalog_id, event_id)
        subscription = await self._find_event_subscription(tenant_id, event_id)
        if subscription is None:
            return EventSubscriptionStatus(is_subscribed=False)
        return EventSubscriptionStatus(
            is_subscribed=True,
            is_visible=subscription.is_visible,
            subscription=self._event_subscription_resource(subscription, event, catalog),
        )

    async def list_event_subscriptions(self, tenant_id: uuid.UUID) -> List[EventSubscriptionResource]:
        """List visible event subscriptions of ``tenant_id``, newest first."""
        result = await self.db.execute(
            select(EventSubscription, CatalogEvent, Catalog)
            .join(CatalogEvent, CatalogEvent.id == EventSubscription.catalog_event_id)
            .join(Catalog, Catalog.id == CatalogEvent.catalog_id)
            .where(
                EventSubscription.tenant_id == tenant_id,
                EventSubscription.is_visible.is_(True),
            )
            .order_by(EventSubscription.subscribed_at.desc())
        )
        return [
            self._event_subscription_resource(subscription, event, catalog)
            for subscription, event, catalog in result.all()
        ]

    # Helpers

    async def _require_tenant(self, tenant_id: uuid.UUID) -> Tenant:
        tenant = await self.db.get(Tenant, tenant_id)
        if tenant is None:
            raise SubscriptionNotFoundError(f"Organization {tenant_id} not found")
        return tenant

    async def _get_catalog_event(self, catalog_id: uuid.UUID, event_id: uuid.UUID):
        result = await self.db.execute(
            select(CatalogEvent, Catalog)
            .join(Catalog, Catalog.id == CatalogEvent.catalog_id)
            .where(CatalogEvent.id == event_id)
        )
        row = result.first()
        if row is None:
            raise SubscriptionNotFoundError(f"Event {event_id} not found")

        event, catalog = row
        if event.catalog_id != catalog_id:
            raise SubscriptionValidationError("Event does not belong to this catalog")
        return event, catalog

    async def _find_catalog_subscription(
        self,
        tenant_id: uuid.UUID,
        catalog_id: uuid.UUID,
    ) -> Optional[CatalogSubscription]:
        result = await self.db.execute(
            select(CatalogSubscription).where(
                CatalogSubscription.tenant_id == tenant_id,
                CatalogSubscription.catalog_id == catalog_id,
            )
        )
        return result.scalar_one_or_none()

    async def _get_owned_catalog_subscription(
        self,
        tenant_id: uuid.UUID,
        subscription_id: uuid.UUID,
    ) -> CatalogSubscription:
        subscription = await self.db.get(CatalogSubscription, subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError("Subscription not found")
        if subscription.tenant_id != tenant_id:
            raise SubscriptionPermissionError("This subscription does not belong to your organization")
        return subscription

    async def _find_event_subscription(
        self,
        tenant_id: uuid.UUID,
        event_id: uuid.UUID,
    ) -> Optional[EventSubscription]:
        result = await self.db.execute(
            select(EventSubscription).where(
                EventSubscription.tenant_id == tenant_id,
                EventSubscription.catalog_event_id == event_id,
            )
        )
        return result.scalar_one_or_none()

    async def _event_counts(self, catalog_ids: List[uuid.UUID]) -> Dict[uuid.UUID, int]:
        if not catalog_ids:
            return {}
        result = await self.db.execute(
            select(CatalogEvent.catalog_id, func.count(CatalogEvent.id))
            .where(CatalogEvent.catalog_id.in_(catalog_ids))
            .group_by(CatalogEvent.catalog_id)
        )
        return {catalog_id: count for catalog_id, count in result.all()}

    async def _commit(self, conflict_message: str) -> None:
        # The unique constraints still guard against a concurrent duplicate
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise SubscriptionConflictError(conflict_message) from e

    @staticmethod
    def _catalog_summary(catalog: Catalog, event_count: Optional[int] = None) -> CatalogSummary:
        return CatalogSummary(
            id=catalog.id,
            name=catalog.name,
            type=catalog.type,
            description=catalog.description,
            is_active=catalog.is_active,
            event_count=event_count,
        )

    def _catalog_subscription_resource(
        self,
        subscription: CatalogSubscription,
        catalog: Catalog,
        event_count: Optional[int] = None,
    ) -> CatalogSubscriptionResource:
        return CatalogSubscriptionResource(
            id=subscription.id,
            tenant_id=subscription.tenant_id,
            catalog_id=subscription.catalog_id,
            is_active=subscription.is_active,
            subscribed_at=ensure_utc(subscription.subscribed_at),
            catalog=self._catalog_summary(catalog, event_count),
        )

    def _event_subscription_resource(
        self,
        subscription: EventSubscription,
        event: Optional[CatalogEvent] = None,
        catalog: Optional[Catalog] = None,
    ) -> EventSubscriptionResource:
        summary = None
        if event is not None and catalog is not None:
            summary = EventSummary(
                id=event.id,
                title=event.title,
                description=event.description,
                start_date=ensure_utc(event.start_date),
                end_date=ensure_utc(event.end_date),
                catalog=self._catalog_summary(catalog),
            )
        return EventSubscriptionResource(
            id=subscription.id,
            tenant_id=subscription.tenant_id,
            catalog_event_id=subscription.catalog_event_id,
            is_visible=subscription.is_visible,
            subscribed_at=ensure_utc(subscription.subscribed_at),
            event=summary,
        )
