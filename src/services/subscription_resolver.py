"""Resolves which catalogs and catalog events a tenant is entitled to see."""

import logging
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import FrozenSet, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.catalog import Catalog, CatalogType
from src.models.subscription import CatalogSubscription, EventSubscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSubscriptions:
    """
    Snapshot of a tenant's subscriptions at query time.

    ``subscribed_event_ids`` and ``hidden_event_ids`` are disjoint: a tenant
    has at most one event subscription row per catalog event.
    """

    tenant_id: uuid.UUID
    subscribed_catalog_ids: FrozenSet[uuid.UUID] = frozenset()
    subscribed_event_ids: FrozenSet[uuid.UUID] = frozenset()
    hidden_event_ids: FrozenSet[uuid.UUID] = frozenset()
    catalog_types: Mapping[uuid.UUID, CatalogType] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def has_any_subscription(self) -> bool:
        return bool(self.subscribed_catalog_ids) or bool(self.subscribed_event_ids)

    @property
    def catalog_subscription_count(self) -> int:
        return len(self.subscribed_catalog_ids)

    @property
    def event_subscription_count(self) -> int:
        return len(self.subscribed_event_ids)

    def catalog_ids_of_type(self, catalog_type: CatalogType) -> FrozenSet[uuid.UUID]:
        """Subscribed catalogs whose type is ``catalog_type``."""
        return frozenset(
            catalog_id
            for catalog_id, subscribed_type in self.catalog_types.items()
            if subscribed_type == catalog_type
        )

    def subscription_type_for(self, catalog_id: uuid.UUID) -> str:
        """How an event from ``catalog_id`` reached the tenant."""
        return "catalog" if catalog_id in self.subscribed_catalog_ids else "individual"


class SubscriptionResolver:
    """
    Reads a tenant's catalog and event subscriptions.

    Every call goes to the store; nothing is cached between requests so that
    subscription changes show up on the next read.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def resolve(self, tenant_id: uuid.UUID) -> ResolvedSubscriptions:
        """
        Resolve the subscription sets for ``tenant_id``.

        Store errors propagate to the caller.
        """
        catalog_rows = await self.db.execute(
            select(CatalogSubscription.catalog_id, Catalog.type)
            .join(Catalog, Catalog.id == CatalogSubscription.catalog_id)
            .where(
                CatalogSubscription.tenant_id == tenant_id,
                CatalogSubscription.is_active.is_(True),
            )
        )
        catalog_types = {
            catalog_id: CatalogType(catalog_type)
            for catalog_id, catalog_type in catalog_rows.all()
        }

        event_rows = await self.db.execute(
            select(EventSubscription.catalog_event_id, EventSubscription.is_visible)
            .where(EventSubscription.tenant_id == tenant_id)
        )
        visible, hidden = set(), set()
        for event_id, is_visible in event_rows.all():
            (visible if is_visible else hidden).add(event_id)

        resolved = ResolvedSubscriptions(
            tenant_id=tenant_id,
            subscribed_catalog_ids=frozenset(catalog_types),
            subscribed_event_ids=frozenset(visible),
            hidden_event_ids=frozenset(hidden),
            catalog_types=MappingProxyType(catalog_types),
        )

        logger.debug(
            f"Resolved subscriptions for tenant {tenant_id}: "
            f"{resolved.catalog_subscription_count} catalogs, "
            f"{resolved.event_subscription_count} events, "
            f"{len(resolved.hidden_event_ids)} hidden"
        )
        return resolved
