"""Tests for catalog and event subscription management."""

import uuid

import pytest

from src.models import CatalogType
from src.services.calendar_service import CalendarService
from src.services.subscription_service import (
    SubscriptionConflictError,
    SubscriptionNotFoundError,
    SubscriptionPermissionError,
    SubscriptionService,
    SubscriptionValidationError,
)


class TestCatalogSubscriptions:

    @pytest.mark.asyncio
    async def test_subscribe_and_list(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog("Holidays", CatalogType.NATIONAL_HOLIDAYS)
        await factory.catalog_event(catalog, "One")
        await factory.catalog_event(catalog, "Two")
        service = SubscriptionService(db_session)

        created = await service.subscribe_to_catalog(tenant.id, catalog.id)
        listed = await service.list_catalog_subscriptions(tenant.id)

        assert created.is_active
        assert created.catalog.name == "Holidays"
        assert created.catalog.event_count == 2
        assert [s.id for s in listed] == [created.id]
        assert listed[0].catalog.type == "NATIONAL_HOLIDAYS"

    @pytest.mark.asyncio
    async def test_subscribe_to_unknown_catalog(self, db_session, factory):
        tenant = await factory.tenant()

        with pytest.raises(SubscriptionNotFoundError):
            await SubscriptionService(db_session).subscribe_to_catalog(tenant.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_subscribe_for_unknown_tenant(self, db_session, factory):
        catalog = await factory.catalog()

        with pytest.raises(SubscriptionNotFoundError):
            await SubscriptionService(db_session).subscribe_to_catalog(uuid.uuid4(), catalog.id)

    @pytest.mark.asyncio
    async def test_subscribe_to_inactive_catalog(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog(is_active=False)

        with pytest.raises(SubscriptionValidationError):
            await SubscriptionService(db_session).subscribe_to_catalog(tenant.id, catalog.id)

    @pytest.mark.asyncio
    async def test_duplicate_subscription_conflicts(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.subscribe_catalog(tenant, catalog, is_active=False)

        with pytest.raises(SubscriptionConflictError):
            await SubscriptionService(db_session).subscribe_to_catalog(tenant.id, catalog.id)

    @pytest.mark.asyncio
    async def test_available_catalogs_exclude_subscribed_and_inactive(self, db_session, factory):
        tenant = await factory.tenant()
        subscribed = await factory.catalog("Subscribed")
        await factory.catalog("Inactive", is_active=False)
        beta = await factory.catalog("Beta")
        alpha = await factory.catalog("Alpha")
        await factory.catalog_event(alpha)
        await factory.subscribe_catalog(tenant, subscribed)

        available = await SubscriptionService(db_session).list_available_catalogs(tenant.id)

        assert [c.name for c in available] == ["Alpha", "Beta"]
        assert available[0].event_count == 1
        assert available[1].id == beta.id
        assert available[1].event_count == 0

    @pytest.mark.asyncio
    async def test_deactivate_and_reactivate(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.catalog_event(catalog, "Event")
        subscription = await factory.subscribe_catalog(tenant, catalog)
        service = SubscriptionService(db_session)
        calendar = CalendarService(db_session)

        updated = await service.update_catalog_subscription(tenant.id, subscription.id, is_active=False)
        assert not updated.is_active
        assert (await calendar.get_unified_calendar(tenant.id)).events == []

        updated = await service.update_catalog_subscription(tenant.id, subscription.id, is_active=True)
        assert updated.is_active
        assert len((await calendar.get_unified_calendar(tenant.id)).events) == 1

    @pytest.mark.asyncio
    async def test_update_without_flag_leaves_state(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        subscription = await factory.subscribe_catalog(tenant, catalog)

        updated = await SubscriptionService(db_session).update_catalog_subscription(tenant.id, subscription.id)

        assert updated.is_active

    @pytest.mark.asyncio
    async def test_other_tenants_subscription_is_forbidden(self, db_session, factory):
        tenant = await factory.tenant("Acme")
        other = await factory.tenant("Globex")
        catalog = await factory.catalog()
        subscription = await factory.subscribe_catalog(other, catalog)
        service = SubscriptionService(db_session)

        with pytest.raises(SubscriptionPermissionError):
            await service.update_catalog_subscription(tenant.id, subscription.id, is_active=False)
        with pytest.raises(SubscriptionPermissionError):
            await service.unsubscribe_from_catalog(tenant.id, subscription.id)

    @pytest.mark.asyncio
    async def test_unsubscribe(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog("World Days")
        subscription = await factory.subscribe_catalog(tenant, catalog)
        service = SubscriptionService(db_session)

        name = await service.unsubscribe_from_catalog(tenant.id, subscription.id)

        assert name == "World Days"
        assert await service.list_catalog_subscriptions(tenant.id) == []
        with pytest.raises(SubscriptionNotFoundError):
            await service.unsubscribe_from_catalog(tenant.id, subscription.id)


class TestEventSubscriptions:

    @pytest.mark.asyncio
    async def test_subscribe_to_event(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog("World Days")
        event = await factory.catalog_event(catalog, "Earth Day")
        service = SubscriptionService(db_session)

        created = await service.subscribe_to_event(tenant.id, catalog.id, event.id)
        listed = await service.list_event_subscriptions(tenant.id)

        assert created.is_visible
        assert created.event.title == "Earth Day"
        assert created.event.catalog.name == "World Days"
        assert [s.catalog_event_id for s in listed] == [event.id]

    @pytest.mark.asyncio
    async def test_event_must_belong_to_catalog(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog("One")
        other = await factory.catalog("Two")
        event = await factory.catalog_event(catalog)

        with pytest.raises(SubscriptionValidationError):
            await SubscriptionService(db_session).subscribe_to_event(tenant.id, other.id, event.id)

    @pytest.mark.asyncio
    async def test_unknown_event(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()

        with pytest.raises(SubscriptionNotFoundError):
            await SubscriptionService(db_session).subscribe_to_event(tenant.id, catalog.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_duplicate_event_subscription_conflicts(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        event = await factory.catalog_event(catalog)
        await factory.subscribe_event(tenant, event, is_visible=False)

        with pytest.raises(SubscriptionConflictError):
            await SubscriptionService(db_session).subscribe_to_event(tenant.id, catalog.id, event.id)

    @pytest.mark.asyncio
    async def test_unsubscribe_from_event(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        event = await factory.catalog_event(catalog, "Pi Day")
        await factory.subscribe_event(tenant, event)
        service = SubscriptionService(db_session)

        title = await service.unsubscribe_from_event(tenant.id, catalog.id, event.id)

        assert title == "Pi Day"
        assert not (await service.get_event_subscription_status(tenant.id, catalog.id, event.id)).is_subscribed
        with pytest.raises(SubscriptionNotFoundError):
            await service.unsubscribe_from_event(tenant.id, catalog.id, event.id)

    @pytest.mark.asyncio
    async def test_hide_event_of_subscribed_catalog(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        event_a = await factory.catalog_event(catalog, "A")
        await factory.catalog_event(catalog, "B")
        await factory.subscribe_catalog(tenant, catalog)
        service = SubscriptionService(db_session)

        hidden = await service.set_event_visibility(tenant.id, catalog.id, event_a.id, False)
        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)

        assert not hidden.is_visible
        assert [e.title for e in calendar.events] == ["B"]
        assert await service.list_event_subscriptions(tenant.id) == []

        shown = await service.set_event_visibility(tenant.id, catalog.id, event_a.id, True)
        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)

        assert shown.id == hidden.id
        assert sorted(e.title for e in calendar.events) == ["A", "B"]

    @pytest.mark.asyncio
    async def test_subscription_status(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        event = await factory.catalog_event(catalog)
        service = SubscriptionService(db_session)

        before = await service.get_event_subscription_status(tenant.id, catalog.id, event.id)
        await factory.subscribe_event(tenant, event, is_visible=False)
        after = await service.get_event_subscription_status(tenant.id, catalog.id, event.id)

        assert not before.is_subscribed
        assert before.subscription is None
        assert after.is_subscribed
        assert after.is_visible is False
        assert after.subscription.catalog_event_id == event.id

    @pytest.mark.asyncio
    async def test_status_and_unsubscribe_check_the_catalog(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog("One")
        other = await factory.catalog("Two")
        event = await factory.catalog_event(catalog)
        await factory.subscribe_event(tenant, event)
        service = SubscriptionService(db_session)

        with pytest.raises(SubscriptionValidationError):
            await service.get_event_subscription_status(tenant.id, other.id, event.id)
        with pytest.raises(SubscriptionValidationError):
            await service.unsubscribe_from_event(tenant.id, other.id, event.id)
        with pytest.raises(SubscriptionNotFoundError):
            await service.get_event_subscription_status(tenant.id, catalog.id, uuid.uuid4())

        assert (await service.get_event_subscription_status(tenant.id, catalog.id, event.id)).is_subscribed
