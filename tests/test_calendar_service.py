"""Tests for the unified calendar and the month view."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from src.models import CatalogType, UserRole
from src.services.calendar_service import CalendarService
from src.services.calendar_stats import CalendarStatsService
from src.services.errors import (
    CalendarAggregationError,
    CalendarPermissionError,
    CalendarValidationError,
)
from src.services.event_filters import CalendarFilter, EventSource


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def titles(calendar):
    return [event.title for event in calendar.events]


class TestUnionVisibility:

    @pytest.mark.asyncio
    async def test_catalog_subscription_alone_makes_event_visible(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.catalog_event(catalog, "Earth Day")
        subscription = await factory.subscribe_catalog(tenant, catalog)

        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)
        assert titles(calendar) == ["Earth Day"]
        assert calendar.events[0].source_details.subscription_type == "catalog"

        await db_session.delete(subscription)
        await db_session.commit()

        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)
        assert calendar.events == []

    @pytest.mark.asyncio
    async def test_event_subscription_alone_makes_event_visible(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        event = await factory.catalog_event(catalog, "Pi Day")
        await factory.catalog_event(catalog, "Not Subscribed")
        subscription = await factory.subscribe_event(tenant, event)

        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)
        assert titles(calendar) == ["Pi Day"]
        assert calendar.events[0].source_details.subscription_type == "individual"

        await db_session.delete(subscription)
        await db_session.commit()

        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)
        assert calendar.events == []

    @pytest.mark.asyncio
    async def test_inactive_catalog_subscription_is_inert(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.catalog_event(catalog)
        await factory.subscribe_catalog(tenant, catalog, is_active=False)

        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)

        assert calendar.summary.catalog_event_count == 0
        assert calendar.summary.subscribed_catalog_count == 0

    @pytest.mark.asyncio
    async def test_event_reached_both_ways_appears_once(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        event = await factory.catalog_event(catalog)
        await factory.subscribe_catalog(tenant, catalog)
        await factory.subscribe_event(tenant, event)

        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)

        assert len(calendar.events) == 1
        assert calendar.events[0].source_details.subscription_type == "catalog"


class TestEmptySubscriptionClosure:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filters", [
        CalendarFilter(),
        CalendarFilter(tags=("holiday",)),
        CalendarFilter(search="day"),
        CalendarFilter(start_date=utc(2000, 1, 1), end_date=utc(2100, 1, 1)),
        CalendarFilter(catalog_type=CatalogType.WORLD_SPECIAL_DAYS),
    ])
    async def test_no_catalog_events_without_subscriptions(self, db_session, factory, filters):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.catalog_event(catalog, "Holiday", tags=["holiday"])
        await factory.organization_event(tenant, "Standup")

        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id, filters)

        assert calendar.summary.catalog_event_count == 0
        assert all(event.source == "organization" for event in calendar.events)


class TestSoftHide:

    @pytest.mark.asyncio
    async def test_hidden_event_is_excluded_from_subscribed_catalog(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        event_a = await factory.catalog_event(catalog, "A", start_date=utc(2024, 5, 1))
        await factory.catalog_event(catalog, "B", start_date=utc(2024, 5, 2))
        await factory.subscribe_catalog(tenant, catalog)

        stats_before = await CalendarStatsService(db_session).get_calendar_stats(tenant.id)
        await factory.subscribe_event(tenant, event_a, is_visible=False)

        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)
        stats_after = await CalendarStatsService(db_session).get_calendar_stats(tenant.id)

        assert titles(calendar) == ["B"]
        assert stats_after.total_events == stats_before.total_events - 1
        assert stats_after.individual_event_subscriptions == 0


class TestTypeFilter:

    @pytest.mark.asyncio
    async def test_no_fallback_to_unfiltered_set(self, db_session, factory):
        tenant = await factory.tenant()
        national = await factory.catalog("National", CatalogType.NATIONAL_HOLIDAYS)
        await factory.catalog_event(national, "Bastille Day")
        await factory.subscribe_catalog(tenant, national)

        calendar = await CalendarService(db_session).get_unified_calendar(
            tenant.id, CalendarFilter(catalog_type=CatalogType.REGIONAL_HOLIDAYS)
        )

        assert calendar.summary.catalog_event_count == 0

    @pytest.mark.asyncio
    async def test_includes_individual_events_of_that_type(self, db_session, factory):
        tenant = await factory.tenant()
        national = await factory.catalog("National", CatalogType.NATIONAL_HOLIDAYS)
        regional = await factory.catalog("Regional", CatalogType.REGIONAL_HOLIDAYS)
        await factory.catalog_event(national, "Bastille Day")
        carnival = await factory.catalog_event(regional, "Carnival")
        await factory.catalog_event(regional, "Harvest Fair")
        await factory.subscribe_catalog(tenant, national)
        await factory.subscribe_event(tenant, carnival)

        calendar = await CalendarService(db_session).get_unified_calendar(
            tenant.id, CalendarFilter(catalog_type=CatalogType.REGIONAL_HOLIDAYS)
        )

        assert titles(calendar) == ["Carnival"]

    @pytest.mark.asyncio
    async def test_individual_event_of_other_type_is_excluded(self, db_session, factory):
        tenant = await factory.tenant()
        national = await factory.catalog("National", CatalogType.NATIONAL_HOLIDAYS)
        world = await factory.catalog("World", CatalogType.WORLD_SPECIAL_DAYS)
        await factory.catalog_event(national, "Bastille Day")
        earth_day = await factory.catalog_event(world, "Earth Day")
        await factory.subscribe_catalog(tenant, national)
        await factory.subscribe_event(tenant, earth_day)

        calendar = await CalendarService(db_session).get_unified_calendar(
            tenant.id, CalendarFilter(catalog_type=CatalogType.NATIONAL_HOLIDAYS)
        )

        assert titles(calendar) == ["Bastille Day"]


class TestFilters:

    @pytest.mark.asyncio
    async def test_date_range_compares_start_date(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.subscribe_catalog(tenant, catalog)
        await factory.catalog_event(catalog, "Before", start_date=utc(2024, 2, 28), end_date=utc(2024, 3, 2))
        await factory.catalog_event(catalog, "Inside", start_date=utc(2024, 3, 10))
        await factory.organization_event(tenant, "Org Inside", start_date=utc(2024, 3, 15))
        await factory.organization_event(tenant, "Org After", start_date=utc(2024, 4, 1))

        calendar = await CalendarService(db_session).get_unified_calendar(
            tenant.id, CalendarFilter(start_date=utc(2024, 3, 1), end_date=utc(2024, 3, 31))
        )

        assert titles(calendar) == ["Inside", "Org Inside"]

    @pytest.mark.asyncio
    async def test_tags_match_any(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.subscribe_catalog(tenant, catalog)
        await factory.catalog_event(catalog, "Tagged", tags=["holiday", "culture"], start_date=utc(2024, 1, 1))
        await factory.catalog_event(catalog, "Untagged", start_date=utc(2024, 1, 2))
        await factory.organization_event(tenant, "Org Tagged", tags=["culture"], start_date=utc(2024, 1, 3))

        calendar = await CalendarService(db_session).get_unified_calendar(
            tenant.id, CalendarFilter(tags=("culture", "sports"))
        )

        assert titles(calendar) == ["Tagged", "Org Tagged"]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_on_title_or_description(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.subscribe_catalog(tenant, catalog)
        await factory.catalog_event(catalog, "International Women's Day", start_date=utc(2024, 3, 8))
        await factory.catalog_event(catalog, "Other", description="about WOMEN in science", start_date=utc(2024, 3, 9))
        await factory.catalog_event(catalog, "Unrelated", start_date=utc(2024, 3, 10))
        await factory.organization_event(tenant, "Women in tech lunch", start_date=utc(2024, 3, 11))

        calendar = await CalendarService(db_session).get_unified_calendar(
            tenant.id, CalendarFilter(search="women")
        )

        assert titles(calendar) == ["International Women's Day", "Other", "Women in tech lunch"]

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, db_session, factory):
        tenant = await factory.tenant()
        await factory.organization_event(tenant, "100% uptime party")
        await factory.organization_event(tenant, "1000 users")

        calendar = await CalendarService(db_session).get_unified_calendar(
            tenant.id, CalendarFilter(search="100%")
        )

        assert titles(calendar) == ["100% uptime party"]

    @pytest.mark.asyncio
    async def test_country_and_region_apply_to_catalog_events_only(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog("Holidays", CatalogType.REGIONAL_HOLIDAYS)
        await factory.subscribe_catalog(tenant, catalog)
        await factory.catalog_event(catalog, "Paris", country="FR", region="IDF", start_date=utc(2024, 6, 1))
        await factory.catalog_event(catalog, "Lyon", country="FR", region="ARA", start_date=utc(2024, 6, 2))
        await factory.catalog_event(catalog, "Berlin", country="DE", start_date=utc(2024, 6, 3))
        await factory.organization_event(tenant, "Offsite", start_date=utc(2024, 6, 4))

        calendar = await CalendarService(db_session).get_unified_calendar(
            tenant.id, CalendarFilter(country="FR", region="IDF")
        )

        assert titles(calendar) == ["Paris", "Offsite"]

    @pytest.mark.asyncio
    async def test_source_restricts_collections(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.subscribe_catalog(tenant, catalog)
        await factory.catalog_event(catalog, "Catalog")
        await factory.organization_event(tenant, "Org")

        service = CalendarService(db_session)
        catalog_only = await service.get_unified_calendar(tenant.id, CalendarFilter(source=EventSource.CATALOG))
        organization_only = await service.get_unified_calendar(
            tenant.id, CalendarFilter(source=EventSource.ORGANIZATION)
        )

        assert titles(catalog_only) == ["Catalog"]
        assert titles(organization_only) == ["Org"]
        # subscription counts do not depend on the source filter
        assert organization_only.summary.subscribed_catalog_count == 1

    @pytest.mark.asyncio
    async def test_skipped_source_is_not_queried(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.catalog_event(catalog)
        await factory.subscribe_catalog(tenant, catalog)
        service = CalendarService(db_session)
        service._fetch_catalog_events = AsyncMock()

        await service.get_unified_calendar(tenant.id, CalendarFilter(source=EventSource.ORGANIZATION))

        service._fetch_catalog_events.assert_not_called()


class TestMergeAndAnnotation:

    @pytest.mark.asyncio
    async def test_catalog_event_precedes_organization_event_at_same_start(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.subscribe_catalog(tenant, catalog)
        same_start = utc(2024, 7, 1, 9)
        await factory.organization_event(tenant, "Org", start_date=same_start)
        await factory.catalog_event(catalog, "Catalog", start_date=same_start)
        await factory.catalog_event(catalog, "Earlier", start_date=utc(2024, 7, 1, 8))

        service = CalendarService(db_session)
        first = await service.get_unified_calendar(tenant.id)
        second = await service.get_unified_calendar(tenant.id)

        assert titles(first) == ["Earlier", "Catalog", "Org"]
        assert titles(second) == titles(first)

    @pytest.mark.asyncio
    async def test_same_start_ties_are_ordered_by_id(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.subscribe_catalog(tenant, catalog)
        same_start = utc(2024, 7, 1, 9)
        for title in ("C1", "C2", "C3", "C4"):
            await factory.catalog_event(catalog, title, start_date=same_start)
        for title in ("O1", "O2", "O3"):
            await factory.organization_event(tenant, title, start_date=same_start)

        service = CalendarService(db_session)
        first = await service.get_unified_calendar(tenant.id)
        second = await service.get_unified_calendar(tenant.id)

        catalog_ids = [e.id for e in first.events if e.source == "catalog"]
        organization_ids = [e.id for e in first.events if e.source == "organization"]
        assert catalog_ids == sorted(catalog_ids)
        assert organization_ids == sorted(organization_ids)
        assert [e.id for e in second.events] == [e.id for e in first.events]

    @pytest.mark.asyncio
    async def test_annotations_and_summary(self, db_session, factory):
        tenant = await factory.tenant()
        author = await factory.user(tenant, UserRole.ADMIN, first_name="Grace", last_name="Hopper")
        catalog = await factory.catalog("World Days")
        other = await factory.catalog("National", CatalogType.NATIONAL_HOLIDAYS)
        await factory.subscribe_catalog(tenant, catalog)
        await factory.catalog_event(
            catalog,
            "Earth Day",
            start_date=utc(2024, 4, 22),
            country="US",
            industries=["energy"],
            tags=["environment"],
            is_recurring=True,
            recurrence_rule="FREQ=YEARLY",
            event_metadata={"color": "green"},
        )
        single = await factory.catalog_event(other, "Memorial Day", start_date=utc(2024, 5, 27))
        await factory.subscribe_event(tenant, single)
        await factory.organization_event(tenant, "Retro", start_date=utc(2024, 5, 1), created_by=author)
        await factory.organization_event(tenant, "Orphan", start_date=utc(2024, 6, 1))

        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)

        earth_day, retro, memorial, orphan = calendar.events
        assert earth_day.source == "catalog"
        assert earth_day.start_date == utc(2024, 4, 22)
        assert earth_day.recurrence_rule == "FREQ=YEARLY"
        assert earth_day.metadata == {"color": "green"}
        assert earth_day.source_details.catalog_name == "World Days"
        assert earth_day.source_details.catalog_type == "WORLD_SPECIAL_DAYS"
        assert earth_day.source_details.country == "US"
        assert earth_day.source_details.industries == ["energy"]
        assert earth_day.source_details.subscription_type == "catalog"

        assert memorial.source_details.subscription_type == "individual"

        assert retro.source == "organization"
        assert retro.source_details.created_by.first_name == "Grace"
        assert retro.source_details.created_by.id == author.id
        assert orphan.source_details.created_by is None

        assert calendar.summary.total == 4
        assert calendar.summary.catalog_event_count == 2
        assert calendar.summary.organization_event_count == 2
        assert calendar.summary.subscribed_catalog_count == 1
        assert calendar.summary.individual_event_subscription_count == 1

    @pytest.mark.asyncio
    async def test_other_tenants_organization_events_are_excluded(self, db_session, factory):
        tenant = await factory.tenant("Acme")
        other = await factory.tenant("Globex")
        await factory.organization_event(tenant, "Mine")
        await factory.organization_event(other, "Theirs")

        calendar = await CalendarService(db_session).get_unified_calendar(tenant.id)

        assert titles(calendar) == ["Mine"]


class TestFailures:

    @pytest.mark.asyncio
    async def test_missing_tenant_is_a_permission_error(self, db_session):
        with pytest.raises(CalendarPermissionError):
            await CalendarService(db_session).get_unified_calendar(None)

    @pytest.mark.asyncio
    async def test_store_failure_becomes_aggregation_error(self, db_session, factory):
        tenant = await factory.tenant()
        service = CalendarService(db_session)
        service._fetch_organization_events = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection lost"))
        )

        with pytest.raises(CalendarAggregationError):
            await service.get_unified_calendar(tenant.id)


class TestMonthView:

    @pytest.mark.asyncio
    async def test_month_boundaries_are_exact(self, db_session, factory):
        tenant = await factory.tenant()
        await factory.organization_event(tenant, "Last of January", start_date=utc(2025, 1, 31, 23))
        await factory.organization_event(
            tenant, "First of February", start_date=datetime(2025, 2, 1, 0, 0, 1, tzinfo=timezone.utc)
        )

        service = CalendarService(db_session)
        january = await service.get_events_by_month(tenant.id, 2025, 1)
        february = await service.get_events_by_month(tenant.id, "2025", "2")

        assert titles(january) == ["Last of January"]
        assert titles(february) == ["First of February"]
        assert january.summary.total == 1

    @pytest.mark.asyncio
    async def test_event_starting_before_month_is_excluded(self, db_session, factory):
        tenant = await factory.tenant()
        catalog = await factory.catalog()
        await factory.subscribe_catalog(tenant, catalog)
        await factory.catalog_event(
            catalog, "Spans into March", start_date=utc(2024, 2, 28), end_date=utc(2024, 3, 2)
        )
        await factory.catalog_event(catalog, "In March", start_date=utc(2024, 3, 8))

        calendar = await CalendarService(db_session).get_events_by_month(tenant.id, 2024, 3)

        assert titles(calendar) == ["In March"]

    @pytest.mark.asyncio
    async def test_caller_dates_are_overridden(self, db_session, factory):
        tenant = await factory.tenant()
        await factory.organization_event(tenant, "In March", start_date=utc(2024, 3, 8))

        calendar = await CalendarService(db_session).get_events_by_month(
            tenant.id, 2024, 3, CalendarFilter(start_date=utc(2030, 1, 1), end_date=utc(2030, 2, 1))
        )

        assert titles(calendar) == ["In March"]
        assert calendar.filters.start_date.startswith("2024-03-01T00:00:00")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("year, month", [
        (2024, 0),
        (2024, 13),
        ("2024", "march"),
        ("twenty", 3),
        (2024, "1.5"),
        (0, 1),
    ])
    async def test_invalid_year_or_month(self, db_session, factory, year, month):
        tenant = await factory.tenant()

        with pytest.raises(CalendarValidationError) as exc_info:
            await CalendarService(db_session).get_events_by_month(tenant.id, year, month)

        assert exc_info.value.validation_errors

    @pytest.mark.asyncio
    async def test_missing_tenant_in_month_view(self, db_session):
        with pytest.raises(CalendarPermissionError):
            await CalendarService(db_session).get_events_by_month(None, 2024, 3)
