"""Compiles calendar filter options into per-source query predicates.

``CalendarFilter`` is the value callers build from query parameters.
``compile_filters`` turns it, together with a tenant's resolved
subscriptions, into two immutable predicates: one for catalog events and one
for organization events. Compilation does no I/O; the aggregator and the
statistics service apply the predicates to their own queries.
"""

import enum
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from sqlalchemy import Select, and_, false, not_, or_
from sqlalchemy.sql.elements import ColumnElement

from src.models.catalog import Catalog, CatalogEvent, CatalogType
from src.models.organization_event import OrganizationEvent
from src.services.errors import FilterValidationError
from src.services.subscription_resolver import ResolvedSubscriptions
from src.utils.validators import ChoiceValidator, DateParamValidator, split_csv

# Query value meaning "no constraint" for country, region and source
ALL = "all"


class EventSource(str, enum.Enum):
    """Which event collections a calendar query reads."""

    ALL = "all"
    CATALOG = "catalog"
    ORGANIZATION = "organization"

    @property
    def includes_catalog(self) -> bool:
        return self in (EventSource.ALL, EventSource.CATALOG)

    @property
    def includes_organization(self) -> bool:
        return self in (EventSource.ALL, EventSource.ORGANIZATION)


@dataclass(frozen=True)
class CalendarFilter:
    """Filter options for a calendar query. Every field is optional."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    tags: Tuple[str, ...] = ()
    search: Optional[str] = None
    source: EventSource = EventSource.ALL
    country: Optional[str] = None
    region: Optional[str] = None
    catalog_type: Optional[CatalogType] = None

    @classmethod
    def from_query(
        cls,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        tags: Optional[str] = None,
        search: Optional[str] = None,
        source: Optional[str] = None,
        country: Optional[str] = None,
        region: Optional[str] = None,
        catalog_type: Optional[str] = None,
    ) -> "CalendarFilter":
        """
        Build a filter from raw query-string values.

        Raises:
            FilterValidationError: If a date, source or catalog type is malformed
        """
        errors = []
        errors.extend(DateParamValidator.validate(start_date, "start_date"))
        errors.extend(DateParamValidator.validate(end_date, "end_date"))
        errors.extend(ChoiceValidator.validate(
            source or None, "source", [s.value for s in EventSource]
        ))
        errors.extend(ChoiceValidator.validate(
            catalog_type or None, "type", [t.value for t in CatalogType]
        ))
        if errors:
            raise FilterValidationError("Invalid calendar filter", errors)

        return cls(
            start_date=DateParamValidator.parse(start_date),
            end_date=DateParamValidator.parse(end_date),
            tags=split_csv(tags),
            search=search.strip() if search and search.strip() else None,
            source=EventSource(source) if source else EventSource.ALL,
            country=_unless_all(country),
            region=_unless_all(region),
            catalog_type=CatalogType(catalog_type) if catalog_type else None,
        )

    def with_date_range(self, start_date: datetime, end_date: datetime) -> "CalendarFilter":
        """Copy of this filter with both date bounds replaced."""
        return replace(self, start_date=start_date, end_date=end_date)

    def to_echo(self) -> Dict[str, Any]:
        """Effective filters, for display next to the results."""
        return {
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "tags": list(self.tags) or None,
            "search": self.search,
            "source": self.source.value,
            "country": self.country,
            "region": self.region,
            "type": self.catalog_type.value if self.catalog_type else None,
        }


def _unless_all(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip() or value.strip() == ALL:
        return None
    return value.strip()


@dataclass(frozen=True)
class EventPredicate:
    """
    Compiled constraints for one event collection.

    ``clauses`` are ANDed into the store query. ``tags`` are matched in
    process because tags are stored as a JSON array. A predicate that is not
    ``enabled`` or ``is_empty`` must not be queried at all.
    """

    clauses: Tuple[ColumnElement, ...] = field(default=(), compare=False)
    tags: FrozenSet[str] = frozenset()
    enabled: bool = True
    is_empty: bool = False

    @property
    def should_query(self) -> bool:
        return self.enabled and not self.is_empty

    def apply(self, query: Select) -> Select:
        """Return ``query`` narrowed by the SQL clauses."""
        if self.clauses:
            query = query.where(and_(*self.clauses))
        return query

    def matches_tags(self, event_tags: Optional[Iterable[str]]) -> bool:
        """True when no tag filter is set or the event shares at least one tag."""
        if not self.tags:
            return True
        return not self.tags.isdisjoint(event_tags or ())


@dataclass(frozen=True)
class CatalogEventPredicate(EventPredicate):
    """Predicate over ``CatalogEvent`` rows joined to ``Catalog``."""


@dataclass(frozen=True)
class OrganizationEventPredicate(EventPredicate):
    """Predicate over one tenant's ``OrganizationEvent`` rows."""


def membership_clause(
    resolved: ResolvedSubscriptions,
    catalog_ids: Optional[FrozenSet[uuid.UUID]] = None,
) -> ColumnElement:
    """
    Base visibility gate for catalog events.

    An event is visible when its catalog is subscribed or the event itself is
    subscribed and visible, unless the tenant hid it. ``catalog_ids``
    replaces the subscribed catalog set (used by the type filter). With
    nothing to match the clause is constant false, never unconstrained.
    """
    if catalog_ids is None:
        catalog_ids = resolved.subscribed_catalog_ids

    grants = []
    if catalog_ids:
        grants.append(CatalogEvent.catalog_id.in_(sorted(catalog_ids)))
    if resolved.subscribed_event_ids:
        grants.append(CatalogEvent.id.in_(sorted(resolved.subscribed_event_ids)))
    if not grants:
        return false()

    clause = or_(*grants)
    if resolved.hidden_event_ids:
        clause = and_(clause, not_(CatalogEvent.id.in_(sorted(resolved.hidden_event_ids))))
    return clause


def _search_clause(model, search: str) -> ColumnElement:
    return or_(
        model.title.icontains(search, autoescape=True),
        model.description.icontains(search, autoescape=True),
    )


def _date_clauses(model, filters: CalendarFilter) -> Tuple[ColumnElement, ...]:
    # Both sources compare the event start against both bounds.
    clauses = []
    if filters.start_date is not None:
        clauses.append(model.start_date >= filters.start_date)
    if filters.end_date is not None:
        clauses.append(model.start_date <= filters.end_date)
    return tuple(clauses)


def compile_catalog_predicate(
    filters: CalendarFilter,
    resolved: ResolvedSubscriptions,
) -> CatalogEventPredicate:
    """Build the catalog-event predicate."""
    tags = frozenset(filters.tags)
    enabled = filters.source.includes_catalog

    if not resolved.has_any_subscription:
        return CatalogEventPredicate(tags=tags, enabled=enabled, is_empty=True)

    if filters.catalog_type is not None:
        typed_catalog_ids = resolved.catalog_ids_of_type(filters.catalog_type)
        if not typed_catalog_ids and not resolved.subscribed_event_ids:
            return CatalogEventPredicate(tags=tags, enabled=enabled, is_empty=True)
        clauses = [
            membership_clause(resolved, catalog_ids=typed_catalog_ids),
            Catalog.type == filters.catalog_type.value,
        ]
    else:
        clauses = [membership_clause(resolved)]

    clauses.extend(_date_clauses(CatalogEvent, filters))
    if filters.search:
        clauses.append(_search_clause(CatalogEvent, filters.search))
    if filters.country:
        clauses.append(CatalogEvent.country == filters.country)
    if filters.region:
        clauses.append(CatalogEvent.region == filters.region)

    return CatalogEventPredicate(clauses=tuple(clauses), tags=tags, enabled=enabled)


def compile_organization_predicate(
    filters: CalendarFilter,
    resolved: ResolvedSubscriptions,
) -> OrganizationEventPredicate:
    """Build the organization-event predicate. Country, region and type do not apply."""
    return tenant_organization_predicate(filters, resolved.tenant_id)


def tenant_organization_predicate(
    filters: CalendarFilter,
    tenant_id: uuid.UUID,
) -> OrganizationEventPredicate:
    """Organization-event predicate for ``tenant_id``, without subscription data."""
    clauses = [OrganizationEvent.tenant_id == tenant_id]
    clauses.extend(_date_clauses(OrganizationEvent, filters))
    if filters.search:
        clauses.append(_search_clause(OrganizationEvent, filters.search))

    return OrganizationEventPredicate(
        clauses=tuple(clauses),
        tags=frozenset(filters.tags),
        enabled=filters.source.includes_organization,
    )


def compile_filters(
    filters: CalendarFilter,
    resolved: ResolvedSubscriptions,
) -> Tuple[CatalogEventPredicate, OrganizationEventPredicate]:
    """Compile ``filters`` for both event sources."""
    return (
        compile_catalog_predicate(filters, resolved),
        compile_organization_predicate(filters, resolved),
    )
