"""
Canonical filter -> per-source SQL predicate.

One compile path serves every source; what differs between sources (column
names, category labels, tag spellings, amenity storage) comes from the
SourceDescriptor and the dialect tables. A value a source has no mapping for
adds no clause: unknown means "no constraint", never "match nothing".
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import Table, and_, func, or_, true
from sqlalchemy.sql.expression import ColumnElement

from listing_search.dialects import AMENITY_TAGS, LabelRule, category_labels, expand_tag, expand_tags
from listing_search.models import PRICE_MAX_SENTINEL, CanonicalFilter, Category
from listing_search.sources import DomainConfig, SourceDescriptor, domain_config
from listing_search.sql import TABLES, json_has_tag

LOG = logging.getLogger("listing_search.compiler")


@dataclass(frozen=True)
class Predicate:
    source: SourceDescriptor
    clauses: Tuple[ColumnElement, ...]

    @property
    def table(self) -> Table:
        return TABLES[self.source.table]

    @property
    def clause(self) -> ColumnElement:
        return and_(*self.clauses) if self.clauses else true()


def compile_predicate(
    flt: CanonicalFilter,
    source: SourceDescriptor,
    now: Optional[datetime] = None,
) -> Predicate:
    table = TABLES[source.table]
    cfg = domain_config(source.domain)
    conds: List[ColumnElement] = []

    conds.extend(_domain_invariants(table, source, cfg, now or datetime.now(timezone.utc)))

    if flt.location and source.supports("location"):
        conds.append(_location(table, source, flt.location))

    if flt.category and source.supports("category"):
        c = _category(table, source, flt.category)
        if c is not None:
            conds.append(c)

    if source.supports("price"):
        conds.extend(_price(table, source, cfg, flt))

    # room thresholds are inclusive-OR: {2, 4} means ">= 2 or >= 4"
    if flt.bedrooms_at_least and source.supports("bedrooms"):
        conds.append(_at_least(table.c[source.bedrooms_field], flt.bedrooms_at_least))
    if flt.bathrooms_at_least and source.supports("bathrooms"):
        conds.append(_at_least(table.c[source.bathrooms_field], flt.bathrooms_at_least))

    if flt.amenities and source.supports("amenities"):
        for amenity in sorted(flt.amenities, key=lambda a: a.value):
            c = _amenity(table, source, amenity)
            if c is not None:
                conds.append(c)

    if flt.feature_tags and source.supports("feature_tags"):
        for tag in sorted(flt.feature_tags):
            c = _tag_any(table, source, expand_tag(tag, source.tag_dialect))
            if c is not None:
                conds.append(c)

    LOG.debug("compiled %d clauses for source %s", len(conds), source.name)
    return Predicate(source=source, clauses=tuple(conds))


# ---------- Dimensions ----------

def _domain_invariants(table, source: SourceDescriptor, cfg: DomainConfig, now: datetime):
    """Clauses every query in the domain carries, whatever the user asked for."""
    price = table.c[source.price_field]
    if cfg.require_price:
        yield price.is_not(None)
    if cfg.min_longterm_price is not None:
        yield price > 0
        yield price >= cfg.min_longterm_price
    if cfg.recency_days is not None:
        yield table.c[cfg.recency_field] >= now - timedelta(days=cfg.recency_days)


def _location(table, source: SourceDescriptor, values) -> ColumnElement:
    fields = [table.c[f] for f in source.location_fields]
    return or_(*[col.icontains(v, autoescape=True) for v in sorted(values) for col in fields])


def _label(table, rule: LabelRule) -> ColumnElement:
    col = table.c[rule.field]
    if rule.exact:
        return func.lower(col) == rule.pattern.lower()
    return col.icontains(rule.pattern, autoescape=True)


def _category(table, source: SourceDescriptor, categories) -> Optional[ColumnElement]:
    rules: List[LabelRule] = []
    for category in sorted(categories, key=lambda c: c.value):
        # new-development picks the source; it is not a label
        if category is Category.NEW_DEVELOPMENT:
            continue
        rules.extend(category_labels(category, source.category_vocabulary))
    if not rules:
        return None
    return or_(*[_label(table, r) for r in rules])


def _price(table, source: SourceDescriptor, cfg: DomainConfig, flt: CanonicalFilter):
    col = table.c[source.price_field]
    effective_min = flt.price_min
    if cfg.price_floor is not None:
        effective_min = max(effective_min, cfg.price_floor)
    if effective_min > 0:
        yield col >= effective_min
    if flt.price_max < PRICE_MAX_SENTINEL:
        yield col <= flt.price_max


def _at_least(col, thresholds) -> ColumnElement:
    return or_(*[col >= n for n in sorted(thresholds)])


def _amenity(table, source: SourceDescriptor, amenity) -> Optional[ColumnElement]:
    column = source.amenity_columns.get(amenity)
    if column is not None:
        return table.c[column].is_(true())
    return _tag_any(table, source, expand_tags(AMENITY_TAGS.get(amenity, ()), source.tag_dialect))


def _tag_any(table, source: SourceDescriptor, spellings) -> Optional[ColumnElement]:
    if not spellings:
        return None
    col = table.c[source.tag_field]
    flags = source.tag_storage == "flags"
    return or_(*[json_has_tag(col, s, flags=flags) for s in spellings])
