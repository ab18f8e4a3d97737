"""
One ordering, two renderings: ``sort_listings`` orders merged listings in
memory, ``sql_order`` asks a single source for the same order natively.

- price: numeric, missing price counts as 0
- size: built size when it is a JSON number, anything else counts as 0
- published: newest first, undated listings last, ties keep their order
"""
from typing import Iterable, List, Sequence

from sqlalchemy import Float, Table, cast, func

from listing_search.models import Listing, SortKey
from listing_search.sources import SourceDescriptor
from listing_search.sql import json_size


def merge(per_source: Sequence[Iterable[Listing]]) -> List[Listing]:
    """
    Concatenate per-source results (already in source-priority order) and
    keep the first listing seen for each id.
    """
    seen = set()
    out: List[Listing] = []
    for listings in per_source:
        for listing in listings:
            if listing.id in seen:
                continue
            seen.add(listing.id)
            out.append(listing)
    return out


def sort_listings(listings: Iterable[Listing], sort_key: SortKey) -> List[Listing]:
    # sorted() is stable, also with reverse=True, so re-sorting is a no-op
    key = SortKey(sort_key)
    if key is SortKey.PRICE_ASC:
        return sorted(listings, key=lambda l: l.price or 0)
    if key is SortKey.PRICE_DESC:
        return sorted(listings, key=lambda l: l.price or 0, reverse=True)
    if key is SortKey.SIZE_ASC:
        return sorted(listings, key=lambda l: l.size or 0)
    if key is SortKey.SIZE_DESC:
        return sorted(listings, key=lambda l: l.size or 0, reverse=True)
    return sorted(listings, key=_recency)


def _recency(listing: Listing):
    if listing.listed_at is None:
        return (1, 0.0)
    return (0, -listing.listed_at.timestamp())


# ---------- SQL rendering ----------

def _size_expr(table: Table, source: SourceDescriptor):
    col = table.c[source.size_field]
    if source.size_key:
        return json_size(col, source.size_key)
    return cast(col, Float)


def _listed_expr(table: Table, source: SourceDescriptor):
    cols = [table.c[f] for f in source.listed_fields]
    return cols[0] if len(cols) == 1 else func.coalesce(*cols)


def sql_order(table: Table, source: SourceDescriptor, sort_key: SortKey):
    """ORDER BY clauses for one source; the identity column breaks ties."""
    key = SortKey(sort_key)
    tiebreak = table.c[source.identity_field].asc()
    if key in (SortKey.PRICE_ASC, SortKey.PRICE_DESC):
        expr = func.coalesce(table.c[source.price_field], 0)
        return [expr.asc() if key is SortKey.PRICE_ASC else expr.desc(), tiebreak]
    if key in (SortKey.SIZE_ASC, SortKey.SIZE_DESC):
        expr = func.coalesce(_size_expr(table, source), 0)
        return [expr.asc() if key is SortKey.SIZE_ASC else expr.desc(), tiebreak]
    return [_listed_expr(table, source).desc().nulls_last(), tiebreak]
