"""
Query planning and pagination.

A plan is the list of compiled per-source predicates a search fans out to,
in source-priority order. The Paginator serves a plan in one of two ways:

push-down  one source that can window natively: the source returns the page
           and a separate count query returns the total.
full-scan  several sources: every source is fetched up to the cap, merged,
           de-duplicated, sorted as a whole and sliced locally.

Full-scan pays for a fetch-everything request to get one globally correct
order. Asking each source for its own top-k and merging is not enough: a
source's native order cannot say how far down the next source's rows belong,
so the merged page would be wrong for any offset past the first page.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from listing_search.compiler import Predicate, compile_predicate
from listing_search.models import CanonicalFilter, Category, Domain, Listing, OrderedResultWindow, SortKey
from listing_search.normalizer import normalize_all
from listing_search.ordering import merge, sort_listings
from listing_search.repository.executor import SourceQueryExecutor, Window
from listing_search.sources import DomainConfig, SourceDescriptor, domain_config

LOG = logging.getLogger("listing_search.paginator")


@dataclass(frozen=True)
class QueryPlan:
    domain: DomainConfig
    predicates: Tuple[Predicate, ...]
    sort_key: SortKey

    @property
    def push_down(self) -> bool:
        return len(self.predicates) == 1 and self.predicates[0].source.supports_push_down

    @property
    def sources(self) -> Tuple[SourceDescriptor, ...]:
        return tuple(p.source for p in self.predicates)


def route_sources(flt: CanonicalFilter, cfg: DomainConfig) -> Tuple[SourceDescriptor, ...]:
    """Sources a filter needs, by priority. Only-new-development skips the other feeds."""
    ordered = tuple(sorted(cfg.sources, key=lambda s: s.priority))
    if flt.category == frozenset({Category.NEW_DEVELOPMENT}):
        only = tuple(s for s in ordered if s.name == Category.NEW_DEVELOPMENT.value)
        if only:
            return only
    return ordered


def plan_query(
    flt: CanonicalFilter,
    sort_key: SortKey,
    domain: Domain,
    now: Optional[datetime] = None,
) -> QueryPlan:
    cfg = domain_config(domain)
    predicates = tuple(compile_predicate(flt, s, now=now) for s in route_sources(flt, cfg))
    plan = QueryPlan(domain=cfg, predicates=predicates, sort_key=SortKey(sort_key))
    LOG.debug(
        "plan %s: sources=%s mode=%s sort=%s",
        cfg.domain.value, [s.name for s in plan.sources],
        "push-down" if plan.push_down else "full-scan", plan.sort_key.value,
    )
    return plan


class Paginator:
    def __init__(self, executor: SourceQueryExecutor):
        self.executor = executor

    async def page(self, plan: QueryPlan, offset: int, limit: int) -> OrderedResultWindow:
        if plan.push_down:
            pred = plan.predicates[0]
            rows, total = await self.executor.page(pred, plan.sort_key, Window(offset, limit))
            items = normalize_all(rows, pred.source)
            # rows and count are separate queries; keep the window consistent if data moved between them
            total = max(total, offset + len(items)) if items else total
            return OrderedResultWindow(items=items, offset=offset, limit=limit, total_count=total)

        listings, truncated = await self.ordered(plan)
        return OrderedResultWindow(
            items=listings[offset:offset + limit],
            offset=offset,
            limit=limit,
            total_count=len(listings),
            truncated=truncated,
        )

    async def ordered(self, plan: QueryPlan, identity_only: bool = False) -> Tuple[List[Listing], bool]:
        """Whole merged, de-duplicated, sorted result set. Fails if any source fails."""
        results = await asyncio.gather(*[
            self.executor.scan(p, plan.sort_key, p.source.sort_columns if identity_only else None)
            for p in plan.predicates
        ])
        per_source = [normalize_all(rows, p.source) for p, (rows, _) in zip(plan.predicates, results)]
        truncated = any(cut for _, cut in results)
        return sort_listings(merge(per_source), plan.sort_key), truncated

    async def identities(self, plan: QueryPlan) -> List[str]:
        """Listing ids in result order, without pagination."""
        if plan.push_down:
            pred = plan.predicates[0]
            id_field = pred.source.identity_field
            rows = await self.executor.execute(pred, plan.sort_key, columns=[id_field])
            return [str(r[id_field]) for r in rows]
        listings, _ = await self.ordered(plan, identity_only=True)
        return [l.id for l in listings]

    async def identity_at(self, plan: QueryPlan, index: int) -> Optional[str]:
        """The id at ``index`` in result order, or None outside the result set."""
        if index < 0:
            return None
        if plan.push_down:
            pred = plan.predicates[0]
            id_field = pred.source.identity_field
            rows = await self.executor.execute(pred, plan.sort_key, Window(index, 1), columns=[id_field])
            return str(rows[0][id_field]) if rows else None
        ids = await self.identities(plan)
        return ids[index] if index < len(ids) else None
