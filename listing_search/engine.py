"""
The search engine as the UI sees it: one filter in, one ordered window out,
plus the full list for the map and prev/next from a detail page.
"""
import logging
from typing import List, Optional

from listing_search.config import DEFAULT_PAGE_SIZE
from listing_search.context import SearchContextStore
from listing_search.models import (
    CanonicalFilter, Domain, Listing, Navigation, OrderedResultWindow, SearchContext, SortKey,
)
from listing_search.navigator import PositionNavigator
from listing_search.normalizer import normalize
from listing_search.paginator import Paginator, plan_query
from listing_search.repository.executor import SourceQueryExecutor
from listing_search.sources import domain_config

LOG = logging.getLogger("listing_search.engine")


class FederatedSearch:
    def __init__(
        self,
        executor: SourceQueryExecutor,
        store: SearchContextStore,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.executor = executor
        self.store = store
        self.page_size = page_size
        self.paginator = Paginator(executor)
        self.navigator = PositionNavigator(self.paginator)

    async def search(
        self,
        flt: CanonicalFilter,
        sort_key: SortKey = SortKey.PUBLISHED,
        page: int = 1,
        *,
        domain: Domain,
        page_size: Optional[int] = None,
        session: Optional[str] = None,
    ) -> OrderedResultWindow:
        """
        One page (1-based) of the ordered, de-duplicated result set.
        With a session, the search is remembered for detail-page navigation.
        """
        if page < 1:
            raise ValueError("page must be >= 1")
        size = page_size or self.page_size
        plan = plan_query(flt, sort_key, domain)
        window = await self.paginator.page(plan, (page - 1) * size, size)

        if session:
            await self.store.save(session, SearchContext(
                filter=flt,
                sort_key=plan.sort_key,
                domain=Domain(domain),
                total_count=window.total_count,
            ))
        LOG.info(
            "search %s page=%d sort=%s -> %d of %d",
            Domain(domain).value, page, plan.sort_key.value, len(window.items), window.total_count,
        )
        return window

    async def search_all(
        self,
        flt: CanonicalFilter,
        sort_key: SortKey = SortKey.PUBLISHED,
        *,
        domain: Domain,
    ) -> List[Listing]:
        plan = plan_query(flt, sort_key, domain)
        listings, _ = await self.paginator.ordered(plan)
        return listings

    async def navigate(self, listing_id: str, domain: Domain, *, session: Optional[str]) -> Navigation:
        context = await self.store.load(session, domain) if session else None
        return await self.navigator.navigate(listing_id, context)

    async def get_listing(self, listing_id: str, domain: Domain) -> Optional[Listing]:
        # highest-priority source wins, as in merged results
        for source in sorted(domain_config(domain).sources, key=lambda s: s.priority):
            record = await self.executor.get_by_id(source, listing_id)
            if record is not None:
                return normalize(record, source)
        return None
