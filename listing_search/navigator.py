import asyncio
import logging
from typing import Optional

from listing_search.errors import StaleContext
from listing_search.models import Navigation, SearchContext
from listing_search.paginator import Paginator, QueryPlan, plan_query

LOG = logging.getLogger("listing_search.navigator")


class PositionNavigator:
    """
    Previous/next for a listing inside the search that led to it. Positions
    are recomputed from the stored context on every call, through the same
    Paginator the search used, so both agree on order.
    """

    def __init__(self, paginator: Paginator):
        self.paginator = paginator

    @staticmethod
    def _plan(context: SearchContext) -> QueryPlan:
        return plan_query(context.filter, context.sort_key, context.domain)

    async def locate(self, listing_id: str, context: SearchContext) -> int:
        ids = await self.paginator.identities(self._plan(context))
        try:
            return _position(ids, listing_id)
        except StaleContext:
            return -1

    async def neighbor(self, index: int, context: SearchContext) -> Optional[str]:
        return await self.paginator.identity_at(self._plan(context), index)

    async def navigate(self, listing_id: str, context: Optional[SearchContext]) -> Navigation:
        if context is None:
            return Navigation()
        plan = self._plan(context)
        ids = await self.paginator.identities(plan)
        try:
            index = _position(ids, listing_id)
        except StaleContext as e:
            LOG.info("%s", e)
            return Navigation(total=len(ids))

        previous, following = await asyncio.gather(
            self.paginator.identity_at(plan, index - 1),
            self.paginator.identity_at(plan, index + 1),
        )
        return Navigation(previous=previous, next=following, index=index, total=len(ids))


def _position(ids, listing_id: str) -> int:
    try:
        return ids.index(listing_id)
    except ValueError:
        raise StaleContext(f"listing {listing_id} is not in the stored search") from None
