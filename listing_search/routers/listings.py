# listing_search/routers/listings.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from listing_search.codec import decode_filter
from listing_search.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from listing_search.deps import get_search, get_session
from listing_search.engine import FederatedSearch
from listing_search.errors import SourceQueryFailure
from listing_search.models import Domain, Listing, ListingsResponse, Navigation, SortKey

LOG = logging.getLogger("listing_search.api")

router = APIRouter(prefix="/api", tags=["listings"])

RETRY_DETAIL = "search could not complete, please retry"


def _unavailable(e: SourceQueryFailure) -> HTTPException:
    LOG.error("%s", e)
    return HTTPException(status_code=503, detail=RETRY_DETAIL)


@router.get("/{domain}/listings", response_model=ListingsResponse)
async def list_listings(
    domain: Domain,
    request: Request,
    # paging & sorting; filters are read from the remaining query parameters
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort: SortKey = Query(SortKey.PUBLISHED),
    search: FederatedSearch = Depends(get_search),
    session: str = Depends(get_session),
):
    """
    Thin endpoint:
      - decode the filter from the query string
      - run one page of the federated search, remembering it for the session
    """
    flt = decode_filter(dict(request.query_params))
    try:
        window = await search.search(flt, sort, page, domain=domain, page_size=page_size, session=session)
    except SourceQueryFailure as e:
        raise _unavailable(e) from e

    return ListingsResponse(
        total=window.total_count,
        page=page,
        page_size=page_size,
        has_more=window.has_more,
        truncated=window.truncated,
        items=window.items,
    )


@router.get("/{domain}/listings/all", response_model=List[Listing])
async def list_all_listings(
    domain: Domain,
    request: Request,
    sort: SortKey = Query(SortKey.PUBLISHED),
    search: FederatedSearch = Depends(get_search),
):
    """Every match, unpaginated (map view)."""
    flt = decode_filter(dict(request.query_params))
    try:
        return await search.search_all(flt, sort, domain=domain)
    except SourceQueryFailure as e:
        raise _unavailable(e) from e


@router.get("/{domain}/listings/{listing_id}/neighbors", response_model=Navigation)
async def listing_neighbors(
    domain: Domain,
    listing_id: str,
    search: FederatedSearch = Depends(get_search),
    session: str = Depends(get_session),
):
    try:
        return await search.navigate(listing_id, domain, session=session)
    except SourceQueryFailure as e:
        raise _unavailable(e) from e


@router.get("/{domain}/listings/{listing_id}", response_model=Listing)
async def get_listing(
    domain: Domain,
    listing_id: str,
    search: FederatedSearch = Depends(get_search),
):
    try:
        listing = await search.get_listing(listing_id, domain)
    except SourceQueryFailure as e:
        raise _unavailable(e) from e
    if listing is None:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing
