import pytest
from sqlalchemy.exc import SQLAlchemyError

from listing_search.context import MemoryContextStore
from listing_search.engine import FederatedSearch
from listing_search.errors import SourceQueryFailure
from listing_search.models import CanonicalFilter, Domain, SearchContext, SortKey


@pytest.mark.asyncio
async def test_search_pages_are_one_based(search):
    first = await search.search(CanonicalFilter(), SortKey.PUBLISHED, 1, domain=Domain.SALE)
    third = await search.search(CanonicalFilter(), SortKey.PUBLISHED, 3, domain=Domain.SALE)
    assert [l.id for l in first.items] == ["N1", "R1"]
    assert first.offset == 0 and first.limit == 2
    assert [l.id for l in third.items] == ["R5"]


@pytest.mark.asyncio
async def test_search_rejects_page_zero(search):
    with pytest.raises(ValueError):
        await search.search(CanonicalFilter(), SortKey.PUBLISHED, 0, domain=Domain.SALE)


@pytest.mark.asyncio
async def test_search_with_session_replaces_context(search, store):
    await search.search(CanonicalFilter(location={"Marbella"}), SortKey.PRICE_ASC, 1,
                        domain=Domain.SALE, session="s1")
    await search.search(CanonicalFilter(), SortKey.PUBLISHED, 1, domain=Domain.SALE, session="s1")
    context = await store.load("s1", Domain.SALE)
    assert context == SearchContext(
        filter=CanonicalFilter(), sort_key=SortKey.PUBLISHED, domain=Domain.SALE, total_count=5,
    )
    assert await store.load("s1", Domain.RENTAL) is None


@pytest.mark.asyncio
async def test_search_without_session_stores_nothing(search, store):
    await search.search(CanonicalFilter(), SortKey.PUBLISHED, 1, domain=Domain.RENTAL)
    assert store._data == {}


@pytest.mark.asyncio
async def test_search_all_is_the_full_order(search):
    listings = await search.search_all(CanonicalFilter(), SortKey.PUBLISHED, domain=Domain.SALE)
    assert [l.id for l in listings] == ["N1", "R1", "R2", "P1", "R5"]


@pytest.mark.asyncio
async def test_get_listing_prefers_higher_priority_source(search):
    p1 = await search.get_listing("P1", Domain.SALE)
    assert p1.source_id == "resale"
    n1 = await search.get_listing("N1", Domain.SALE)
    assert n1.title == "Sea Breeze"
    assert await search.get_listing("nope", Domain.SALE) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("domain", [Domain.SALE, Domain.RENTAL])
async def test_source_failure_is_raised_not_masked(broken_executor, domain):
    search = FederatedSearch(broken_executor, MemoryContextStore())
    with pytest.raises(SourceQueryFailure) as exc:
        await search.search(CanonicalFilter(), SortKey.PUBLISHED, 1, domain=domain, session="s1")
    assert isinstance(exc.value.__cause__, SQLAlchemyError)
    # a failed search leaves the stored context alone
    assert await search.store.load("s1", domain) is None
