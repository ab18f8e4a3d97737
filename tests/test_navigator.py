import pytest

from listing_search.models import CanonicalFilter, Domain, Navigation, SearchContext, SortKey
from listing_search.navigator import PositionNavigator
from listing_search.paginator import Paginator

SALE = SearchContext(filter=CanonicalFilter(), sort_key=SortKey.PUBLISHED, domain=Domain.SALE, total_count=5)
RENTAL = SearchContext(filter=CanonicalFilter(), sort_key=SortKey.PRICE_DESC, domain=Domain.RENTAL, total_count=3)


@pytest.fixture
def navigator(executor):
    return PositionNavigator(Paginator(executor))


@pytest.mark.asyncio
async def test_locate_and_neighbor(navigator):
    assert await navigator.locate("R2", SALE) == 2
    assert await navigator.locate("R3", SALE) == -1
    assert await navigator.neighbor(0, SALE) == "N1"
    assert await navigator.neighbor(5, SALE) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("context", [SALE, RENTAL])
async def test_next_then_previous_comes_back(navigator, context):
    ids = await navigator.paginator.identities(navigator._plan(context))
    for i in range(1, len(ids) - 1):
        nxt = await navigator.neighbor(i + 1, context)
        back = await navigator.neighbor(await navigator.locate(nxt, context) - 1, context)
        assert back == ids[i]


@pytest.mark.asyncio
async def test_navigate_middle(navigator):
    nav = await navigator.navigate("R2", SALE)
    assert nav == Navigation(previous="R1", next="P1", index=2, total=5)


@pytest.mark.asyncio
async def test_navigate_boundaries(navigator):
    first = await navigator.navigate("N1", SALE)
    assert first.previous is None and first.next == "R1"
    last = await navigator.navigate("R5", SALE)
    assert last.previous == "P1" and last.next is None


@pytest.mark.asyncio
async def test_rental_navigation_uses_stored_sort(navigator):
    # longterm price descending: L2 5000, L1 2500, L5 1200
    nav = await navigator.navigate("L1", RENTAL)
    assert (nav.previous, nav.next) == ("L2", "L5")


@pytest.mark.asyncio
async def test_listing_outside_stored_search_has_no_neighbors(navigator):
    narrowed = SearchContext(filter=CanonicalFilter(location={"Mijas"}), domain=Domain.SALE)
    nav = await navigator.navigate("R1", narrowed)
    assert nav.previous is None and nav.next is None
    assert nav.index == -1
    assert nav.total == 1


@pytest.mark.asyncio
async def test_no_context(navigator):
    assert await navigator.navigate("R1", None) == Navigation()


@pytest.mark.asyncio
async def test_engine_navigate_reads_session_context(search):
    await search.search(CanonicalFilter(), SortKey.PRICE_ASC, 1, domain=Domain.SALE, session="abc")
    nav = await search.navigate("N1", Domain.SALE, session="abc")
    assert (nav.previous, nav.next) == ("R1", "P1")
    assert (await search.navigate("N1", Domain.SALE, session="other")) == Navigation()
