from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, insert

from listing_search.context import MemoryContextStore
from listing_search.engine import FederatedSearch
from listing_search.repository.executor import SourceQueryExecutor
from listing_search.sql import metadata, resales_feed, resales_new_devs, resales_rentals

NOW = datetime.now(timezone.utc)


def days_ago(n: int) -> datetime:
    return NOW - timedelta(days=n)


def row(table, **values):
    """A full row for ``table``: unspecified columns are NULL."""
    out = {c.name: None for c in table.c}
    out.update(values)
    return out


# Sale domain. Visible: R1, R2, P1 (resale copy), R5, N1.
RESALES = [
    row(resales_feed, property_id="R1", type="Apartment", subtype="Ground Floor",
        town="Marbella", area="Nueva Andalucía", price=300000, beds=2, baths=2,
        surface_area={"built": 90, "plot": 0, "terrace": 12}, has_pool=True,
        features=["Pool - Private", "Setting - Close To Sea"], images=["r1-a.jpg", "r1-b.jpg"],
        description="Bright ground floor apartment a short walk from the beach and shops",
        listed_date=days_ago(10)),
    row(resales_feed, property_id="R2", type="Villa", subtype="Detached Villa",
        town="Mijas", area="Mijas Costa", price=900000, beds=4, baths=3,
        surface_area={"built": 250, "plot": 1200}, has_pool=False,
        features=["Garden - Private", "Views - Sea"], listed_date=days_ago(20)),
    row(resales_feed, property_id="R3", type="Apartment", town="Estepona",
        price=120000, beds=1, baths=1, surface_area={"built": 50}, listed_date=days_ago(5)),
    row(resales_feed, property_id="R4", type="Apartment", subtype="Penthouse",
        town="Marbella", price=None, beds=3, baths=2, listed_date=days_ago(2)),
    row(resales_feed, property_id="P1", type="House", town="Benahavís",
        price=450000, beds=3, baths=2, surface_area={"built": 180},
        features=["Garden - Landscaped"], listed_date=days_ago(30)),
    row(resales_feed, property_id="R5", type="Apartment", town="Fuengirola",
        price=200000, beds=2, baths=1, features=[], listed_date=None),
]

NEW_DEVS = [
    row(resales_new_devs, property_id="N1", type="Apartment", town="Marbella",
        development_name="Sea Breeze", price=350000, beds=2, baths=2,
        surface_area={"built": 110}, has_pool=True,
        features=["Close To Sea", "Pool - Communal"], listed_date=days_ago(3)),
    row(resales_new_devs, property_id="P1", type="House", town="Benahavís",
        development_name="Hills Residences", price=460000, beds=3, baths=2,
        surface_area={"built": 185}, listed_date=days_ago(1)),
    row(resales_new_devs, property_id="N2", type="Apartment", subtype="Penthouse",
        town="Estepona", price=140000, beds=2, baths=2, listed_date=days_ago(4)),
]

# Rental domain. Visible: L1, L2, L5.
RENTALS = [
    row(resales_rentals, property_id="L1", type="Apartment", area="Puerto Banús",
        town="Marbella", longterm=2500, beds=2, baths=2, surface_area={"built": 95},
        has_pool=True, has_garden=False, has_garage=True,
        features={"private_terrace": True, "lift": True, "gym": False},
        status_date=days_ago(5)),
    row(resales_rentals, property_id="L2", type="Villa", area="La Cala de Mijas",
        town="Mijas", longterm=5000, beds=4, baths=3, surface_area={"built": 300},
        has_pool=True, has_garden=True, features={"Views: Sea": True},
        status_date=days_ago(10)),
    row(resales_rentals, property_id="L3", type="Apartment", town="Fuengirola",
        longterm=900, beds=1, baths=1, status_date=days_ago(10)),
    row(resales_rentals, property_id="L4", type="Apartment", town="Marbella",
        longterm=1500, beds=2, baths=1, status_date=days_ago(50)),
    row(resales_rentals, property_id="L5", type="Apartment", town="Estepona",
        longterm=1200, beds=1, baths=1, surface_area={"built": 60},
        features={"gym": True}, status_date=days_ago(2)),
]


def make_engine(path):
    return create_engine(
        f"sqlite:///{path}",
        future=True,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
def db_engine(tmp_path):
    engine = make_engine(tmp_path / "feeds.db")
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seed(db_engine):
    def _seed(table, rows):
        with db_engine.begin() as conn:
            conn.execute(insert(table), rows)
    return _seed


@pytest.fixture
def seeded_engine(db_engine, seed):
    seed(resales_feed, RESALES)
    seed(resales_new_devs, NEW_DEVS)
    seed(resales_rentals, RENTALS)
    return db_engine


@pytest.fixture
def executor(seeded_engine):
    return SourceQueryExecutor(seeded_engine)


@pytest.fixture
def store():
    return MemoryContextStore()


@pytest.fixture
def search(executor, store):
    return FederatedSearch(executor, store, page_size=2)


@pytest.fixture
def broken_executor(tmp_path):
    # no tables: every query fails
    engine = make_engine(tmp_path / "empty.db")
    yield SourceQueryExecutor(engine)
    engine.dispose()
