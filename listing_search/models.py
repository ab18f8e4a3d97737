from enum import Enum
from typing import FrozenSet, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

# Open-ended upper bound used by the UI when no maximum price is chosen
PRICE_MAX_SENTINEL = 5_000_000


class Category(str, Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    PLOT = "plot"
    COMMERCIAL = "commercial"
    NEW_DEVELOPMENT = "new-development"
    PENTHOUSE = "penthouse"
    GROUND_FLOOR = "ground-floor"
    DUPLEX = "duplex"


# Values older UI builds still send
CATEGORY_ALIASES = {
    "villa": Category.HOUSE,
    "new-devs": Category.NEW_DEVELOPMENT,
}


class Amenity(str, Enum):
    POOL = "pool"
    GARDEN = "garden"
    GARAGE = "garage"


class SortKey(str, Enum):
    PUBLISHED = "published"
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    SIZE_ASC = "size-asc"
    SIZE_DESC = "size-desc"


class Domain(str, Enum):
    SALE = "sale"
    RENTAL = "rental"


class CanonicalFilter(BaseModel):
    """
    Source-independent description of a search.
    An empty set on any dimension means "no constraint", never "match nothing".
    """
    model_config = ConfigDict(frozen=True)

    location: FrozenSet[str] = Field(frozenset(), description="Town/area fragments, OR-matched")
    category: FrozenSet[Category] = frozenset()
    price_min: int = Field(0, ge=0)
    price_max: int = Field(PRICE_MAX_SENTINEL, ge=0)
    bedrooms_at_least: FrozenSet[int] = Field(frozenset(), description="Thresholds, OR-matched")
    bathrooms_at_least: FrozenSet[int] = frozenset()
    amenities: FrozenSet[Amenity] = frozenset()
    feature_tags: FrozenSet[str] = Field(frozenset(), description="Canonical 'Category - Value' tags")

    @field_validator("location", "feature_tags", mode="before")
    @classmethod
    def _strip_blank(cls, v):
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(s.strip() for s in v if isinstance(s, str) and s.strip())

    @field_validator("location")
    @classmethod
    def _plain_fragments(cls, v: FrozenSet[str]) -> FrozenSet[str]:
        # "any" is the UI's no-constraint token; commas separate fragments in a URL
        if any("," in s for s in v):
            raise ValueError("location fragments cannot contain a comma")
        return frozenset(s for s in v if s.lower() != "any")

    @field_validator("bedrooms_at_least", "bathrooms_at_least")
    @classmethod
    def _non_negative(cls, v: FrozenSet[int]) -> FrozenSet[int]:
        if any(n < 0 for n in v):
            raise ValueError("room thresholds must be >= 0")
        return v

    @property
    def is_empty(self) -> bool:
        return self == CanonicalFilter()


class Listing(BaseModel):
    # Identity is unique across all sources
    id: str = Field(..., description="Source property reference")
    source_id: str = Field(..., description="Name of the source that produced the record")

    price: Optional[float] = None
    size: float = 0.0
    listed_at: Optional[datetime] = None

    title: str = "Property"
    description: str = ""
    location: str = "Unknown Location"
    area: str = ""
    town: str = ""
    province: str = ""
    bedrooms: int = 0
    bathrooms: int = 0
    plot_size: Optional[float] = None
    terrace_size: Optional[float] = None
    images: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    property_type: str = "Unknown"
    subtype: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    pool: bool = False
    garden: bool = False
    parking: bool = False
    status: str = "available"
    currency: str = "EUR"
    development_name: str = ""
    urbanisation: str = ""

    # rentals only
    longterm: Optional[float] = None
    shortterm_low: Optional[float] = None

    @property
    def image_url(self) -> str:
        return self.images[0] if self.images else ""


class OrderedResultWindow(BaseModel):
    items: List[Listing]
    offset: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    total_count: int = Field(..., ge=0, description="Total rows that match the filter")
    truncated: bool = Field(False, description="Full-scan hit the row cap")

    @computed_field
    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total_count


class SearchContext(BaseModel):
    """What the user last searched in a domain; always replaced wholesale."""
    model_config = ConfigDict(frozen=True)

    filter: CanonicalFilter
    sort_key: SortKey = SortKey.PUBLISHED
    domain: Domain
    total_count: int = Field(0, ge=0)


class Navigation(BaseModel):
    previous: Optional[str] = None
    next: Optional[str] = None
    index: int = -1
    total: int = 0


class ListingsResponse(BaseModel):
    total: int = Field(..., description="Total rows that match the filters")
    page: int
    page_size: int
    has_more: bool
    truncated: bool = False
    items: List[Listing]
