"""
Static metadata for every record source and the domains that group them.

A source is one read-only feed table. A domain (sale, rental) is the ordered
list of sources a search fans out to; order is source priority, which decides
which copy survives when two sources emit the same listing id.
"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

from listing_search.models import Amenity, Domain

ALL_DIMENSIONS = frozenset({
    "location", "category", "price", "bedrooms", "bathrooms", "amenities", "feature_tags",
})


@dataclass(frozen=True)
class SourceDescriptor:
    name: str
    table: str
    domain: Domain
    priority: int
    identity_field: str = "property_id"
    location_fields: Tuple[str, ...] = ("town",)   # primary first
    category_vocabulary: str = "resales"
    price_field: str = "price"
    size_field: str = "surface_area"
    size_key: Optional[str] = "built"              # key inside a structured size
    listed_fields: Tuple[str, ...] = ("listed_date", "status_date")
    bedrooms_field: str = "beds"
    bathrooms_field: str = "baths"
    amenity_columns: Dict[Amenity, str] = field(default_factory=dict)
    tag_field: str = "features"
    tag_storage: str = "array"                     # "array" | "flags"
    tag_dialect: str = "sale"
    supports_push_down: bool = True
    dimensions: FrozenSet[str] = ALL_DIMENSIONS
    default_title: str = "Property"

    def supports(self, dimension: str) -> bool:
        return dimension in self.dimensions

    @property
    def sort_columns(self) -> Tuple[str, ...]:
        """Columns any ordering over this source may read."""
        cols = [self.identity_field, self.price_field, self.size_field, *self.listed_fields]
        return tuple(dict.fromkeys(cols))


@dataclass(frozen=True)
class DomainConfig:
    domain: Domain
    sources: Tuple[SourceDescriptor, ...]
    price_floor: Optional[int] = None          # enforced minimum listing price
    require_price: bool = False                # drop rows with NULL price
    min_longterm_price: Optional[int] = None   # rentals: floor on the long-term price
    recency_days: Optional[int] = None         # rentals: max age of the update timestamp
    recency_field: str = "status_date"

    def source(self, name: str) -> SourceDescriptor:
        for s in self.sources:
            if s.name == name:
                return s
        raise KeyError(name)


# ---------- Sources ----------

RESALE = SourceDescriptor(
    name="resale",
    table="resales_feed",
    domain=Domain.SALE,
    priority=0,
    amenity_columns={Amenity.POOL: "has_pool"},
    tag_dialect="sale",
)

NEW_DEVELOPMENT = SourceDescriptor(
    name="new-development",
    table="resales_new_devs",
    domain=Domain.SALE,
    priority=1,
    amenity_columns={Amenity.POOL: "has_pool"},
    tag_dialect="sale",
    default_title="New Development",
)

RENTAL = SourceDescriptor(
    name="rental",
    table="resales_rentals",
    domain=Domain.RENTAL,
    priority=0,
    location_fields=("area", "town"),
    category_vocabulary="rentals",
    price_field="longterm",
    listed_fields=("status_date", "listed_date"),
    amenity_columns={
        Amenity.POOL: "has_pool",
        Amenity.GARDEN: "has_garden",
        Amenity.GARAGE: "has_garage",
    },
    tag_storage="flags",
    tag_dialect="rental-flags",
    default_title="Rental Property",
)


# ---------- Domains ----------

SALE_DOMAIN = DomainConfig(
    domain=Domain.SALE,
    sources=(RESALE, NEW_DEVELOPMENT),
    price_floor=150_000,
    require_price=True,
)

RENTAL_DOMAIN = DomainConfig(
    domain=Domain.RENTAL,
    sources=(RENTAL,),
    min_longterm_price=1000,
    recency_days=45,
)

DOMAINS: Dict[Domain, DomainConfig] = {
    Domain.SALE: SALE_DOMAIN,
    Domain.RENTAL: RENTAL_DOMAIN,
}


def domain_config(domain: Domain) -> DomainConfig:
    return DOMAINS[Domain(domain)]
