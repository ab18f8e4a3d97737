"""
Per-source vocabularies.

Feeds spell the same concept differently and the sale feeds mix spellings
within one table: "Setting - Close To Sea", "Setting: Close To Sea" and
"Close To Sea" all occur. The rental feed keeps flags such as
{"private_terrace": true}. Nothing here is code-per-source: each dialect is a
table ``canonical tag -> spellings`` built from the canonical catalogue, a few
spelling rules and explicit overrides.
Adding a source or a tag means adding data.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Mapping, Tuple

from listing_search.models import Amenity, Category

LOG = logging.getLogger("listing_search.dialects")


# ---------- Canonical tag catalogue ----------

CANONICAL_TAGS: Tuple[str, ...] = (
    "Features - Private Terrace",
    "Features - Covered Terrace",
    "Features - Fitted Wardrobes",
    "Features - Ensuite Bathroom",
    "Features - Storage Room",
    "Features - Near Transport",
    "Features - Double Glazing",
    "Features - Lift",
    "Features - Gym",
    "Features - Sauna",
    "Features - Jacuzzi",
    "Features - Solarium",
    "Features - Games Room",
    "Features - Utility Room",
    "Features - Guest Apartment",
    "Features - Fiber Optic",
    "Features - Barbeque",
    "Features - Basement",
    "Climate Control - Air Conditioning",
    "Kitchen - Fully Fitted",
    "Setting - Close To Shops",
    "Setting - Close To Schools",
    "Setting - Close To Sea",
    "Setting - Close To Town",
    "Orientation - South",
    "Views - Sea",
    "Views - Mountain",
    "Condition - Excellent",
    "Utilities - Electricity",
    "Pool - Communal",
    "Pool - Private",
    "Security - Gated Complex",
    "Garden - Private",
    "Garden - Communal",
    "Garden - Landscaped",
    "Parking - Garage",
)

# Amenities that some feeds only record as tags
AMENITY_TAGS: Dict[Amenity, Tuple[str, ...]] = {
    Amenity.POOL: ("Pool - Private", "Pool - Communal"),
    Amenity.GARDEN: ("Garden - Private", "Garden - Communal", "Garden - Landscaped"),
    Amenity.GARAGE: ("Parking - Garage",),
}


# ---------- Spelling rules ----------

def _split(tag: str) -> Tuple[str, str]:
    head, sep, value = tag.partition(" - ")
    return (head, value) if sep else ("", tag)


def dash(tag: str) -> str:
    return tag


def colon(tag: str) -> str:
    head, value = _split(tag)
    return f"{head}: {value}" if head else value


def bare(tag: str) -> str:
    return _split(tag)[1]


@dataclass(frozen=True)
class TagDialect:
    name: str
    rules: Tuple[Callable[[str], str], ...]
    overrides: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    catalogue: Tuple[str, ...] = CANONICAL_TAGS

    def table(self) -> Dict[str, Tuple[str, ...]]:
        out: Dict[str, Tuple[str, ...]] = {}
        for tag in self.catalogue:
            spellings = [rule(tag) for rule in self.rules]
            spellings.extend(self.overrides.get(tag, ()))
            out[tag] = tuple(dict.fromkeys(s for s in spellings if s))
        return out


# Flag keys of the rental feed's JSON object
_RENTAL_FLAGS = {
    "Features - Private Terrace": ("private_terrace",),
    "Features - Covered Terrace": ("covered_terrace",),
    "Features - Fitted Wardrobes": ("fitted_wardrobes",),
    "Features - Ensuite Bathroom": ("ensuite_bathroom",),
    "Features - Storage Room": ("storage_room",),
    "Features - Near Transport": ("near_transport",),
    "Features - Double Glazing": ("double_glazing",),
    "Features - Lift": ("lift",),
    "Features - Gym": ("gym",),
    "Features - Sauna": ("sauna",),
    "Features - Jacuzzi": ("jacuzzi",),
    "Features - Solarium": ("solarium",),
    "Features - Games Room": ("games_room",),
    "Features - Utility Room": ("utility_room",),
    "Features - Guest Apartment": ("guest_apartment",),
    "Features - Fiber Optic": ("fiber_optic",),
    "Features - Barbeque": ("barbeque",),
    "Features - Basement": ("basement",),
}

DIALECTS: Dict[str, TagDialect] = {
    d.name: d
    for d in (
        # resale and new-development rows use any of the three spellings
        TagDialect("sale", rules=(dash, colon, bare)),
        TagDialect("rental-flags", rules=(colon,), overrides=_RENTAL_FLAGS),
    )
}

_TABLES: Dict[str, Dict[str, Tuple[str, ...]]] = {name: d.table() for name, d in DIALECTS.items()}


def expand_tag(tag: str, dialect: str) -> Tuple[str, ...]:
    """
    Every known spelling of ``tag`` in ``dialect``; empty when the dialect
    has no entry for it (the caller treats that as no constraint).
    """
    spellings = _TABLES.get(dialect, {}).get(tag, ())
    if not spellings:
        LOG.debug("tag %r unknown to dialect %r; ignored", tag, dialect)
    return spellings


def expand_tags(tags: Iterable[str], dialect: str) -> Tuple[str, ...]:
    out = []
    for tag in tags:
        out.extend(expand_tag(tag, dialect))
    return tuple(dict.fromkeys(out))


# ---------- Category labels ----------

@dataclass(frozen=True)
class LabelRule:
    field: str              # "type" | "subtype"
    pattern: str
    exact: bool = False     # exact (case-insensitive) instead of substring


CATEGORY_LABELS: Dict[str, Dict[Category, Tuple[LabelRule, ...]]] = {
    "resales": {
        Category.APARTMENT: (LabelRule("type", "Apartment"),),
        Category.HOUSE: (LabelRule("type", "House"), LabelRule("type", "Villa")),
        Category.PLOT: (LabelRule("type", "Plot"),),
        Category.COMMERCIAL: (LabelRule("type", "Commercial"),),
        Category.PENTHOUSE: (LabelRule("subtype", "Penthouse"),),
        Category.GROUND_FLOOR: (LabelRule("subtype", "Ground Floor"),),
        Category.DUPLEX: (LabelRule("subtype", "Duplex"),),
    },
    "rentals": {
        Category.APARTMENT: (LabelRule("type", "Apartment"),),
        Category.HOUSE: (LabelRule("type", "Villa", exact=True),),
        Category.COMMERCIAL: (LabelRule("type", "Commercial"),),
        Category.PENTHOUSE: (LabelRule("subtype", "Penthouse"),),
        Category.GROUND_FLOOR: (LabelRule("subtype", "Ground Floor"),),
        Category.DUPLEX: (LabelRule("subtype", "Duplex"),),
    },
}


def category_labels(category: Category, vocabulary: str) -> Tuple[LabelRule, ...]:
    return CATEGORY_LABELS.get(vocabulary, {}).get(category, ())
