"""
CanonicalFilter <-> flat query parameters, for shareable search URLs.

    location=Marbella,Mijas&type=apartment,house&minPrice=0&maxPrice=5000000
    &bedrooms=2,3&has_pool=true&Setting_~~_Close_To_Sea=true

Feature tags travel as keys: spaces become "_" and hyphens become "~~".
Tags that could not be read back unchanged are refused up front.
"""
import logging
import re
from typing import Dict, Mapping, Optional, Set, Tuple

from listing_search.errors import UnsupportedTagName
from listing_search.models import (
    CATEGORY_ALIASES, PRICE_MAX_SENTINEL, Amenity, CanonicalFilter, Category, SortKey,
)

LOG = logging.getLogger("listing_search.codec")

SPACE = "_"
HYPHEN = "~~"
TRUE = "true"
ANY = "any"

AMENITY_PARAMS: Dict[Amenity, str] = {a: f"has_{a.value}" for a in Amenity}

RESERVED_KEYS = frozenset({
    "location", "type", "minPrice", "maxPrice", "bedrooms", "bathrooms",
    "sort", "page", "page_size", *AMENITY_PARAMS.values(),
})

_BAD_WHITESPACE = re.compile(r"[^\S ]|  ")


# ---------- Tags ----------

def encode_tag(tag: str) -> str:
    if not tag or tag != tag.strip():
        raise UnsupportedTagName(f"tag {tag!r} is empty or has surrounding whitespace")
    if "_" in tag or "~" in tag or "," in tag:
        raise UnsupportedTagName(f"tag {tag!r} contains a reserved character")
    if _BAD_WHITESPACE.search(tag):
        raise UnsupportedTagName(f"tag {tag!r} contains whitespace other than single spaces")
    key = tag.replace("-", HYPHEN).replace(" ", SPACE)
    if key in RESERVED_KEYS:
        raise UnsupportedTagName(f"tag {tag!r} encodes to the reserved key {key!r}")
    return key


def decode_tag(key: str) -> str:
    return key.replace(HYPHEN, "-").replace(SPACE, " ")


# ---------- Filter ----------

def encode_filter(flt: CanonicalFilter) -> Dict[str, str]:
    params: Dict[str, str] = {}
    if flt.location:
        params["location"] = ",".join(sorted(flt.location))
    if flt.category:
        params["type"] = ",".join(sorted(c.value for c in flt.category))
    params["minPrice"] = str(flt.price_min)
    params["maxPrice"] = str(flt.price_max)
    if flt.bedrooms_at_least:
        params["bedrooms"] = ",".join(str(n) for n in sorted(flt.bedrooms_at_least))
    if flt.bathrooms_at_least:
        params["bathrooms"] = ",".join(str(n) for n in sorted(flt.bathrooms_at_least))
    for amenity in sorted(flt.amenities, key=lambda a: a.value):
        params[AMENITY_PARAMS[amenity]] = TRUE
    for tag in sorted(flt.feature_tags):
        params[encode_tag(tag)] = TRUE
    return params


def decode_filter(params: Mapping[str, str]) -> CanonicalFilter:
    """Lenient: bad tokens are skipped, bad prices fall back to the open range."""
    tags = {
        decode_tag(key) for key, value in params.items()
        if key not in RESERVED_KEYS and _is_true(value)
    }
    return CanonicalFilter(
        location=_tokens(params.get("location")),
        category=_categories(params.get("type")),
        price_min=_price(params.get("minPrice"), 0),
        price_max=_price(params.get("maxPrice"), PRICE_MAX_SENTINEL),
        bedrooms_at_least=_thresholds(params.get("bedrooms"), "bedrooms"),
        bathrooms_at_least=_thresholds(params.get("bathrooms"), "bathrooms"),
        amenities={a for a, key in AMENITY_PARAMS.items() if _is_true(params.get(key))},
        feature_tags=tags,
    )


def _is_true(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() == TRUE


def _tokens(raw: Optional[str]) -> Set[str]:
    if not raw:
        return set()
    return {t.strip() for t in raw.split(",") if t.strip() and t.strip().lower() != ANY}


def _categories(raw: Optional[str]) -> Set[Category]:
    out: Set[Category] = set()
    for token in _tokens(raw):
        key = token.lower()
        if key in CATEGORY_ALIASES:
            out.add(CATEGORY_ALIASES[key])
            continue
        try:
            out.add(Category(key))
        except ValueError:
            LOG.info("ignoring unknown category %r", token)
    return out


def _thresholds(raw: Optional[str], name: str) -> Set[int]:
    out: Set[int] = set()
    for token in _tokens(raw):
        # "3+" is how the UI labels the top bucket
        try:
            n = int(token.rstrip("+"))
        except ValueError:
            LOG.info("ignoring non-integer %s value %r", name, token)
            continue
        if n >= 0:
            out.add(n)
    return out


def _price(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        n = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return default
    return n if n >= 0 else default


# ---------- Sort and page ----------

def encode_search_params(flt: CanonicalFilter, sort_key: SortKey = SortKey.PUBLISHED, page: int = 1) -> Dict[str, str]:
    params = encode_filter(flt)
    params["sort"] = SortKey(sort_key).value
    params["page"] = str(page)
    return params


def decode_search_params(params: Mapping[str, str]) -> Tuple[CanonicalFilter, SortKey, int]:
    try:
        sort_key = SortKey(params.get("sort") or SortKey.PUBLISHED.value)
    except ValueError:
        LOG.info("ignoring unknown sort %r", params.get("sort"))
        sort_key = SortKey.PUBLISHED
    try:
        page = max(int(params.get("page") or 1), 1)
    except ValueError:
        page = 1
    return decode_filter(params), sort_key, page
