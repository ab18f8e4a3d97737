"""
Raw feed rows -> canonical ``Listing``.

Feeds disagree on shapes: sizes come as a number or as a {built, plot,
terrace} object, tags and images as JSON arrays, serialized strings or flag
objects. ``normalize`` is pure and total: a
missing or malformed optional field falls back to a default, it never raises.
"""
import json
import logging
import math
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Tuple

from listing_search import geo
from listing_search.models import Listing
from listing_search.sources import SourceDescriptor

LOG = logging.getLogger("listing_search.normalizer")

TITLE_WORDS = 8


def normalize(record: Mapping[str, Any], source: SourceDescriptor) -> Listing:
    listing_id = _text(record.get(source.identity_field)) or _text(record.get("id")) or "unknown"
    built, plot, terrace = _sizes(record.get(source.size_field), source.size_key)
    description = (
        _text(record.get("description_translated"))
        or _text(record.get("description"))
        or _text(record.get("summary_translated"))
    )
    area = _text(record.get("area"))
    town = _text(record.get("town"))
    lat, lng = _coordinates(record, listing_id, area, town)

    return Listing(
        id=listing_id,
        source_id=source.name,
        price=_number(record.get(source.price_field)),
        size=built,
        listed_at=_first_timestamp(record, source.listed_fields),
        title=_title(record, area, description, source.default_title),
        description=description,
        location=town or area or "Unknown Location",
        area=area or town,
        town=town,
        province=_text(record.get("province")),
        bedrooms=_int(record.get(source.bedrooms_field)),
        bathrooms=_int(record.get(source.bathrooms_field)),
        plot_size=plot or None,
        terrace_size=terrace or None,
        images=_string_list(record.get("images")),
        features=_string_list(record.get(source.tag_field)),
        property_type=_text(record.get("type")) or "Unknown",
        subtype=_text(record.get("subtype")) or None,
        latitude=lat,
        longitude=lng,
        pool=bool(record.get("has_pool")),
        garden=bool(record.get("has_garden")),
        parking=bool(record.get("has_garage")),
        status=_text(record.get("status")) or "available",
        currency=_text(record.get("currency")) or "EUR",
        development_name=_text(record.get("development_name")),
        urbanisation=_text(record.get("urbanisation_name")),
        longterm=_positive(record.get("longterm")),
        shortterm_low=_positive(record.get("shortterm_low")),
    )


# ---------- Scalars ----------

def _text(v: Any) -> str:
    if v is None:
        return ""
    return str(v).strip()


def _number(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        out = float(v)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _positive(v: Any) -> Optional[float]:
    n = _number(v)
    return n if n is not None and n > 0 else None


def _int(v: Any) -> int:
    n = _number(v)
    return int(n) if n is not None else 0


def _timestamp(v: Any) -> Optional[datetime]:
    if isinstance(v, datetime):
        ts = v
    elif isinstance(v, date):
        ts = datetime.combine(v, time.min)
    elif isinstance(v, str) and v.strip():
        try:
            ts = datetime.fromisoformat(v.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    # feeds without an offset are UTC
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _first_timestamp(record: Mapping[str, Any], fields) -> Optional[datetime]:
    for f in fields:
        ts = _timestamp(record.get(f))
        if ts is not None:
            return ts
    return None


# ---------- Structured fields ----------

def _maybe_json(v: Any) -> Any:
    if isinstance(v, str):
        try:
            return json.loads(v)
        except ValueError:
            return v
    return v


def _json_number(v: Any) -> Optional[float]:
    # JSON numbers only, the same values the SQL size order reads
    if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
        return None
    return _number(v)


def _sizes(raw: Any, key: Optional[str]) -> Tuple[float, float, float]:
    """(built, plot, terrace) from a number or a size breakdown; 0 when unknown."""
    if isinstance(raw, Mapping):
        built = _json_number(raw.get(key or "built")) or 0.0
        return built, _number(raw.get("plot")) or 0.0, _number(raw.get("terrace")) or 0.0
    return _json_number(raw) or 0.0, 0.0, 0.0


def _string_list(raw: Any) -> List[str]:
    """
    Ordered list of strings from a list, a flag object ({tag: true}) or a
    serialized form of either. Malformed strings become a one-element list.
    """
    if raw is None:
        return []
    v = _maybe_json(raw)
    if isinstance(v, str):
        return [v] if v.strip() else []
    if isinstance(v, Mapping):
        return [str(k) for k, flag in v.items() if flag]
    if isinstance(v, (list, tuple)):
        return [str(x) for x in v if x is not None and str(x).strip()]
    return [str(v)]


def _title(record: Mapping[str, Any], area: str, description: str, default: str) -> str:
    name = _text(record.get("development_name"))
    if name:
        return name
    if area:
        return area
    if description:
        return " ".join(description.split()[:TITLE_WORDS])
    return default


def _coordinates(record: Mapping[str, Any], seed: str, area: str, town: str):
    lat, lng = _number(record.get("latitude")), _number(record.get("longitude"))
    if lat is not None and lng is not None:
        return lat, lng
    for name in (area, town, f"{town} Centro" if town else ""):
        found = geo.lookup(name, seed)
        if found:
            return found
    LOG.debug("no coordinates for listing %s", seed)
    return None, None


def normalize_all(records, source: SourceDescriptor) -> List[Listing]:
    return [normalize(r, source) for r in records]
