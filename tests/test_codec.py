import pytest
from pydantic import ValidationError

from listing_search.codec import (
    decode_filter, decode_search_params, decode_tag, encode_filter, encode_search_params, encode_tag,
)
from listing_search.dialects import CANONICAL_TAGS
from listing_search.errors import UnsupportedTagName
from listing_search.models import PRICE_MAX_SENTINEL, Amenity, CanonicalFilter, Category, SortKey


def test_tag_key_encoding():
    assert encode_tag("Setting - Close To Sea") == "Setting_~~_Close_To_Sea"
    assert encode_tag("Semi-Detached") == "Semi~~Detached"
    assert decode_tag("Setting_~~_Close_To_Sea") == "Setting - Close To Sea"


@pytest.mark.parametrize("tag", CANONICAL_TAGS)
def test_every_catalogue_tag_round_trips(tag):
    assert decode_tag(encode_tag(tag)) == tag


@pytest.mark.parametrize("tag", [
    "", " Lift", "Lift ", "Sea  Views", "Sea\tViews", "snake_case", "a~b", "Sea, Views", "location", "has pool",
])
def test_ambiguous_tags_are_rejected(tag):
    with pytest.raises(UnsupportedTagName):
        encode_tag(tag)


def test_unsupported_tag_is_a_value_error():
    with pytest.raises(ValueError):
        encode_tag("bad_tag")


def test_encoding_is_flat_and_deterministic():
    flt = CanonicalFilter(
        location={"Mijas", "Marbella"},
        category={Category.HOUSE, Category.APARTMENT},
        price_min=200000,
        bedrooms_at_least={3, 2},
        amenities={Amenity.POOL},
        feature_tags={"Views - Sea"},
    )
    assert encode_filter(flt) == {
        "location": "Marbella,Mijas",
        "type": "apartment,house",
        "minPrice": "200000",
        "maxPrice": str(PRICE_MAX_SENTINEL),
        "bedrooms": "2,3",
        "has_pool": "true",
        "Views_~~_Sea": "true",
    }


def test_empty_filter_still_carries_prices():
    assert encode_filter(CanonicalFilter()) == {"minPrice": "0", "maxPrice": str(PRICE_MAX_SENTINEL)}


@pytest.mark.parametrize("flt", [
    CanonicalFilter(),
    CanonicalFilter(location={"San Pedro de Alcántara", "Nueva Andalucía"}),
    CanonicalFilter(category=set(Category), bathrooms_at_least={1, 2, 3}),
    CanonicalFilter(price_min=150000, price_max=750000, amenities=set(Amenity)),
    CanonicalFilter(feature_tags={"Setting - Close To Sea", "Semi-Detached", "Features - Near Transport"}),
])
def test_round_trip(flt):
    assert decode_filter(encode_filter(flt)) == flt


def test_decoding_is_lenient():
    flt = decode_filter({
        "location": "Marbella, ,any",
        "type": "villa,castle,new-devs",
        "bedrooms": "2,three,3+",
        "minPrice": "cheap",
        "maxPrice": "-5",
        "has_garden": "TRUE",
        "has_pool": "false",
        "utm_source": "newsletter",
        "Features_~~_Lift": "true",
    })
    assert flt == CanonicalFilter(
        location={"Marbella"},
        category={Category.HOUSE, Category.NEW_DEVELOPMENT},
        bedrooms_at_least={2, 3},
        amenities={Amenity.GARDEN},
        feature_tags={"Features - Lift"},
    )


def test_search_params_round_trip_and_defaults():
    flt = CanonicalFilter(location={"Estepona"})
    params = encode_search_params(flt, SortKey.SIZE_DESC, 3)
    assert params["sort"] == "size-desc" and params["page"] == "3"
    assert decode_search_params(params) == (flt, SortKey.SIZE_DESC, 3)
    assert decode_search_params({"sort": "random", "page": "x"}) == (CanonicalFilter(), SortKey.PUBLISHED, 1)


def test_location_any_is_no_constraint():
    assert CanonicalFilter(location={"Any", "Marbella"}).location == {"Marbella"}
    assert CanonicalFilter(location={"ANY"}).is_empty


def test_location_fragment_with_comma_is_rejected():
    with pytest.raises(ValidationError):
        CanonicalFilter(location={"Marbella, Golden Mile"})


@pytest.mark.parametrize("location", [{"any"}, {"Any", "Mijas"}, {" Estepona ", "Benahavís"}])
def test_location_round_trips_after_normalising(location):
    flt = CanonicalFilter(location=location)
    assert decode_filter(encode_filter(flt)) == flt
