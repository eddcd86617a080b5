"""
Property-based tests for data models.

These tests verify the canonical Property, search criteria parsing and
search result serialization.
"""

import json
from datetime import datetime, timezone

from hypothesis import given, settings, strategies as st
from idx_listings.models import (
    LEASE_PRICE_THRESHOLD,
    ListingStatus,
    ListingType,
    Property,
    PropertyType,
    SearchCriteria,
    SearchResult,
    listing_type_for_price,
)


def make_property(**overrides):
    fields = dict(
        id='W1',
        title='1 Main St',
        address='1 Main St',
        city='Toronto',
        province='ON',
        postal_code='M1M 1M1',
        price=750000,
        bedrooms=3,
        bathrooms=2,
        sqft=1500,
    )
    fields.update(overrides)
    return Property(**fields)


# Strategy for optional numeric query values, as strings or numbers
query_numbers = st.one_of(
    st.none(),
    st.integers(min_value=0, max_value=10_000_000),
    st.integers(min_value=0, max_value=10_000_000).map(str),
)


def test_property_defaults():
    prop = make_property()

    assert prop.property_type == PropertyType.DETACHED
    assert prop.status == ListingStatus.ACTIVE
    assert prop.images == []
    assert prop.description == ""
    assert prop.featured is False


def test_property_to_dict_is_json_serializable():
    prop = make_property(
        property_type=PropertyType.CONDO,
        status=ListingStatus.SOLD,
        images=['https://cdn.test/a.jpg'],
        listing_date=datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc),
    )

    data = prop.to_dict()

    assert data['property_type'] == 'condo'
    assert data['status'] == 'sold'
    assert data['listing_type'] == 'sale'
    assert data['listing_date'] == '2024-03-01T08:00:00+00:00'
    assert data['images'] == ['https://cdn.test/a.jpg']
    json.dumps(data)


def test_property_to_dict_without_date():
    assert make_property().to_dict()['listing_date'] is None


def test_listing_type_boundary():
    assert listing_type_for_price(LEASE_PRICE_THRESHOLD - 1) == ListingType.LEASE
    assert listing_type_for_price(LEASE_PRICE_THRESHOLD) == ListingType.SALE
    assert make_property(price=2400).listing_type == ListingType.LEASE


def test_criteria_from_query_params():
    criteria = SearchCriteria.from_query_params({
        'city': 'Toronto',
        'listingType': 'sale',
        'minPrice': '500000',
        'maxPrice': '1,000,000',
        'bedrooms': '3',
        'propertyTypes': 'detached, condo',
        'keywords': 'pool',
        'maxDaysOnMarket': '7',
        'status': 'all',
        'limit': '24',
        'offset': '48',
    })

    assert criteria.city == 'Toronto'
    assert criteria.listing_type == 'sale'
    assert criteria.min_price == 500000
    # Unparseable numbers are dropped
    assert criteria.max_price is None
    assert criteria.bedrooms == 3
    assert criteria.property_types == ['detached', 'condo']
    assert criteria.keywords == 'pool'
    assert criteria.max_days_on_market == 7
    assert criteria.status == 'all'
    assert criteria.limit == 24
    assert criteria.offset == 48


def test_criteria_from_empty_query_params():
    criteria = SearchCriteria.from_query_params({})

    assert criteria == SearchCriteria()
    assert criteria.limit == 50
    assert criteria.offset == 0


def test_criteria_cities_accept_lists():
    criteria = SearchCriteria.from_query_params({'cities': ['Toronto', ' Brampton ', '']})
    assert criteria.cities == ['Toronto', 'Brampton']


def test_search_result_to_dict():
    assert SearchResult(success=True, listings=[{'ListingKey': 'A'}], total=9).to_dict() == {
        'success': True,
        'listings': [{'ListingKey': 'A'}],
        'total': 9,
    }
    failed = SearchResult(success=False, error='IDX API error: 500 Server Error').to_dict()
    assert failed['error'] == 'IDX API error: 500 Server Error'
    assert failed['listings'] == []
    assert failed['total'] == 0


@given(
    min_price=query_numbers,
    max_price=query_numbers,
    bedrooms=query_numbers,
    limit=query_numbers,
)
@settings(max_examples=100)
def test_numeric_query_params_round_to_ints(min_price, max_price, bedrooms, limit):
    """
    **Feature: idx-listings, Property 11: Query parameter parsing**

    For any numeric query value given as a number or a numeric string, the
    criteria field holds the same integer; missing values stay unset.
    """
    params = {'minPrice': min_price, 'maxPrice': max_price, 'bedrooms': bedrooms, 'limit': limit}

    criteria = SearchCriteria.from_query_params(params)

    assert criteria.min_price == (None if min_price is None else int(min_price))
    assert criteria.max_price == (None if max_price is None else int(max_price))
    assert criteria.bedrooms == (None if bedrooms is None else int(bedrooms))
    assert criteria.limit == (50 if limit is None else int(limit))


@given(price=st.floats(min_value=0, max_value=100_000_000, allow_nan=False))
@settings(max_examples=100)
def test_listing_type_always_derived_from_price(price):
    """
    **Feature: idx-listings, Property 12: Listing type consistency**

    For any property, the serialized listing type agrees with its price.
    """
    data = make_property(price=price).to_dict()
    expected = 'lease' if price < LEASE_PRICE_THRESHOLD else 'sale'
    assert data['listing_type'] == expected
