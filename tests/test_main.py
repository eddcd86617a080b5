"""Tests for the idx-search command line interface."""

import asyncio
import json

from idx_listings.main import (
    create_argument_parser,
    criteria_from_args,
    format_results,
    run_search,
)
from idx_listings.models import Property, PropertyType, SearchResult


def make_property(id, price, listing_date=None):
    return Property(
        id=id, title=f"{id} Queen St", address=f"{id} Queen St", city='Toronto', province='ON',
        postal_code='', price=price, bedrooms=2, bathrooms=1, sqft=800,
        property_type=PropertyType.CONDO, mls_number=id, listing_date=listing_date,
        images=['https://cdn.test/a.jpg'],
    )


class FakeService:
    """Stands in for IDXSearchService."""

    def __init__(self, properties=None, result=None, configured=True):
        self.properties = properties or []
        self.result = result or SearchResult(success=True, listings=[], total=len(self.properties))
        self.is_configured = configured
        self.criteria = None

    async def search_properties(self, criteria):
        self.criteria = criteria
        return self.properties, self.result

    async def close(self):
        pass


def parse(argv):
    return create_argument_parser().parse_args(argv)


def test_single_city_argument():
    criteria = criteria_from_args(parse(['--city', 'Toronto']))

    assert criteria.city == 'Toronto'
    assert criteria.cities == []
    assert criteria.limit == 50
    assert criteria.offset == 0


def test_repeated_arguments_build_lists():
    args = parse([
        '--city', 'Toronto', '--city', 'Vaughan',
        '--property-type', 'detached', '--property-type', 'condo',
        '--listing-type', 'lease', '--min-price', '1500', '--max-days-on-market', '10',
    ])

    criteria = criteria_from_args(args)

    assert criteria.city is None
    assert criteria.cities == ['Toronto', 'Vaughan']
    assert criteria.property_types == ['detached', 'condo']
    assert criteria.listing_type == 'lease'
    assert criteria.min_price == 1500
    assert criteria.max_days_on_market == 10


def test_invalid_price_range_exits_with_error(capsys):
    service = FakeService()
    criteria = criteria_from_args(parse(['--min-price', '900', '--max-price', '100']))

    assert asyncio.run(run_search(criteria, service=service)) == 1
    assert service.criteria is None
    assert 'cannot be greater' in capsys.readouterr().err


def test_unconfigured_service_exits_with_error(capsys):
    service = FakeService(configured=False)

    assert asyncio.run(run_search(criteria_from_args(parse([])), service=service)) == 1
    assert 'IDX_API_KEY' in capsys.readouterr().err


def test_failed_search_exits_with_error(capsys):
    service = FakeService(result=SearchResult(success=False, error='IDX API error: 503 Service Unavailable'))

    assert asyncio.run(run_search(criteria_from_args(parse([])), service=service)) == 1
    assert '503' in capsys.readouterr().err


def test_json_output_is_sorted(capsys):
    service = FakeService(properties=[make_property('A', 3000), make_property('B', 1000)])

    exit_code = asyncio.run(
        run_search(criteria_from_args(parse([])), sort_by='price-asc', as_json=True, service=service)
    )

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output['total'] == 2
    assert [listing['id'] for listing in output['listings']] == ['B', 'A']
    assert output['listings'][0]['listing_type'] == 'lease'


def test_text_output(capsys):
    service = FakeService(properties=[make_property('A', 650000)])

    assert asyncio.run(run_search(criteria_from_args(parse([])), service=service)) == 0

    out = capsys.readouterr().out
    assert 'A Queen St' in out
    assert '$650,000' in out
    assert 'Showing 1 of 1 listing(s)' in out


def test_format_results_empty():
    assert format_results([], 0) == "No listings found matching your criteria.\n"
