"""
OData query construction for IDX searches.

This module turns SearchCriteria into OData filter expressions and builds
the request URLs for the Property and Media resources.
"""

from typing import Iterable, List, Optional, Sequence
from urllib.parse import quote, urlencode

from idx_listings.models import LEASE_PRICE_THRESHOLD, SearchCriteria


# Frontend property types -> PropertySubType wire values
PROPERTY_SUB_TYPES = {
    'detached': ['Detached'],
    'semi-detached': ['Semi-Detached', 'Semi Detached'],
    'townhouse': ['Att/Row/Twnhouse'],
    'condo': ['Condo Apartment'],
}

RESIDENTIAL_PROPERTY_TYPES = ['Residential Freehold', 'Residential Condo & Other']
COMMERCIAL_PROPERTY_TYPE = 'Commercial'

STATUS_VALUES = {
    'active': 'Active',
    'pending': 'Pending',
    'sold': 'Sold',
}

SEARCH_ORDER_BY = 'ModificationTimestamp desc'
MEDIA_PAGE_SIZE = 500


def escape_odata_string(value: str) -> str:
    """Escape a value for use inside an OData string literal.

    OData escapes a single quote by doubling it.
    """
    return value.replace("'", "''")


def _literal(value: str) -> str:
    return f"'{escape_odata_string(str(value))}'"


def _number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _or_group(clauses: Sequence[str]) -> Optional[str]:
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return f"({' or '.join(clauses)})"


class ODataQueryBuilder:
    """Constructs OData filters and request URLs for the IDX API.

    Filter clauses are emitted in a fixed order and joined with 'and'.
    Unknown or empty criteria simply contribute no clause.
    """

    def build_filter(self, criteria: SearchCriteria) -> str:
        """Build the $filter expression for a listing search.

        Args:
            criteria: Search criteria

        Returns:
            OData filter expression, clauses joined with ' and '

        Examples:
            >>> builder = ODataQueryBuilder()
            >>> builder.build_filter(SearchCriteria(city="Toronto", bedrooms=3))
            "startswith(City,'Toronto') and BedroomsTotal ge 3 and StandardStatus eq 'Active'"
        """
        filters: List[Optional[str]] = []

        if criteria.listing_type == 'sale':
            filters.append(f"ListPrice ge {LEASE_PRICE_THRESHOLD}")
        elif criteria.listing_type == 'lease':
            filters.append(f"ListPrice lt {LEASE_PRICE_THRESHOLD}")

        filters.append(self._city_clause(criteria))

        if criteria.min_price:
            filters.append(f"ListPrice ge {_number(criteria.min_price)}")
        if criteria.max_price is not None:
            filters.append(f"ListPrice le {_number(criteria.max_price)}")

        if criteria.bedrooms:
            filters.append(f"BedroomsTotal ge {_number(criteria.bedrooms)}")
        if criteria.bathrooms:
            filters.append(f"BathroomsTotalInteger ge {_number(criteria.bathrooms)}")

        if criteria.property_class == 'residential':
            filters.append(_or_group([
                f"PropertyType eq {_literal(value)}" for value in RESIDENTIAL_PROPERTY_TYPES
            ]))
        elif criteria.property_class == 'commercial':
            filters.append(f"PropertyType eq {_literal(COMMERCIAL_PROPERTY_TYPE)}")

        filters.append(self._property_type_clause(criteria))
        filters.append(self._status_clause(criteria.status))

        keywords = (criteria.keywords or "").strip()
        if keywords:
            filters.append(f"contains(PublicRemarks,{_literal(keywords)})")

        if criteria.min_sqft:
            filters.append(f"LivingArea ge {_number(criteria.min_sqft)}")
        if criteria.max_sqft is not None:
            filters.append(f"LivingArea le {_number(criteria.max_sqft)}")

        if criteria.min_lot_size:
            filters.append(f"LotSizeArea ge {_number(criteria.min_lot_size)}")
        if criteria.max_lot_size is not None:
            filters.append(f"LotSizeArea le {_number(criteria.max_lot_size)}")

        if criteria.max_days_on_market is not None:
            filters.append(f"DaysOnMarket le {_number(criteria.max_days_on_market)}")

        return ' and '.join(clause for clause in filters if clause)

    def build_search_url(self, criteria: SearchCriteria, base_url: str) -> str:
        """Build the full Property search URL with pagination and count.

        Args:
            criteria: Search criteria
            base_url: OData service root

        Returns:
            Request URL for the Property resource
        """
        params = {}
        filter_expression = self.build_filter(criteria)
        if filter_expression:
            params['$filter'] = filter_expression
        params['$top'] = str(criteria.limit or 50)
        params['$skip'] = str(criteria.offset or 0)
        params['$orderby'] = SEARCH_ORDER_BY
        params['$count'] = 'true'

        return f"{base_url.rstrip('/')}/Property?{self._encode(params)}"

    def build_media_filter(self, listing_keys: Iterable[str]) -> str:
        """Build the $filter selecting photos that belong to listing keys."""
        key_filters = ' or '.join(
            f"ResourceRecordKey eq {_literal(key)}" for key in listing_keys
        )
        return f"ResourceName eq 'Property' and ({key_filters})"

    def build_media_url(
        self,
        listing_keys: Iterable[str],
        base_url: str,
        page_size: int = MEDIA_PAGE_SIZE
    ) -> str:
        """Build the Media URL for one batch of listing keys."""
        params = {
            '$filter': self.build_media_filter(listing_keys),
            '$orderby': 'Order',
            '$top': str(page_size),
        }
        return f"{base_url.rstrip('/')}/Media?{self._encode(params)}"

    def build_listing_url(self, listing_key: str, base_url: str) -> str:
        """Build the URL addressing a single Property by key."""
        key = quote(escape_odata_string(listing_key), safe='')
        return f"{base_url.rstrip('/')}/Property('{key}')"

    def _city_clause(self, criteria: SearchCriteria) -> Optional[str]:
        cities = [city for city in criteria.cities if city]
        if not cities and criteria.city:
            cities = [criteria.city]
        # Prefix match: the MLS city field carries sub-zones ("Toronto C01")
        return _or_group([f"startswith(City,{_literal(city)})" for city in cities])

    def _property_type_clause(self, criteria: SearchCriteria) -> Optional[str]:
        requested = criteria.property_types or (
            [criteria.property_type] if criteria.property_type else []
        )

        clauses = []
        for property_type in requested:
            if not property_type or property_type.lower() == 'all':
                continue
            wire_values = PROPERTY_SUB_TYPES.get(property_type.lower(), [property_type])
            clauses.extend(
                f"PropertySubType eq {_literal(value)}" for value in wire_values
            )
        return _or_group(clauses)

    def _status_clause(self, status: Optional[str]) -> Optional[str]:
        if not status:
            return f"StandardStatus eq {_literal(STATUS_VALUES['active'])}"
        if status.lower() == 'all':
            return None
        wire_value = STATUS_VALUES.get(status.lower(), status)
        return f"StandardStatus eq {_literal(wire_value)}"

    def _encode(self, params: dict) -> str:
        # quote (not quote_plus): spaces become %20, '$' stays literal in keys
        return urlencode(params, quote_via=quote, safe='$')
