"""
Data models for the IDX listing integration layer.

This module defines the canonical listing entity and the search-side data
structures used throughout the application.
"""

from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from datetime import datetime


# Listings priced below this are monthly rents. Shared by the query builder
# and the normalizer; both sides must agree on it.
LEASE_PRICE_THRESHOLD = 10000


class PropertyType(str, Enum):
    """Canonical property types shown on the sites."""
    DETACHED = "detached"
    SEMI_DETACHED = "semi-detached"
    TOWNHOUSE = "townhouse"
    CONDO = "condo"


class ListingStatus(str, Enum):
    """Canonical listing statuses."""
    ACTIVE = "active"
    PENDING = "pending"
    SOLD = "sold"


class ListingType(str, Enum):
    """Sale or lease, derived from the list price."""
    SALE = "sale"
    LEASE = "lease"


def listing_type_for_price(price: float) -> ListingType:
    """Classify a list price as a sale or a lease.

    Args:
        price: List price in dollars

    Returns:
        ListingType.LEASE below LEASE_PRICE_THRESHOLD, ListingType.SALE otherwise
    """
    if price < LEASE_PRICE_THRESHOLD:
        return ListingType.LEASE
    return ListingType.SALE


@dataclass
class Property:
    """Canonical listing returned to every downstream consumer.

    Attributes:
        id: Stable upstream listing key
        title: Display title (the street address)
        address: Street address
        city: City, including any MLS sub-zone suffix
        province: Province or state
        postal_code: Postal code
        price: List price in dollars
        bedrooms: Total bedrooms
        bathrooms: Total bathrooms
        sqft: Living area in square feet, 0 when unknown
        property_type: One of the canonical property types
        status: One of the canonical statuses
        images: Deduplicated, ordered image URLs
        description: Free-text remarks, empty string when absent
        listing_date: Listing or last-modification timestamp
        mls_number: Human-facing MLS number
        featured: Curation flag, always False at this layer
    """
    id: str
    title: str
    address: str
    city: str
    province: str
    postal_code: str
    price: float
    bedrooms: int
    bathrooms: int
    sqft: int
    property_type: PropertyType = PropertyType.DETACHED
    status: ListingStatus = ListingStatus.ACTIVE
    images: List[str] = field(default_factory=list)
    description: str = ""
    listing_date: Optional[datetime] = None
    mls_number: Optional[str] = None
    featured: bool = False

    @property
    def listing_type(self) -> ListingType:
        """Sale or lease, always derived from price."""
        return listing_type_for_price(self.price)

    def to_dict(self) -> dict:
        """Convert property to dictionary for JSON serialization.

        Returns:
            Dictionary with enums as their values, the listing type included,
            and datetime converted to ISO format
        """
        data = asdict(self)
        data['property_type'] = self.property_type.value
        data['status'] = self.status.value
        data['listing_type'] = self.listing_type.value
        data['listing_date'] = self.listing_date.isoformat() if self.listing_date else None
        return data


def _parse_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return None


def _parse_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(',') if part.strip()]
    return [str(part).strip() for part in value if str(part).strip()]


@dataclass
class SearchCriteria:
    """Search parameters for an IDX query.

    Every bound is optional. A minimum of 0 is treated as not provided.

    Attributes:
        city: Single city (prefix matched against the MLS city field)
        cities: Several cities, OR-ed together
        listing_type: 'sale' or 'lease'
        min_price: Minimum list price
        max_price: Maximum list price
        bedrooms: Minimum bedrooms
        bathrooms: Minimum bathrooms
        property_class: 'residential' or 'commercial'
        property_type: Single property type, for older callers
        property_types: Property types, OR-ed together
        keywords: Free text matched against the public remarks
        min_sqft: Minimum living area
        max_sqft: Maximum living area
        min_lot_size: Minimum lot size
        max_lot_size: Maximum lot size
        max_days_on_market: Maximum days on market
        status: Status filter; None means active, 'all' disables the filter
        limit: Page size
        offset: Page offset
    """
    city: Optional[str] = None
    cities: List[str] = field(default_factory=list)
    listing_type: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    property_class: Optional[str] = None
    property_type: Optional[str] = None
    property_types: List[str] = field(default_factory=list)
    keywords: Optional[str] = None
    min_sqft: Optional[int] = None
    max_sqft: Optional[int] = None
    min_lot_size: Optional[int] = None
    max_lot_size: Optional[int] = None
    max_days_on_market: Optional[int] = None
    status: Optional[str] = None
    limit: int = 50
    offset: int = 0

    @classmethod
    def from_query_params(cls, params: Mapping[str, Any]) -> 'SearchCriteria':
        """Create SearchCriteria from query-string style parameters.

        Accepts the camelCase names used by the site routes. Numeric values
        that cannot be parsed are dropped rather than rejected.

        Args:
            params: Mapping of parameter names to raw values

        Returns:
            SearchCriteria instance
        """
        limit = _parse_int(params.get('limit'))
        offset = _parse_int(params.get('offset'))
        return cls(
            city=params.get('city') or None,
            cities=_parse_list(params.get('cities')),
            listing_type=params.get('listingType') or None,
            min_price=_parse_int(params.get('minPrice')),
            max_price=_parse_int(params.get('maxPrice')),
            bedrooms=_parse_int(params.get('bedrooms')),
            bathrooms=_parse_int(params.get('bathrooms')),
            property_class=params.get('propertyClass') or None,
            property_type=params.get('propertyType') or None,
            property_types=_parse_list(params.get('propertyTypes')),
            keywords=params.get('keywords') or None,
            min_sqft=_parse_int(params.get('minSqft')),
            max_sqft=_parse_int(params.get('maxSqft')),
            min_lot_size=_parse_int(params.get('minLotSize')),
            max_lot_size=_parse_int(params.get('maxLotSize')),
            max_days_on_market=_parse_int(params.get('maxDaysOnMarket')),
            status=params.get('status') or None,
            limit=limit if limit is not None else 50,
            offset=offset if offset is not None else 0,
        )


@dataclass
class SearchResult:
    """Outcome of one IDX search.

    Attributes:
        success: Whether the upstream call succeeded
        listings: Raw upstream records for this page
        total: Upstream reported match count across all pages
        error: Failure description when success is False
    """
    success: bool
    listings: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            'success': self.success,
            'listings': self.listings,
            'total': self.total,
        }
        if self.error is not None:
            data['error'] = self.error
        return data


@dataclass
class PropertyFilters:
    """Client-side filters applied to already normalized properties.

    Attributes:
        types: Allowed property types
        min_price: Minimum price (inclusive)
        max_price: Maximum price (inclusive)
        bedrooms: Minimum bedrooms
        bathrooms: Minimum bathrooms
        location: Case-insensitive substring matched against the city
    """
    types: List[PropertyType] = field(default_factory=list)
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    location: Optional[str] = None
