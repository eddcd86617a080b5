"""
Property filter implementation for normalized listings.

This module provides client-side filtering and sorting of canonical
properties, used after normalization when a page narrows or reorders the
results it already holds.
"""

from datetime import timezone
from typing import List

from idx_listings.models import Property, PropertyFilters


SORT_OPTIONS = ('latest', 'price-asc', 'price-desc', 'featured')


def _timestamp(property_: Property) -> float:
    listing_date = property_.listing_date
    if listing_date is None:
        return float('-inf')
    if listing_date.tzinfo is None:
        listing_date = listing_date.replace(tzinfo=timezone.utc)
    return listing_date.timestamp()


class PropertyFilter:
    """Filters and sorts canonical properties.

    Neither operation mutates the input list.
    """

    def filter_properties(
        self,
        properties: List[Property],
        filters: PropertyFilters
    ) -> List[Property]:
        """Filter properties by type, price range, rooms and location.

        Args:
            properties: Properties to filter
            filters: Criteria to apply; unset criteria are ignored

        Returns:
            Properties meeting every set criterion
        """
        filtered = list(properties)

        if filters.types:
            filtered = [p for p in filtered if p.property_type in filters.types]

        if filters.min_price is not None:
            filtered = [p for p in filtered if p.price >= filters.min_price]

        if filters.max_price is not None:
            filtered = [p for p in filtered if p.price <= filters.max_price]

        if filters.bedrooms is not None:
            filtered = [p for p in filtered if p.bedrooms >= filters.bedrooms]

        if filters.bathrooms is not None:
            filtered = [p for p in filtered if p.bathrooms >= filters.bathrooms]

        if filters.location:
            pattern_lower = filters.location.lower()
            filtered = [p for p in filtered if pattern_lower in p.city.lower()]

        return filtered

    def sort_properties(self, properties: List[Property], sort_by: str) -> List[Property]:
        """Sort properties.

        Args:
            properties: Properties to sort
            sort_by: 'latest', 'price-asc', 'price-desc' or 'featured';
                anything else keeps the input order

        Returns:
            New sorted list
        """
        if sort_by == 'latest':
            # Undated listings sort last
            return sorted(properties, key=_timestamp, reverse=True)
        if sort_by == 'price-asc':
            return sorted(properties, key=lambda p: p.price)
        if sort_by == 'price-desc':
            return sorted(properties, key=lambda p: p.price, reverse=True)
        if sort_by == 'featured':
            return sorted(properties, key=lambda p: not p.featured)
        return list(properties)
