"""
Listing normalization for IDX and CRM records.

Converts either upstream listing shape into the canonical Property so the
rest of the application never sees upstream field names.
"""

import logging
import math
import re
from typing import Any, Dict, Iterable, Optional

from idx_listings.models import ListingStatus, Property, PropertyType
from idx_listings.normalization.media_deduplicator import dedupe_images
from idx_listings.schemas import (
    CRMListingRecord,
    IDXListingRecord,
    MediaRecord,
    parse_listing_record,
)


logger = logging.getLogger(__name__)

# MLS wire values, matched case-sensitively
IDX_PROPERTY_TYPES: Dict[str, PropertyType] = {
    'Detached': PropertyType.DETACHED,
    'Residential': PropertyType.DETACHED,
    'Residential Freehold': PropertyType.DETACHED,
    'Semi-Detached': PropertyType.SEMI_DETACHED,
    'Semi Detached': PropertyType.SEMI_DETACHED,
    'Att/Row/Twnhouse': PropertyType.TOWNHOUSE,
    'Townhouse': PropertyType.TOWNHOUSE,
    'Condo Townhouse': PropertyType.TOWNHOUSE,
    'Condo Apartment': PropertyType.CONDO,
    'Condo': PropertyType.CONDO,
}

# CRM values, matched case-insensitively
CRM_PROPERTY_TYPES: Dict[str, PropertyType] = {
    property_type.value: property_type for property_type in PropertyType
}

STATUSES: Dict[str, ListingStatus] = {
    status.value: status for status in ListingStatus
}

AREA_RANGE = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)\s*$')


def map_status(value: Optional[str]) -> ListingStatus:
    """Map an upstream status to the canonical status, active by default."""
    if not value:
        return ListingStatus.ACTIVE
    return STATUSES.get(value.strip().lower(), ListingStatus.ACTIVE)


def parse_area_range(value: Optional[str]) -> Optional[int]:
    """Return the rounded midpoint of a "min-max" area range.

    Args:
        value: Range string such as "1000-1499"

    Returns:
        Midpoint rounded half up, or None if the string is not a range
    """
    if not value:
        return None
    match = AREA_RANGE.match(value)
    if not match:
        return None
    low, high = float(match.group(1)), float(match.group(2))
    return int(math.floor((low + high) / 2 + 0.5))


def resolve_sqft(record: IDXListingRecord) -> int:
    """Resolve living area through the fallback chain, 0 when unknown."""
    for area in (record.living_area, record.building_area_total, record.above_grade_finished_area):
        if area:
            return int(round(area))

    midpoint = parse_area_range(record.living_area_range)
    if midpoint is not None:
        return midpoint
    return 0


def resolve_idx_property_type(record: IDXListingRecord) -> PropertyType:
    for value in (record.property_sub_type, record.property_type):
        if value in IDX_PROPERTY_TYPES:
            return IDX_PROPERTY_TYPES[value]
    return PropertyType.DETACHED


def resolve_crm_property_type(value: Optional[str]) -> PropertyType:
    if not value:
        return PropertyType.DETACHED
    return CRM_PROPERTY_TYPES.get(value.strip().lower(), PropertyType.DETACHED)


class ListingNormalizer:
    """Converts raw upstream listings into canonical Property objects.

    Accepts MLS wire-format records and CRM records through the same entry
    point; the record shape is resolved by the schema union.
    """

    def normalize(
        self,
        raw: Any,
        media: Optional[Iterable[Any]] = None
    ) -> Property:
        """Normalize one raw listing.

        Args:
            raw: Raw mapping or parsed record of either upstream shape
            media: Media fetched separately for this listing; used when the
                record carries no inline media

        Returns:
            Canonical Property
        """
        record = parse_listing_record(raw)

        if isinstance(record, IDXListingRecord):
            logger.debug(f"Normalizing IDX listing {record.listing_key}")
            return self._normalize_idx(record, media)

        logger.debug(f"Normalizing CRM listing {record.id}")
        return self._normalize_crm(record)

    def _normalize_idx(
        self,
        record: IDXListingRecord,
        media: Optional[Iterable[Any]] = None
    ) -> Property:
        media_records = record.media if record.media else media
        address = record.unparsed_address or ""

        return Property(
            id=record.listing_key,
            title=address,
            address=address,
            city=record.city or "",
            province=record.state_or_province or "",
            postal_code=record.postal_code or "",
            price=record.list_price or 0,
            bedrooms=record.bedrooms_total or 0,
            bathrooms=record.bathrooms_total_integer or 0,
            sqft=resolve_sqft(record),
            property_type=resolve_idx_property_type(record),
            status=map_status(record.standard_status),
            images=dedupe_images(media_records),
            description=record.public_remarks or "",
            listing_date=record.modification_timestamp,
            mls_number=record.listing_id or record.listing_key,
            featured=False,
        )

    def _normalize_crm(self, record: CRMListingRecord) -> Property:
        # CRM photos carry no CDN hash directory; the URL itself is the key
        photos = [
            MediaRecord(url=photo, key=photo, order=position)
            for position, photo in enumerate(record.photos)
        ]
        address = record.address or ""

        return Property(
            id=record.id,
            title=address,
            address=address,
            city=record.city or "",
            province=record.province or "",
            postal_code=record.postal_code or "",
            price=record.price or 0,
            bedrooms=record.bedrooms or 0,
            bathrooms=record.bathrooms or 0,
            sqft=record.sqft or 0,
            property_type=resolve_crm_property_type(record.property_type),
            status=map_status(record.status),
            images=dedupe_images(photos),
            description=record.description or "",
            listing_date=record.listing_date,
            mls_number=record.mls_number or record.id,
            featured=False,
        )
