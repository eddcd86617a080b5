"""Raw upstream record schemas.

Two listing shapes reach this layer: records in the MLS wire format served
by the IDX OData API, and the simpler records served by the CRM. They are
modelled as a discriminated union so each shape gets its own normalizer.
"""

import math
from datetime import datetime
from typing import Annotated, Any, List, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    field_validator,
)


def _lenient_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            number = float(str(value).replace(',', '').strip())
    except (ValueError, OverflowError):
        return None
    # NaN and infinities are as good as missing
    return number if math.isfinite(number) else None


def _lenient_int(value: Any) -> Optional[int]:
    number = _lenient_float(value)
    if number is None:
        return None
    return int(number)


def _lenient_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _lenient_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


class MediaRecord(BaseModel):
    """One raw image reference from the Media resource."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    url: Optional[str] = Field(default=None, alias='MediaURL')
    key: Optional[str] = Field(default=None, alias='MediaKey')
    order: Optional[float] = Field(default=None, alias='Order')
    category: Optional[str] = Field(default=None, alias='MediaCategory')
    media_type: Optional[str] = Field(default=None, alias='MediaType')
    resource_record_key: Optional[str] = Field(default=None, alias='ResourceRecordKey')

    @field_validator('url', 'key', 'category', 'media_type', 'resource_record_key', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return _lenient_str(v)

    @field_validator('order', mode='before')
    @classmethod
    def coerce_order(cls, v):
        return _lenient_float(v)


def _media_list(value: Any) -> Optional[list]:
    if not isinstance(value, (list, tuple)):
        return None
    return [item for item in value if isinstance(item, (Mapping, MediaRecord))]


class IDXListingRecord(BaseModel):
    """Listing in the MLS wire format (RESO field names)."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    listing_key: str = Field(default="", alias='ListingKey')
    listing_id: Optional[str] = Field(default=None, alias='ListingId')
    list_price: Optional[float] = Field(default=None, alias='ListPrice')
    unparsed_address: Optional[str] = Field(default=None, alias='UnparsedAddress')
    city: Optional[str] = Field(default=None, alias='City')
    state_or_province: Optional[str] = Field(default=None, alias='StateOrProvince')
    postal_code: Optional[str] = Field(default=None, alias='PostalCode')
    bedrooms_total: Optional[int] = Field(default=None, alias='BedroomsTotal')
    bathrooms_total_integer: Optional[int] = Field(default=None, alias='BathroomsTotalInteger')
    living_area: Optional[float] = Field(default=None, alias='LivingArea')
    building_area_total: Optional[float] = Field(default=None, alias='BuildingAreaTotal')
    above_grade_finished_area: Optional[float] = Field(default=None, alias='AboveGradeFinishedArea')
    living_area_range: Optional[str] = Field(default=None, alias='LivingAreaRange')
    property_type: Optional[str] = Field(default=None, alias='PropertyType')
    property_sub_type: Optional[str] = Field(default=None, alias='PropertySubType')
    standard_status: Optional[str] = Field(default=None, alias='StandardStatus')
    modification_timestamp: Optional[datetime] = Field(default=None, alias='ModificationTimestamp')
    public_remarks: Optional[str] = Field(default=None, alias='PublicRemarks')
    media: Optional[List[MediaRecord]] = Field(default=None, alias='Media')

    @field_validator('listing_key', mode='before')
    @classmethod
    def coerce_key(cls, v):
        return _lenient_str(v) or ""

    @field_validator(
        'listing_id', 'unparsed_address', 'city', 'state_or_province', 'postal_code',
        'living_area_range', 'property_type', 'property_sub_type', 'standard_status',
        'public_remarks',
        mode='before',
    )
    @classmethod
    def coerce_text(cls, v):
        return _lenient_str(v)

    @field_validator(
        'list_price', 'living_area', 'building_area_total', 'above_grade_finished_area',
        mode='before',
    )
    @classmethod
    def coerce_float(cls, v):
        return _lenient_float(v)

    @field_validator('bedrooms_total', 'bathrooms_total_integer', mode='before')
    @classmethod
    def coerce_int(cls, v):
        return _lenient_int(v)

    @field_validator('modification_timestamp', mode='before')
    @classmethod
    def coerce_timestamp(cls, v):
        return _lenient_datetime(v)

    @field_validator('media', mode='before')
    @classmethod
    def coerce_media(cls, v):
        return _media_list(v)


class CRMListingRecord(BaseModel):
    """Listing as served by the CRM (already partially normalized)."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    id: str = ""
    mls_number: Optional[str] = Field(default=None, alias='mlsNumber')
    address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = Field(default=None, alias='postalCode')
    price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    sqft: Optional[int] = None
    property_type: Optional[str] = Field(default=None, alias='propertyType')
    status: Optional[str] = None
    listing_date: Optional[datetime] = Field(default=None, alias='listingDate')
    photos: List[str] = Field(default_factory=list)
    description: Optional[str] = None

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _lenient_str(v) or ""

    @field_validator(
        'mls_number', 'address', 'city', 'province', 'postal_code', 'property_type',
        'status', 'description',
        mode='before',
    )
    @classmethod
    def coerce_text(cls, v):
        return _lenient_str(v)

    @field_validator('price', mode='before')
    @classmethod
    def coerce_float(cls, v):
        return _lenient_float(v)

    @field_validator('bedrooms', 'bathrooms', 'sqft', mode='before')
    @classmethod
    def coerce_int(cls, v):
        return _lenient_int(v)

    @field_validator('listing_date', mode='before')
    @classmethod
    def coerce_date(cls, v):
        return _lenient_datetime(v)

    @field_validator('photos', mode='before')
    @classmethod
    def coerce_photos(cls, v):
        if not isinstance(v, (list, tuple)):
            return []
        return [photo for photo in v if isinstance(photo, str) and photo]


def record_schema(value: Any) -> str:
    """Tag a raw record as 'idx' (MLS wire format) or 'crm'."""
    if isinstance(value, IDXListingRecord):
        return 'idx'
    if isinstance(value, CRMListingRecord):
        return 'crm'
    if isinstance(value, Mapping) and 'ListingKey' in value:
        return 'idx'
    return 'crm'


RawListingRecord = Annotated[
    Union[
        Annotated[IDXListingRecord, Tag('idx')],
        Annotated[CRMListingRecord, Tag('crm')],
    ],
    Discriminator(record_schema),
]

_raw_listing_adapter = TypeAdapter(RawListingRecord)
_media_adapter = TypeAdapter(MediaRecord)


def parse_listing_record(raw: Any) -> Union[IDXListingRecord, CRMListingRecord]:
    """Validate a raw mapping (or an already parsed record) into its variant."""
    return _raw_listing_adapter.validate_python(raw)


def parse_media_record(raw: Any) -> MediaRecord:
    if isinstance(raw, MediaRecord):
        return raw
    return _media_adapter.validate_python(raw)
