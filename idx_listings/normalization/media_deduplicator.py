"""
Image deduplication for IDX media.

The listing CDN serves one photo under many URLs that differ only in an
embedded resize segment, e.g.

    https://trreb-image.ampre.ca/ABC123/rs:fit:240:240/image.jpg
    https://trreb-image.ampre.ca/ABC123/rs:fit:1200:900/image.jpg

This module collapses those variants to one URL per photo, keeping the
largest variant, in presentation order.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from idx_listings.schemas import MediaRecord, parse_media_record


logger = logging.getLogger(__name__)

MAX_IMAGES = 40

# Sort key for media without an Order value
MISSING_ORDER = 999999

THUMBNAIL_SUFFIX = re.compile(r'-t$')
RESIZE_WIDTH = re.compile(r'rs:[a-z]+:(\d+)', re.IGNORECASE)


def is_photo(record: MediaRecord) -> bool:
    """Check whether a media record is a displayable photo.

    A record with no category and no MIME type (absent or empty) is accepted.

    Args:
        record: Media record to check

    Returns:
        True if the record should be shown as a photo
    """
    category = record.category
    media_type = record.media_type

    if not category and not media_type:
        return True
    if category and category.lower() == 'photo':
        return True
    if media_type and media_type.lower().startswith('image/'):
        return True
    return False


def media_identity(record: MediaRecord) -> str:
    """Resolve the identity shared by all resize variants of one photo.

    Prefers the media key (thumbnail suffix removed), otherwise the first
    path segment of the URL, which is the CDN's content-hash directory.
    Unrelated photos that share that segment collapse together.
    """
    if record.key:
        return THUMBNAIL_SUFFIX.sub('', record.key)

    url = record.url or ""
    segments = [segment for segment in urlparse(url).path.split('/') if segment]
    if segments:
        return segments[0]
    return url


def image_size(url: str) -> int:
    """Extract the resize width from a CDN URL, 0 when absent."""
    match = RESIZE_WIDTH.search(url)
    if not match:
        return 0
    return int(match.group(1))


def _order_of(record: MediaRecord) -> float:
    return record.order if record.order is not None else MISSING_ORDER


def _coerce_records(media_records: Iterable[Any]) -> List[MediaRecord]:
    records = []
    for raw in media_records:
        try:
            records.append(parse_media_record(raw))
        except ValidationError as e:
            logger.debug(f"Skipping unreadable media record: {e}")
    return records


def dedupe_images(media_records: Optional[Iterable[Any]], limit: int = MAX_IMAGES) -> List[str]:
    """Reduce raw media records to an ordered list of unique image URLs.

    Args:
        media_records: MediaRecord instances or raw Media mappings
        limit: Maximum number of URLs returned

    Returns:
        Image URLs, the largest variant of each photo, in presentation order
    """
    if not media_records:
        return []

    photos = [
        record for record in _coerce_records(media_records)
        if record.url and is_photo(record)
    ]
    photos.sort(key=_order_of)

    # identity -> [position order, best size, best url]
    best: Dict[str, list] = {}
    for record in photos:
        identity = media_identity(record)
        size = image_size(record.url)
        entry = best.get(identity)
        if entry is None:
            best[identity] = [_order_of(record), size, record.url]
        elif size > entry[1]:
            entry[1] = size
            entry[2] = record.url

    ordered = sorted(best.values(), key=lambda entry: entry[0])
    if len(photos) != len(ordered):
        logger.debug(f"Collapsed {len(photos)} photo records into {len(ordered)} images")

    return [entry[2] for entry in ordered[:limit]]
