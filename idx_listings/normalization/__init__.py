"""
Normalization module for upstream listings.

Converts raw IDX and CRM listing records into canonical properties and
deduplicates CDN image variants.
"""

from .listing_normalizer import ListingNormalizer
from .media_deduplicator import MAX_IMAGES, dedupe_images

__all__ = ['ListingNormalizer', 'MAX_IMAGES', 'dedupe_images']
