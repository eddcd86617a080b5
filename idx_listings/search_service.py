"""
IDX Search Service - queries the MLS IDX OData API (TRREB/Ampre) and shapes
the results for the site pages.

Every expected failure is returned as a value (SearchResult.success False,
None, or an empty map); only programming errors propagate.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from idx_listings.config import IDXSettings, get_idx_settings
from idx_listings.error_handling import FetchResponse, ResilientFetcher
from idx_listings.models import Property, SearchCriteria, SearchResult
from idx_listings.normalization import ListingNormalizer
from idx_listings.query_builder import ODataQueryBuilder
from idx_listings.schemas import (
    IDXListingRecord,
    MediaRecord,
    parse_listing_record,
    parse_media_record,
)


logger = logging.getLogger(__name__)

NOT_CONFIGURED_ERROR = "IDX API key not configured. Please check your environment variables."


def _describe_error(error: BaseException) -> str:
    return str(error) or type(error).__name__


class IDXSearchService:
    """
    IDX API client: listing search, batch media lookup and single listing
    lookup, all over the resilient fetcher.

    Without an API key the service is switched off: every operation returns
    its empty result without touching the network.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        settings: Optional[IDXSettings] = None,
        fetcher: Optional[ResilientFetcher] = None,
        query_builder: Optional[ODataQueryBuilder] = None,
        normalizer: Optional[ListingNormalizer] = None
    ):
        """
        Initialize the service.

        Args:
            api_key: Bearer token; falls back to settings when None. An empty
                string leaves the service unconfigured.
            base_url: OData service root; falls back to settings
            settings: IDX settings (default: read from the environment)
            fetcher: Resilient fetcher (default: aiohttp-backed)
            query_builder: OData query builder
            normalizer: Listing normalizer used by search_properties
        """
        self.settings = settings or get_idx_settings()
        self.api_key = api_key if api_key is not None else self.settings.api_key
        self.base_url = (base_url or self.settings.base_url).rstrip('/')
        self.fetcher = fetcher or ResilientFetcher(retry_config=self.settings.retry_config)
        self.query_builder = query_builder or ODataQueryBuilder()
        self.normalizer = normalizer or ListingNormalizer()

    @property
    def is_configured(self) -> bool:
        """Check if the API key is configured"""
        return bool(self.api_key)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the underlying transport session"""
        await self.fetcher.close()

    def _request_options(self) -> Dict[str, Any]:
        return {
            'method': 'GET',
            'headers': {
                'Authorization': f"Bearer {self.api_key}",
                'Accept': 'application/json',
            },
            'timeout': self.settings.request_timeout_seconds,
        }

    async def search(self, criteria: Optional[SearchCriteria] = None) -> SearchResult:
        """
        Search listings.

        Returns the raw upstream records for the requested page; normalizing
        them is left to the caller.

        Args:
            criteria: Search criteria (default: first page of active listings)

        Returns:
            SearchResult with the raw listings and the upstream total count
        """
        if not self.is_configured:
            logger.error("[IDX SEARCH] IDX_API_KEY not configured")
            return SearchResult(success=False, listings=[], total=0, error=NOT_CONFIGURED_ERROR)

        if criteria is None:
            criteria = SearchCriteria(limit=self.settings.default_limit)

        url = self.query_builder.build_search_url(criteria, self.base_url)
        logger.info(f"[IDX SEARCH] Requesting: {url}")

        try:
            response = await self.fetcher.fetch_with_retry(url, self._request_options())
        except Exception as e:
            logger.error(f"[IDX SEARCH] Request failed: {type(e).__name__}: {e}")
            return SearchResult(success=False, listings=[], total=0, error=_describe_error(e))

        if not response.ok:
            logger.error(
                f"[IDX SEARCH] Failed: {response.status} {response.reason} - {response.text()[:500]}"
            )
            return SearchResult(
                success=False,
                listings=[],
                total=0,
                error=f"IDX API error: {response.status} {response.reason}",
            )

        data = self._read_json(response, "[IDX SEARCH]")
        if data is None:
            return SearchResult(
                success=False,
                listings=[],
                total=0,
                error="IDX API returned an unreadable response",
            )

        listings = data.get('value') or []
        if not isinstance(listings, list):
            logger.error(f"[IDX SEARCH] Unexpected 'value' type: {type(listings).__name__}")
            return SearchResult(
                success=False,
                listings=[],
                total=0,
                error="IDX API returned an unreadable response",
            )

        count = data.get('@odata.count')
        total = count if isinstance(count, int) and not isinstance(count, bool) else len(listings)

        if listings:
            cities = sorted({listing.get('City') for listing in listings
                             if isinstance(listing, Mapping) and listing.get('City')})
            logger.debug(f"[IDX SEARCH] Cities in page: {cities[:10]}")

        logger.info(f"[IDX SEARCH] Success: {len(listings)} listings, total {total}")
        return SearchResult(success=True, listings=listings, total=total)

    async def fetch_media_for_listings(
        self,
        listing_keys: Sequence[str]
    ) -> Dict[str, List[MediaRecord]]:
        """
        Fetch media for many listings in sequential batches.

        A failed batch is logged and skipped; media already collected from
        other batches is kept.

        Args:
            listing_keys: Listing keys to fetch media for

        Returns:
            Map of listing key to its media records, in upstream order
        """
        media_map: Dict[str, List[MediaRecord]] = {}

        if not self.is_configured or not listing_keys:
            return media_map

        batch_size = self.settings.media_batch_size
        batches = [
            listing_keys[i:i + batch_size]
            for i in range(0, len(listing_keys), batch_size)
        ]

        for index, batch in enumerate(batches, start=1):
            url = self.query_builder.build_media_url(
                batch, self.base_url, page_size=self.settings.media_page_size
            )
            logger.info(f"[IDX MEDIA] Batch {index}/{len(batches)}: {len(batch)} listings")

            try:
                response = await self.fetcher.fetch_with_retry(url, self._request_options())
            except Exception as e:
                logger.warning(f"[IDX MEDIA] Batch {index} failed: {type(e).__name__}: {e}")
                continue

            if not response.ok:
                logger.warning(
                    f"[IDX MEDIA] Batch {index} failed: {response.status} - {response.text()[:500]}"
                )
                continue

            data = self._read_json(response, "[IDX MEDIA]")
            if data is None:
                continue

            for item in data.get('value') or []:
                try:
                    media = parse_media_record(item)
                except ValidationError:
                    continue
                if media.resource_record_key:
                    media_map.setdefault(media.resource_record_key, []).append(media)

        logger.info(
            f"[IDX MEDIA] Success: {len(media_map)} listings with media, "
            f"{sum(len(items) for items in media_map.values())} media records"
        )
        return media_map

    async def get_listing(self, listing_key: str) -> Optional[Dict[str, Any]]:
        """
        Get a single listing by key.

        Args:
            listing_key: Upstream listing key

        Returns:
            Raw listing record, or None if not found or on any failure
        """
        if not self.is_configured:
            logger.error("[IDX LISTING] IDX_API_KEY not configured")
            return None

        url = self.query_builder.build_listing_url(listing_key, self.base_url)

        try:
            response = await self.fetcher.fetch_with_retry(url, self._request_options())
        except Exception as e:
            logger.error(f"[IDX LISTING] Request for {listing_key} failed: {type(e).__name__}: {e}")
            return None

        if not response.ok:
            logger.error(f"[IDX LISTING] Failed: {response.status} for {listing_key}")
            return None

        return self._read_json(response, "[IDX LISTING]")

    async def search_properties(
        self,
        criteria: Optional[SearchCriteria] = None
    ) -> Tuple[List[Property], SearchResult]:
        """
        Search, attach media and normalize in one call.

        This is the listing page flow: search, batch-fetch media for the
        listings that carry none inline, then normalize every record.

        Args:
            criteria: Search criteria

        Returns:
            Tuple of (normalized properties, raw search result)
        """
        result = await self.search(criteria)
        if not result.success:
            return [], result

        records = []
        for listing in result.listings:
            try:
                records.append(parse_listing_record(listing))
            except ValidationError as e:
                logger.warning(f"[IDX SEARCH] Skipping unreadable listing: {e}")

        keys = [
            record.listing_key for record in records
            if isinstance(record, IDXListingRecord) and record.listing_key and not record.media
        ]
        media_map = await self.fetch_media_for_listings(keys) if keys else {}

        properties = []
        for record in records:
            media = media_map.get(record.listing_key) if isinstance(record, IDXListingRecord) else None
            properties.append(self.normalizer.normalize(record, media=media))

        return properties, result

    def _read_json(self, response: FetchResponse, tag: str) -> Optional[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"{tag} Invalid JSON response: {e}")
            return None
        if not isinstance(data, dict):
            logger.error(f"{tag} Unexpected response body type: {type(data).__name__}")
            return None
        return data
