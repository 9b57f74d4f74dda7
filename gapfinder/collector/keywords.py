"""
Keyword Set Fetcher

Retrieves the ranked keywords for one host from DataForSEO Labs and
converts them to KeywordRecords.

Cached results are stored with their fetch time so one entry can serve any
freshness window:
- live: always fetch (result still written to the cache)
- 24h / 7d: reuse a cached result no older than the window
"""

import logging
import time
from typing import Callable, Dict, List, Optional

from gapfinder.cache import CacheBackend, build_cache_key
from gapfinder.gap.models import Freshness, KeywordRecord
from .client import DataForSEOClient, FetchError
from .schemas import parse_ranked_keywords

logger = logging.getLogger(__name__)


RANKED_KEYWORDS_ENDPOINT = "dataforseo_labs/google/ranked_keywords/live"

# Entries are kept for the longest freshness window
CACHE_TTL_SECONDS = Freshness.WEEK.max_age_seconds


class KeywordFetcher:
    """Fetches ranked keyword sets, one host at a time."""

    def __init__(
        self,
        client: DataForSEOClient,
        market_locations: Dict[str, int],
        language_name: str = "English",
        limit: int = 500,
        cache: Optional[CacheBackend] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.market_locations = {k.lower(): v for k, v in market_locations.items()}
        self.language_name = language_name
        self.limit = limit
        self.cache = cache
        self._clock = clock

    def location_code(self, market: str) -> int:
        try:
            return self.market_locations[market.lower()]
        except KeyError:
            raise FetchError(f"No location code for market '{market}'", transient=False)

    def _cache_key(self, domain: str, market: str) -> str:
        return build_cache_key(
            RANKED_KEYWORDS_ENDPOINT,
            domain=domain,
            market=market.lower(),
            language=self.language_name,
            limit=self.limit,
        )

    async def fetch(
        self,
        domain: str,
        market: str,
        freshness: Freshness = Freshness.DAY,
    ) -> List[KeywordRecord]:
        """
        Fetch ranked keywords for a canonical host.

        Returns:
            List of KeywordRecord (empty if the provider has no data)

        Raises:
            FetchError: transient or permanent provider failure
        """
        key = self._cache_key(domain, market)

        if self.cache is not None and freshness != Freshness.LIVE:
            cached = await self._read_cache(key, freshness)
            if cached is not None:
                logger.info(f"Cache HIT for ranked keywords of {domain} ({len(cached)} keywords)")
                return cached

        payload = await self.client.post(RANKED_KEYWORDS_ENDPOINT, [{
            "target": domain,
            "location_code": self.location_code(market),
            "language_name": self.language_name,
            "limit": self.limit,
            "order_by": ["keyword_data.keyword_info.search_volume,desc"],
        }])

        records = parse_ranked_keywords(payload)
        logger.info(f"Fetched {len(records)} ranked keywords for {domain} ({market})")

        if self.cache is not None:
            await self.cache.set(
                key,
                {
                    "fetched_at": self._clock(),
                    "records": [r.to_dict() for r in records],
                },
                CACHE_TTL_SECONDS,
            )

        return records

    async def _read_cache(self, key: str, freshness: Freshness) -> Optional[List[KeywordRecord]]:
        entry = await self.cache.get(key)
        if not entry:
            return None
        if not isinstance(entry, dict) or not isinstance(entry.get("fetched_at"), (int, float)):
            logger.warning(f"Ignoring unrecognized cache entry {key}")
            return None

        age = self._clock() - entry["fetched_at"]
        if age > freshness.max_age_seconds:
            logger.debug(f"Cached keywords too old for {freshness.value} ({age:.0f}s)")
            return None

        try:
            return [KeywordRecord.from_dict(r) for r in entry.get("records", [])]
        except (KeyError, TypeError) as e:
            logger.warning(f"Ignoring malformed cache entry {key}: {e}")
            return None
