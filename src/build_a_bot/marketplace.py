"""
Marketplace (kaspi.kz) search client for build-a-bot.

Looks up live listings for a component name. Requests go through a shared
rate limiter, throttled requests are retried with exponential backoff, and
results are cached per search term.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

import httpx

from .cache import ProductCache
from .config import MarketplaceConfig
from .errors import MaxRetriesExceeded
from .models import Listing
from .ratelimit import IntervalLimiter

logger = logging.getLogger(__name__)

SEARCH_PATH = "/yml/product-view/pl/filters"
REFERER_PATH = "/shop/search/"


def encode_query(term: str) -> str:
    """URL-encode a search term, leaving the same characters as encodeURIComponent."""
    return quote(term, safe="-_.!~*'()")


class MarketplaceClient:
    """
    Client for the marketplace product search endpoint.

    The limiter and cache are long-lived and shared by every request in
    the process; pass the same instances to every client you build.
    """

    def __init__(
        self,
        config: MarketplaceConfig,
        limiter: IntervalLimiter,
        cache: ProductCache,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the marketplace client.

        Args:
            config: Marketplace configuration
            limiter: Shared limiter spacing every outbound request
            cache: Shared search result cache
            sleep: Coroutine used for backoff delays (for testing)
        """
        self.config = config
        self.limiter = limiter
        self.cache = cache
        self._sleep = sleep

    def build_search_url(self, term: str) -> str:
        """Build the search endpoint URL for a component name."""
        query = encode_query(term)
        return (
            f"https://{self.config.host}{SEARCH_PATH}"
            f"?text={query}&hint_chips_click=false&page=0&all=false&fl=true&ui=d"
            f"&q=%3AavailableInZones%3A{self.config.zone}&i=-1&c={self.config.city_id}"
        )

    def build_headers(self, term: str) -> dict[str, str]:
        """Headers impersonating a browser session on the search page."""
        query = encode_query(term)
        return {
            "Host": self.config.host,
            "User-Agent": self.config.user_agent,
            "Accept": "application/json, text/*",
            "Accept-Language": "en-US,en;q=0.5",
            "Accept-Encoding": "gzip, deflate, br, zstd",
            "X-KS-City": self.config.city_id,
            "Connection": "keep-alive",
            "Referer": (
                f"https://{self.config.host}{REFERER_PATH}"
                f"?text={query}&hint_chips_click=false"
            ),
            "Cookie": self.config.cookie,
            "Sec-Fetch-Dest": "empty",
            "Sec-Fetch-Mode": "cors",
            "Sec-Fetch-Site": "same-origin",
        }

    async def fetch_with_retry(self, url: str, headers: dict[str, str]) -> httpx.Response:
        """
        GET ``url``, retrying with exponential backoff while throttled.

        Every attempt waits for the shared limiter. Redirects are followed
        within an attempt. A 429 response sleeps
        ``base_delay * 2**attempt`` before the next attempt; any other
        error status is raised immediately.

        Raises:
            MaxRetriesExceeded: every attempt was throttled
            httpx.HTTPStatusError: non-429 error status
            httpx.HTTPError: transport failure
        """
        max_retries = self.config.max_retries

        async with httpx.AsyncClient(
            timeout=self.config.timeout_seconds, follow_redirects=True
        ) as client:
            for attempt in range(max_retries):
                response = await self.limiter.schedule(client.get, url, headers=headers)

                if response.status_code == 429:
                    if attempt == max_retries - 1:
                        break
                    delay = self.config.base_delay_seconds * 2**attempt
                    logger.warning(f"Rate limited. Retrying in {delay:.1f}s...")
                    await self._sleep(delay)
                    continue

                response.raise_for_status()
                return response

        raise MaxRetriesExceeded(url, max_retries)

    async def search(self, term: str) -> list[Listing]:
        """
        Search the marketplace for a component name.

        Failures never propagate: errors and non-JSON replies produce an
        empty list so one bad lookup cannot sink a whole build.

        Args:
            term: Free-text component name

        Returns:
            Listings in marketplace order (possibly empty)
        """
        cached = self.cache.get(term)
        if cached is not None:
            logger.debug(f"Cache hit for {term!r} ({len(cached)} listings)")
            return list(cached)

        url = self.build_search_url(term)
        headers = self.build_headers(term)
        logger.debug(f"Searching marketplace for {term!r}")

        try:
            response = await self.fetch_with_retry(url, headers)
        except (httpx.HTTPError, MaxRetriesExceeded) as e:
            logger.error(f"Error fetching listings for {term!r}: {e}")
            return []

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            logger.error(
                f"Non-JSON response received for {term!r}: {content_type or 'no content type'}"
            )
            return []

        try:
            listings = self._parse_cards(response.json())
        except (ValueError, TypeError, AttributeError) as e:
            logger.error(f"Malformed search payload for {term!r}: {e}")
            return []

        self.cache.set(term, listings)
        logger.info(f"Found {len(listings)} listings for {term!r}")
        return listings

    def _parse_cards(self, data: dict[str, Any]) -> list[Listing]:
        """Parse result cards from the search response, skipping unusable ones."""
        cards = (data.get("data") or {}).get("cards") or []
        listings = []
        for card in cards:
            if not isinstance(card, dict):
                continue
            try:
                listings.append(Listing.from_card(card))
            except ValueError as e:
                logger.warning(f"Skipping card {card.get('title')!r}: {e}")
        return listings
