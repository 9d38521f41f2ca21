"""
Resolution of component names to marketplace listings.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from .marketplace import MarketplaceClient
from .models import Bundle, Listing
from .ratelimit import IntervalLimiter
from .similarity import find_best_match

logger = logging.getLogger(__name__)


class ProductResolver:
    """Map one free-text component name to its best marketplace listing."""

    def __init__(self, marketplace: MarketplaceClient):
        self.marketplace = marketplace

    async def resolve(self, term: str) -> Listing | None:
        """
        Find the listing whose name is most similar to ``term``.

        Returns None only when the marketplace has no listings for the term.
        """
        listings = await self.marketplace.search(term)
        if not listings:
            logger.info(f"No listings found for {term!r}")
            return None

        best_index, rating = find_best_match(term, [listing.name for listing in listings])
        best = listings[best_index]
        logger.info(f"Best match for {term!r}: {best.name!r} (rating {rating:.2f})")
        return best


class BundleResolver:
    """
    Resolve every component of a build.

    Each call is one batch on the batch queue, so batches never overlap.
    Within a batch all components are looked up concurrently; the
    marketplace limiter still spaces the actual requests.
    """

    def __init__(self, resolver: ProductResolver, batch_queue: IntervalLimiter):
        self.resolver = resolver
        self.batch_queue = batch_queue

    async def resolve_bundle(self, spec: Mapping[str, Any]) -> Bundle:
        """
        Resolve a category -> component name mapping.

        Unresolved categories end up in ``Bundle.missing``; a failure on
        one category never affects the others.
        """
        return await self.batch_queue.schedule(self._resolve_all, dict(spec))

    async def _resolve_all(self, spec: dict[str, Any]) -> Bundle:
        categories = list(spec)
        results = await asyncio.gather(
            *(self._resolve_one(category, spec[category]) for category in categories)
        )

        bundle = Bundle()
        for category, listing in zip(categories, results):
            if listing is None:
                bundle.missing.append(category)
            else:
                bundle.products[category] = listing

        logger.info(
            f"Resolved {len(bundle.products)}/{len(categories)} components, "
            f"total {bundle.total_price}"
            + (f", missing: {', '.join(bundle.missing)}" if bundle.missing else "")
        )
        return bundle

    async def _resolve_one(self, category: str, term: Any) -> Listing | None:
        if not isinstance(term, str) or not term.strip():
            logger.warning(f"Skipping {category}: no usable component name ({term!r})")
            return None

        try:
            logger.debug(f"Fetching products for {category}: {term!r}")
            return await self.resolver.resolve(term)
        except Exception:
            logger.exception(f"Error fetching product for {category}: {term!r}")
            return None
