"""
Request handling for build-a-bot.

``BuildService`` owns the objects that must live for the whole process
(search cache, marketplace limiter, batch queue, LLM client) and answers
build requests with a status code and a JSON-ready body.
"""

import logging
import math
from numbers import Real
from typing import Any

from .advisor import ComponentAdvisor, create_openai_client
from .cache import ProductCache
from .config import BotConfig
from .errors import BuildError
from .marketplace import MarketplaceClient
from .pipeline import BuildPipeline
from .ratelimit import IntervalLimiter
from .resolver import BundleResolver, ProductResolver

logger = logging.getLogger(__name__)

INTERNAL_ERROR_BODY = {"message": "Internal server error"}
INVALID_REQUEST_BODY = {"message": "Invalid request"}


def parse_build_request(payload: Any) -> tuple[str, float]:
    """
    Validate an inbound ``{"prompt": ..., "budget": ...}`` payload.

    Raises:
        ValueError: payload is malformed
    """
    if not isinstance(payload, dict):
        raise ValueError("Request body must be an object")

    prompt = payload.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValueError("prompt must be a non-empty string")

    budget = payload.get("budget")
    if isinstance(budget, bool) or not isinstance(budget, Real):
        raise ValueError("budget must be a positive number")
    if not math.isfinite(budget) or budget <= 0:
        raise ValueError("budget must be a positive number")

    return prompt.strip(), budget


class BuildService:
    """Entry point for build requests."""

    def __init__(
        self,
        pipeline: BuildPipeline,
        cache: ProductCache | None = None,
        llm_client: Any = None,
    ):
        self.pipeline = pipeline
        self.cache = cache
        self._llm_client = llm_client

    @classmethod
    def from_config(cls, config: BotConfig, llm_client: Any = None) -> "BuildService":
        """
        Wire up the service from configuration.

        Args:
            config: Bot configuration
            llm_client: Optional chat-completions client (for testing)
        """
        cache = ProductCache(ttl_seconds=config.cache.ttl_seconds)
        fetch_limiter = IntervalLimiter(
            config.marketplace.min_interval_seconds, name="marketplace"
        )
        batch_queue = IntervalLimiter(
            config.batch.min_interval_seconds,
            max_concurrent=config.batch.max_concurrent,
            name="batch-queue",
        )

        marketplace = MarketplaceClient(config.marketplace, fetch_limiter, cache)
        bundle_resolver = BundleResolver(ProductResolver(marketplace), batch_queue)

        client = llm_client if llm_client is not None else create_openai_client(config.llm)
        advisor = ComponentAdvisor(
            client, model=config.llm.model, currency=config.build.currency
        )
        pipeline = BuildPipeline(
            advisor,
            bundle_resolver,
            tolerance=config.build.budget_tolerance,
            adjustment_enabled=config.build.adjustment_enabled,
            deadline_seconds=config.build.request_deadline_seconds,
        )
        return cls(pipeline, cache=cache, llm_client=client)

    async def handle(self, payload: Any) -> tuple[int, dict[str, Any]]:
        """
        Answer one build request.

        Returns:
            (status code, response body). Failures always produce the same
            generic 500 body.
        """
        try:
            prompt, budget = parse_build_request(payload)
        except ValueError as e:
            logger.warning(f"Rejected build request: {e}")
            return 400, dict(INVALID_REQUEST_BODY)

        try:
            result = await self.pipeline.run(prompt, budget)
        except BuildError as e:
            logger.error(f"Build request failed: {e}")
            return 500, dict(INTERNAL_ERROR_BODY)
        except Exception:
            logger.exception("Unexpected error handling build request")
            return 500, dict(INTERNAL_ERROR_BODY)

        return 200, result.to_dict()

    async def aclose(self) -> None:
        """Release the LLM client's connections."""
        close = getattr(self._llm_client, "close", None)
        if close is not None:
            await close()
