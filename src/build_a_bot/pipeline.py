"""
Build pipeline for build-a-bot.

Turns a user prompt and budget into a priced parts list:

1. INITIAL: ask the model for a complete build and price every part.
2. ADJUSTED: if parts are missing or the total is off-budget, send the
   model feedback once, price only what it proposes, and merge.

There is never more than one adjustment round, and the merged result is
returned as-is. ``BuildResult.acceptable`` tells callers whether it made it.
"""

import asyncio
import logging

from .advisor import ComponentAdvisor
from .errors import BuildTimeoutError
from .models import (
    DEFAULT_TOLERANCE,
    REQUIRED_CATEGORIES,
    BuildPhase,
    BuildResult,
)
from .resolver import BundleResolver

logger = logging.getLogger(__name__)


class BuildPipeline:
    """Generate, price, and (at most once) adjust a PC build."""

    def __init__(
        self,
        advisor: ComponentAdvisor,
        bundle_resolver: BundleResolver,
        tolerance: float = DEFAULT_TOLERANCE,
        adjustment_enabled: bool = True,
        deadline_seconds: float | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            advisor: LLM component advisor
            bundle_resolver: Resolver pricing components on the marketplace
            tolerance: Allowed relative distance of the total from the budget
            adjustment_enabled: Whether an unacceptable build gets an adjustment round
            deadline_seconds: Overall time limit for one run (None for no limit)
        """
        self.advisor = advisor
        self.bundle_resolver = bundle_resolver
        self.tolerance = tolerance
        self.adjustment_enabled = adjustment_enabled
        self.deadline_seconds = deadline_seconds

    async def run(self, prompt: str, budget: float) -> BuildResult:
        """
        Produce a build for ``prompt`` within ``budget``.

        Raises:
            GenerationError: a model reply was unusable
            BuildTimeoutError: the deadline elapsed
        """
        if self.deadline_seconds is None:
            return await self._run(prompt, budget)

        try:
            async with asyncio.timeout(self.deadline_seconds):
                return await self._run(prompt, budget)
        except TimeoutError as e:
            raise BuildTimeoutError(
                f"Build did not finish within {self.deadline_seconds}s"
            ) from e

    async def _run(self, prompt: str, budget: float) -> BuildResult:
        logger.info(f"Received prompt: {prompt!r}, budget: {budget}")

        text, spec = await self.advisor.suggest(prompt, budget)
        initial_spec = {category: spec[category] for category in REQUIRED_CATEGORIES}
        bundle = await self.bundle_resolver.resolve_bundle(initial_spec)

        if bundle.is_acceptable(budget, self.tolerance):
            logger.info(f"Initial build accepted: total {bundle.total_price}")
            return BuildResult(text, bundle, budget, BuildPhase.INITIAL, self.tolerance)

        if not self.adjustment_enabled:
            logger.info("Initial build not acceptable; adjustment disabled")
            return BuildResult(text, bundle, budget, BuildPhase.INITIAL, self.tolerance)

        logger.info(
            f"Initial build not acceptable (total {bundle.total_price}, "
            f"deviation {bundle.deviation(budget):.1%}, "
            f"missing: {', '.join(bundle.missing) or 'none'}); requesting adjustment"
        )

        adjusted_text, adjusted_spec = await self.advisor.adjust(bundle, budget)
        adjusted_bundle = await self.bundle_resolver.resolve_bundle(adjusted_spec)
        merged = bundle.merge(adjusted_bundle)

        result = BuildResult(
            adjusted_text, merged, budget, BuildPhase.ADJUSTED, self.tolerance
        )
        if not result.acceptable:
            logger.warning(
                f"Adjusted build still not acceptable: total {merged.total_price}, "
                f"deviation {result.deviation:.1%}, "
                f"missing: {', '.join(merged.missing) or 'none'}"
            )
        return result
