"""Tests for the build pipeline (initial build plus one adjustment round)."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from build_a_bot.advisor import ComponentAdvisor
from build_a_bot.errors import BuildTimeoutError, GenerationError
from build_a_bot.models import REQUIRED_CATEGORIES, Listing
from build_a_bot.pipeline import BuildPipeline
from build_a_bot.ratelimit import IntervalLimiter
from build_a_bot.resolver import BundleResolver, ProductResolver

BUDGET = 500000

INITIAL_BUILD = {key: f"{key} pick" for key in REQUIRED_CATEGORIES}


def make_listing(name: str, price: int) -> Listing:
    return Listing(name=name, price=price, url=f"https://kaspi.kz/shop/p/{name}")


def make_pipeline(advisor, catalog: dict[str, Listing], **kwargs):
    """Pipeline with a real BundleResolver over a fake product lookup."""

    async def resolve(term):
        return catalog.get(term)

    product_resolver = AsyncMock(spec=ProductResolver)
    product_resolver.resolve.side_effect = resolve
    bundle_resolver = BundleResolver(product_resolver, IntervalLimiter(0, max_concurrent=1))
    return BuildPipeline(advisor, bundle_resolver, **kwargs), product_resolver


@pytest.fixture
def advisor():
    mock = AsyncMock(spec=ComponentAdvisor)
    mock.suggest.return_value = ("initial reply", dict(INITIAL_BUILD))
    return mock


class TestBuildPipeline:
    """Test the initial/adjusted flow."""

    async def test_acceptable_initial_build(self, advisor):
        """All parts found within budget: one generation call, no adjustment."""
        catalog = {term: make_listing(term, 62500) for term in INITIAL_BUILD.values()}
        pipeline, _ = make_pipeline(advisor, catalog)

        result = await pipeline.run("Gaming PC", BUDGET)

        assert result.response == "initial reply"
        assert result.adjusted is False
        assert result.acceptable is True
        assert set(result.bundle.products) == set(REQUIRED_CATEGORIES)
        advisor.suggest.assert_awaited_once_with("Gaming PC", BUDGET)
        advisor.adjust.assert_not_awaited()

    async def test_missing_gpu_triggers_adjustment(self, advisor):
        """A missing GPU should be filled in by the adjustment round."""
        catalog = {
            term: make_listing(term, 40000)
            for key, term in INITIAL_BUILD.items()
            if key != "GPU"
        }
        catalog["Palit RTX 4060 Dual"] = make_listing("Palit RTX 4060 Dual", 200000)
        advisor.adjust.return_value = ("adjusted reply", {"GPU": "Palit RTX 4060 Dual"})
        pipeline, _ = make_pipeline(advisor, catalog)

        result = await pipeline.run("Gaming PC", BUDGET)

        assert result.response == "adjusted reply"
        assert result.adjusted is True
        assert result.bundle.products["GPU"].name == "Palit RTX 4060 Dual"
        assert result.bundle.missing == []
        assert advisor.suggest.await_count + advisor.adjust.await_count == 2

        feedback_bundle, feedback_budget = advisor.adjust.await_args.args
        assert feedback_bundle.missing == ["GPU"]
        assert feedback_budget == BUDGET

    async def test_gpu_stays_missing_when_adjustment_fails_to_resolve(self, advisor):
        """If the adjusted GPU is not found either, GPU remains absent."""
        catalog = {
            term: make_listing(term, 40000)
            for key, term in INITIAL_BUILD.items()
            if key != "GPU"
        }
        advisor.adjust.return_value = ("adjusted reply", {"GPU": "Nonexistent GPU"})
        pipeline, _ = make_pipeline(advisor, catalog)

        result = await pipeline.run("Gaming PC", BUDGET)

        assert "GPU" not in result.bundle.products
        assert result.bundle.missing == ["GPU"]
        assert result.acceptable is False

    async def test_gpu_stays_missing_when_adjustment_omits_it(self, advisor):
        """Only categories in the adjusted mapping are looked up again."""
        catalog = {
            term: make_listing(term, 40000)
            for key, term in INITIAL_BUILD.items()
            if key != "GPU"
        }
        catalog["Arctic P14"] = make_listing("Arctic P14", 5000)
        advisor.adjust.return_value = ("adjusted reply", {"FAN": "Arctic P14"})
        pipeline, product_resolver = make_pipeline(advisor, catalog)

        result = await pipeline.run("Gaming PC", BUDGET)

        assert result.bundle.missing == ["GPU"]
        assert result.bundle.products["FAN"].name == "Arctic P14"
        looked_up = [c.args[0] for c in product_resolver.resolve.await_args_list]
        assert looked_up[len(INITIAL_BUILD):] == ["Arctic P14"]

    async def test_over_budget_triggers_adjustment_once(self, advisor):
        """An off-budget build gets exactly one adjustment, even if still off-budget."""
        catalog = {term: make_listing(term, 100000) for term in INITIAL_BUILD.values()}
        catalog["Cheaper GPU"] = make_listing("Cheaper GPU", 90000)
        advisor.adjust.return_value = ("adjusted reply", {"GPU": "Cheaper GPU"})
        pipeline, _ = make_pipeline(advisor, catalog)

        result = await pipeline.run("Gaming PC", BUDGET)

        assert result.adjusted is True
        assert result.bundle.products["GPU"].price == 90000
        assert result.bundle.total_price == 790000
        assert result.acceptable is False
        advisor.adjust.assert_awaited_once()

    async def test_adjusted_non_string_values_are_missing(self, advisor):
        """Non-text names in the adjusted reply resolve to nothing."""
        catalog = {
            term: make_listing(term, 40000)
            for key, term in INITIAL_BUILD.items()
            if key != "GPU"
        }
        advisor.adjust.return_value = ("adjusted reply", {"GPU": ["RTX 4060"]})
        pipeline, _ = make_pipeline(advisor, catalog)

        result = await pipeline.run("Gaming PC", BUDGET)

        assert result.bundle.missing == ["GPU"]

    async def test_extra_initial_keys_not_looked_up(self, advisor):
        """Only the required categories are priced in the initial round."""
        advisor.suggest.return_value = (
            "initial reply",
            {**INITIAL_BUILD, "Monitor": "AOC 24G2"},
        )
        catalog = {term: make_listing(term, 62500) for term in INITIAL_BUILD.values()}
        pipeline, product_resolver = make_pipeline(advisor, catalog)

        result = await pipeline.run("Gaming PC", BUDGET)

        looked_up = {c.args[0] for c in product_resolver.resolve.await_args_list}
        assert "AOC 24G2" not in looked_up
        assert "Monitor" not in result.bundle.products

    async def test_initial_generation_error_propagates(self, advisor):
        advisor.suggest.side_effect = GenerationError("missing GPU")
        pipeline, product_resolver = make_pipeline(advisor, {})

        with pytest.raises(GenerationError):
            await pipeline.run("Gaming PC", BUDGET)

        product_resolver.resolve.assert_not_awaited()

    async def test_adjustment_generation_error_propagates(self, advisor):
        advisor.adjust.side_effect = GenerationError("bad JSON")
        pipeline, _ = make_pipeline(advisor, {})

        with pytest.raises(GenerationError):
            await pipeline.run("Gaming PC", BUDGET)

    async def test_adjustment_disabled(self, advisor):
        """With adjustment off, the initial build is returned as-is."""
        pipeline, _ = make_pipeline(advisor, {}, adjustment_enabled=False)

        result = await pipeline.run("Gaming PC", BUDGET)

        assert result.adjusted is False
        assert result.bundle.missing == list(REQUIRED_CATEGORIES)
        advisor.adjust.assert_not_awaited()

    async def test_deadline(self, advisor):
        """A hung generation call should hit the deadline."""

        async def hang(prompt, budget):
            await asyncio.sleep(10)

        advisor.suggest.side_effect = hang
        pipeline, _ = make_pipeline(advisor, {}, deadline_seconds=0.05)

        with pytest.raises(BuildTimeoutError):
            await pipeline.run("Gaming PC", BUDGET)

    async def test_deadline_not_hit(self, advisor):
        catalog = {term: make_listing(term, 62500) for term in INITIAL_BUILD.values()}
        pipeline, _ = make_pipeline(advisor, catalog, deadline_seconds=5)

        result = await pipeline.run("Gaming PC", BUDGET)

        assert result.acceptable is True
