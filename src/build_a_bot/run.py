"""
CLI runner for build-a-bot.

Usage:
    python -m build_a_bot.run --prompt TEXT --budget AMOUNT [OPTIONS]

    # Build a gaming PC for 500 000 KZT
    python -m build_a_bot.run --prompt "Gaming PC for 1440p" --budget 500000

    # Skip the adjustment round
    python -m build_a_bot.run --prompt "Office PC" --budget 250000 --no-adjust
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import openai

from .config import BotConfig
from .service import INTERNAL_ERROR_BODY, BuildService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("build-a-bot")


async def run_build(config: BotConfig, prompt: str, budget: float) -> tuple[int, dict]:
    """Run a single build request and return (status, body)."""
    try:
        service = BuildService.from_config(config)
    except openai.OpenAIError as e:
        logger.error(f"Could not create LLM client: {e}")
        return 500, dict(INTERNAL_ERROR_BODY)

    try:
        return await service.handle({"prompt": prompt, "budget": budget})
    finally:
        await service.aclose()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="build-a-bot: Budget-constrained PC build assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Build a PC for a budget
    python -m build_a_bot.run --prompt "Gaming PC for 1440p" --budget 500000

    # Use a specific config file
    python -m build_a_bot.run --config build-a-bot.yaml --prompt "Streaming PC" --budget 700000
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=Path("build-a-bot.yaml"),
        help="Path to config file (default: build-a-bot.yaml)",
    )
    parser.add_argument(
        "--prompt",
        required=True,
        help="What the PC is for",
    )
    parser.add_argument(
        "--budget",
        type=float,
        required=True,
        help="Target budget in the configured currency",
    )
    parser.add_argument(
        "--no-adjust",
        action="store_true",
        help="Return the first priced build without an adjustment round",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = BotConfig.from_yaml(args.config)
    if args.no_adjust:
        config.build.adjustment_enabled = False

    logger.info(f"Config loaded from {args.config}")
    logger.info(
        f"LLM: {config.llm.provider}/{config.llm.model}, "
        f"marketplace: {config.marketplace.host}, "
        f"tolerance: {config.build.budget_tolerance:.0%}"
    )

    budget = int(args.budget) if args.budget.is_integer() else args.budget
    status, body = asyncio.run(run_build(config, args.prompt, budget))

    print(json.dumps(body, ensure_ascii=False, indent=2))
    return 0 if status == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
