"""
Configuration for build-a-bot.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_KEY = "build-a-bot"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"
)
DEFAULT_COOKIE = (
    "ks.tg=71; k_stat=aa96833e-dac6-4558-a423-eacb2f0e53e4; "
    "kaspi.storefront.cookie.city=750000000"
)


@dataclass
class LLMConfig:
    """LLM provider configuration."""

    provider: str = "openai"  # openai, or any OpenAI-compatible endpoint
    model: str = "gpt-4o"
    base_url: str | None = None
    api_key: str | None = None
    api_key_env: str | None = "OPENAI_API_KEY"
    timeout_seconds: float = 60.0

    def get_api_key(self) -> str | None:
        """Get API key from config or environment."""
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None


@dataclass
class MarketplaceConfig:
    """Marketplace (kaspi.kz) search configuration."""

    host: str = "kaspi.kz"
    city_id: str = "750000000"
    zone: str = "Magnum_ZONE1"
    user_agent: str = DEFAULT_USER_AGENT
    cookie: str = DEFAULT_COOKIE
    timeout_seconds: float = 30.0
    min_interval_seconds: float = 5.0  # Spacing between outbound requests
    max_retries: int = 5
    base_delay_seconds: float = 5.0  # Backoff on 429: base * 2**attempt


@dataclass
class CacheConfig:
    """Search result cache configuration."""

    ttl_seconds: float = 3600.0


@dataclass
class BatchConfig:
    """Bundle batch queue configuration."""

    max_concurrent: int = 1
    min_interval_seconds: float = 5.0


@dataclass
class BuildConfig:
    """Budget reconciliation settings."""

    budget_tolerance: float = 0.10
    adjustment_enabled: bool = True
    request_deadline_seconds: float | None = None  # None disables the deadline
    currency: str = "KZT"


@dataclass
class BotConfig:
    """Complete build-a-bot configuration."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    marketplace: MarketplaceConfig = field(default_factory=MarketplaceConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    build: BuildConfig = field(default_factory=BuildConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BotConfig":
        """Create config from a dictionary (e.g., from YAML)."""
        config = cls()

        if "llm" in data:
            llm = data["llm"]
            config.llm = LLMConfig(
                provider=llm.get("provider", "openai"),
                model=llm.get("model", "gpt-4o"),
                base_url=llm.get("base_url"),
                api_key=llm.get("api_key"),
                api_key_env=llm.get("api_key_env", "OPENAI_API_KEY"),
                timeout_seconds=llm.get("timeout_seconds", 60.0),
            )

        if "marketplace" in data:
            mp = data["marketplace"]
            defaults = MarketplaceConfig()
            config.marketplace = MarketplaceConfig(
                host=mp.get("host", defaults.host),
                city_id=str(mp.get("city_id", defaults.city_id)),
                zone=mp.get("zone", defaults.zone),
                user_agent=mp.get("user_agent", defaults.user_agent),
                cookie=mp.get("cookie", defaults.cookie),
                timeout_seconds=mp.get("timeout_seconds", defaults.timeout_seconds),
                min_interval_seconds=mp.get(
                    "min_interval_seconds", defaults.min_interval_seconds
                ),
                max_retries=mp.get("max_retries", defaults.max_retries),
                base_delay_seconds=mp.get(
                    "base_delay_seconds", defaults.base_delay_seconds
                ),
            )

        if "cache" in data:
            config.cache = CacheConfig(
                ttl_seconds=data["cache"].get("ttl_seconds", 3600.0),
            )

        if "batch" in data:
            batch = data["batch"]
            config.batch = BatchConfig(
                max_concurrent=batch.get("max_concurrent", 1),
                min_interval_seconds=batch.get("min_interval_seconds", 5.0),
            )

        if "build" in data:
            build = data["build"]
            config.build = BuildConfig(
                budget_tolerance=build.get("budget_tolerance", 0.10),
                adjustment_enabled=build.get("adjustment_enabled", True),
                request_deadline_seconds=build.get("request_deadline_seconds"),
                currency=build.get("currency", "KZT"),
            )

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "BotConfig":
        """Load config from a YAML file.

        Settings live under the top-level ``build-a-bot`` key so the file
        can be shared with other tools.
        """
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data.get(CONFIG_KEY, {}) or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for JSON serialization."""
        return {
            "llm": {
                "provider": self.llm.provider,
                "model": self.llm.model,
                "base_url": self.llm.base_url,
                "api_key_env": self.llm.api_key_env,
            },
            "marketplace": {
                "host": self.marketplace.host,
                "city_id": self.marketplace.city_id,
                "zone": self.marketplace.zone,
                "timeout_seconds": self.marketplace.timeout_seconds,
                "min_interval_seconds": self.marketplace.min_interval_seconds,
                "max_retries": self.marketplace.max_retries,
                "base_delay_seconds": self.marketplace.base_delay_seconds,
            },
            "cache": {"ttl_seconds": self.cache.ttl_seconds},
            "batch": {
                "max_concurrent": self.batch.max_concurrent,
                "min_interval_seconds": self.batch.min_interval_seconds,
            },
            "build": {
                "budget_tolerance": self.build.budget_tolerance,
                "adjustment_enabled": self.build.adjustment_enabled,
                "request_deadline_seconds": self.build.request_deadline_seconds,
                "currency": self.build.currency,
            },
        }
