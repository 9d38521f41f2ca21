"""
Data models for build-a-bot.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Every generated build must name exactly these components
REQUIRED_CATEGORIES: tuple[str, ...] = (
    "CPU",
    "GPU",
    "Motherboard",
    "RAM",
    "PSU",
    "CPU Cooler",
    "FAN",
    "PC case",
)

DEFAULT_TOLERANCE = 0.10


def parse_price(value: Any) -> int:
    """
    Normalize a card's ``unitPrice`` to a whole number.

    Missing prices count as 0. Numeric strings (as some cards carry them)
    are converted.

    Raises:
        ValueError: the price is not a finite, non-negative number
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError(f"Invalid price: {value!r}")
    if isinstance(value, str):
        value = value.strip().replace(" ", "").replace("\u00a0", "")
        if not value:
            return 0
        value = float(value)
    if not isinstance(value, int | float):
        raise ValueError(f"Invalid price: {value!r}")
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"Invalid price: {value!r}")
    return round(value)


class BuildPhase(str, Enum):
    """Phase of the adjustment loop that produced a result."""

    INITIAL = "initial"
    ADJUSTED = "adjusted"


@dataclass(frozen=True)
class Listing:
    """A single marketplace product resolved for a component."""

    name: str
    price: int
    url: str
    image: str = ""
    rating: float = 0
    review_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary using the wire field names."""
        return {
            "name": self.name,
            "price": self.price,
            "url": self.url,
            "image": self.image,
            "rating": self.rating,
            "reviewCount": self.review_count,
        }

    @classmethod
    def from_card(cls, card: dict[str, Any]) -> "Listing":
        """Project a marketplace search result card."""
        images = card.get("previewImages") or []
        image = ""
        if images and isinstance(images[0], dict):
            image = images[0].get("large") or ""

        return cls(
            name=card.get("title") or "",
            price=parse_price(card.get("unitPrice")),
            url=card.get("shopLink") or "",
            image=image,
            rating=card.get("rating") or 0,
            review_count=card.get("reviewsQuantity") or 0,
        )


@dataclass
class Bundle:
    """
    Components resolved against the marketplace.

    ``products`` only holds categories that resolved to a listing;
    the rest are named in ``missing``.
    """

    products: dict[str, Listing] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)

    @property
    def total_price(self) -> int:
        """Sum of resolved listing prices."""
        return sum(listing.price for listing in self.products.values())

    def deviation(self, budget: float) -> float:
        """Relative distance of the total price from the budget."""
        if budget <= 0:
            raise ValueError(f"Budget must be positive, got {budget}")
        return abs(self.total_price - budget) / budget

    def is_acceptable(self, budget: float, tolerance: float = DEFAULT_TOLERANCE) -> bool:
        """True when nothing is missing and the total is within tolerance."""
        return not self.missing and self.deviation(budget) <= tolerance

    def merge(self, other: "Bundle") -> "Bundle":
        """
        Overlay another bundle's resolved products onto this one.

        Entries resolved in ``other`` replace ours; categories ``other``
        failed to resolve keep whatever we already had.
        """
        products = dict(self.products)
        products.update(other.products)
        missing = [key for key in self.missing if key not in other.products]
        return Bundle(products=products, missing=missing)

    def describe_prices(self, currency: str = "KZT") -> str:
        """Comma-separated ``category: name - price`` summary."""
        return ", ".join(
            f"{key}: {listing.name} - {listing.price} {currency}"
            for key, listing in self.products.items()
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert products to dictionary for JSON serialization."""
        return {key: listing.to_dict() for key, listing in self.products.items()}


@dataclass
class BuildResult:
    """Final outcome of a build request."""

    response: str
    bundle: Bundle
    budget: float
    phase: BuildPhase = BuildPhase.INITIAL
    tolerance: float = DEFAULT_TOLERANCE

    @property
    def adjusted(self) -> bool:
        return self.phase == BuildPhase.ADJUSTED

    @property
    def deviation(self) -> float:
        return self.bundle.deviation(self.budget)

    @property
    def acceptable(self) -> bool:
        return self.bundle.is_acceptable(self.budget, self.tolerance)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the response body returned to callers."""
        return {
            "response": self.response,
            "products": self.bundle.to_dict(),
            "totalPrice": self.bundle.total_price,
            "missing": list(self.bundle.missing),
            "deviation": round(self.deviation, 4),
            "acceptable": self.acceptable,
            "adjusted": self.adjusted,
        }
