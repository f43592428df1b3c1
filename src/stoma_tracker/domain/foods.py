"""Food domain models shared by providers and the aggregator."""

from dataclasses import dataclass, field
from enum import Enum

NUTRIENT_KEYS = ("calories", "protein", "carbs", "fat", "fiber", "sugar", "sodium")


class ProviderId(str, Enum):
    """Identifiers of the food data sources."""

    CROWD = "crowd"
    GOVERNMENT = "government"
    PREMIUM = "premium"
    LOCAL = "local"


# Dedup keeps the first record seen in this order.
PROVIDER_PRIORITY: tuple[ProviderId, ...] = (
    ProviderId.CROWD,
    ProviderId.LOCAL,
    ProviderId.GOVERNMENT,
    ProviderId.PREMIUM,
)


@dataclass(frozen=True)
class FoodRecord:
    """Provider-agnostic food or product record."""

    id: str
    name: str
    source: ProviderId
    brand: str | None = None
    ingredients: tuple[str, ...] = ()
    allergens: frozenset[str] = frozenset()
    nutrition_per_100g: dict[str, float] = field(default_factory=dict)
    categories: tuple[str, ...] = ()
    barcode: str | None = None
    image_url: str | None = None

    @property
    def name_key(self) -> str:
        """Normalized name used for de-duplication."""
        return normalize_name(self.name)


@dataclass(frozen=True)
class SearchOptions:
    """Options for an aggregated food search."""

    providers: frozenset[ProviderId] | None = None
    limit: int = 20


def normalize_name(value: str) -> str:
    """Case-fold and trim a food name."""
    return value.casefold().strip()
