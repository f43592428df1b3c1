"""Hand-authored food table with stoma-specific metadata."""

import json
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

from stoma_tracker.domain.conditions import (
    Friendliness,
    IrrigationImpact,
    Level,
    ProcessingLevel,
    SpiceLevel,
)
from stoma_tracker.domain.foods import FoodRecord, ProviderId, normalize_name
from stoma_tracker.services.similarity import similarity

CURATED_FOODS_PATH = Path(__file__).resolve().parents[1] / "data" / "curated_foods.json"


class CuratedAnnotation(BaseModel):
    """Hand-authored annotation fields for a curated food."""

    friendliness: Friendliness
    digestibility_score: int = Field(ge=1, le=10)
    gas_production: Level
    irrigation_impact: IrrigationImpact = IrrigationImpact.SLIGHT
    portion_guidance: str | None = None
    preparation_tips: list[str] = Field(default_factory=list)
    alternatives: list[str] = Field(default_factory=list)


class CuratedFood(BaseModel):
    """Single row of the curated food table."""

    id: str
    name: str
    category: str
    subcategory: str | None = None
    aliases: list[str] = Field(default_factory=list)
    ingredients: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    fodmap_level: Level
    fiber_content: Level
    spice_level: SpiceLevel
    processing_level: ProcessingLevel
    common_triggers: list[str] = Field(default_factory=list)
    nutrition_per_100g: dict[str, float] = Field(default_factory=dict)
    annotation: CuratedAnnotation | None = None

    @property
    def all_names(self) -> list[str]:
        """Canonical name followed by aliases."""
        return [self.name, *self.aliases]


@dataclass(frozen=True)
class CuratedMatch:
    """A curated entry matched against a query."""

    food: CuratedFood
    kind: str
    score: float


@dataclass(frozen=True)
class CuratedDataset:
    """Read-only curated table queried by exact, alias and fuzzy match."""

    foods: tuple[CuratedFood, ...]

    def get(self, food_id: str) -> CuratedFood | None:
        """Return an entry by its curated id."""
        for food in self.foods:
            if food.id == food_id:
                return food
        return None

    def names_for(self, record_id: str) -> list[str]:
        """Return the canonical name and aliases for a local record id."""
        food = self.get(record_id.removeprefix(_ID_PREFIX))
        return food.all_names if food else []

    def find_exact(self, query: str) -> CuratedFood | None:
        """Match the canonical name exactly."""
        key = normalize_name(query)
        if not key:
            return None
        for food in self.foods:
            if normalize_name(food.name) == key:
                return food
        return None

    def find_alias(self, query: str) -> CuratedFood | None:
        """Match any alias exactly."""
        key = normalize_name(query)
        if not key:
            return None
        for food in self.foods:
            if any(normalize_name(alias) == key for alias in food.aliases):
                return food
        return None

    def find_fuzzy(self, query: str, threshold: float) -> CuratedMatch | None:
        """Return the most similar entry at or above the threshold."""
        if not query.strip():
            return None
        best: CuratedMatch | None = None
        for food in self.foods:
            score = max(similarity(query, name) for name in food.all_names)
            if score >= threshold and (best is None or score > best.score):
                best = CuratedMatch(food=food, kind="fuzzy", score=score)
        return best

    def find_containing(self, text: str) -> CuratedMatch | None:
        """Return the entry whose longest name appears as a phrase in text."""
        haystack = f" {' '.join(_tokens(text))} "
        best: CuratedFood | None = None
        best_length = 0
        for food in self.foods:
            for name in food.all_names:
                phrase = " ".join(_tokens(name))
                if phrase and f" {phrase} " in haystack and len(phrase) > best_length:
                    best = food
                    best_length = len(phrase)
        if best is None:
            return None
        return CuratedMatch(food=best, kind="contains", score=1.0)

    def match(self, query: str, threshold: float) -> CuratedMatch | None:
        """Exact name, then alias, then fuzzy match."""
        exact = self.find_exact(query)
        if exact:
            return CuratedMatch(food=exact, kind="exact", score=1.0)
        alias = self.find_alias(query)
        if alias:
            return CuratedMatch(food=alias, kind="alias", score=1.0)
        return self.find_fuzzy(query, threshold)

    def search(self, query: str, limit: int, threshold: float = 0.7) -> list[CuratedFood]:
        """Rank entries for a free-text search."""
        key = normalize_name(query)
        if not key:
            return []
        ranked: list[tuple[int, int, CuratedFood]] = []
        for position, food in enumerate(self.foods):
            rank = _search_rank(food, key)
            if rank is not None:
                ranked.append((rank, position, food))
        if not ranked:
            fuzzy = [
                (-max(similarity(key, name) for name in food.all_names), position, food)
                for position, food in enumerate(self.foods)
            ]
            ranked = [item for item in fuzzy if -item[0] >= threshold]
        ranked.sort(key=lambda item: (item[0], item[1]))
        return [food for _, _, food in ranked[:limit]]

    def to_record(self, food: CuratedFood) -> FoodRecord:
        """Convert a curated entry into a food record."""
        categories = [food.category]
        if food.subcategory:
            categories.append(food.subcategory)
        return FoodRecord(
            id=f"{_ID_PREFIX}{food.id}",
            name=food.name,
            source=ProviderId.LOCAL,
            ingredients=tuple(food.ingredients),
            allergens=frozenset(food.allergens),
            nutrition_per_100g=dict(food.nutrition_per_100g),
            categories=tuple(categories),
        )


_ID_PREFIX = "local:"
_TOKEN_PATTERN = re.compile(r"[a-z0-9']+")


def _tokens(text: str) -> list[str]:
    return _TOKEN_PATTERN.findall(text.casefold())


def _search_rank(food: CuratedFood, key: str) -> int | None:
    """Lower is better; ``None`` when the entry does not match."""
    if normalize_name(food.name) == key:
        return 0
    aliases = [normalize_name(alias) for alias in food.aliases]
    if key in aliases:
        return 1
    if key in normalize_name(food.name):
        return 2
    if any(key in alias for alias in aliases):
        return 3
    if key in normalize_name(food.category) or (
        food.subcategory and key in normalize_name(food.subcategory)
    ):
        return 4
    return None


def load_curated_dataset(path: Path = CURATED_FOODS_PATH) -> CuratedDataset:
    """Load and validate the curated table from JSON."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    return CuratedDataset(foods=tuple(CuratedFood.model_validate(row) for row in raw))


@lru_cache(maxsize=1)
def default_curated_dataset() -> CuratedDataset:
    """Return the process-wide curated table, loaded once."""
    return load_curated_dataset()
