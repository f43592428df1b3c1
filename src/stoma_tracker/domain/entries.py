"""Models for parsed daily-log entries."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class EntryCategory(str, Enum):
    """Top-level category of a parsed log entry."""

    MEAL = "meal"
    SYMPTOM = "symptom"
    OUTPUT = "output"
    IRRIGATION = "irrigation"
    MEDICATION = "medication"


class MealSlot(str, Enum):
    """Meal sub-type stored in ``details["meal_type"]``."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"
    DRINK = "drink"


class ExtractionStrategy(str, Enum):
    """Which extraction path produced a result."""

    REMOTE = "remote"
    LOCAL = "local"


@dataclass(frozen=True)
class ParsedLogEntry:
    """One typed fragment of a free-text daily description."""

    category: EntryCategory
    description: str
    timestamp: datetime
    confidence: float
    details: dict[str, object] = field(default_factory=dict)

    @property
    def meal_type(self) -> str | None:
        """Return the meal sub-type for meal entries."""
        value = self.details.get("meal_type")
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class ExtractionResult:
    """Entries extracted from one description."""

    entries: list[ParsedLogEntry]
    strategy: ExtractionStrategy
    summary: str

    @property
    def nothing_detected(self) -> bool:
        """Whether the caller should prompt for manual entry."""
        return not self.entries


class RemoteEntry(BaseModel):
    """Single entry returned by the language model."""

    category: str
    description: str
    timestamp: str | None = None
    offset_minutes: int | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    details: dict[str, object] | None = None


class RemoteExtract(BaseModel):
    """Structured output for multi-entry extraction."""

    entries: list[RemoteEntry]
    summary: str | None = None
