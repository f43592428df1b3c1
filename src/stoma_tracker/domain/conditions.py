"""Condition-specific annotation models."""

from dataclasses import dataclass
from enum import Enum

from stoma_tracker.domain.foods import FoodRecord


class Level(str, Enum):
    """Three-step level used for FODMAP, fiber and gas production."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SpiceLevel(str, Enum):
    """Perceived heat of a food."""

    NONE = "none"
    MILD = "mild"
    MEDIUM = "medium"
    HOT = "hot"


class ProcessingLevel(str, Enum):
    """How far a food is from its whole form."""

    WHOLE = "whole"
    MINIMALLY_PROCESSED = "minimally-processed"
    PROCESSED = "processed"
    ULTRA_PROCESSED = "ultra-processed"


class Friendliness(str, Enum):
    """Qualitative stoma friendliness rating."""

    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    CAUTION = "caution"
    AVOID = "avoid"


class IrrigationImpact(str, Enum):
    """Expected effect on colostomy irrigation."""

    NONE = "none"
    SLIGHT = "slight"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"


class AnnotationBasis(str, Enum):
    """Which resolution step produced an annotation."""

    STORE = "store"
    CURATED = "curated"
    INFERRED = "inferred"
    DEFAULT = "default"


FRIENDLINESS_SCORES: dict[Friendliness, int] = {
    Friendliness.EXCELLENT: 10,
    Friendliness.GOOD: 8,
    Friendliness.MODERATE: 6,
    Friendliness.CAUTION: 4,
    Friendliness.AVOID: 2,
}
UNRATED_SCORE = 5


@dataclass(frozen=True)
class ConditionAnnotation:  # noqa: PLR0902
    """Stoma-specific overlay attached to a food record."""

    fodmap_level: Level
    fiber_content: Level
    spice_level: SpiceLevel
    processing_level: ProcessingLevel
    friendliness: Friendliness
    digestibility_score: int
    gas_production: Level
    common_triggers: frozenset[str] = frozenset()
    irrigation_impact: IrrigationImpact = IrrigationImpact.SLIGHT
    portion_guidance: str | None = None
    preparation_tips: tuple[str, ...] = ()
    alternatives: tuple[str, ...] = ()
    basis: AnnotationBasis = AnnotationBasis.DEFAULT


@dataclass(frozen=True)
class AnnotatedFood:
    """Food record paired with its optional annotation."""

    record: FoodRecord
    annotation: ConditionAnnotation | None
    friendliness_score: int
