"""Condition-data resolution and friendliness ranking."""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Protocol

from stoma_tracker.domain.conditions import (
    FRIENDLINESS_SCORES,
    UNRATED_SCORE,
    AnnotatedFood,
    AnnotationBasis,
    ConditionAnnotation,
    Friendliness,
    IrrigationImpact,
    Level,
    ProcessingLevel,
    SpiceLevel,
)
from stoma_tracker.domain.foods import FoodRecord
from stoma_tracker.services.cache import Cache
from stoma_tracker.services.curated import CuratedDataset, CuratedFood

_logger = logging.getLogger(__name__)


class AnnotationRepository(Protocol):
    """Persistent store of hand-reviewed annotations."""

    def lookup_annotation(
        self, food_id: str, food_name: str
    ) -> ConditionAnnotation | None:
        """Return a stored annotation by food id or name, if present."""


@dataclass(frozen=True)
class _KeywordRule:
    name: str
    pattern: re.Pattern[str]
    annotation: ConditionAnnotation


def _keywords(*words: str) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(words) + r")s?\b", re.IGNORECASE)


KEYWORD_RULES: tuple[_KeywordRule, ...] = (
    _KeywordRule(
        name="spice",
        pattern=_keywords(
            "spicy", "hot", "chil(?:i|li|e)", "chilies", "peppers?", "jalapeno",
            "habanero", "sriracha", "curry", "vindaloo", "cayenne", "tabasco",
        ),
        annotation=ConditionAnnotation(
            fodmap_level=Level.MEDIUM,
            fiber_content=Level.MEDIUM,
            spice_level=SpiceLevel.HOT,
            processing_level=ProcessingLevel.MINIMALLY_PROCESSED,
            friendliness=Friendliness.CAUTION,
            digestibility_score=4,
            gas_production=Level.MEDIUM,
            common_triggers=frozenset({"spice", "capsaicin"}),
            irrigation_impact=IrrigationImpact.MODERATE,
            portion_guidance="small amounts",
            preparation_tips=("Use sparingly", "Build tolerance gradually"),
            basis=AnnotationBasis.INFERRED,
        ),
    ),
    _KeywordRule(
        name="fiber",
        pattern=_keywords(
            "whole", "wholegrain", "whole-grain", "wholemeal", "bran", "fib(?:er|re)",
            "multigrain", "granola", "muesli", "seeds?",
        ),
        annotation=ConditionAnnotation(
            fodmap_level=Level.MEDIUM,
            fiber_content=Level.HIGH,
            spice_level=SpiceLevel.NONE,
            processing_level=ProcessingLevel.MINIMALLY_PROCESSED,
            friendliness=Friendliness.MODERATE,
            digestibility_score=5,
            gas_production=Level.MEDIUM,
            common_triggers=frozenset({"high fiber"}),
            irrigation_impact=IrrigationImpact.MODERATE,
            portion_guidance="small portions",
            preparation_tips=("Introduce gradually", "Drink plenty of water"),
            basis=AnnotationBasis.INFERRED,
        ),
    ),
    _KeywordRule(
        name="processed",
        pattern=_keywords(
            "fried", "deep-fried", "processed", "fast food", "nuggets?", "crisps?",
            "chips?", "fries", "hot dog", "sausages?", "bacon",
        ),
        annotation=ConditionAnnotation(
            fodmap_level=Level.MEDIUM,
            fiber_content=Level.LOW,
            spice_level=SpiceLevel.MILD,
            processing_level=ProcessingLevel.ULTRA_PROCESSED,
            friendliness=Friendliness.CAUTION,
            digestibility_score=4,
            gas_production=Level.MEDIUM,
            common_triggers=frozenset({"high fat", "additives"}),
            irrigation_impact=IrrigationImpact.MODERATE,
            portion_guidance="limit consumption",
            preparation_tips=("Choose healthier alternatives when possible",),
            basis=AnnotationBasis.INFERRED,
        ),
    ),
    _KeywordRule(
        name="gas",
        pattern=_keywords(
            "beans?", "lentils?", "chickpeas?", "cabbage", "broccoli", "cauliflower",
            "sprouts?", "onions?", "garlic", "soda", "fizzy", "carbonated", "cola",
            "sparkling", "beer",
        ),
        annotation=ConditionAnnotation(
            fodmap_level=Level.HIGH,
            fiber_content=Level.MEDIUM,
            spice_level=SpiceLevel.NONE,
            processing_level=ProcessingLevel.MINIMALLY_PROCESSED,
            friendliness=Friendliness.CAUTION,
            digestibility_score=4,
            gas_production=Level.HIGH,
            common_triggers=frozenset({"gas-producing"}),
            irrigation_impact=IrrigationImpact.MODERATE,
            portion_guidance="very small portions",
            preparation_tips=("Cook thoroughly", "Avoid before irrigation"),
            basis=AnnotationBasis.INFERRED,
        ),
    ),
    _KeywordRule(
        name="dairy",
        pattern=_keywords("milk", "cheese", "cream", "ice cream", "milkshake", "custard"),
        annotation=ConditionAnnotation(
            fodmap_level=Level.HIGH,
            fiber_content=Level.LOW,
            spice_level=SpiceLevel.NONE,
            processing_level=ProcessingLevel.PROCESSED,
            friendliness=Friendliness.MODERATE,
            digestibility_score=5,
            gas_production=Level.MEDIUM,
            common_triggers=frozenset({"lactose"}),
            irrigation_impact=IrrigationImpact.SLIGHT,
            portion_guidance="small portions",
            preparation_tips=("Try lactose-free alternatives",),
            basis=AnnotationBasis.INFERRED,
        ),
    ),
)

DEFAULT_ANNOTATION = ConditionAnnotation(
    fodmap_level=Level.LOW,
    fiber_content=Level.LOW,
    spice_level=SpiceLevel.NONE,
    processing_level=ProcessingLevel.MINIMALLY_PROCESSED,
    friendliness=Friendliness.GOOD,
    digestibility_score=7,
    gas_production=Level.LOW,
    irrigation_impact=IrrigationImpact.SLIGHT,
    portion_guidance="normal portion",
    preparation_tips=("Monitor your individual response",),
    basis=AnnotationBasis.DEFAULT,
)

_FODMAP_PENALTY = {Level.LOW: 0, Level.MEDIUM: 1, Level.HIGH: 3}
_FIBER_PENALTY = {Level.LOW: 0, Level.MEDIUM: 1, Level.HIGH: 2}
_SPICE_PENALTY = {
    SpiceLevel.NONE: 0,
    SpiceLevel.MILD: 1,
    SpiceLevel.MEDIUM: 2,
    SpiceLevel.HOT: 4,
}
_PROCESSING_PENALTY = {
    ProcessingLevel.WHOLE: 0,
    ProcessingLevel.MINIMALLY_PROCESSED: 0,
    ProcessingLevel.PROCESSED: 0,
    ProcessingLevel.ULTRA_PROCESSED: 2,
}
_TRIGGER_PENALTY = {
    "gas-producing": 1,
    "lactose": 2,
    "high fat": 1,
    "caffeine": 1,
    "acidity": 1,
}


@dataclass
class ConditionResolver:
    """Attach stoma-specific annotations to food records."""

    dataset: CuratedDataset
    repository: AnnotationRepository | None = None
    cache: Cache | None = None
    fuzzy_threshold: float = 0.7
    cache_ttl_seconds: int = 3600

    def annotate(self, record: FoodRecord) -> ConditionAnnotation:
        """Resolve an annotation; never returns ``None``."""
        cache_key = f"annotation:{record.name_key}"
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if isinstance(cached, ConditionAnnotation):
                return cached
        annotation = self._resolve(record)
        if self.cache is not None:
            self.cache.set(cache_key, annotation, ttl_seconds=self.cache_ttl_seconds)
        return annotation

    def _resolve(self, record: FoodRecord) -> ConditionAnnotation:
        stored = self._lookup_store(record)
        if stored is not None:
            return stored

        match = self.dataset.match(record.name, self.fuzzy_threshold)
        if match is not None:
            return curated_annotation(match.food)

        inferred = infer_annotation(record.name)
        contained = self.dataset.find_containing(record.name)
        if contained is not None:
            candidate = curated_annotation(contained.food)
            if inferred is None or _more_cautious(candidate, inferred):
                return candidate
        return inferred or DEFAULT_ANNOTATION

    def _lookup_store(self, record: FoodRecord) -> ConditionAnnotation | None:
        if self.repository is None:
            return None
        try:
            annotation = self.repository.lookup_annotation(record.id, record.name)
        except Exception:
            _logger.exception("Annotation store lookup failed for %s", record.id)
            return None
        if annotation is None:
            return None
        return replace(annotation, basis=AnnotationBasis.STORE)


def curated_annotation(food: CuratedFood) -> ConditionAnnotation:
    """Build an annotation from a curated entry."""
    authored = food.annotation
    if authored is not None:
        return ConditionAnnotation(
            fodmap_level=food.fodmap_level,
            fiber_content=food.fiber_content,
            spice_level=food.spice_level,
            processing_level=food.processing_level,
            friendliness=authored.friendliness,
            digestibility_score=authored.digestibility_score,
            gas_production=authored.gas_production,
            common_triggers=frozenset(food.common_triggers),
            irrigation_impact=authored.irrigation_impact,
            portion_guidance=authored.portion_guidance,
            preparation_tips=tuple(authored.preparation_tips),
            alternatives=tuple(authored.alternatives),
            basis=AnnotationBasis.CURATED,
        )
    return _derive_annotation(food)


def _derive_annotation(food: CuratedFood) -> ConditionAnnotation:
    """Score a curated entry from its metadata when no annotation is authored."""
    triggers = {trigger.casefold() for trigger in food.common_triggers}
    penalty = (
        _FODMAP_PENALTY[food.fodmap_level]
        + _FIBER_PENALTY[food.fiber_content]
        + _SPICE_PENALTY[food.spice_level]
        + _PROCESSING_PENALTY[food.processing_level]
        + sum(value for key, value in _TRIGGER_PENALTY.items() if key in triggers)
    )
    score = max(1, min(10, 10 - penalty))
    if food.fodmap_level is Level.HIGH or "gas-producing" in triggers:
        gas = Level.HIGH
    elif food.fodmap_level is Level.MEDIUM or food.fiber_content is Level.HIGH:
        gas = Level.MEDIUM
    else:
        gas = Level.LOW
    if score >= 7:  # noqa: PLR2004
        impact = IrrigationImpact.NONE if score >= 9 else IrrigationImpact.SLIGHT  # noqa: PLR2004
    elif score >= 4:  # noqa: PLR2004
        impact = IrrigationImpact.MODERATE
    else:
        impact = IrrigationImpact.SIGNIFICANT
    return ConditionAnnotation(
        fodmap_level=food.fodmap_level,
        fiber_content=food.fiber_content,
        spice_level=food.spice_level,
        processing_level=food.processing_level,
        friendliness=_friendliness_for(score),
        digestibility_score=score,
        gas_production=gas,
        common_triggers=frozenset(food.common_triggers),
        irrigation_impact=impact,
        basis=AnnotationBasis.CURATED,
    )


def _friendliness_for(score: int) -> Friendliness:
    if score >= 9:  # noqa: PLR2004
        return Friendliness.EXCELLENT
    if score >= 7:  # noqa: PLR2004
        return Friendliness.GOOD
    if score >= 5:  # noqa: PLR2004
        return Friendliness.MODERATE
    if score >= 3:  # noqa: PLR2004
        return Friendliness.CAUTION
    return Friendliness.AVOID


def infer_annotation(name: str) -> ConditionAnnotation | None:
    """Return the most cautious keyword-based annotation for a name."""
    matched = [rule.annotation for rule in KEYWORD_RULES if rule.pattern.search(name)]
    if not matched:
        return None
    chosen = matched[0]
    for candidate in matched[1:]:
        if _more_cautious(candidate, chosen):
            chosen = candidate
    triggers = frozenset().union(*(item.common_triggers for item in matched))
    return replace(chosen, common_triggers=triggers)


def _more_cautious(left: ConditionAnnotation, right: ConditionAnnotation) -> bool:
    left_key = (friendliness_score(left), left.digestibility_score)
    right_key = (friendliness_score(right), right.digestibility_score)
    return left_key < right_key


def friendliness_score(annotation: ConditionAnnotation | None) -> int:
    """Map an annotation's friendliness onto a sortable ordinal."""
    if annotation is None:
        return UNRATED_SCORE
    return FRIENDLINESS_SCORES.get(annotation.friendliness, UNRATED_SCORE)


def rank_by_friendliness(items: Iterable[AnnotatedFood]) -> list[AnnotatedFood]:
    """Stable sort, friendliest first; ties keep their incoming order."""
    return sorted(items, key=lambda item: item.friendliness_score, reverse=True)
