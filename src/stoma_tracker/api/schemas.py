"""Pydantic models for the HTTP surface."""

from datetime import datetime

from pydantic import BaseModel, Field

from stoma_tracker.domain.conditions import AnnotatedFood, ConditionAnnotation
from stoma_tracker.domain.entries import ExtractionResult, ParsedLogEntry


class AnnotationOut(BaseModel):
    """Stoma annotation payload."""

    fodmap_level: str
    fiber_content: str
    spice_level: str
    processing_level: str
    friendliness: str
    digestibility_score: int
    gas_production: str
    common_triggers: list[str]
    irrigation_impact: str
    portion_guidance: str | None = None
    preparation_tips: list[str]
    alternatives: list[str]
    basis: str

    @classmethod
    def from_domain(cls, annotation: ConditionAnnotation) -> "AnnotationOut":
        """Build the payload from a domain annotation."""
        return cls(
            fodmap_level=annotation.fodmap_level.value,
            fiber_content=annotation.fiber_content.value,
            spice_level=annotation.spice_level.value,
            processing_level=annotation.processing_level.value,
            friendliness=annotation.friendliness.value,
            digestibility_score=annotation.digestibility_score,
            gas_production=annotation.gas_production.value,
            common_triggers=sorted(annotation.common_triggers),
            irrigation_impact=annotation.irrigation_impact.value,
            portion_guidance=annotation.portion_guidance,
            preparation_tips=list(annotation.preparation_tips),
            alternatives=list(annotation.alternatives),
            basis=annotation.basis.value,
        )


class FoodOut(BaseModel):
    """Food search result payload."""

    id: str
    name: str
    source: str
    brand: str | None = None
    ingredients: list[str]
    allergens: list[str]
    nutrition_per_100g: dict[str, float]
    categories: list[str]
    barcode: str | None = None
    image_url: str | None = None
    friendliness_score: int
    annotation: AnnotationOut | None = None

    @classmethod
    def from_domain(cls, item: AnnotatedFood) -> "FoodOut":
        """Build the payload from an annotated food."""
        record = item.record
        return cls(
            id=record.id,
            name=record.name,
            source=record.source.value,
            brand=record.brand,
            ingredients=list(record.ingredients),
            allergens=sorted(record.allergens),
            nutrition_per_100g=dict(record.nutrition_per_100g),
            categories=list(record.categories),
            barcode=record.barcode,
            image_url=record.image_url,
            friendliness_score=item.friendliness_score,
            annotation=(
                AnnotationOut.from_domain(item.annotation)
                if item.annotation is not None
                else None
            ),
        )


class FoodSearchOut(BaseModel):
    """Search response payload."""

    query: str
    results: list[FoodOut]


class ParseRequest(BaseModel):
    """Daily-log parse request."""

    description: str = Field(default="", max_length=5000)
    timestamp: datetime | None = None


class EntryOut(BaseModel):
    """Parsed log entry payload."""

    category: str
    description: str
    timestamp: datetime
    confidence: float
    details: dict[str, object]

    @classmethod
    def from_domain(cls, entry: ParsedLogEntry) -> "EntryOut":
        """Build the payload from a parsed entry."""
        return cls(
            category=entry.category.value,
            description=entry.description,
            timestamp=entry.timestamp,
            confidence=entry.confidence,
            details=dict(entry.details),
        )


class ParseResponse(BaseModel):
    """Daily-log parse response."""

    entries: list[EntryOut]
    strategy: str
    summary: str
    nothing_detected: bool

    @classmethod
    def from_domain(cls, result: ExtractionResult) -> "ParseResponse":
        """Build the payload from an extraction result."""
        return cls(
            entries=[EntryOut.from_domain(entry) for entry in result.entries],
            strategy=result.strategy.value,
            summary=result.summary,
            nothing_detected=result.nothing_detected,
        )
