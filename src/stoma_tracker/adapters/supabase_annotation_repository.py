"""Supabase repository for hand-reviewed stoma annotations."""

from dataclasses import dataclass

from supabase import Client

from stoma_tracker.domain.conditions import (
    ConditionAnnotation,
    Friendliness,
    IrrigationImpact,
    Level,
    ProcessingLevel,
    SpiceLevel,
)
from stoma_tracker.services.conditions import AnnotationRepository

ANNOTATION_TABLE = "stoma_food_data"


@dataclass
class SupabaseAnnotationRepository(AnnotationRepository):
    """Supabase implementation for the annotation store."""

    client: Client

    def lookup_annotation(
        self, food_id: str, food_name: str
    ) -> ConditionAnnotation | None:
        """Return the stored annotation for a food id, else by name."""
        response = (
            self.client.table(ANNOTATION_TABLE)
            .select("*")
            .eq("food_id", food_id)
            .limit(1)
            .execute()
        )
        if not response.data and food_name.strip():
            response = (
                self.client.table(ANNOTATION_TABLE)
                .select("*")
                .ilike("food_name", food_name.strip())
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _row_to_annotation(response.data[0])


def _row_to_annotation(row: dict[str, object]) -> ConditionAnnotation:
    """Convert a stored row into an annotation; invalid levels raise ValueError."""
    portion = row.get("recommended_portion_size")
    return ConditionAnnotation(
        fodmap_level=Level(str(row.get("fodmap_level") or "low")),
        fiber_content=Level(str(row.get("fiber_content") or "low")),
        spice_level=SpiceLevel(str(row.get("spice_level") or "none")),
        processing_level=ProcessingLevel(
            str(row.get("processing_level") or "minimally-processed")
        ),
        friendliness=Friendliness(str(row.get("gut_friendliness") or "moderate")),
        digestibility_score=int(row.get("digestibility_score") or 5),
        gas_production=Level(str(row.get("gas_production") or "low")),
        common_triggers=frozenset(_text_list(row.get("common_triggers"))),
        irrigation_impact=IrrigationImpact(
            str(row.get("irrigation_impact") or "slight")
        ),
        portion_guidance=portion if isinstance(portion, str) and portion else None,
        preparation_tips=tuple(_text_list(row.get("preparation_tips"))),
        alternatives=tuple(_text_list(row.get("alternative_suggestions"))),
    )


def _text_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]
