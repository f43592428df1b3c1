"""Curated dataset exposed through the provider interface."""

from dataclasses import dataclass

from stoma_tracker.domain.foods import FoodRecord, ProviderId
from stoma_tracker.services.curated import CuratedDataset


@dataclass
class LocalCuratedProvider:
    """In-process provider backed by the curated table."""

    dataset: CuratedDataset
    fuzzy_threshold: float = 0.7
    provider_id: ProviderId = ProviderId.LOCAL

    async def search_by_query(self, query: str, limit: int) -> list[FoodRecord]:
        """Search the curated table."""
        foods = self.dataset.search(query, limit, threshold=self.fuzzy_threshold)
        return [self.dataset.to_record(food) for food in foods]

    async def get_by_barcode(self, code: str) -> FoodRecord | None:
        """Curated entries carry no barcodes."""
        return None

    async def close(self) -> None:
        """Nothing to release."""
