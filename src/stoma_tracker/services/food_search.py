"""Food search combining aggregation, annotation and ranking."""

import logging
from dataclasses import dataclass

from stoma_tracker.domain.conditions import AnnotatedFood
from stoma_tracker.domain.foods import FoodRecord, ProviderId, SearchOptions
from stoma_tracker.services.aggregator import FoodAggregator
from stoma_tracker.services.cache import Cache
from stoma_tracker.services.conditions import (
    ConditionResolver,
    friendliness_score,
    rank_by_friendliness,
)

_logger = logging.getLogger(__name__)


@dataclass
class FoodSearchService:
    """Inbound search contract used by the HTTP layer."""

    aggregator: FoodAggregator
    resolver: ConditionResolver
    cache: Cache
    search_ttl_seconds: int = 600
    debug: bool = False

    async def search(
        self,
        query: str,
        options: SearchOptions | None = None,
        annotate: bool = True,
    ) -> list[AnnotatedFood]:
        """Search, annotate and rank foods, friendliest first."""
        resolved = options or SearchOptions()
        if not query.strip():
            return []
        records = await self._aggregate(query, resolved)
        if not annotate:
            return [
                AnnotatedFood(
                    record=record,
                    annotation=None,
                    friendliness_score=friendliness_score(None),
                )
                for record in records
            ]
        annotated = [self._annotate(record) for record in records]
        return rank_by_friendliness(annotated)

    async def lookup_barcode(
        self, code: str, providers: frozenset[ProviderId] | None = None
    ) -> AnnotatedFood | None:
        """Find a product by barcode and annotate it."""
        record = await self.aggregator.lookup_barcode(code, providers)
        if record is None:
            return None
        return self._annotate(record)

    async def _aggregate(self, query: str, options: SearchOptions) -> list[FoodRecord]:
        providers = (
            ",".join(sorted(provider.value for provider in options.providers))
            if options.providers is not None
            else "default"
        )
        cache_key = f"search:{query.strip().casefold()}:{providers}:{options.limit}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached
        records = await self.aggregator.search(query, options)
        if records:
            self.cache.set(cache_key, records, ttl_seconds=self.search_ttl_seconds)
        if self.debug:
            _logger.info("Food search: query=%s results=%s", query, len(records))
        return records

    def _annotate(self, record: FoodRecord) -> AnnotatedFood:
        annotation = self.resolver.annotate(record)
        return AnnotatedFood(
            record=record,
            annotation=annotation,
            friendliness_score=friendliness_score(annotation),
        )
