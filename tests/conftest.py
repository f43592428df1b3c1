"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from stoma_tracker.adapters.local_provider import LocalCuratedProvider
from stoma_tracker.config import Settings
from stoma_tracker.containers import AppContainer
from stoma_tracker.domain.conditions import ConditionAnnotation
from stoma_tracker.domain.foods import FoodRecord, ProviderId
from stoma_tracker.services.aggregator import FoodAggregator
from stoma_tracker.services.cache import InMemoryCache
from stoma_tracker.services.conditions import AnnotationRepository, ConditionResolver
from stoma_tracker.services.curated import CuratedDataset, default_curated_dataset
from stoma_tracker.services.extraction import EntryClient, EntryExtractor
from stoma_tracker.services.food_search import FoodSearchService
from stoma_tracker.services.local_extraction import LocalEntryParser


def make_record(
    name: str, source: ProviderId = ProviderId.CROWD, record_id: str | None = None
) -> FoodRecord:
    return FoodRecord(
        id=record_id or f"{source.value}:{name.casefold().replace(' ', '-')}",
        name=name,
        source=source,
    )


@dataclass
class FakeProvider:
    """Provider returning canned records or raising a canned error."""

    provider_id: ProviderId
    records: list[FoodRecord] = field(default_factory=list)
    barcodes: dict[str, FoodRecord] = field(default_factory=dict)
    error: Exception | None = None
    delay_seconds: float = 0.0
    queries: list[tuple[str, int]] = field(default_factory=list)
    closed: bool = False

    async def search_by_query(self, query: str, limit: int) -> list[FoodRecord]:
        self.queries.append((query, limit))
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.records[:limit]

    async def get_by_barcode(self, code: str) -> FoodRecord | None:
        if self.error is not None:
            raise self.error
        return self.barcodes.get(code)

    async def close(self) -> None:
        self.closed = True


@dataclass
class InMemoryAnnotationRepository(AnnotationRepository):
    """Annotation store keyed by food id."""

    annotations: dict[str, ConditionAnnotation] = field(default_factory=dict)
    error: Exception | None = None
    lookups: list[tuple[str, str]] = field(default_factory=list)

    def lookup_annotation(
        self, food_id: str, food_name: str
    ) -> ConditionAnnotation | None:
        self.lookups.append((food_id, food_name))
        if self.error is not None:
            raise self.error
        return self.annotations.get(food_id)


@dataclass
class FakeEntryClient(EntryClient):
    """Entry client returning a fixed payload or raising."""

    payload: dict[str, object] = field(default_factory=lambda: {"entries": []})
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        text: str,
        schema: dict[str, object],
    ) -> dict[str, object]:
        self.calls.append({"model": model, "text": text, "schema": schema})
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    """Chainable stand-in for a Supabase table query."""

    name: str
    responses: list[list[dict[str, object]]] = field(default_factory=list)
    last_filters: list[tuple[str, str, object]] = field(default_factory=list)
    selected: list[str] = field(default_factory=list)

    def queue(self, data: list[dict[str, object]]) -> None:
        self.responses.append(data)

    def select(self, *columns: str) -> "FakeTable":
        self.selected.extend(columns)
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("eq", column, value))
        return self

    def ilike(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("ilike", column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        data = self.responses.pop(0) if self.responses else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabase:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


@pytest.fixture
def dataset() -> CuratedDataset:
    return default_curated_dataset()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key=None,
        fdc_api_key="fdc-key",
        spoonacular_api_key=None,
        supabase_url=None,
        supabase_service_key=None,
        default_providers="crowd,government",
        grounding_providers="",
    )


@pytest.fixture
def crowd_provider() -> FakeProvider:
    return FakeProvider(
        provider_id=ProviderId.CROWD,
        records=[
            make_record("Nutella", ProviderId.CROWD),
            make_record("Spicy Chili Crisps", ProviderId.CROWD),
        ],
    )


@pytest.fixture
def government_provider() -> FakeProvider:
    return FakeProvider(
        provider_id=ProviderId.GOVERNMENT,
        records=[make_record("Oatmeal, cooked", ProviderId.GOVERNMENT)],
    )


@pytest.fixture
def aggregator(
    dataset: CuratedDataset,
    crowd_provider: FakeProvider,
    government_provider: FakeProvider,
) -> FoodAggregator:
    return FoodAggregator(
        providers=[crowd_provider, government_provider],
        local_provider=LocalCuratedProvider(dataset),
        default_providers=frozenset({ProviderId.CROWD, ProviderId.GOVERNMENT}),
        timeout_seconds=1.0,
    )


@pytest.fixture
def food_search_service(
    aggregator: FoodAggregator, dataset: CuratedDataset
) -> FoodSearchService:
    cache = InMemoryCache()
    return FoodSearchService(
        aggregator=aggregator,
        resolver=ConditionResolver(dataset=dataset, cache=cache),
        cache=cache,
    )


@pytest.fixture
def entry_client() -> FakeEntryClient:
    return FakeEntryClient()


@pytest.fixture
def local_parser(aggregator: FoodAggregator, dataset: CuratedDataset) -> LocalEntryParser:
    return LocalEntryParser(aggregator=aggregator, dataset=dataset)


@pytest.fixture
def container(
    settings: Settings,
    food_search_service: FoodSearchService,
    local_parser: LocalEntryParser,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        food_search_service=food_search_service,
        entry_extractor=EntryExtractor(local_parser=local_parser),
        close_resources=close_resources,
    )
