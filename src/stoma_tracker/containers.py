"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from stoma_tracker.adapters.fdc_client import HttpxFdcProvider
from stoma_tracker.adapters.local_provider import LocalCuratedProvider
from stoma_tracker.adapters.open_food_facts_client import HttpxOpenFoodFactsProvider
from stoma_tracker.adapters.openai_entry_client import OpenAIEntryClient
from stoma_tracker.adapters.spoonacular_client import HttpxSpoonacularProvider
from stoma_tracker.adapters.supabase_annotation_repository import (
    SupabaseAnnotationRepository,
)
from stoma_tracker.config import Settings, parse_provider_ids
from stoma_tracker.services.aggregator import FoodAggregator, FoodProvider
from stoma_tracker.services.cache import InMemoryCache
from stoma_tracker.services.conditions import ConditionResolver
from stoma_tracker.services.curated import default_curated_dataset
from stoma_tracker.services.extraction import EntryExtractor
from stoma_tracker.services.food_search import FoodSearchService
from stoma_tracker.services.local_extraction import LocalEntryParser


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    food_search_service: FoodSearchService
    entry_extractor: EntryExtractor
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    dataset = default_curated_dataset()
    cache = InMemoryCache()

    providers: list[FoodProvider] = [
        HttpxOpenFoodFactsProvider.create(base_url=resolved_settings.off_base_url),
        HttpxFdcProvider.create(
            api_key=resolved_settings.fdc_api_key,
            base_url=resolved_settings.fdc_base_url,
        ),
    ]
    if resolved_settings.spoonacular_api_key:
        providers.append(
            HttpxSpoonacularProvider.create(
                api_key=resolved_settings.spoonacular_api_key,
                base_url=resolved_settings.spoonacular_base_url,
            )
        )
    aggregator = FoodAggregator(
        providers=providers,
        local_provider=LocalCuratedProvider(
            dataset, fuzzy_threshold=resolved_settings.similarity_threshold
        ),
        default_providers=parse_provider_ids(resolved_settings.default_providers),
        timeout_seconds=resolved_settings.provider_timeout_seconds,
        debug=resolved_settings.debug,
    )

    repository = None
    if resolved_settings.supabase_url and resolved_settings.supabase_service_key:
        repository = SupabaseAnnotationRepository(
            create_client(
                resolved_settings.supabase_url, resolved_settings.supabase_service_key
            )
        )
    resolver = ConditionResolver(
        dataset=dataset,
        repository=repository,
        cache=cache,
        fuzzy_threshold=resolved_settings.similarity_threshold,
    )
    food_search_service = FoodSearchService(
        aggregator=aggregator,
        resolver=resolver,
        cache=cache,
        search_ttl_seconds=resolved_settings.search_cache_ttl_seconds,
        debug=resolved_settings.debug,
    )

    entry_client = (
        OpenAIEntryClient.create(resolved_settings.openai_api_key)
        if resolved_settings.openai_api_key
        else None
    )
    entry_extractor = EntryExtractor(
        local_parser=LocalEntryParser(
            aggregator=aggregator,
            dataset=dataset,
            grounding_providers=parse_provider_ids(
                resolved_settings.grounding_providers
            ),
            similarity_threshold=resolved_settings.similarity_threshold,
        ),
        client=entry_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        timeout_seconds=resolved_settings.extraction_timeout_seconds,
        debug=resolved_settings.debug,
    )

    async def close_resources() -> None:
        for provider in providers:
            await provider.close()
        if entry_client is not None:
            await entry_client.close()

    return AppContainer(
        settings=resolved_settings,
        food_search_service=food_search_service,
        entry_extractor=entry_extractor,
        close_resources=close_resources,
    )
