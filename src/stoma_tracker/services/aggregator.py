"""Concurrent food search across providers with name de-duplication."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeVar

from stoma_tracker.domain.foods import (
    PROVIDER_PRIORITY,
    FoodRecord,
    ProviderId,
    SearchOptions,
)

MAX_RESULTS = 50

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class FoodProvider(Protocol):
    """Interface implemented by every food data source."""

    provider_id: ProviderId

    async def search_by_query(self, query: str, limit: int) -> list[FoodRecord]:
        """Search the provider and return translated records."""

    async def get_by_barcode(self, code: str) -> FoodRecord | None:
        """Look up a single record by barcode."""

    async def close(self) -> None:
        """Release provider resources."""


@dataclass(frozen=True)
class _Settled:
    provider_id: ProviderId
    value: object | None
    error: BaseException | None = None


@dataclass
class FoodAggregator:
    """Fan a query out to providers and reconcile the results."""

    providers: Sequence[FoodProvider]
    local_provider: FoodProvider
    default_providers: frozenset[ProviderId] | None = None
    timeout_seconds: float = 10.0
    retry_attempts: int = 0
    retry_delay_seconds: float = 0.3
    debug: bool = False

    async def search(
        self, query: str, options: SearchOptions | None = None
    ) -> list[FoodRecord]:
        """Search all enabled providers and return a de-duplicated list."""
        resolved = options or SearchOptions()
        cleaned = query.strip()
        if not cleaned:
            return []
        limit = max(1, min(resolved.limit, MAX_RESULTS))
        targets = [*self._enabled(resolved.providers), self.local_provider]
        settled = await asyncio.gather(
            *(
                self._settle(
                    provider,
                    lambda p=provider: p.search_by_query(cleaned, limit),
                    action="search",
                )
                for provider in targets
            )
        )
        records: list[FoodRecord] = []
        for outcome in settled:
            if isinstance(outcome.value, list):
                records.extend(outcome.value)
        merged = deduplicate(records)[:limit]
        if self.debug:
            _logger.info(
                "Aggregated search: query=%s providers=%s results=%s",
                cleaned,
                [outcome.provider_id.value for outcome in settled],
                len(merged),
            )
        return merged

    async def lookup_barcode(
        self, code: str, providers: frozenset[ProviderId] | None = None
    ) -> FoodRecord | None:
        """Return the highest-priority barcode hit, if any provider has one."""
        cleaned = code.strip()
        if not cleaned:
            return None
        targets = self._enabled(providers)
        settled = await asyncio.gather(
            *(
                self._settle(
                    provider,
                    lambda p=provider: p.get_by_barcode(cleaned),
                    action="barcode",
                )
                for provider in targets
            )
        )
        hits = [
            outcome.value
            for outcome in settled
            if isinstance(outcome.value, FoodRecord)
        ]
        ranked = sorted(hits, key=lambda record: _priority(record.source))
        return ranked[0] if ranked else None

    def _enabled(self, requested: frozenset[ProviderId] | None) -> list[FoodProvider]:
        wanted = requested if requested is not None else self.default_providers
        return [
            provider
            for provider in self.providers
            if provider.provider_id is not ProviderId.LOCAL
            and (wanted is None or provider.provider_id in wanted)
        ]

    async def _settle(
        self,
        provider: FoodProvider,
        func: Callable[[], Awaitable[T]],
        *,
        action: str,
    ) -> _Settled:
        """Run one provider call and capture its outcome instead of raising."""
        try:
            value = await self._call_with_retry(
                func, action=f"{provider.provider_id.value}:{action}"
            )
        except Exception as exc:  # noqa: BLE001
            _logger.warning(
                "Provider %s %s failed (status=%s): %r",
                provider.provider_id.value,
                action,
                _status_code_from_exception(exc),
                exc,
            )
            return _Settled(provider_id=provider.provider_id, value=None, error=exc)
        return _Settled(provider_id=provider.provider_id, value=value)

    async def _call_with_retry(
        self, func: Callable[[], Awaitable[T]], *, action: str
    ) -> T:
        """Call an async function with a timeout and a short retry."""
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(func(), timeout=self.timeout_seconds)
            except Exception as exc:
                attempt += 1
                if self.debug:
                    _logger.info(
                        "Provider call %s failed (attempt %s/%s): %r",
                        action,
                        attempt,
                        self.retry_attempts + 1,
                        exc,
                    )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)


def deduplicate(records: list[FoodRecord]) -> list[FoodRecord]:
    """Keep the first record per normalized name under provider priority."""
    ordered = sorted(records, key=lambda record: _priority(record.source))
    seen: set[str] = set()
    unique: list[FoodRecord] = []
    for record in ordered:
        key = record.name_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


def _priority(source: ProviderId) -> int:
    return PROVIDER_PRIORITY.index(source)


def _status_code_from_exception(exc: BaseException) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
