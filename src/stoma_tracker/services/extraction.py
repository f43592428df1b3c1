"""Multi-entry extraction from free-text daily logs."""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from stoma_tracker.domain.entries import (
    EntryCategory,
    ExtractionResult,
    ExtractionStrategy,
    MealSlot,
    ParsedLogEntry,
    RemoteEntry,
    RemoteExtract,
)
from stoma_tracker.services.local_extraction import LocalEntryParser

_logger = logging.getLogger(__name__)

REMOTE_CATEGORIES = (
    "breakfast",
    "lunch",
    "dinner",
    "snack",
    "drink",
    "symptom",
    "output",
    "irrigation",
    "medication",
)

ENTRY_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "entries": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "category": {"type": "string", "enum": list(REMOTE_CATEGORIES)},
                    "description": {"type": "string"},
                    "timestamp": {"anyOf": [{"type": "string"}, {"type": "null"}]},
                    "offset_minutes": {"anyOf": [{"type": "integer"}, {"type": "null"}]},
                    "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
                    "details": {"type": "object"},
                },
                "required": ["category", "description", "confidence"],
            },
        },
        "summary": {"anyOf": [{"type": "string"}, {"type": "null"}]},
    },
    "required": ["entries"],
}

EXTRACTION_PROMPT = (
    "Split this ostomy daily log into separate entries. "
    "Each entry is a meal (breakfast, lunch, dinner, snack or drink), a symptom, "
    "an output, an irrigation or a medication. "
    "Give each entry a short description, a confidence (0-1) and, when the text "
    "states a time, an ISO 8601 timestamp on the reference day. "
    "Put food names, amounts, severity and similar specifics in details."
)

_CATEGORY_ALIASES: dict[str, tuple[EntryCategory, dict[str, object]]] = {
    "breakfast": (EntryCategory.MEAL, {"meal_type": MealSlot.BREAKFAST.value}),
    "lunch": (EntryCategory.MEAL, {"meal_type": MealSlot.LUNCH.value}),
    "dinner": (EntryCategory.MEAL, {"meal_type": MealSlot.DINNER.value}),
    "supper": (EntryCategory.MEAL, {"meal_type": MealSlot.DINNER.value}),
    "snack": (EntryCategory.MEAL, {"meal_type": MealSlot.SNACK.value}),
    "drink": (EntryCategory.MEAL, {"meal_type": MealSlot.DRINK.value}),
    "drinks": (EntryCategory.MEAL, {"meal_type": MealSlot.DRINK.value}),
    "beverage": (EntryCategory.MEAL, {"meal_type": MealSlot.DRINK.value}),
    "meal": (EntryCategory.MEAL, {}),
    "symptom": (EntryCategory.SYMPTOM, {}),
    "symptoms": (EntryCategory.SYMPTOM, {}),
    "gas": (EntryCategory.SYMPTOM, {"symptom_type": "gas"}),
    "pain": (EntryCategory.SYMPTOM, {"symptom_type": "pain"}),
    "output": (EntryCategory.OUTPUT, {}),
    "bowel": (EntryCategory.OUTPUT, {}),
    "stool": (EntryCategory.OUTPUT, {}),
    "irrigation": (EntryCategory.IRRIGATION, {}),
    "medication": (EntryCategory.MEDICATION, {}),
    "medicine": (EntryCategory.MEDICATION, {}),
    "supplement": (EntryCategory.MEDICATION, {}),
}


class MalformedExtractionError(ValueError):
    """Raised when a remote extraction cannot be mapped onto entries."""


class EntryClient(Protocol):
    """Interface for LLM entry extraction."""

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
        """Return structured extraction data."""


@dataclass
class EntryExtractor:
    """Try the language model first and fall back to local parsing."""

    local_parser: LocalEntryParser
    client: EntryClient | None = None
    model: str = "gpt-5.2"
    reasoning_effort: str | None = None
    store: bool = False
    timeout_seconds: float = 20.0
    debug: bool = False

    async def extract(
        self, description: str, reference_time: datetime
    ) -> list[ParsedLogEntry]:
        """Return typed entries for a free-text description."""
        result = await self.extract_result(description, reference_time)
        return result.entries

    async def extract_result(
        self, description: str, reference_time: datetime
    ) -> ExtractionResult:
        """Return entries along with the strategy that produced them."""
        text = description.strip()
        if not text:
            return ExtractionResult(
                entries=[],
                strategy=ExtractionStrategy.LOCAL,
                summary="Nothing to parse",
            )
        if self.client is not None:
            try:
                entries, summary = await self._extract_remote(
                    self.client, text, reference_time
                )
            except Exception as exc:  # noqa: BLE001
                _logger.warning(
                    "Remote extraction failed, falling back to local parsing: %r", exc
                )
            else:
                if self.debug:
                    _logger.info("Remote extraction: entries=%s", len(entries))
                return ExtractionResult(
                    entries=entries,
                    strategy=ExtractionStrategy.REMOTE,
                    summary=summary or _summarize(entries),
                )
        entries = await self.local_parser.parse(text, reference_time)
        if self.debug:
            _logger.info("Local extraction: entries=%s", len(entries))
        return ExtractionResult(
            entries=entries,
            strategy=ExtractionStrategy.LOCAL,
            summary=_summarize(entries),
        )

    async def _extract_remote(
        self, client: EntryClient, text: str, reference_time: datetime
    ) -> tuple[list[ParsedLogEntry], str | None]:
        payload = json.dumps(
            {"free_text": text, "reference_timestamp": reference_time.isoformat()}
        )
        raw = await asyncio.wait_for(
            client.extract(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=EXTRACTION_PROMPT,
                text=payload,
                schema=ENTRY_SCHEMA,
            ),
            timeout=self.timeout_seconds,
        )
        extract = RemoteExtract.model_validate(raw)
        entries = [to_parsed_entry(entry, reference_time) for entry in extract.entries]
        return sorted(entries, key=lambda entry: entry.timestamp), extract.summary


def to_parsed_entry(entry: RemoteEntry, reference_time: datetime) -> ParsedLogEntry:
    """Map a model-produced entry onto a parsed log entry."""
    key = entry.category.strip().casefold()
    if key not in _CATEGORY_ALIASES:
        raise MalformedExtractionError(f"Unknown entry category: {entry.category}")
    category, implied = _CATEGORY_ALIASES[key]
    details: dict[str, object] = dict(entry.details or {})
    for name, value in implied.items():
        details.setdefault(name, value)
    details.setdefault("method", "remote")
    return ParsedLogEntry(
        category=category,
        description=entry.description.strip(),
        timestamp=_resolve_timestamp(entry, reference_time),
        confidence=entry.confidence,
        details=details,
    )


def _resolve_timestamp(entry: RemoteEntry, reference_time: datetime) -> datetime:
    if entry.timestamp:
        try:
            parsed = datetime.fromisoformat(entry.timestamp.strip())
        except ValueError as exc:
            raise MalformedExtractionError(
                f"Unparseable timestamp: {entry.timestamp}"
            ) from exc
        return _align_timezone(parsed, reference_time)
    if entry.offset_minutes is not None:
        return reference_time + timedelta(minutes=entry.offset_minutes)
    return reference_time


def _align_timezone(value: datetime, reference_time: datetime) -> datetime:
    """Express a parsed timestamp in the reference time's awareness and zone."""
    if reference_time.tzinfo is None:
        if value.tzinfo is None:
            return value
        return value.astimezone(UTC).replace(tzinfo=None)
    if value.tzinfo is None:
        return value.replace(tzinfo=reference_time.tzinfo)
    return value.astimezone(reference_time.tzinfo)


def _summarize(entries: list[ParsedLogEntry]) -> str:
    if not entries:
        return "Nothing recognized; add entries manually"
    counts: dict[str, int] = {}
    for entry in entries:
        counts[entry.category.value] = counts.get(entry.category.value, 0) + 1
    parts = ", ".join(f"{count} {name}" for name, count in counts.items())
    return f"Detected {len(entries)} entries ({parts})"
