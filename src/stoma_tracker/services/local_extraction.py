"""Deterministic, rule-based parsing of free-text daily logs."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from stoma_tracker.domain.entries import EntryCategory, MealSlot, ParsedLogEntry
from stoma_tracker.domain.foods import (
    FoodRecord,
    ProviderId,
    SearchOptions,
    normalize_name,
)
from stoma_tracker.services.aggregator import FoodAggregator
from stoma_tracker.services.curated import CuratedDataset
from stoma_tracker.services.similarity import best_similarity

_logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = "high"
MEDIUM_CONFIDENCE = "medium"
FOOD_CONFIDENCE = {HIGH_CONFIDENCE: 1.0, MEDIUM_CONFIDENCE: 0.7}
SYMPTOM_CONFIDENCE = 0.8
OUTPUT_CONFIDENCE = 0.9
IRRIGATION_CONFIDENCE = 0.9
MEDICATION_CONFIDENCE = 0.7

_CLAUSE_SPLIT = re.compile(
    r"(?:(?<!\d)\.|\.(?!\d)|[;!?\n,]|\b(?:and then|then|after that|afterwards)\b)",
    re.IGNORECASE,
)
_DOTTED_MERIDIEM = re.compile(r"(?<![a-z])([ap])\.\s?m\b(\.?)", re.IGNORECASE)
_TOKEN = re.compile(r"[a-z0-9']+")
_TIME_TOKEN = re.compile(r"^(?:\d{1,2}(?:am|pm)|\d{1,2}|am|pm|o'clock)$")

_DAY_PARTS = {
    "morning": (8, 0),
    "noon": (12, 0),
    "midday": (12, 0),
    "afternoon": (14, 0),
    "evening": (19, 0),
    "tonight": (21, 0),
    "night": (21, 0),
    "midnight": (0, 0),
}

_HH_MM = re.compile(r"\b(\d{1,2}):(\d{2})\s*(am|pm|a\.m\.|p\.m\.)?", re.IGNORECASE)
_BARE_HOUR = re.compile(r"\b(\d{1,2})\s*(am|pm|a\.m\.|p\.m\.)", re.IGNORECASE)
_DOTTED = re.compile(r"\b(\d{1,2})\.(\d{2})\s*(am|pm|a\.m\.|p\.m\.)?", re.IGNORECASE)
_DAY_PART = re.compile(r"\b(" + "|".join(_DAY_PARTS) + r")\b", re.IGNORECASE)
_RELATIVE = re.compile(
    r"\b(\d+|an?|one|two|three|four|half an?)\s*(hours?|hrs?|minutes?|mins?)\s+"
    r"(?:later|after(?:wards)?)\b",
    re.IGNORECASE,
)
_WORD_NUMBERS = {"a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4}
_TimeHandler = Callable[[re.Match[str]], tuple[int, int] | None]

_SLOT_NAMES = {
    "breakfast": MealSlot.BREAKFAST,
    "lunch": MealSlot.LUNCH,
    "dinner": MealSlot.DINNER,
    "supper": MealSlot.DINNER,
    "snack": MealSlot.SNACK,
    "snacks": MealSlot.SNACK,
}
_SLOT_PATTERN = re.compile(r"\b(" + "|".join(_SLOT_NAMES) + r")\b", re.IGNORECASE)

_UNITS = (
    r"cups?|tablespoons?|tbsp|teaspoons?|tsp|ounces?|oz|slices?|pieces?|bowls?|"
    r"glass(?:es)?|mugs?|plates?|servings?|handfuls?|grams?|g|ml|litres?|liters?"
)
_AMOUNT_PATTERNS = (
    re.compile(
        r"\b(?:\d+(?:\.\d+)?\s*|(?:an?|one|two|three|four|five|half(?: an?)?)\s+)"
        r"(?:" + _UNITS + r")\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b\d+\s*(?:small|medium|large)\b", re.IGNORECASE),
    re.compile(r"\b(?:half|quarter|a whole)\b", re.IGNORECASE),
    re.compile(
        r"\b(\d+)\s+(?!(?:am|pm|hours?|hrs?|minutes?|mins?)\b)[a-z]", re.IGNORECASE
    ),
)


@dataclass(frozen=True)
class _KeywordGroup:
    key: str
    label: str
    pattern: re.Pattern[str]


def _group(key: str, label: str, pattern: str) -> _KeywordGroup:
    return _KeywordGroup(key=key, label=label, pattern=re.compile(pattern, re.IGNORECASE))


SYMPTOM_GROUPS: tuple[_KeywordGroup, ...] = (
    _group(
        "gas",
        "Gas/bloating",
        r"\b(?:gas|gassy|bloat(?:ed|ing)?|flatulen(?:ce|t)|wind|windy|farting)\b",
    ),
    _group(
        "pain",
        "Abdominal pain/cramping",
        r"\b(?:pain(?:ful)?|cramp(?:s|ing|y)?|ache|aching|sore(?:ness)?|discomfort)\b",
    ),
    _group("nausea", "Nausea", r"\b(?:nausea|nauseous|nauseated|queasy|sick)\b"),
    _group("heartburn", "Heartburn", r"\b(?:heartburn|reflux|indigestion)\b"),
    _group("diarrhea", "Diarrhea", r"\b(?:diarrh(?:o)?ea|the runs)\b"),
    _group(
        "constipation",
        "Constipation",
        r"\b(?:constipat\w*|backed up|blocked up)\b",
    ),
)

_STOOL = r"(?:output|stools?|bm|bowel movements?|poops?|motions?)"
OUTPUT_GROUPS: tuple[_KeywordGroup, ...] = (
    _group(
        "loose",
        "Loose output",
        rf"\b(?:loose|watery|runny|liquid)\s+{_STOOL}\b|"
        rf"\b{_STOOL}\s+(?:was\s+|were\s+)?(?:very\s+)?(?:loose|watery|runny|liquid)\b",
    ),
    _group(
        "normal",
        "Normal output",
        rf"\b(?:normal|formed|solid)\s+{_STOOL}\b|"
        rf"\b{_STOOL}\s+(?:was\s+|were\s+)?(?:normal|formed|solid)\b",
    ),
    _group(
        "pouch_change",
        "Pouch change",
        r"\b(?:chang(?:ed|e|ing)|empt(?:ied|y|ying)|swapped)\b[\w\s]*?\b"
        r"(?:pouch|bag|appliance)\b|\b(?:pouch|bag|appliance) change\b",
    ),
    _group("bowel_movement", "Bowel movement", rf"\b{_STOOL}\b|\bpooped\b"),
)
_SPECIFIC_OUTPUTS = {"loose", "normal"}

_IRRIGATION = re.compile(r"\b(?:irrigat\w*|flush(?:ed|ing)?)\b", re.IGNORECASE)
_IRRIGATION_FLOW = re.compile(
    r"\b(smooth(?:ly)?|easy|easily|difficult|slow(?:ly)?|blocked|hard|resistance)\b",
    re.IGNORECASE,
)
_IRRIGATION_COMPLETION = re.compile(
    r"\b(complete(?:ly)?|good|partial(?:ly)?|incomplete|poor)\b", re.IGNORECASE
)
_MEDICATION = re.compile(
    r"\b(loperamide|imodium|omeprazole|probiotics?|laxatives?|fybogel|movicol|"
    r"pills?|tablets?|capsules?|medication|medicine|meds|supplements?|vitamins?)\b",
    re.IGNORECASE,
)
_DOSE = re.compile(
    r"\b\d+(?:\.\d+)?\s*(?:mg|mcg|ml|g|tablets?|pills?|capsules?)\b", re.IGNORECASE
)

_SEVERITY = re.compile(
    r"\b(mild(?:ly)?|slight(?:ly)?|a bit|a little|moderate(?:ly)?|quite bad|bad(?:ly)?|"
    r"severe(?:ly)?|terrible|awful|extreme(?:ly)?|really bad|very bad)\b",
    re.IGNORECASE,
)
_SEVERITY_LEVELS = {
    "mild": "mild",
    "mildly": "mild",
    "slight": "mild",
    "slightly": "mild",
    "a bit": "mild",
    "a little": "mild",
    "moderate": "moderate",
    "moderately": "moderate",
    "quite bad": "moderate",
    "bad": "moderate",
    "badly": "moderate",
    "severe": "severe",
    "severely": "severe",
    "terrible": "severe",
    "awful": "severe",
    "extreme": "severe",
    "extremely": "severe",
    "really bad": "severe",
    "very bad": "severe",
}
_VOLUME = re.compile(r"\b(small|medium|large|full|big)\b", re.IGNORECASE)
_CONSISTENCY = re.compile(
    r"\b(liquid|watery|loose|soft|formed|solid|hard|thick)\b", re.IGNORECASE
)

_STOPWORDS = frozenset(
    {
        "i", "i'm", "i've", "me", "my", "we", "us", "our", "you", "it", "it's",
        "had", "have", "has", "having", "ate", "eat", "eaten", "eating", "drank",
        "drink", "drinking", "drinks", "a", "an", "the", "some", "any", "of", "for",
        "with", "without", "and", "or", "but", "so", "at", "around", "about", "in",
        "on", "to", "into", "from", "by", "then", "after", "before", "later", "felt",
        "feel", "feeling", "feels", "was", "were", "is", "are", "be", "been", "this",
        "that", "these", "those", "very", "really", "quite", "bit", "little", "lot",
        "lots", "today", "yesterday", "again", "also", "just", "got", "get", "went",
        "did", "do", "not", "no", "too", "much", "more", "less", "few", "like",
        "ish", "approximately", "roughly", "took", "take", "taking", "up",
        "out", "off", "over", "all", "plus", "extra", "mild", "slight", "moderate",
        "severe", "bad", "terrible", "small", "medium", "large", "full", "half",
        "quarter", "cup", "cups", "slice", "slices", "piece", "pieces", "bowl",
        "bowls", "glass", "glasses", "mug", "plate", "serving", "hours", "hour",
        "minutes", "minute", "mins", "hrs",
    }
    | set(_DAY_PARTS)
    | set(_SLOT_NAMES)
)


@dataclass(frozen=True)
class GroundedFood:
    """A food name grounded against the aggregator."""

    record: FoodRecord
    matched_text: str
    confidence: str
    position: int
    amount: str | None = None


@dataclass
class _Clause:
    text: str
    timestamp: datetime
    slot: MealSlot
    timing: str | None = None
    foods: list[GroundedFood] = field(default_factory=list)


@dataclass
class LocalEntryParser:
    """Keyword and regex based extraction with food-name grounding."""

    aggregator: FoodAggregator
    dataset: CuratedDataset
    grounding_providers: frozenset[ProviderId] = frozenset()
    similarity_threshold: float = 0.7
    candidate_limit: int = 5

    async def parse(
        self, description: str, reference_time: datetime
    ) -> list[ParsedLogEntry]:
        """Split a description into typed entries; never raises on text input."""
        if not description.strip():
            return []
        clauses = split_clauses(description, reference_time)
        grounding_cache: dict[str, GroundedFood | None] = {}
        for clause in clauses:
            clause.foods = await self._extract_foods(clause.text, grounding_cache)
            _attach_amount(clause)

        entries: list[ParsedLogEntry] = []
        entries.extend(_meal_entries(clauses))
        entries.extend(_symptom_entries(clauses))
        entries.extend(_output_entries(clauses))
        entries.extend(_irrigation_entries(clauses))
        entries.extend(_medication_entries(clauses))
        _logger.debug(
            "Local parsing: clauses=%s entries=%s", len(clauses), len(entries)
        )
        return sorted(entries, key=lambda entry: entry.timestamp)

    async def _extract_foods(
        self, text: str, cache: dict[str, GroundedFood | None]
    ) -> list[GroundedFood]:
        tokens = _TOKEN.findall(text.casefold())
        consumed: set[int] = set()
        seen_ids: set[str] = set()
        foods: list[GroundedFood] = []
        for size in (3, 2, 1):
            for start in range(len(tokens) - size + 1):
                span = range(start, start + size)
                if consumed.intersection(span):
                    continue
                window = tokens[start : start + size]
                if not _is_candidate_window(window):
                    continue
                phrase = " ".join(window)
                if phrase not in cache:
                    cache[phrase] = await self._ground(phrase)
                grounded = cache[phrase]
                if grounded is None or grounded.record.id in seen_ids:
                    continue
                seen_ids.add(grounded.record.id)
                consumed.update(span)
                foods.append(
                    GroundedFood(
                        record=grounded.record,
                        matched_text=phrase,
                        confidence=grounded.confidence,
                        position=start,
                    )
                )
        return sorted(foods, key=lambda food: food.position)

    async def _ground(self, phrase: str) -> GroundedFood | None:
        """Return the best acceptable aggregator hit for a phrase."""
        records = await self.aggregator.search(
            phrase,
            SearchOptions(providers=self.grounding_providers, limit=self.candidate_limit),
        )
        key = normalize_name(phrase)
        best: tuple[float, FoodRecord] | None = None
        for record in records:
            names = [record.name]
            if record.source is ProviderId.LOCAL:
                names.extend(self.dataset.names_for(record.id))
            if any(normalize_name(name) == key for name in names):
                return GroundedFood(
                    record=record,
                    matched_text=phrase,
                    confidence=HIGH_CONFIDENCE,
                    position=0,
                )
            # Single words only ground on an exact name or alias.
            if " " not in phrase:
                continue
            score = best_similarity(phrase, names)
            if score >= self.similarity_threshold and (best is None or score > best[0]):
                best = (score, record)
        if best is None:
            return None
        return GroundedFood(
            record=best[1],
            matched_text=phrase,
            confidence=MEDIUM_CONFIDENCE,
            position=0,
        )


def split_clauses(description: str, reference_time: datetime) -> list["_Clause"]:
    """Split text into clauses, each carrying a resolved time and meal slot."""
    normalized = _DOTTED_MERIDIEM.sub(r"\1m\2", description)
    segments = [raw.strip() for raw in _CLAUSE_SPLIT.split(normalized)]
    segments = [text for text in segments if text]
    times = [resolve_time(text, reference_time) for text in segments]
    # Untimed leading clauses belong to the first time stated in the text.
    first_time = next((value for value in times if value is not None), None)

    clauses: list[_Clause] = []
    current_time = reference_time
    carried_slot: MealSlot | None = None
    seen_time = False
    for text, explicit in zip(segments, times, strict=True):
        timing = None
        named = _named_slot(text)
        if explicit is not None:
            current_time = explicit
            seen_time = True
        else:
            relative = _RELATIVE.search(text)
            if relative is not None:
                current_time = current_time + _relative_delta(relative)
                timing = relative.group(0)
                seen_time = True
            elif (
                not seen_time
                and first_time is not None
                and named is None
                and carried_slot is None
            ):
                current_time = first_time
        if named is not None:
            carried_slot = named
        elif explicit is not None:
            carried_slot = None
        slot = carried_slot or slot_for_hour(current_time.hour)
        clauses.append(
            _Clause(
                text=text,
                timestamp=current_time,
                slot=slot,
                timing=timing,
            )
        )
    return clauses


def resolve_time(text: str, reference_time: datetime) -> datetime | None:
    """Apply the ordered time matchers; the first valid match wins."""
    matchers: tuple[tuple[re.Pattern[str], _TimeHandler], ...] = (
        (_HH_MM, _clock_time),
        (_BARE_HOUR, _bare_hour),
        (_DOTTED, _clock_time),
        (_DAY_PART, lambda match: _DAY_PARTS[match.group(1).casefold()]),
    )
    for pattern, handler in matchers:
        for match in pattern.finditer(text):
            resolved = handler(match)
            if resolved is not None:
                hour, minute = resolved
                return reference_time.replace(
                    hour=hour, minute=minute, second=0, microsecond=0
                )
    return None


def slot_for_hour(hour: int) -> MealSlot:
    """Meal slot implied by the hour of day."""
    if 5 <= hour <= 10:  # noqa: PLR2004
        return MealSlot.BREAKFAST
    if 11 <= hour <= 15:  # noqa: PLR2004
        return MealSlot.LUNCH
    if 16 <= hour <= 20:  # noqa: PLR2004
        return MealSlot.DINNER
    return MealSlot.SNACK


def _clock_time(match: re.Match[str]) -> tuple[int, int] | None:
    hour = int(match.group(1))
    minute = int(match.group(2))
    if minute > 59:  # noqa: PLR2004
        return None
    return _apply_meridiem(hour, minute, match.group(3))


def _bare_hour(match: re.Match[str]) -> tuple[int, int] | None:
    return _apply_meridiem(int(match.group(1)), 0, match.group(2))


def _apply_meridiem(hour: int, minute: int, meridiem: str | None) -> tuple[int, int] | None:
    if meridiem is None:
        return (hour, minute) if 0 <= hour <= 23 else None  # noqa: PLR2004
    if not 1 <= hour <= 12:  # noqa: PLR2004
        return None
    is_pm = meridiem.casefold().startswith("p")
    if is_pm and hour != 12:  # noqa: PLR2004
        hour += 12
    elif not is_pm and hour == 12:  # noqa: PLR2004
        hour = 0
    return hour, minute


def _relative_delta(match: re.Match[str]) -> timedelta:
    quantity = match.group(1).casefold()
    unit = match.group(2).casefold()
    if quantity.startswith("half"):
        amount = 0.5
    elif quantity.isdigit():
        amount = float(quantity)
    else:
        amount = float(_WORD_NUMBERS.get(quantity, 1))
    if unit.startswith("h"):
        return timedelta(hours=amount)
    return timedelta(minutes=amount)


def _named_slot(text: str) -> MealSlot | None:
    match = _SLOT_PATTERN.search(text)
    if match is None:
        return None
    return _SLOT_NAMES[match.group(1).casefold()]


def _is_candidate_window(window: list[str]) -> bool:
    first, last = window[0], window[-1]
    for token in (first, last):
        if token in _STOPWORDS or _TIME_TOKEN.match(token) or len(token) < 2:  # noqa: PLR2004
            return False
    return not any(_is_non_food_word(token) for token in window)


def _is_non_food_word(token: str) -> bool:
    return any(group.pattern.fullmatch(token) for group in SYMPTOM_GROUPS) or bool(
        _IRRIGATION.fullmatch(token)
    )


def _attach_amount(clause: _Clause) -> None:
    """Attach the first amount in a clause to its most recent food."""
    if not clause.foods:
        return
    for pattern in _AMOUNT_PATTERNS:
        match = pattern.search(clause.text)
        if match is None:
            continue
        amount = match.group(1) if pattern.groups else match.group(0)
        last = clause.foods[-1]
        clause.foods[-1] = GroundedFood(
            record=last.record,
            matched_text=last.matched_text,
            confidence=last.confidence,
            position=last.position,
            amount=amount.strip(),
        )
        return


def _is_drink(record: FoodRecord) -> bool:
    return any(
        "beverage" in category.casefold() or "drink" in category.casefold()
        for category in record.categories
    )


def _meal_entries(clauses: list[_Clause]) -> list[ParsedLogEntry]:
    groups: dict[tuple[MealSlot, datetime], list[GroundedFood]] = {}
    for clause in clauses:
        for food in clause.foods:
            slot = MealSlot.DRINK if _is_drink(food.record) else clause.slot
            groups.setdefault((slot, clause.timestamp), []).append(food)

    entries: list[ParsedLogEntry] = []
    for (slot, timestamp), foods in groups.items():
        description = ", ".join(
            f"{food.record.name} ({food.amount})" if food.amount else food.record.name
            for food in foods
        )
        entries.append(
            ParsedLogEntry(
                category=EntryCategory.MEAL,
                description=description,
                timestamp=timestamp,
                confidence=min(FOOD_CONFIDENCE[food.confidence] for food in foods),
                details={
                    "meal_type": slot.value,
                    "foods": [
                        {
                            "name": food.record.name,
                            "food_id": food.record.id,
                            "source": food.record.source.value,
                            "matched_text": food.matched_text,
                            "amount": food.amount,
                            "confidence": food.confidence,
                        }
                        for food in foods
                    ],
                    "ingredients": [food.record.name for food in foods],
                    "method": "local",
                },
            )
        )
    return entries


def _symptom_entries(clauses: list[_Clause]) -> list[ParsedLogEntry]:
    entries: list[ParsedLogEntry] = []
    seen: set[tuple[str, datetime]] = set()
    for clause in clauses:
        for group in SYMPTOM_GROUPS:
            match = group.pattern.search(clause.text)
            if match is None or (group.key, clause.timestamp) in seen:
                continue
            seen.add((group.key, clause.timestamp))
            severity = _severity(clause.text)
            entries.append(
                ParsedLogEntry(
                    category=EntryCategory.SYMPTOM,
                    description=f"{group.label} ({severity})",
                    timestamp=clause.timestamp,
                    confidence=SYMPTOM_CONFIDENCE,
                    details={
                        "symptom_type": group.key,
                        "severity": severity,
                        "timing": clause.timing,
                        "matched_text": match.group(0),
                        "method": "local",
                    },
                )
            )
    return entries


def _output_entries(clauses: list[_Clause]) -> list[ParsedLogEntry]:
    entries: list[ParsedLogEntry] = []
    seen: set[tuple[str, datetime]] = set()
    for clause in clauses:
        matched_keys: set[str] = set()
        for group in OUTPUT_GROUPS:
            match = group.pattern.search(clause.text)
            if match is None or (group.key, clause.timestamp) in seen:
                continue
            if group.key == "bowel_movement" and matched_keys & _SPECIFIC_OUTPUTS:
                continue
            matched_keys.add(group.key)
            seen.add((group.key, clause.timestamp))
            volume = _VOLUME.search(clause.text)
            consistency = _CONSISTENCY.search(clause.text)
            entries.append(
                ParsedLogEntry(
                    category=EntryCategory.OUTPUT,
                    description=group.label,
                    timestamp=clause.timestamp,
                    confidence=OUTPUT_CONFIDENCE,
                    details={
                        "output_type": group.key,
                        "volume": volume.group(1).casefold() if volume else None,
                        "consistency": (
                            consistency.group(1).casefold() if consistency else None
                        ),
                        "matched_text": match.group(0),
                        "method": "local",
                    },
                )
            )
    return entries


def _irrigation_entries(clauses: list[_Clause]) -> list[ParsedLogEntry]:
    entries: list[ParsedLogEntry] = []
    seen: set[datetime] = set()
    for clause in clauses:
        match = _IRRIGATION.search(clause.text)
        if match is None or clause.timestamp in seen:
            continue
        seen.add(clause.timestamp)
        flow = _IRRIGATION_FLOW.search(clause.text)
        completion = _IRRIGATION_COMPLETION.search(clause.text)
        entries.append(
            ParsedLogEntry(
                category=EntryCategory.IRRIGATION,
                description=clause.text,
                timestamp=clause.timestamp,
                confidence=IRRIGATION_CONFIDENCE,
                details={
                    "water_flow": flow.group(1).casefold() if flow else None,
                    "completion": completion.group(1).casefold() if completion else None,
                    "matched_text": match.group(0),
                    "method": "local",
                },
            )
        )
    return entries


def _medication_entries(clauses: list[_Clause]) -> list[ParsedLogEntry]:
    entries: list[ParsedLogEntry] = []
    seen: set[tuple[str, datetime]] = set()
    for clause in clauses:
        match = _MEDICATION.search(clause.text)
        if match is None:
            continue
        name = match.group(1).casefold()
        if (name, clause.timestamp) in seen:
            continue
        seen.add((name, clause.timestamp))
        dose = _DOSE.search(clause.text)
        entries.append(
            ParsedLogEntry(
                category=EntryCategory.MEDICATION,
                description=clause.text,
                timestamp=clause.timestamp,
                confidence=MEDICATION_CONFIDENCE,
                details={
                    "medication": name,
                    "dose": dose.group(0) if dose else None,
                    "method": "local",
                },
            )
        )
    return entries


def _severity(text: str) -> str:
    match = _SEVERITY.search(text)
    if match is None:
        return "mild"
    return _SEVERITY_LEVELS.get(match.group(1).casefold(), "mild")
