"""Helpers for reading loosely-typed provider payloads."""

import math
import re

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def as_float(value: object) -> float | None:
    """Coerce a numeric-looking value to float, or ``None``."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def as_text(value: object) -> str | None:
    """Return a stripped non-empty string, or ``None``."""
    if isinstance(value, int | float) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def as_dict(value: object) -> dict[str, object]:
    """Return the value if it is a dict, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def as_dict_list(value: object) -> list[dict[str, object]]:
    """Return only the dict items of a list payload."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def split_csv(value: object, strip_prefix: str | None = None) -> list[str]:
    """Split a comma-separated provider field into clean items."""
    text = as_text(value)
    if text is None:
        return []
    items: list[str] = []
    for chunk in text.split(","):
        item = chunk.strip()
        if strip_prefix and item.startswith(strip_prefix):
            item = item[len(strip_prefix) :].strip()
        if item and item not in items:
            items.append(item)
    return items


def clean_nutrition(values: dict[str, float | None]) -> dict[str, float]:
    """Drop missing nutrient values."""
    return {key: value for key, value in values.items() if value is not None}


def name_slug(name: str) -> str:
    """Stable id fragment for records that arrive without a provider id."""
    return f"name-{_SLUG_PATTERN.sub('-', name.casefold()).strip('-')}"
