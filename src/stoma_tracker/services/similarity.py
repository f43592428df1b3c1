"""Edit-distance based string similarity."""

from collections.abc import Sequence


def edit_distance(a: str, b: str) -> int:
    """Return the Levenshtein distance between two strings."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Return a 0-1 similarity over case-folded, trimmed strings."""
    left = a.casefold().strip()
    right = b.casefold().strip()
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(left, right) / longest


def best_similarity(query: str, candidates: Sequence[str]) -> float:
    """Return the highest similarity of a query against candidates."""
    return max((similarity(query, candidate) for candidate in candidates), default=0.0)
