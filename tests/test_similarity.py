"""Tests for edit-distance similarity."""

import pytest

from stoma_tracker.services.similarity import best_similarity, edit_distance, similarity


def test_edit_distance_basics() -> None:
    assert edit_distance("", "") == 0
    assert edit_distance("abc", "") == 3
    assert edit_distance("kitten", "sitting") == 3


@pytest.mark.parametrize("value", ["", "rice", "Chicken Breast"])
def test_similarity_identity(value: str) -> None:
    assert similarity(value, value) == 1.0


@pytest.mark.parametrize(
    ("left", "right"),
    [("chiken", "chicken"), ("rice", "brown rice"), ("", "tea"), ("Dal", "daal")],
)
def test_similarity_is_symmetric(left: str, right: str) -> None:
    assert similarity(left, right) == similarity(right, left)


def test_similarity_ignores_case_and_whitespace() -> None:
    assert similarity("  White Rice ", "white rice") == 1.0


def test_similarity_range() -> None:
    assert similarity("chiken", "chicken") == pytest.approx(1 - 1 / 7)
    assert similarity("abc", "xyz") == 0.0


def test_best_similarity_picks_highest() -> None:
    assert best_similarity("chikn", ["beef", "chicken"]) == pytest.approx(5 / 7)
    assert best_similarity("anything", []) == 0.0
