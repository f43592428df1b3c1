"""Tests for the curated food table."""

from stoma_tracker.domain.foods import ProviderId
from stoma_tracker.services.curated import CuratedDataset


def test_dataset_loads_with_unique_ids(dataset: CuratedDataset) -> None:
    ids = [food.id for food in dataset.foods]
    assert len(ids) == len(set(ids))
    assert dataset.get("chicken-breast") is not None


def test_match_prefers_exact_then_alias(dataset: CuratedDataset) -> None:
    exact = dataset.match("white rice", 0.7)
    alias = dataset.match("chiken", 0.7)

    assert exact is not None and exact.kind == "exact"
    assert exact.food.id == "rice-white"
    assert alias is not None and alias.kind == "alias"
    assert alias.food.name == "Chicken Breast"


def test_match_falls_back_to_fuzzy(dataset: CuratedDataset) -> None:
    match = dataset.match("chickn breast", 0.7)

    assert match is not None
    assert match.kind == "fuzzy"
    assert match.food.id == "chicken-breast"
    assert dataset.match("xyz qqq", 0.7) is None


def test_find_containing_prefers_longest_phrase(dataset: CuratedDataset) -> None:
    match = dataset.find_containing("Organic Brown Rice, 2 lb bag")

    assert match is not None
    assert match.food.id == "rice-brown"
    assert dataset.find_containing("plain crackers") is None


def test_search_ranks_and_converts(dataset: CuratedDataset) -> None:
    foods = dataset.search("rice", limit=5)

    assert foods[0].id == "rice-white"
    assert {food.id for food in foods} >= {"rice-white", "rice-brown"}
    record = dataset.to_record(foods[0])
    assert record.id == "local:rice-white"
    assert record.source is ProviderId.LOCAL
    assert record.categories[0] == "Grains"


def test_search_by_category(dataset: CuratedDataset) -> None:
    foods = dataset.search("beverages", limit=10)

    assert foods
    assert all(food.category == "Beverages" for food in foods)


def test_names_for_local_record(dataset: CuratedDataset) -> None:
    names = dataset.names_for("local:eggs-scrambled")

    assert names[0] == "Scrambled Eggs"
    assert "eggs" in names
    assert dataset.names_for("local:missing") == []
