"""Tests for the HTTP surface."""

from fastapi.testclient import TestClient

from stoma_tracker.api.app import create_app
from stoma_tracker.containers import AppContainer
from tests.conftest import FakeProvider, make_record


def test_health(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_search_endpoint_returns_ranked_results(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/foods/search", params={"q": "chiken", "providers": ""})

    assert response.status_code == 200
    body = response.json()
    assert body["query"] == "chiken"
    assert [item["name"] for item in body["results"]] == ["Chicken Breast"]
    result = body["results"][0]
    assert result["source"] == "local"
    assert result["friendliness_score"] == 10
    assert result["annotation"]["friendliness"] == "excellent"
    assert result["annotation"]["basis"] == "curated"


def test_search_endpoint_limit_and_no_annotation(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get(
        "/foods/search", params={"q": "rice", "limit": 2, "annotate": "false"}
    )

    results = response.json()["results"]
    assert len(results) == 2
    assert all(item["annotation"] is None for item in results)


def test_barcode_endpoint(
    container: AppContainer, crowd_provider: FakeProvider
) -> None:
    crowd_provider.barcodes["3017620422003"] = make_record("Nutella")
    client = TestClient(create_app(container))

    found = client.get("/foods/barcode/3017620422003")
    missing = client.get("/foods/barcode/0000")

    assert found.status_code == 200
    assert found.json()["name"] == "Nutella"
    assert missing.status_code == 404


def test_parse_endpoint(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/entries/parse",
        json={
            "description": "I had 2 eggs at 8am, felt gassy around 10am",
            "timestamp": "2024-05-01T12:00:00+00:00",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["strategy"] == "local"
    assert body["nothing_detected"] is False
    assert [entry["category"] for entry in body["entries"]] == ["meal", "symptom"]
    assert body["entries"][0]["details"]["meal_type"] == "breakfast"
    assert body["entries"][0]["timestamp"].startswith("2024-05-01T08:00:00")


def test_parse_endpoint_empty_description(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post("/entries/parse", json={"description": ""})

    assert response.status_code == 200
    assert response.json()["entries"] == []
    assert response.json()["nothing_detected"] is True
