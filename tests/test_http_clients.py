"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import pytest

from stoma_tracker.adapters.fdc_client import HttpxFdcProvider
from stoma_tracker.adapters.open_food_facts_client import HttpxOpenFoodFactsProvider
from stoma_tracker.adapters.openai_entry_client import OpenAIEntryClient
from stoma_tracker.adapters.spoonacular_client import HttpxSpoonacularProvider
from stoma_tracker.domain.foods import ProviderId


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, output_text: str) -> None:
        self.responses = _FakeResponses(output_text)


def _client(handler) -> httpx.AsyncClient:  # type: ignore[no-untyped-def]
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_openai_entry_client_sends_schema_and_parses_output() -> None:
    fake = _FakeOpenAI(json.dumps({"entries": [], "summary": "none"}))
    client = OpenAIEntryClient(client=fake)

    result = asyncio.run(
        client.extract(
            model="gpt-5.2",
            reasoning_effort="low",
            store=False,
            prompt="Split the log",
            text='{"free_text": "eggs"}',
            schema={"type": "object"},
        )
    )

    assert result == {"entries": [], "summary": "none"}
    payload = fake.responses.last_payload
    assert payload is not None
    assert payload["reasoning"] == {"effort": "low"}
    assert payload["text"]["format"]["type"] == "json_schema"
    assert payload["text"]["format"]["strict"] is False


def test_openai_entry_client_rejects_empty_output() -> None:
    client = OpenAIEntryClient(client=_FakeOpenAI(""))

    with pytest.raises(RuntimeError):
        asyncio.run(
            client.extract(
                model="gpt-5.2",
                reasoning_effort=None,
                store=False,
                prompt="Split the log",
                text="{}",
                schema={"type": "object"},
            )
        )


def test_fdc_search_translates_foods() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["api_key"] = request.url.params.get("api_key")
        seen["body"] = json.loads(request.content.decode())
        return httpx.Response(
            200,
            json={
                "foods": [
                    {
                        "fdcId": 171077,
                        "description": "Chicken, broilers or fryers, breast",
                        "foodCategory": "Poultry Products",
                        "foodNutrients": [
                            {"nutrientId": 2047, "value": 130},
                            {"nutrientId": 1008, "value": 120},
                            {"nutrientId": 1003, "value": 22.5},
                            {"nutrientId": 1004, "value": 2.6},
                            {"nutrientId": 1093, "amount": 45},
                        ],
                    }
                ]
            },
        )

    provider = HttpxFdcProvider(
        api_key="fdc-key", base_url="https://fdc.test/v1", http_client=_client(handler)
    )

    records = asyncio.run(provider.search_by_query("chicken", 5))

    assert seen["path"] == "/v1/foods/search"
    assert seen["api_key"] == "fdc-key"
    assert seen["body"] == {"query": "chicken", "pageSize": 5}
    assert len(records) == 1
    record = records[0]
    assert record.id == "usda:171077"
    assert record.source is ProviderId.GOVERNMENT
    assert record.categories == ("Poultry Products",)
    assert record.nutrition_per_100g == {
        "calories": 120.0,
        "protein": 22.5,
        "fat": 2.6,
        "sodium": 45.0,
    }


def test_fdc_barcode_matches_gtin_ignoring_leading_zeros() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content.decode())
        assert body["dataType"] == ["Branded"]
        return httpx.Response(
            200,
            json={
                "foods": [
                    {"fdcId": 1, "description": "Other", "gtinUpc": "111"},
                    {
                        "fdcId": 2,
                        "description": "Oat Drink",
                        "gtinUpc": "00041570054161",
                        "brandOwner": "Oatly",
                    },
                ]
            },
        )

    provider = HttpxFdcProvider(
        api_key="fdc-key", base_url="https://fdc.test/v1", http_client=_client(handler)
    )

    record = asyncio.run(provider.get_by_barcode("041570054161"))

    assert record is not None
    assert record.id == "usda:2"
    assert record.brand == "Oatly"


def test_fdc_search_raises_on_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "rate limited"})

    provider = HttpxFdcProvider(
        api_key="fdc-key", base_url="https://fdc.test/v1", http_client=_client(handler)
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(provider.search_by_query("rice", 5))


def test_fdc_search_derives_ids_for_hits_without_fdc_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "foods": [
                    {"description": "Rice, white, cooked"},
                    {"description": "Bread, white"},
                ]
            },
        )

    provider = HttpxFdcProvider(
        api_key="fdc-key", base_url="https://fdc.test/v1", http_client=_client(handler)
    )

    records = asyncio.run(provider.search_by_query("white", 5))

    assert [record.id for record in records] == [
        "usda:name-rice-white-cooked",
        "usda:name-bread-white",
    ]


def test_open_food_facts_search_translates_products() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v2/search"
        assert request.url.params["search_terms"] == "nutella"
        assert request.url.params["page_size"] == "3"
        return httpx.Response(
            200,
            json={
                "products": [
                    {
                        "code": "3017620422003",
                        "product_name": "Nutella",
                        "brands": "Ferrero",
                        "ingredients_text": "sugar, palm oil, hazelnuts",
                        "allergens": "en:milk,en:nuts",
                        "categories": "Spreads, Sweet spreads",
                        "nutriments": {
                            "energy-kcal_100g": 539,
                            "sugars_100g": 56.3,
                            "sodium_100g": 0.0428,
                        },
                    },
                    {"product_name": "Mystery Spread"},
                ]
            },
        )

    provider = HttpxOpenFoodFactsProvider(
        base_url="https://off.test/api/v2", http_client=_client(handler)
    )

    records = asyncio.run(provider.search_by_query("nutella", 3))

    assert [record.id for record in records] == [
        "off:3017620422003",
        "off:name-mystery-spread",
    ]
    nutella = records[0]
    assert nutella.source is ProviderId.CROWD
    assert nutella.allergens == frozenset({"milk", "nuts"})
    assert nutella.ingredients == ("sugar", "palm oil", "hazelnuts")
    assert nutella.nutrition_per_100g["sodium"] == pytest.approx(42.8)
    assert nutella.nutrition_per_100g["calories"] == 539.0


def test_open_food_facts_barcode_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/404"):
            return httpx.Response(404)
        return httpx.Response(200, json={"status": 0, "status_verbose": "not found"})

    provider = HttpxOpenFoodFactsProvider(
        base_url="https://off.test/api/v2", http_client=_client(handler)
    )

    assert asyncio.run(provider.get_by_barcode("404")) is None
    assert asyncio.run(provider.get_by_barcode("123")) is None


def test_spoonacular_search_and_barcode() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["apiKey"] == "spoon-key"
        if request.url.path == "/food/ingredients/search":
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"id": 9266, "name": "pineapple", "image": "pineapple.jpg"}
                    ]
                },
            )
        return httpx.Response(
            200,
            json={
                "id": 22347,
                "title": "Snickers Bar",
                "brand": "Mars",
                "upc": "040000001027",
                "nutrition": {
                    "weightPerServing": {"amount": 50, "unit": "g"},
                    "nutrients": [
                        {"name": "Calories", "amount": 250, "unit": "kcal"},
                        {"name": "Protein", "amount": 4, "unit": "g"},
                        {"name": "Sodium", "amount": 120, "unit": "mg"},
                    ],
                },
            },
        )

    provider = HttpxSpoonacularProvider(
        api_key="spoon-key",
        base_url="https://spoon.test",
        http_client=_client(handler),
    )

    records = asyncio.run(provider.search_by_query("pineapple", 2))
    product = asyncio.run(provider.get_by_barcode("040000001027"))

    assert records[0].id == "spoonacular:9266"
    assert records[0].image_url == (
        "https://spoonacular.com/cdn/ingredients_100x100/pineapple.jpg"
    )
    assert product is not None
    assert product.source is ProviderId.PREMIUM
    assert product.nutrition_per_100g == {
        "calories": 500.0,
        "protein": 8.0,
        "sodium": 240.0,
    }
