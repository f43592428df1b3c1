"""Spoonacular provider adapter."""

from dataclasses import dataclass

import httpx

from stoma_tracker.adapters.payloads import (
    as_dict,
    as_dict_list,
    as_float,
    as_text,
    clean_nutrition,
)
from stoma_tracker.domain.foods import FoodRecord, ProviderId

_IMAGE_BASE_URL = "https://spoonacular.com/cdn/ingredients_100x100"
_NUTRIENT_NAMES = {
    "calories": "calories",
    "protein": "protein",
    "carbohydrates": "carbs",
    "fat": "fat",
    "fiber": "fiber",
    "sugar": "sugar",
    "sodium": "sodium",
}
_GRAMS_PER_UNIT = {"g": 1.0, "mg": 0.001}


@dataclass
class HttpxSpoonacularProvider:
    """HTTPX-backed Spoonacular adapter."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15
    provider_id: ProviderId = ProviderId.PREMIUM

    @classmethod
    def create(
        cls, api_key: str, base_url: str, timeout_seconds: float = 15
    ) -> "HttpxSpoonacularProvider":
        """Create a Spoonacular adapter with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def search_by_query(self, query: str, limit: int) -> list[FoodRecord]:
        """Search ingredients by free text."""
        response = await self.http_client.get(
            f"{self.base_url}/food/ingredients/search",
            params={
                "query": query,
                "number": limit,
                "metaInformation": "true",
                "apiKey": self.api_key,
            },
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        payload = as_dict(response.json())
        return [
            _ingredient_to_record(item)
            for item in as_dict_list(payload.get("results"))
        ]

    async def get_by_barcode(self, code: str) -> FoodRecord | None:
        """Fetch a grocery product by UPC."""
        response = await self.http_client.get(
            f"{self.base_url}/food/products/upc/{code.strip()}",
            params={"apiKey": self.api_key},
            timeout=self.timeout_seconds,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        product = as_dict(response.json())
        if not product or product.get("status") == "failure":
            return None
        return _product_to_record(product, code.strip())

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _ingredient_to_record(item: dict[str, object]) -> FoodRecord:
    """Translate an ingredient search hit; search results carry no nutrition."""
    name = as_text(item.get("name")) or "Unknown Product"
    image = as_text(item.get("image"))
    return FoodRecord(
        id=f"spoonacular:{as_text(item.get('id')) or name.casefold()}",
        name=name,
        source=ProviderId.PREMIUM,
        ingredients=(name,),
        categories=(as_text(item.get("aisle")) or "Unknown",),
        image_url=f"{_IMAGE_BASE_URL}/{image}" if image else None,
    )


def _product_to_record(product: dict[str, object], code: str) -> FoodRecord:
    """Translate a UPC product lookup into a food record."""
    name = as_text(product.get("title")) or "Unknown Product"
    ingredients = [
        text
        for text in (
            as_text(ingredient.get("name"))
            for ingredient in as_dict_list(product.get("ingredients"))
        )
        if text
    ]
    images = product.get("images")
    image_url = as_text(images[0]) if isinstance(images, list) and images else None
    breadcrumbs = product.get("breadcrumbs")
    categories = (
        tuple(text for text in (as_text(item) for item in breadcrumbs) if text)
        if isinstance(breadcrumbs, list)
        else ()
    )
    return FoodRecord(
        id=f"spoonacular:{as_text(product.get('id')) or code}",
        name=name,
        source=ProviderId.PREMIUM,
        brand=as_text(product.get("brand")),
        ingredients=tuple(ingredients),
        nutrition_per_100g=_extract_nutrition(as_dict(product.get("nutrition"))),
        categories=categories,
        barcode=as_text(product.get("upc")) or code,
        image_url=image_url or as_text(product.get("image")),
    )


def _extract_nutrition(nutrition: dict[str, object]) -> dict[str, float]:
    """Scale per-serving nutrients to 100 g when the serving weight is known."""
    serving = as_dict(nutrition.get("weightPerServing"))
    serving_amount = as_float(serving.get("amount"))
    if serving_amount is None or serving_amount <= 0 or serving.get("unit") != "g":
        return {}
    factor = 100.0 / serving_amount
    values: dict[str, float | None] = {}
    for nutrient in as_dict_list(nutrition.get("nutrients")):
        name = as_text(nutrient.get("name"))
        key = _NUTRIENT_NAMES.get(name.casefold()) if name else None
        amount = as_float(nutrient.get("amount"))
        if key is None or amount is None:
            continue
        unit = as_text(nutrient.get("unit"))
        if key == "sodium" and unit == "g":
            amount *= 1000
        elif key not in {"calories", "sodium"} and unit in _GRAMS_PER_UNIT:
            amount *= _GRAMS_PER_UNIT[unit]
        values[key] = round(amount * factor, 2)
    return clean_nutrition(values)
