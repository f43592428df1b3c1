"""Open Food Facts provider adapter."""

from dataclasses import dataclass

import httpx

from stoma_tracker.adapters.payloads import (
    as_dict,
    as_dict_list,
    as_float,
    as_text,
    clean_nutrition,
    name_slug,
    split_csv,
)
from stoma_tracker.domain.foods import FoodRecord, ProviderId

_SEARCH_FIELDS = (
    "product_name,brands,ingredients_text,allergens,nutriments,categories,code,image_url"
)
_NUTRIMENT_KEYS = {
    "calories": "energy-kcal_100g",
    "protein": "proteins_100g",
    "carbs": "carbohydrates_100g",
    "fat": "fat_100g",
    "fiber": "fiber_100g",
    "sugar": "sugars_100g",
    "sodium": "sodium_100g",
}


@dataclass
class HttpxOpenFoodFactsProvider:
    """HTTPX-backed Open Food Facts adapter."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15
    provider_id: ProviderId = ProviderId.CROWD

    @classmethod
    def create(
        cls, base_url: str, timeout_seconds: float = 15
    ) -> "HttpxOpenFoodFactsProvider":
        """Create an Open Food Facts adapter with a managed httpx session."""
        return cls(
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def search_by_query(self, query: str, limit: int) -> list[FoodRecord]:
        """Search products by free text."""
        response = await self.http_client.get(
            f"{self.base_url}/search",
            params={
                "search_terms": query,
                "page_size": limit,
                "fields": _SEARCH_FIELDS,
            },
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        payload = as_dict(response.json())
        return [_to_record(product) for product in as_dict_list(payload.get("products"))]

    async def get_by_barcode(self, code: str) -> FoodRecord | None:
        """Fetch a single product by barcode."""
        response = await self.http_client.get(
            f"{self.base_url}/product/{code.strip()}",
            timeout=self.timeout_seconds,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        payload = as_dict(response.json())
        product = as_dict(payload.get("product"))
        if payload.get("status") != 1 or not product:
            return None
        return _to_record(product)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _to_record(product: dict[str, object]) -> FoodRecord:
    """Translate an Open Food Facts product into a food record."""
    name = as_text(product.get("product_name")) or "Unknown Product"
    code = as_text(product.get("code"))
    product_id = code or name_slug(name)
    return FoodRecord(
        id=f"off:{product_id}",
        name=name,
        source=ProviderId.CROWD,
        brand=as_text(product.get("brands")),
        ingredients=tuple(split_csv(product.get("ingredients_text"))),
        allergens=frozenset(split_csv(product.get("allergens"), strip_prefix="en:")),
        nutrition_per_100g=_extract_nutrition(as_dict(product.get("nutriments"))),
        categories=tuple(split_csv(product.get("categories"))),
        barcode=code,
        image_url=as_text(product.get("image_url")),
    )


def _extract_nutrition(nutriments: dict[str, object]) -> dict[str, float]:
    """Read per-100g nutriments; sodium is reported in grams."""
    values = {
        key: as_float(nutriments.get(field)) for key, field in _NUTRIMENT_KEYS.items()
    }
    sodium = values.get("sodium")
    if sodium is not None:
        values["sodium"] = round(sodium * 1000, 3)
    return clean_nutrition(values)
