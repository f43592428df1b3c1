"""USDA FoodData Central provider adapter."""

from dataclasses import dataclass

import httpx

from stoma_tracker.adapters.payloads import (
    as_dict,
    as_dict_list,
    as_float,
    as_text,
    clean_nutrition,
    name_slug,
)
from stoma_tracker.domain.foods import FoodRecord, ProviderId

_NUTRIENT_IDS = {
    1008: "calories",
    2047: "calories",
    2048: "calories",
    1003: "protein",
    1005: "carbs",
    1004: "fat",
    1079: "fiber",
    2000: "sugar",
    1093: "sodium",
}
_PREFERRED_ENERGY_ID = 1008


@dataclass
class HttpxFdcProvider:
    """HTTPX-backed FoodData Central adapter."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15
    provider_id: ProviderId = ProviderId.GOVERNMENT

    @classmethod
    def create(
        cls, api_key: str, base_url: str, timeout_seconds: float = 15
    ) -> "HttpxFdcProvider":
        """Create an FDC adapter with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def search_by_query(self, query: str, limit: int) -> list[FoodRecord]:
        """Search foods by free text."""
        payload = await self._search(query, limit)
        return [_to_record(food) for food in as_dict_list(payload.get("foods"))]

    async def get_by_barcode(self, code: str) -> FoodRecord | None:
        """Find a branded food by its GTIN/UPC."""
        wanted = code.strip().lstrip("0")
        if not wanted:
            return None
        payload = await self._search(code.strip(), 10, data_type=["Branded"])
        for food in as_dict_list(payload.get("foods")):
            upc = as_text(food.get("gtinUpc"))
            if upc and upc.lstrip("0") == wanted:
                return _to_record(food)
        return None

    async def _search(
        self, query: str, page_size: int, data_type: list[str] | None = None
    ) -> dict[str, object]:
        body: dict[str, object] = {"query": query, "pageSize": page_size}
        if data_type:
            body["dataType"] = data_type
        response = await self.http_client.post(
            f"{self.base_url}/foods/search",
            params={"api_key": self.api_key},
            json=body,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return as_dict(response.json())

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _to_record(food: dict[str, object]) -> FoodRecord:
    """Translate an FDC search hit into a food record."""
    name = as_text(food.get("description")) or "Unknown Product"
    fdc_id = as_text(food.get("fdcId")) or name_slug(name)
    ingredients_text = as_text(food.get("ingredients"))
    category = as_text(food.get("foodCategory")) or "Unknown"
    return FoodRecord(
        id=f"usda:{fdc_id}",
        name=name,
        source=ProviderId.GOVERNMENT,
        brand=as_text(food.get("brandOwner")) or as_text(food.get("brandName")),
        ingredients=(ingredients_text,) if ingredients_text else (),
        nutrition_per_100g=_extract_nutrition(as_dict_list(food.get("foodNutrients"))),
        categories=(category,),
        barcode=as_text(food.get("gtinUpc")),
    )


def _extract_nutrition(food_nutrients: list[dict[str, object]]) -> dict[str, float]:
    """Map FDC nutrient ids onto the common nutrient keys."""
    values: dict[str, float | None] = {}
    for nutrient in food_nutrients:
        nutrient_info = as_dict(nutrient.get("nutrient"))
        nutrient_id = nutrient.get("nutrientId") or nutrient_info.get("id")
        key = _NUTRIENT_IDS.get(nutrient_id) if isinstance(nutrient_id, int) else None
        if key is None:
            continue
        amount = as_float(nutrient.get("value"))
        if amount is None:
            amount = as_float(nutrient.get("amount"))
        if amount is None:
            continue
        if key in values and nutrient_id != _PREFERRED_ENERGY_ID:
            continue
        values[key] = amount
    return clean_nutrition(values)
