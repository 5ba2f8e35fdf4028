"""USDA FoodData Central source plugin.

Runs in source mode: every lookup queries the ``foods/search`` endpoint and
the results are merged into the context by barcode or name.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from product_lookup.api.usda_client import (
    ALL_DATA_TYPES,
    BRANDED_DATA_TYPES,
    DEFAULT_BASE_URL,
    UsdaClient,
)
from product_lookup.errors import PluginInitError
from product_lookup.models import ProductLookupNutrition, ProductLookupResult, SearchType
from product_lookup.normalization.barcode import are_equivalent
from product_lookup.pipeline.cancellation import CancellationToken, raise_if_cancelled

from .interfaces import SourcePlugin

logger = logging.getLogger(__name__)

API_KEY_ENV = "USDA_API_KEY"
BARCODE_PAGE_SIZE = 10
FOOD_DETAILS_URL = "https://fdc.nal.usda.gov/fdc-app.html#/food-details/{fdc_id}/nutrients"

# FoodData Central nutrient ids
NUTRIENT_FIELDS: Dict[int, str] = {
    1008: "calories",
    1003: "protein",
    1004: "total_fat",
    1005: "total_carbohydrates",
    1079: "dietary_fiber",
    2000: "total_sugars",
    1235: "added_sugars",
    1258: "saturated_fat",
    1257: "trans_fat",
    1253: "cholesterol",
    1093: "sodium",
    1087: "calcium",
    1089: "iron",
    1090: "magnesium",
    1091: "phosphorus",
    1092: "potassium",
    1095: "zinc",
    1106: "vitamin_a",
    1162: "vitamin_c",
    1114: "vitamin_d",
    1109: "vitamin_e",
    1185: "vitamin_k",
    1165: "thiamin",
    1166: "riboflavin",
    1167: "niacin",
    1175: "vitamin_b6",
    1177: "folate",
    1178: "vitamin_b12",
}


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


class UsdaFoodDataPlugin(SourcePlugin):
    plugin_id = "usda"
    display_name = "USDA FoodData Central"
    version = "1.0.0"

    def __init__(self) -> None:
        self.client: Optional[UsdaClient] = None
        self.default_max_results = 20

    @property
    def is_available(self) -> bool:
        return self._initialized and self.client is not None

    def init(self, config: Optional[Dict[str, Any]]) -> None:
        config = config or {}
        api_key = config.get("apiKey") or os.environ.get(API_KEY_ENV)
        base_url = config.get("baseUrl") or DEFAULT_BASE_URL

        max_results = config.get("defaultMaxResults", self.default_max_results)
        if not isinstance(max_results, int) or isinstance(max_results, bool) or max_results <= 0:
            raise PluginInitError(f"defaultMaxResults must be a positive integer, got {max_results!r}")
        self.default_max_results = max_results

        if api_key:
            self.client = UsdaClient(api_key=api_key, base_url=base_url)
        else:
            logger.warning("USDA API key not configured; set apiKey or %s", API_KEY_ENV)
        self._initialized = True

    def lookup(
        self,
        query: str,
        search_type: SearchType,
        max_results: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[ProductLookupResult]:
        if self.client is None:
            return []
        raise_if_cancelled(cancel_token)

        page_size = min(max_results, self.default_max_results) if max_results else self.default_max_results
        if search_type == SearchType.BARCODE:
            foods = self.client.search_foods(query, BRANDED_DATA_TYPES, BARCODE_PAGE_SIZE)
            foods = [f for f in foods if are_equivalent(f.get("gtinUpc"), query)]
        else:
            foods = self.client.search_foods(query, ALL_DATA_TYPES, page_size)

        return [self.to_result(food) for food in foods[:max_results]]

    def to_result(self, food: Dict[str, Any]) -> ProductLookupResult:
        """Convert one FoodData Central food to pipeline shape."""
        fdc_id = food.get("fdcId")
        result = ProductLookupResult(
            name=_clean(food.get("description")),
            brand_name=_clean(food.get("brandName")),
            brand_owner=_clean(food.get("brandOwner")),
            barcode=_clean(food.get("gtinUpc")),
            ingredients=_clean(food.get("ingredients")),
            serving_size_description=_clean(food.get("householdServingFullText")),
            nutrition=self.to_nutrition(food),
        )
        result.data_sources[self.source_key()] = "" if fdc_id is None else str(fdc_id)
        if fdc_id is not None:
            result.product_url = FOOD_DETAILS_URL.format(fdc_id=fdc_id)
        result.add_category(_clean(food.get("foodCategory")))
        return result

    def to_nutrition(self, food: Dict[str, Any]) -> Optional[ProductLookupNutrition]:
        nutrients = food.get("foodNutrients") or []
        nutrition = ProductLookupNutrition(
            source=self.source_key(),
            external_source_id=str(food["fdcId"]) if food.get("fdcId") is not None else None,
            serving_size=_as_float(food.get("servingSize")),
            serving_unit=_clean(food.get("servingSizeUnit")),
        )
        found = False
        for nutrient in nutrients:
            if not isinstance(nutrient, dict):
                continue
            field_name = NUTRIENT_FIELDS.get(nutrient.get("nutrientId"))
            value = _as_float(nutrient.get("value"))
            if field_name and value is not None:
                setattr(nutrition, field_name, value)
                found = True
        return nutrition if found else None
