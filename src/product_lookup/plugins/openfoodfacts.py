"""Open Food Facts enrichment plugin.

Fills images, categories, ingredients and scores into results already
gathered, and adds products Open Food Facts knows about that no earlier
source returned while the context has room.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from product_lookup.api.openfoodfacts_client import DEFAULT_BASE_URL, OpenFoodFactsClient
from product_lookup.models import ProductLookupNutrition, ProductLookupResult, SearchType
from product_lookup.normalization.barcode import normalize_barcode
from product_lookup.pipeline.cancellation import CancellationToken, raise_if_cancelled
from product_lookup.pipeline.context import PipelineContext

from .interfaces import EnrichmentPlugin

logger = logging.getLogger(__name__)

# nutriments key -> nutrition field; per serving values win over per 100g
NUTRIMENT_FIELDS = {
    "energy-kcal": "calories",
    "proteins": "protein",
    "fat": "total_fat",
    "saturated-fat": "saturated_fat",
    "carbohydrates": "total_carbohydrates",
    "sugars": "total_sugars",
    "fiber": "dietary_fiber",
    "sodium": "sodium",
}

THUMBNAIL_KEYS = ("image_front_small_url", "image_small_url", "image_front_thumb_url", "image_thumb_url")


def category_from_tag(tag: str) -> Optional[str]:
    """Turn ``en:plant-based-beverages`` into ``Plant Based Beverages``."""
    if not isinstance(tag, str):
        return None
    _, _, name = tag.rpartition(":")
    words = [w for w in name.replace("_", "-").split("-") if w]
    if not words:
        return None
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _first_text(product: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = product.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class OpenFoodFactsPlugin(EnrichmentPlugin):
    plugin_id = "openfoodfacts"
    display_name = "Open Food Facts"
    version = "1.0.0"

    def __init__(self) -> None:
        self.client: Optional[OpenFoodFactsClient] = None
        self.base_url = DEFAULT_BASE_URL

    def init(self, config: Optional[Dict[str, Any]]) -> None:
        config = config or {}
        self.base_url = (config.get("baseUrl") or DEFAULT_BASE_URL).rstrip("/")
        self.client = OpenFoodFactsClient(base_url=self.base_url)
        self._initialized = True

    def process_pipeline(self, context: PipelineContext, cancel_token: Optional[CancellationToken] = None) -> None:
        if self.client is None:
            return
        raise_if_cancelled(cancel_token)

        if context.search_type == SearchType.BARCODE:
            barcode = normalize_barcode(context.query)
            product = self.client.get_product(barcode) if barcode else None
            products = [product] if product else []
        else:
            products = self.client.search(context.query, page_size=context.max_results or 1)

        raise_if_cancelled(cancel_token)
        for product in products:
            result = self.to_result(product)
            if result.barcode is None and result.name is None:
                continue
            if context.merge_or_add(result, self.source_key()) is None:
                logger.debug("Open Food Facts product %s dropped: context full", result.barcode)

    def to_result(self, product: Dict[str, Any]) -> ProductLookupResult:
        code = _first_text(product, "code")
        result = ProductLookupResult(
            name=_first_text(product, "product_name", "product_name_en"),
            brand_name=_first_text(product, "brands"),
            barcode=code,
            ingredients=_first_text(product, "ingredients_text", "ingredients_text_en"),
            serving_size_description=_first_text(product, "serving_size"),
            image_url=self.image(_first_text(product, "image_front_url", "image_url")),
            thumbnail_url=self.image(_first_text(product, *THUMBNAIL_KEYS)),
            nutrition=self.to_nutrition(product),
        )
        result.data_sources[self.source_key()] = code or ""
        if code:
            result.product_url = f"{self.base_url}/product/{code}"
        for tag in product.get("categories_tags") or []:
            result.add_category(category_from_tag(tag))

        if product.get("nutriscore_grade"):
            result.additional_data["nutriscore_grade"] = product["nutriscore_grade"]
        if product.get("nova_group") is not None:
            result.additional_data["nova_group"] = product["nova_group"]
        return result

    def to_nutrition(self, product: Dict[str, Any]) -> Optional[ProductLookupNutrition]:
        nutriments = product.get("nutriments")
        if not isinstance(nutriments, dict):
            return None

        values: Dict[str, float] = {}
        for key, field_name in NUTRIMENT_FIELDS.items():
            value = _as_float(nutriments.get(f"{key}_serving"))
            if value is None:
                value = _as_float(nutriments.get(f"{key}_100g"))
            if value is None:
                continue
            # reported in grams
            if field_name == "sodium":
                value = value * 1000
            values[field_name] = value
        if not values:
            return None

        return ProductLookupNutrition(
            source=self.source_key(),
            external_source_id=_first_text(product, "code"),
            serving_size=_as_float(product.get("serving_quantity")),
            **values,
        )

