"""
Data models for the product lookup pipeline.

This module defines the structures exchanged between plugins, the pipeline
context and the callers of a lookup.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class SearchType(str, Enum):
    """How a lookup query should be interpreted."""
    BARCODE = "barcode"
    NAME = "name"


class SearchMode(str, Enum):
    """Which plugins take part in a lookup."""
    ALL_SOURCES = "all_sources"
    STORE_INTEGRATIONS_ONLY = "store_integrations_only"


@dataclass(frozen=True)
class ResultImage:
    """An image URL together with the plugin that supplied it."""
    url: str
    plugin_id: str


@dataclass
class ProductLookupNutrition:
    """Nutrition facts for one product as reported by a single source.

    All values are optional; sources rarely fill every nutrient.
    """
    source: str
    external_source_id: Optional[str] = None

    serving_size: Optional[float] = None
    serving_unit: Optional[str] = None
    servings_per_container: Optional[float] = None

    # Macronutrients
    calories: Optional[float] = None
    total_fat: Optional[float] = None
    saturated_fat: Optional[float] = None
    trans_fat: Optional[float] = None
    cholesterol: Optional[float] = None
    sodium: Optional[float] = None
    total_carbohydrates: Optional[float] = None
    dietary_fiber: Optional[float] = None
    total_sugars: Optional[float] = None
    added_sugars: Optional[float] = None
    protein: Optional[float] = None

    # Vitamins
    vitamin_a: Optional[float] = None
    vitamin_c: Optional[float] = None
    vitamin_d: Optional[float] = None
    vitamin_e: Optional[float] = None
    vitamin_k: Optional[float] = None
    thiamin: Optional[float] = None
    riboflavin: Optional[float] = None
    niacin: Optional[float] = None
    vitamin_b6: Optional[float] = None
    folate: Optional[float] = None
    vitamin_b12: Optional[float] = None

    # Minerals
    calcium: Optional[float] = None
    iron: Optional[float] = None
    magnesium: Optional[float] = None
    phosphorus: Optional[float] = None
    potassium: Optional[float] = None
    zinc: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ProductLookupResult:
    """One aggregated product candidate.

    Attributes:
        data_sources: Source name -> identifier of the product in that source.
        name: Product name or description.
        brand_name: Brand name, if known.
        brand_owner: Manufacturer or brand owner, if known.
        barcode: Barcode in the form first encountered.
        categories: Category names, deduplicated case-insensitively.
        ingredients: Ingredient list text.
        serving_size_description: Household serving description.
        description: Longer free-text description.
        image_url: Main product image and the plugin that supplied it.
        thumbnail_url: Thumbnail image and the plugin that supplied it.
        nutrition: Structured nutrition record.
        product_url: Link to the product page at the source.
        additional_data: Source specific extras (scores, prices, ...).
        original_search_barcode: Barcode the caller searched for, set after
            a barcode lookup completes.
    """
    data_sources: Dict[str, str] = field(default_factory=dict)
    name: Optional[str] = None
    brand_name: Optional[str] = None
    brand_owner: Optional[str] = None
    barcode: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    ingredients: Optional[str] = None
    serving_size_description: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[ResultImage] = None
    thumbnail_url: Optional[ResultImage] = None
    nutrition: Optional[ProductLookupNutrition] = None
    product_url: Optional[str] = None
    additional_data: Dict[str, Any] = field(default_factory=dict)
    original_search_barcode: Optional[str] = None

    def add_category(self, category: Optional[str]) -> None:
        """Append *category* unless an equal one (ignoring case) is present."""
        if not category or not category.strip():
            return
        existing = {c.casefold() for c in self.categories}
        if category.casefold() not in existing:
            self.categories.append(category)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, ResultImage):
                value = {"url": value.url, "plugin_id": value.plugin_id}
            elif isinstance(value, ProductLookupNutrition):
                value = value.to_dict()
            elif isinstance(value, (dict, list)):
                value = type(value)(value)
            out[f.name] = value
        return out


@dataclass(frozen=True)
class PluginConfigEntry:
    """One plugin descriptor from the configuration document.

    The position of the entry in its array defines execution order.
    """
    id: str
    enabled: bool = False
    builtin: bool = False
    module_path: Optional[str] = None
    display_name: str = ""
    config: Optional[Dict[str, Any]] = field(default=None, compare=False)


@dataclass(frozen=True)
class PluginInfo:
    plugin_id: str
    display_name: str
    version: str
    is_available: bool


@dataclass
class LookupResponse:
    """Results of one lookup together with the query that produced them."""
    query: str
    search_type: SearchType
    results: List[ProductLookupResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "search_type": self.search_type.value,
            "results": [r.to_dict() for r in self.results],
        }
