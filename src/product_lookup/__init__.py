"""Plugin based product lookup by barcode or name."""

from .models import (
    LookupResponse,
    PluginConfigEntry,
    PluginInfo,
    ProductLookupNutrition,
    ProductLookupResult,
    ResultImage,
    SearchMode,
    SearchType,
)
from .service import ProductLookupService

__version__ = "0.1.0"

__all__ = [
    "LookupResponse",
    "PluginConfigEntry",
    "PluginInfo",
    "ProductLookupNutrition",
    "ProductLookupResult",
    "ProductLookupService",
    "ResultImage",
    "SearchMode",
    "SearchType",
]
