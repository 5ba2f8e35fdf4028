"""HTTP clients for the external data sources used by the builtin plugins."""

from .openfoodfacts_client import OpenFoodFactsClient
from .usda_client import UsdaClient

__all__ = ["OpenFoodFactsClient", "UsdaClient"]
