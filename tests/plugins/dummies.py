import copy

from product_lookup.errors import OperationCancelledError, PluginInitError
from product_lookup.models import ProductLookupResult
from product_lookup.plugins.interfaces import EnrichmentPlugin, SourcePlugin, StoreIntegrationPlugin


class DummySource(SourcePlugin):
    plugin_id = "dummy_source"
    display_name = "Dummy Source"

    def __init__(self, results=None):
        self.results = list(results or [])
        self.calls = []
        self.config = None

    def init(self, config):
        self.config = config
        self._initialized = True

    def lookup(self, query, search_type, max_results, cancel_token=None):
        self.calls.append((query, search_type, max_results))
        return [ProductLookupResult(**copy.deepcopy(r)) if isinstance(r, dict) else r for r in self.results]


class OtherSource(DummySource):
    plugin_id = "other_source"
    display_name = "Other Source"


class DummyEnricher(EnrichmentPlugin):
    """Adds a fixed brand to every result."""

    plugin_id = "dummy_enricher"
    display_name = "Dummy Enricher"

    def init(self, config):
        self.brand = (config or {}).get("brand", "Acme")
        self._initialized = True

    def process_pipeline(self, context, cancel_token=None):
        for result in list(context.results):
            context.merge_or_add(
                ProductLookupResult(
                    barcode=result.barcode,
                    name=None if result.barcode else result.name,
                    brand_name=self.brand,
                    data_sources={self.source_key(): "enriched"},
                ),
                self.source_key(),
            )


class FailingPlugin(SourcePlugin):
    plugin_id = "failing"
    display_name = "Failing"

    def init(self, config):
        self._initialized = True

    def lookup(self, query, search_type, max_results, cancel_token=None):
        raise RuntimeError("source exploded")


class CancellingPlugin(SourcePlugin):
    plugin_id = "cancelling"
    display_name = "Cancelling"

    def init(self, config):
        self._initialized = True

    def lookup(self, query, search_type, max_results, cancel_token=None):
        raise OperationCancelledError("stopped by caller")


class BadInitPlugin(SourcePlugin):
    plugin_id = "bad_init"
    display_name = "Bad Init"

    def init(self, config):
        raise PluginInitError("missing required setting")

    def lookup(self, query, search_type, max_results, cancel_token=None):
        return []


class UnavailablePlugin(SourcePlugin):
    plugin_id = "unavailable"
    display_name = "Unavailable"

    def init(self, config):
        self._initialized = False

    def lookup(self, query, search_type, max_results, cancel_token=None):
        raise AssertionError("unavailable plugins must not run")


class DummyStore(StoreIntegrationPlugin):
    plugin_id = "dummy_store"
    display_name = "Dummy Store"

    def init(self, config):
        self.price = (config or {}).get("price", 1.99)
        self._initialized = True

    def lookup(self, query, search_type, max_results, cancel_token=None):
        return [
            ProductLookupResult(
                name="Store Oat Drink",
                barcode="761720051108",
                data_sources={self.source_key(): "sku-1"},
                additional_data={"price": self.price},
            )
        ]


class OatDrinkSource(DummySource):
    plugin_id = "oat_source"
    display_name = "Oat Source"

    def __init__(self):
        super().__init__(
            [{"name": "Oat Drink", "barcode": "761720051108", "data_sources": {"Oat Source": "1"}}]
        )
