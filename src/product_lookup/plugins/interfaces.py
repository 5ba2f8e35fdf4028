"""Plugin interfaces (ABCs) for the product lookup pipeline.

These define the contracts that data source adapters implement. A plugin
takes part in a lookup in one of two ways:

* source mode (``SourcePlugin``): ``lookup`` returns a fresh batch which
  ``enrich_pipeline`` merges into the context;
* enrichment mode (``EnrichmentPlugin``): ``process_pipeline`` queries the
  plugin's own source and fills gaps in results already in the context.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from product_lookup.models import ProductLookupResult, ResultImage, SearchType
from product_lookup.pipeline.cancellation import CancellationToken, raise_if_cancelled
from product_lookup.pipeline.context import PipelineContext
from product_lookup.pipeline.merge import is_missing


class BasePlugin(ABC):
    """Base class for all plugins.

    Attributes
    -----------
    plugin_id: str
        A unique, short identifier. Builtin configuration entries refer to
        the plugin by this id.
    display_name: str
        Human readable name, also used as the key in ``data_sources``.
    version: str
        Plugin version string.
    """

    plugin_id: str
    display_name: str
    version: str = "1.0.0"

    _initialized: bool = False

    @property
    def is_available(self) -> bool:
        """Whether the plugin is initialized and configured well enough to run."""
        return self._initialized

    @abstractmethod
    def init(self, config: Optional[Dict[str, Any]]) -> None:
        """Initialize the plugin from its configuration blob.

        ``config`` is passed verbatim from the configuration document, or
        None when the plugin runs with defaults. Raise ``PluginInitError``
        when the configuration is unusable.
        """


class ProductLookupPlugin(BasePlugin):
    """A plugin that takes part in the lookup pipeline."""

    @abstractmethod
    def process_pipeline(self, context: PipelineContext, cancel_token: Optional[CancellationToken] = None) -> None:
        """Contribute to *context* for the current query."""

    def source_key(self) -> str:
        return self.display_name or self.plugin_id


class SourcePlugin(ProductLookupPlugin):
    """Authoritative data source that supplies new candidate results."""

    @abstractmethod
    def lookup(
        self,
        query: str,
        search_type: SearchType,
        max_results: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[ProductLookupResult]:
        """Query the source and return results in pipeline shape."""

    def enrich_pipeline(self, context: PipelineContext, results: List[ProductLookupResult]) -> None:
        """Merge *results* into *context* without creating duplicates."""
        for result in results:
            context.merge_or_add(result, self.source_key())

    def process_pipeline(self, context: PipelineContext, cancel_token: Optional[CancellationToken] = None) -> None:
        raise_if_cancelled(cancel_token)
        results = self.lookup(context.query, context.search_type, context.max_results, cancel_token)
        raise_if_cancelled(cancel_token)
        self.enrich_pipeline(context, results)


class EnrichmentPlugin(ProductLookupPlugin):
    """Augments results already in the context.

    Subclasses implement ``process_pipeline`` and hand each record from
    their source to ``context.merge_or_add`` along with ``source_key()``.
    That fills gaps in a matching result and only adds a new one when
    nothing matches and room remains. A merged match is a new object: keep
    the return value, not a result fetched earlier from the context.
    """

    def image(self, url: Optional[str]) -> Optional[ResultImage]:
        if is_missing(url):
            return None
        return ResultImage(url=url, plugin_id=self.plugin_id)


class StoreIntegrationPlugin(SourcePlugin):
    """Retailer integration contributing store specific product data.

    Prices and availability go into ``additional_data``. Authentication with
    the retailer is the plugin's own concern.
    """
