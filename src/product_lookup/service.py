"""
Product lookup service.

Entry point used by callers (CLI, web handlers) to run one lookup: detects
whether the query is a barcode, picks the plugins that take part and runs
them through the pipeline.
"""
from __future__ import annotations

from typing import Iterable, List, Optional

from product_lookup.models import LookupResponse, PluginInfo, SearchMode, SearchType
from product_lookup.normalization.barcode import is_barcode, normalize_barcode
from product_lookup.observability.logging import bind_context, get_structured_logger
from product_lookup.pipeline.cancellation import CancellationToken
from product_lookup.pipeline.context import DEFAULT_MAX_RESULTS, PipelineContext
from product_lookup.pipeline.runner import PipelineRunner
from product_lookup.plugins.interfaces import ProductLookupPlugin, StoreIntegrationPlugin
from product_lookup.plugins.loader import PluginProvider

logger = get_structured_logger(__name__)


class ProductLookupService:
    """Runs lookups against the plugins of the current snapshots.

    Args:
        provider: Holds the product plugins (``plugins`` section).
        store_provider: Optional holder of store integrations
            (``storeIntegrations`` section). They run after product plugins.
        runner: Pipeline runner, replaceable in tests.
    """

    def __init__(
        self,
        provider: PluginProvider,
        store_provider: Optional[PluginProvider] = None,
        runner: Optional[PipelineRunner] = None,
    ):
        self.provider = provider
        self.store_provider = store_provider
        self.runner = runner or PipelineRunner()

    def _active_plugins(
        self,
        search_mode: SearchMode,
        plugin_id: Optional[str],
        disabled_plugin_ids: Iterable[str],
    ) -> List[ProductLookupPlugin]:
        # Take each snapshot once so a concurrent reload cannot mix lists
        plugins: List[ProductLookupPlugin] = list(self.provider.snapshot.available_plugins(ProductLookupPlugin))
        if self.store_provider is not None:
            plugins.extend(self.store_provider.snapshot.available_plugins(StoreIntegrationPlugin))

        disabled = set(disabled_plugin_ids or ())
        plugins = [p for p in plugins if p.plugin_id not in disabled]
        if plugin_id:
            plugins = [p for p in plugins if p.plugin_id == plugin_id]
        if search_mode == SearchMode.STORE_INTEGRATIONS_ONLY:
            plugins = [p for p in plugins if isinstance(p, StoreIntegrationPlugin)]
        return plugins

    def search(
        self,
        query: str,
        max_results: int = DEFAULT_MAX_RESULTS,
        search_mode: SearchMode = SearchMode.ALL_SOURCES,
        plugin_id: Optional[str] = None,
        disabled_plugin_ids: Iterable[str] = (),
        cancel_token: Optional[CancellationToken] = None,
    ) -> LookupResponse:
        """Look up *query* and return the aggregated results.

        A query of 8 to 14 digits (spaces and dashes ignored) is searched as
        a barcode; anything else as a product name.
        """
        if not query or not query.strip():
            return LookupResponse(query=query or "", search_type=SearchType.NAME)

        query = query.strip()
        if is_barcode(query):
            search_type = SearchType.BARCODE
            query = normalize_barcode(query)
        else:
            search_type = SearchType.NAME

        search_logger = bind_context(logger, {"query": query, "search_type": search_type.value})
        plugins = self._active_plugins(SearchMode(search_mode), plugin_id, disabled_plugin_ids)
        if not plugins:
            search_logger.warning("No plugins available for lookup", extra={"event": "no_plugins"})

        context = PipelineContext(query, search_type, max_results)
        results = self.runner.run(context, plugins, cancel_token)

        if search_type == SearchType.BARCODE:
            for result in results:
                result.original_search_barcode = query

        return LookupResponse(query=query, search_type=search_type, results=list(results))

    def get_available_plugins(self) -> List[PluginInfo]:
        infos = self.provider.snapshot.plugin_infos()
        if self.store_provider is not None:
            infos.extend(self.store_provider.snapshot.plugin_infos())
        return infos
