"""Per-query accumulator of product lookup results.

A ``PipelineContext`` lives for exactly one lookup and is only touched by
the plugin currently running, so it carries no locking.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Iterator, List, Optional

from product_lookup.errors import PluginExecutionError
from product_lookup.models import ProductLookupResult, SearchType
from product_lookup.normalization.barcode import equivalence_set
from product_lookup.pipeline.merge import merge_results

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 20


class PipelineContext:
    """Search parameters plus the results gathered so far.

    Plugins add new results or enrich existing ones. Barcode matching is
    equivalence aware: a 12 digit UPC-A and its zero padded EAN-13 refer to
    the same entry.
    """

    def __init__(self, query: str, search_type: SearchType, max_results: int = DEFAULT_MAX_RESULTS):
        if max_results < 0:
            raise ValueError("max_results cannot be negative")
        self.query = query
        self.search_type = SearchType(search_type)
        self.max_results = max_results
        self.results: List[ProductLookupResult] = []
        self.plugin_errors: List[PluginExecutionError] = []

    def __repr__(self) -> str:
        return (
            f"PipelineContext(query={self.query!r}, search_type={self.search_type.value}, "
            f"results={len(self.results)}/{self.max_results})"
        )

    @property
    def has_room(self) -> bool:
        return len(self.results) < self.max_results

    def find_matching_result(
        self, barcode: Optional[str] = None, name: Optional[str] = None
    ) -> Optional[ProductLookupResult]:
        """Find the first existing result for *barcode*, else for *name*.

        Barcodes match when their equivalence sets intersect. Names match on
        exact case-insensitive equality and are only consulted when no
        barcode is given.
        """
        if barcode:
            wanted = equivalence_set(barcode)
            if not wanted:
                return None
            for result in self.results:
                if result.barcode and wanted & equivalence_set(result.barcode):
                    return result
            return None

        if name:
            folded = name.casefold()
            for result in self.results:
                if result.name and result.name.casefold() == folded:
                    return result
        return None

    def find_results_by_barcode(self, barcode: Optional[str]) -> Iterator[ProductLookupResult]:
        """Yield every result barcode-equivalent to *barcode*."""
        wanted = equivalence_set(barcode)
        if not wanted:
            return
        for result in self.results:
            if result.barcode and wanted & equivalence_set(result.barcode):
                yield result

    def find_by_data_source(self, source: str, external_id: str) -> Optional[ProductLookupResult]:
        """Find a result that *source* already reported under *external_id*."""
        if not source or not external_id:
            return None
        for result in self.results:
            if result.data_sources.get(source, "").casefold() == external_id.casefold():
                return result
        return None

    def add_result(self, result: ProductLookupResult) -> bool:
        """Append *result* while under ``max_results``.

        Returns False when the result was dropped because the context is full.
        """
        if not self.has_room:
            logger.debug("Dropping result %r: context holds %d results", result.name, self.max_results)
            return False
        self.results.append(result)
        return True

    def add_results(self, results: Iterable[ProductLookupResult]) -> int:
        added = 0
        for result in results:
            if self.add_result(result):
                added += 1
        return added

    def replace_result(self, existing: ProductLookupResult, updated: ProductLookupResult) -> None:
        """Swap *existing* for *updated* keeping its position."""
        for index, result in enumerate(self.results):
            if result is existing:
                self.results[index] = updated
                return
        raise ValueError("Result to replace is not part of this context")

    def merge_or_add(
        self, incoming: ProductLookupResult, source_key: Optional[str] = None
    ) -> Optional[ProductLookupResult]:
        """Merge *incoming* into its matching result or add it as a new one.

        *source_key* names the plugin supplying *incoming*; it is recorded in
        ``data_sources`` (with an empty external id when the source gave
        none) so every result in the context says where it came from.

        A match is replaced by a merged copy rather than updated in place.
        Returns the result now held by the context, which callers must use
        from then on, or None when there was no match and no room left.
        """
        if source_key and source_key not in incoming.data_sources:
            incoming = replace(incoming, data_sources={**incoming.data_sources, source_key: ""})
        match = self.find_matching_result(barcode=incoming.barcode, name=None if incoming.barcode else incoming.name)
        if match is not None:
            merged = merge_results(match, incoming)
            self.replace_result(match, merged)
            return merged
        if self.add_result(incoming):
            return incoming
        return None
