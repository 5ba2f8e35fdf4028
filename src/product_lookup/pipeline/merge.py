"""First-writer-wins merge of two product lookup results.

Every plugin merges through ``merge_results`` so precedence between sources
is decided in one place: the result that reached the context first keeps its
values, and later sources only fill the gaps.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any

from product_lookup.models import ProductLookupResult

# Fields where an existing non-empty value is never replaced
SCALAR_FIELDS = (
    "name",
    "brand_name",
    "brand_owner",
    "barcode",
    "ingredients",
    "serving_size_description",
    "description",
    "image_url",
    "thumbnail_url",
    "nutrition",
    "product_url",
    "original_search_barcode",
)


def is_missing(value: Any) -> bool:
    """None and blank strings count as missing."""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def first_present(existing: Any, incoming: Any) -> Any:
    return incoming if is_missing(existing) else existing


def merge_results(existing: ProductLookupResult, incoming: ProductLookupResult) -> ProductLookupResult:
    """Return a new result combining *existing* with *incoming*.

    Neither argument is modified.
    """
    updates = {
        name: first_present(getattr(existing, name), getattr(incoming, name))
        for name in SCALAR_FIELDS
    }

    data_sources = dict(existing.data_sources)
    for source, external_id in incoming.data_sources.items():
        data_sources.setdefault(source, external_id)

    additional = dict(existing.additional_data)
    for key, value in incoming.additional_data.items():
        if key not in additional:
            additional[key] = value

    merged = replace(
        existing,
        data_sources=data_sources,
        categories=list(existing.categories),
        additional_data=additional,
        **updates,
    )
    for category in incoming.categories:
        merged.add_category(category)
    return merged
