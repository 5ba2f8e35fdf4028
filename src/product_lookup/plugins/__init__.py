"""Plugin system for product_lookup.

This package defines the plugin contracts, the builtin registry and the
loader that turns a configuration document into an ordered plugin snapshot.
"""

from .interfaces import (  # re-export
    BasePlugin,
    EnrichmentPlugin,
    ProductLookupPlugin,
    SourcePlugin,
    StoreIntegrationPlugin,
)
from .loader import PluginLoader, PluginProvider, PluginSnapshot, store_integration_loader
from .registry import BuiltinRegistry, default_builtins, resolve_plugin

__all__ = [
    "BasePlugin",
    "BuiltinRegistry",
    "EnrichmentPlugin",
    "PluginLoader",
    "PluginProvider",
    "PluginSnapshot",
    "ProductLookupPlugin",
    "SourcePlugin",
    "StoreIntegrationPlugin",
    "default_builtins",
    "resolve_plugin",
    "store_integration_loader",
]
