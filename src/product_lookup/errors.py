"""Exception types for the product lookup pipeline.

Configuration and load errors are raised internally by the loader and
reported through logging; they never reach the caller of a lookup. Plugin
failures are wrapped in ``PluginExecutionError`` by the runner.
"""
from __future__ import annotations

from typing import Optional

__all__ = [
    "ProductLookupError",
    "ConfigurationError",
    "PluginLoadError",
    "PluginInitError",
    "PluginExecutionError",
    "OperationCancelledError",
    "CheckDigitComputationError",
    "SourceApiError",
]


class ProductLookupError(Exception):
    """Base exception for the product lookup package."""


class ConfigurationError(ProductLookupError):
    """A plugin descriptor or configuration document is malformed."""


class PluginLoadError(ProductLookupError):
    """A configured plugin could not be resolved or instantiated."""

    def __init__(self, message: str, plugin_id: Optional[str] = None):
        self.plugin_id = plugin_id
        super().__init__(message)


class PluginInitError(ProductLookupError):
    """A plugin rejected its configuration during ``init``."""


class PluginExecutionError(ProductLookupError):
    """A plugin raised while looking up or enriching results."""

    def __init__(self, plugin_id: str, message: str, cancelled: bool = False):
        self.plugin_id = plugin_id
        self.cancelled = cancelled
        super().__init__(f"[{plugin_id}] {message}")


class OperationCancelledError(ProductLookupError):
    """Raised by a plugin that observed a cancellation request."""


class CheckDigitComputationError(ValueError):
    """Check digit requested for a core that is too short or not numeric."""


class SourceApiError(ProductLookupError):
    """An external data source answered with an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None, error_type: str = "api_error"):
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        super().__init__(f"[{self.error_type}] {self.message}")
