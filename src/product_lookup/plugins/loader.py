"""Build the ordered list of active plugins from configuration.

``PluginLoader.load`` reads the configuration document and produces an
immutable ``PluginSnapshot``. ``PluginProvider`` holds the current snapshot
and swaps in a new one on reload; lookups already running keep the snapshot
they started with.
"""
from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Type, TypeVar

from product_lookup.config.loader import (
    PLUGINS_SECTION,
    load_document,
    parse_plugin_entry,
    section_entries,
    section_warnings,
)
from product_lookup.errors import ConfigurationError, PluginInitError, PluginLoadError
from product_lookup.models import PluginConfigEntry, PluginInfo
from product_lookup.observability.logging import bind_context, get_structured_logger

from .interfaces import BasePlugin, ProductLookupPlugin
from .registry import BuiltinRegistry, default_builtins, resolve_plugin

logger = get_structured_logger(__name__)

P = TypeVar("P", bound=BasePlugin)


@dataclass(frozen=True)
class PluginSnapshot:
    """Loaded plugins in execution order plus every parsed descriptor."""

    plugins: Tuple[BasePlugin, ...] = ()
    configurations: Tuple[PluginConfigEntry, ...] = ()

    def available_plugins(self, kind: Type[P] = ProductLookupPlugin) -> List[P]:  # type: ignore[assignment]
        """Available plugins of *kind*, in configured order."""
        return [p for p in self.plugins if isinstance(p, kind) and p.is_available]

    def get_plugin(self, plugin_id: str) -> Optional[BasePlugin]:
        for plugin in self.plugins:
            if plugin.plugin_id == plugin_id:
                return plugin
        return None

    def plugin_ids(self) -> List[str]:
        return [p.plugin_id for p in self.plugins]

    def plugin_infos(self) -> List[PluginInfo]:
        return [
            PluginInfo(
                plugin_id=p.plugin_id,
                display_name=p.display_name,
                version=p.version,
                is_available=p.is_available,
            )
            for p in self.plugins
        ]


class PluginLoader:
    """Reads one section of the configuration document into a snapshot.

    Args:
        config_path: Path to the configuration document. A missing file means
            zero-config startup.
        builtins: Registry used to resolve ``builtin`` entries.
        section: Key of the descriptor array in the document.
        autoload_builtins: Enable every builtin with defaults when the
            configuration file does not exist.
        plugin_base: Class every loaded plugin must derive from.
    """

    def __init__(
        self,
        config_path: str,
        builtins: Optional[BuiltinRegistry] = None,
        section: str = PLUGINS_SECTION,
        autoload_builtins: bool = True,
        plugin_base: Type[BasePlugin] = ProductLookupPlugin,
    ) -> None:
        self.config_path = config_path
        self.builtins = builtins if builtins is not None else default_builtins()
        self.section = section
        self.autoload_builtins = autoload_builtins
        self.plugin_base = plugin_base

    def load(self) -> PluginSnapshot:
        load_logger = bind_context(logger, {"section": self.section, "config_path": str(self.config_path)})

        if not os.path.exists(self.config_path):
            if not self.autoload_builtins:
                load_logger.debug("Plugin configuration not found; no plugins loaded")
                return PluginSnapshot()
            load_logger.info(
                f"Plugin configuration not found. Auto-loading {len(self.builtins)} built-in plugins.",
                extra={"event": "plugins_autoload"},
            )
            return self._load_builtin_defaults()

        try:
            document = load_document(self.config_path)
        except (ConfigurationError, OSError) as e:
            load_logger.error(f"Failed to load plugin configuration: {e}", extra={"event": "config_error"})
            return PluginSnapshot()

        for problem in section_warnings(document, self.section):
            load_logger.warning(f"Ignoring configuration problem: {problem}", extra={"event": "config_warning"})

        try:
            raw_entries = section_entries(document, self.section)
        except ConfigurationError as e:
            load_logger.error(f"Failed to load plugin configuration: {e}", extra={"event": "config_error"})
            return PluginSnapshot()
        if raw_entries is None:
            load_logger.warning(f"No '{self.section}' array found in configuration")
            return PluginSnapshot()

        configurations: List[PluginConfigEntry] = []
        plugins: List[BasePlugin] = []
        for position, raw in enumerate(raw_entries):
            try:
                entry = parse_plugin_entry(raw)
            except ConfigurationError as e:
                load_logger.warning(
                    f"Skipping plugin descriptor #{position}: {e}", extra={"event": "config_entry_invalid"}
                )
                continue

            configurations.append(entry)
            if not entry.enabled:
                load_logger.info(f"Plugin {entry.id} is disabled, skipping", extra={"plugin_id": entry.id})
                continue

            plugin = self._load_plugin(entry)
            if plugin is not None:
                plugins.append(plugin)

        load_logger.info(f"Loaded {len(plugins)} plugins", extra={"event": "plugins_loaded"})
        return PluginSnapshot(plugins=tuple(plugins), configurations=tuple(configurations))

    def _load_builtin_defaults(self) -> PluginSnapshot:
        configurations: List[PluginConfigEntry] = []
        plugins: List[BasePlugin] = []
        for plugin_id, cls in self.builtins.items():
            entry = PluginConfigEntry(
                id=plugin_id, enabled=True, builtin=True, display_name=cls.display_name
            )
            configurations.append(entry)
            plugin = self._load_plugin(entry)
            if plugin is not None:
                plugins.append(plugin)
        return PluginSnapshot(plugins=tuple(plugins), configurations=tuple(configurations))

    def _resolve(self, entry: PluginConfigEntry) -> BasePlugin:
        if entry.builtin:
            plugin = self.builtins.create(entry.id)
            if not isinstance(plugin, self.plugin_base):
                raise PluginLoadError(
                    f"Built-in plugin '{entry.id}' is not a {self.plugin_base.__name__}", entry.id
                )
            return plugin
        if not entry.module_path:
            raise PluginLoadError(f"External plugin '{entry.id}' has no module path", entry.id)
        base_dir = Path(self.config_path).resolve().parent
        return resolve_plugin(entry.module_path, base_dir=base_dir, base=self.plugin_base)

    def _load_plugin(self, entry: PluginConfigEntry) -> Optional[BasePlugin]:
        plugin_logger = bind_context(logger, {"section": self.section, "plugin_id": entry.id})
        try:
            plugin = self._resolve(entry)
            plugin.init(entry.config)
        except (PluginLoadError, PluginInitError) as e:
            plugin_logger.warning(f"Failed to load plugin {entry.id}: {e}", extra={"event": "plugin_load_error"})
            return None
        except Exception as e:
            plugin_logger.error(
                f"Failed to load plugin {entry.id}: {e}", extra={"event": "plugin_load_error"}, exc_info=True
            )
            return None

        plugin_logger.info(
            f"Loaded plugin {plugin.plugin_id} ({plugin.display_name}) v{plugin.version}",
            extra={"event": "plugin_loaded", "available": plugin.is_available},
        )
        return plugin


class PluginProvider:
    """Holds the current plugin snapshot.

    Readers take ``snapshot`` without locking. ``reload`` builds a complete
    new snapshot and then replaces the reference; concurrent reloads are
    serialised.
    """

    def __init__(self, loader: PluginLoader, load: bool = True) -> None:
        self._loader = loader
        self._reload_lock = threading.Lock()
        self._snapshot = PluginSnapshot()
        if load:
            self.reload()

    @property
    def snapshot(self) -> PluginSnapshot:
        return self._snapshot

    def reload(self) -> PluginSnapshot:
        with self._reload_lock:
            snapshot = self._loader.load()
            self._snapshot = snapshot
        return snapshot

    def get_plugin_configurations(self) -> Tuple[PluginConfigEntry, ...]:
        return self._snapshot.configurations

    def get_available_plugins(self, kind: Type[P] = ProductLookupPlugin) -> List[P]:  # type: ignore[assignment]
        return self._snapshot.available_plugins(kind)


def store_integration_loader(config_path: str, builtins: Optional[BuiltinRegistry] = None) -> PluginLoader:
    """Loader for the ``storeIntegrations`` array of the same document."""
    from product_lookup.config.loader import STORE_INTEGRATIONS_SECTION

    from .interfaces import StoreIntegrationPlugin

    return PluginLoader(
        config_path,
        builtins=builtins if builtins is not None else BuiltinRegistry(),
        section=STORE_INTEGRATIONS_SECTION,
        autoload_builtins=False,
        plugin_base=StoreIntegrationPlugin,
    )
