"""Builtin plugin registry and resolution of external plugins.

Builtin plugins are looked up by id in a ``BuiltinRegistry``. External
plugins are resolved from a module path given in the configuration:

* ``package.module`` - first concrete plugin class defined in the module;
* ``package.module:ClassName`` - that class;
* ``path/to/plugin.py`` - a source file, relative to the configuration
  directory when not absolute.
"""
from __future__ import annotations

import importlib
import importlib.util
import inspect
import sys
from pathlib import Path
from types import ModuleType
from typing import Dict, Iterator, List, Optional, Tuple, Type, Union

from product_lookup.errors import PluginLoadError

from .interfaces import BasePlugin

PluginClass = Type[BasePlugin]


def _ensure_valid(cls: type, base: Type[BasePlugin] = BasePlugin) -> None:
    """Validate a plugin class before it is registered or instantiated.

    Raises PluginLoadError on invalid class.
    """
    if not isinstance(cls, type):
        raise PluginLoadError("Plugin must be a class")
    if not issubclass(cls, base):
        raise PluginLoadError(f"{cls.__name__} must subclass {base.__name__}")
    if inspect.isabstract(cls):
        raise PluginLoadError(f"{cls.__name__} does not implement all abstract methods")
    plugin_id = getattr(cls, "plugin_id", None)
    if not isinstance(plugin_id, str) or not plugin_id.strip():
        raise PluginLoadError(f"{cls.__name__} must define non-empty string attribute 'plugin_id'")


def load_class(path: str) -> type:
    """Load a class from an import path like 'module.sub:ClassName'.

    Raises PluginLoadError on invalid input or import problems.
    """
    if not path or ":" not in path:
        raise PluginLoadError("Import path must be in format 'module:Class'")
    module_name, class_name = path.split(":", 1)
    if not module_name or not class_name:
        raise PluginLoadError("Import path must specify both module and class")
    try:
        mod = importlib.import_module(module_name)
        cls = getattr(mod, class_name)
    except Exception as e:
        raise PluginLoadError(f"Failed to load '{path}': {e}") from e
    if not isinstance(cls, type):
        raise PluginLoadError(f"Target '{path}' is not a class")
    return cls


def _import_source_file(path: Path) -> ModuleType:
    if not path.is_file():
        raise PluginLoadError(f"Plugin module not found: {path}")
    module_name = f"product_lookup_external_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"Cannot import plugin module from {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise PluginLoadError(f"Failed to import {path}: {e}") from e
    return module


def find_plugin_class(module: ModuleType, base: Type[BasePlugin] = BasePlugin) -> PluginClass:
    """Return the first concrete *base* subclass defined in *module*.

    Classes are considered in definition order; classes merely imported into
    the module are ignored.
    """
    for obj in vars(module).values():
        if (
            inspect.isclass(obj)
            and issubclass(obj, base)
            and not inspect.isabstract(obj)
            and obj.__module__ == module.__name__
        ):
            return obj
    raise PluginLoadError(f"No {base.__name__} implementation found in {module.__name__}")


def resolve_plugin(
    module_path: str,
    base_dir: Optional[Union[str, Path]] = None,
    base: Type[BasePlugin] = BasePlugin,
) -> BasePlugin:
    """Resolve *module_path* to a plugin instance created without arguments."""
    if not module_path or not module_path.strip():
        raise PluginLoadError("Empty module path")

    if ":" in module_path and not module_path.endswith(".py"):
        cls = load_class(module_path)
    else:
        if module_path.endswith(".py"):
            path = Path(module_path)
            if not path.is_absolute() and base_dir is not None:
                path = Path(base_dir) / path
            module = _import_source_file(path)
        else:
            try:
                module = importlib.import_module(module_path)
            except Exception as e:
                raise PluginLoadError(f"Failed to import '{module_path}': {e}") from e
        cls = find_plugin_class(module, base)

    _ensure_valid(cls, base)
    try:
        return cls()
    except Exception as e:
        raise PluginLoadError(f"Failed to create instance of {cls.__name__}: {e}") from e


class BuiltinRegistry:
    """Ordered map of builtin plugin ids to plugin classes.

    Registration order is the order used when builtins are auto-loaded.
    """

    def __init__(self, plugins: Optional[List[PluginClass]] = None) -> None:
        self._plugins: Dict[str, PluginClass] = {}
        for cls in plugins or []:
            self.register(cls)

    def register(self, cls: PluginClass) -> None:
        """Register a plugin class under its ``plugin_id``."""
        _ensure_valid(cls)
        if cls.plugin_id in self._plugins:
            raise PluginLoadError(f"Builtin plugin '{cls.plugin_id}' is already registered", cls.plugin_id)
        self._plugins[cls.plugin_id] = cls

    def create(self, plugin_id: str) -> BasePlugin:
        """Instantiate the builtin registered as *plugin_id*."""
        try:
            cls = self._plugins[plugin_id]
        except KeyError:
            raise PluginLoadError(f"Built-in plugin '{plugin_id}' not found", plugin_id) from None
        return cls()

    def ids(self) -> List[str]:
        return list(self._plugins)

    def items(self) -> Iterator[Tuple[str, PluginClass]]:
        return iter(list(self._plugins.items()))

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)


def default_builtins() -> BuiltinRegistry:
    """Registry of the plugins shipped with the package.

    USDA runs first so its nutrition data wins; Open Food Facts then fills
    in images and scores.
    """
    from .openfoodfacts import OpenFoodFactsPlugin
    from .usda import UsdaFoodDataPlugin

    return BuiltinRegistry([UsdaFoodDataPlugin, OpenFoodFactsPlugin])
