"""Reading and validating the plugin configuration document.

The document is JSON, or YAML when the file ends in ``.yaml``/``.yml``. It
holds two ordered descriptor arrays, ``plugins`` and ``storeIntegrations``.
An optional ``env`` key selects an overlay from ``environments`` which is
merged over the base document before ``${VAR}`` / ``${VAR:-default}``
references are expanded.
"""
import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from product_lookup.errors import ConfigurationError
from product_lookup.models import PluginConfigEntry

PLUGINS_SECTION = "plugins"
STORE_INTEGRATIONS_SECTION = "storeIntegrations"
SECTIONS = (PLUGINS_SECTION, STORE_INTEGRATIONS_SECTION)

_YAML_SUFFIXES = {".yaml", ".yml"}
_ENV_REFERENCE = re.compile(r"\$\{([^}]+)\}")
_MAX_EXPANSION_PASSES = 5


def expand_env(value: Any, env: Mapping[str, str]) -> Any:
    """Expand ``${VAR}`` and ``${VAR:-default}`` in every string of *value*.

    Unset variables without a default expand to the empty string. Expansion
    is repeated a few times so a default may itself reference a variable.
    """
    if isinstance(value, dict):
        return {key: expand_env(item, env) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item, env) for item in value]
    if not isinstance(value, str):
        return value

    def lookup(match: "re.Match[str]") -> str:
        name, _, default = match.group(1).partition(":-")
        return str(env.get(name, default))

    for _ in range(_MAX_EXPANSION_PASSES):
        expanded = _ENV_REFERENCE.sub(lookup, value)
        if expanded == value:
            break
        value = expanded
    return value


def _read_file(path: str) -> Any:
    is_yaml = Path(path).suffix.lower() in _YAML_SUFFIXES
    with open(path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f) if is_yaml else json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Failed to parse {path}: {e}") from e


def _overlay(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursive dict merge; anything that is not a dict (lists included) is replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _overlay(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_environment(document: Dict[str, Any]) -> Dict[str, Any]:
    """Merge the overlay selected by ``env`` and drop the selection keys."""
    selected = document.get("env")
    environments = document.get("environments")
    base = {k: v for k, v in document.items() if k not in ("env", "environments")}
    if selected is None:
        return base

    if not isinstance(environments, dict) or selected not in environments:
        raise ConfigurationError(f"env '{selected}' has no matching entry in environments")
    override = environments[selected]
    if not isinstance(override, dict):
        raise ConfigurationError(f"environments.{selected} must be a mapping")
    return _overlay(base, override)


def section_entries(document: Dict[str, Any], section: str) -> Optional[List[Any]]:
    """Descriptor array for *section*, or None when the document has none.

    Raises ConfigurationError when the section is present but not a list.
    """
    entries = document.get(section)
    if entries is not None and not isinstance(entries, list):
        raise ConfigurationError(f"'{section}' must be a list of plugin descriptors")
    return entries


def section_warnings(document: Dict[str, Any], section: str) -> List[str]:
    """Problems in the parts of *document* that *section*'s loader ignores."""
    problems = []
    unknown = sorted(set(document) - set(SECTIONS))
    if unknown:
        problems.append(f"Unknown top-level config keys: {unknown}")
    for other in SECTIONS:
        if other != section and other in document and not isinstance(document[other], list):
            problems.append(f"'{other}' must be a list of plugin descriptors")
    return problems


def load_document(path: str, env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Load the plugin configuration document at *path*.

    Parameters:
        path: JSON or YAML file.
        env: Variables used for ``${VAR}`` expansion; defaults to os.environ.

    Returns:
        The document with the environment overlay applied. Sections are
        checked by their loaders, see ``section_entries``.

    Raises:
        FileNotFoundError: *path* does not exist.
        ConfigurationError: the file cannot be parsed or is not an object.
    """
    raw = _read_file(path)
    if not isinstance(raw, dict):
        raise ConfigurationError("Top-level config must be an object")

    document = apply_environment(raw)
    return expand_env(document, os.environ if env is None else env)


def _flag(raw: Mapping[str, Any], key: str) -> bool:
    value = raw.get(key, False)
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be a boolean, got {type(value).__name__}")
    return value


def _text(raw: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ConfigurationError(f"'{key}' must be a string")
        return value
    return None


def parse_plugin_entry(raw: Any) -> PluginConfigEntry:
    """Validate one plugin descriptor and convert it to a ``PluginConfigEntry``.

    Missing ``enabled``/``builtin`` flags default to False. Both camelCase
    and snake_case spellings are accepted for ``modulePath`` and
    ``displayName``.
    """
    if not isinstance(raw, dict):
        raise ConfigurationError("Plugin descriptor must be an object")

    plugin_id = raw.get("id")
    if not isinstance(plugin_id, str) or not plugin_id.strip():
        raise ConfigurationError("Plugin descriptor requires a non-empty string 'id'")

    config = raw.get("config")
    if config is not None and not isinstance(config, dict):
        raise ConfigurationError(f"Plugin '{plugin_id}': 'config' must be an object")

    return PluginConfigEntry(
        id=plugin_id.strip(),
        enabled=_flag(raw, "enabled"),
        builtin=_flag(raw, "builtin"),
        module_path=_text(raw, "modulePath", "module_path"),
        display_name=_text(raw, "displayName", "display_name") or "",
        config=config,
    )
