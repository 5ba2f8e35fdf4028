"""Configuration for product lookups.

Importing this package loads a local ``.env`` file so API keys referenced as
``${USDA_API_KEY}`` in the plugin configuration resolve during development.
"""

import os

from dotenv import load_dotenv

load_dotenv()

CONFIG_PATH_ENV = "PRODUCT_LOOKUP_CONFIG"
DEFAULT_CONFIG_PATH = os.path.join("plugins", "config.json")


def get_config_path() -> str:
    """Plugin configuration path, overridable with PRODUCT_LOOKUP_CONFIG."""
    return os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH


__all__ = ['CONFIG_PATH_ENV', 'DEFAULT_CONFIG_PATH', 'get_config_path']
