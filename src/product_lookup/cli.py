"""Command line entry point for product lookups.

Example:
    # Look up a barcode with the plugins configured in plugins/config.json
    product-lookup 761720051108

    # Name search restricted to store integrations
    product-lookup "oat milk" --config config/plugins.yaml --store-only
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from product_lookup.config import get_config_path
from product_lookup.models import SearchMode
from product_lookup.pipeline.context import DEFAULT_MAX_RESULTS
from product_lookup.plugins.loader import PluginLoader, PluginProvider, store_integration_loader
from product_lookup.service import ProductLookupService

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for a lookup."""
    parser = argparse.ArgumentParser(
        description="Look up a product by barcode or name across the configured data sources."
    )
    parser.add_argument("query", help="Barcode (8-14 digits) or product name.")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to the plugin configuration (JSON or YAML). Defaults to $PRODUCT_LOOKUP_CONFIG or plugins/config.json.",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=DEFAULT_MAX_RESULTS,
        help="Maximum number of results to return.",
    )
    parser.add_argument(
        "--store-only",
        action="store_true",
        help="Only query store integrations.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    # Logs go to stderr so stdout stays valid JSON
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s (%(filename)s:%(lineno)d)",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    if args.max_results < 0:
        logger.error("--max-results cannot be negative")
        return 2

    config_path = args.config or get_config_path()
    try:
        service = ProductLookupService(
            PluginProvider(PluginLoader(config_path)),
            store_provider=PluginProvider(store_integration_loader(config_path)),
        )
        mode = SearchMode.STORE_INTEGRATIONS_ONLY if args.store_only else SearchMode.ALL_SOURCES
        response = service.search(args.query, max_results=args.max_results, search_mode=mode)
    except Exception as e:
        logger.critical(f"A critical error occurred: {e}", exc_info=True)
        return 1

    json.dump(response.to_dict(), sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
