"""Open Food Facts API client."""
import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from product_lookup.errors import SourceApiError

from .usda_client import DEFAULT_TIMEOUT, is_retryable, raise_for_response

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://world.openfoodfacts.org"
USER_AGENT = "product-lookup/0.1 (https://github.com/product-lookup/product-lookup)"


class OpenFoodFactsClient:
    """Read-only client for the product and search endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client(timeout=timeout, headers={"User-Agent": user_agent})

    def close(self) -> None:
        self._client.close()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(is_retryable),
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.INFO),
    )
    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        response = self._client.get(f"{self.base_url}{path}", params=params)
        if response.status_code == 404:
            return None
        raise_for_response(response, "Open Food Facts")
        try:
            payload = response.json()
        except ValueError as e:
            raise SourceApiError(
                f"Open Food Facts returned invalid JSON: {e}", response.status_code, "parse_error"
            ) from e
        return payload if isinstance(payload, dict) else None

    def get_product(self, barcode: str) -> Optional[Dict[str, Any]]:
        """Fetch one product by barcode. Returns None when it is unknown."""
        payload = self._get(f"/api/v2/product/{barcode}.json")
        if not payload or payload.get("status") != 1:
            return None
        product = payload.get("product")
        return product if isinstance(product, dict) else None

    def search(self, terms: str, page_size: int = 20) -> List[Dict[str, Any]]:
        payload = self._get(
            "/cgi/search.pl",
            params={"search_terms": terms, "page_size": page_size, "json": 1},
        )
        if not payload:
            return []
        return [p for p in payload.get("products") or [] if isinstance(p, dict)]
