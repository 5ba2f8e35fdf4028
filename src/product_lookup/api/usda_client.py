"""
USDA FoodData Central API client.

Wraps the ``foods/search`` endpoint used by the USDA plugin. Transport
errors and 5xx responses are retried with exponential backoff; anything
else surfaces as ``SourceApiError``.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from product_lookup.errors import SourceApiError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.nal.usda.gov/fdc/v1/"
DEFAULT_TIMEOUT = 15.0

BRANDED_DATA_TYPES = ("Branded",)
ALL_DATA_TYPES = ("Branded", "Foundation", "SR Legacy")


def is_retryable(exc: BaseException) -> bool:
    """Transport failures and server side errors are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, SourceApiError) and exc.status_code is not None and exc.status_code >= 500


def raise_for_response(response: httpx.Response, source: str) -> None:
    if response.status_code == 429:
        raise SourceApiError(f"{source} rate limit exceeded", response.status_code, "rate_limit")
    if response.status_code >= 400:
        raise SourceApiError(
            f"{source} returned HTTP {response.status_code}", response.status_code, "http_error"
        )


class UsdaClient:
    """Client for the FoodData Central search API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ):
        if not api_key:
            raise ValueError("USDA API key is required")
        self.api_key = api_key
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._client = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(is_retryable),
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.INFO),
    )
    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        response = self._client.post(url, params={"api_key": self.api_key}, json=body)
        raise_for_response(response, "USDA")
        try:
            payload = response.json()
        except ValueError as e:
            raise SourceApiError(f"USDA returned invalid JSON: {e}", response.status_code, "parse_error") from e
        if not isinstance(payload, dict):
            raise SourceApiError("USDA response is not an object", response.status_code, "parse_error")
        return payload

    def search_foods(
        self,
        query: str,
        data_types: Sequence[str] = ALL_DATA_TYPES,
        page_size: int = 20,
    ) -> List[Dict[str, Any]]:
        """Search foods and return the raw ``foods`` array."""
        body = {"query": query, "dataType": list(data_types), "pageSize": page_size}
        logger.debug("USDA search query=%r dataType=%s pageSize=%d", query, body["dataType"], page_size)
        payload = self._post("foods/search", body)
        foods = payload.get("foods") or []
        return [f for f in foods if isinstance(f, dict)]
