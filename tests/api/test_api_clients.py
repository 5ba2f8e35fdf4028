import json

import httpx
import pytest
from tenacity import wait_none

from product_lookup.api.openfoodfacts_client import OpenFoodFactsClient
from product_lookup.api.usda_client import UsdaClient, is_retryable
from product_lookup.errors import SourceApiError


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch):
    monkeypatch.setattr(UsdaClient._post.retry, "wait", wait_none())
    monkeypatch.setattr(OpenFoodFactsClient._get.retry, "wait", wait_none())


def _client(handler, **headers):
    return httpx.Client(transport=httpx.MockTransport(handler), headers=headers)


def test_usda_search_posts_query_and_returns_foods():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"foods": [{"fdcId": 1}, "junk"]})

    client = UsdaClient("secret", http_client=_client(handler))
    foods = client.search_foods("oat drink", ["Branded"], 10)

    assert foods == [{"fdcId": 1}]
    assert seen["method"] == "POST"
    assert seen["url"].startswith("https://api.nal.usda.gov/fdc/v1/foods/search")
    assert "api_key=secret" in seen["url"]
    assert seen["body"] == {"query": "oat drink", "dataType": ["Branded"], "pageSize": 10}


def test_usda_requires_api_key():
    with pytest.raises(ValueError):
        UsdaClient("")


def test_usda_retries_server_errors_then_succeeds():
    calls = []

    def handler(request):
        calls.append(1)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"foods": []})

    client = UsdaClient("k", http_client=_client(handler))
    assert client.search_foods("oat") == []
    assert len(calls) == 3


def test_usda_gives_up_after_three_attempts():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(500)

    client = UsdaClient("k", http_client=_client(handler))
    with pytest.raises(SourceApiError) as exc:
        client.search_foods("oat")
    assert exc.value.status_code == 500
    assert len(calls) == 3


def test_usda_client_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(403)

    client = UsdaClient("k", http_client=_client(handler))
    with pytest.raises(SourceApiError) as exc:
        client.search_foods("oat")
    assert exc.value.error_type == "http_error"
    assert len(calls) == 1


def test_usda_rate_limit_and_invalid_json():
    client = UsdaClient("k", http_client=_client(lambda r: httpx.Response(429)))
    with pytest.raises(SourceApiError) as exc:
        client.search_foods("oat")
    assert exc.value.error_type == "rate_limit"

    client = UsdaClient("k", http_client=_client(lambda r: httpx.Response(200, text="<html>")))
    with pytest.raises(SourceApiError) as exc:
        client.search_foods("oat")
    assert exc.value.error_type == "parse_error"


def test_is_retryable():
    assert is_retryable(httpx.ConnectError("boom"))
    assert is_retryable(SourceApiError("x", 502))
    assert not is_retryable(SourceApiError("x", 404))
    assert not is_retryable(SourceApiError("x"))
    assert not is_retryable(ValueError("x"))


def test_transport_errors_are_retried():
    calls = []

    def handler(request):
        calls.append(1)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"status": 1, "product": {"code": "96385074"}})

    client = OpenFoodFactsClient(http_client=_client(handler))
    assert client.get_product("96385074") == {"code": "96385074"}
    assert len(calls) == 2


def test_off_get_product_paths_and_not_found():
    seen = []

    def handler(request):
        seen.append(request.url.path)
        if request.url.path.endswith("/96385074.json"):
            return httpx.Response(200, json={"status": 0, "status_verbose": "product not found"})
        return httpx.Response(404)

    client = OpenFoodFactsClient(base_url="https://off.example/", http_client=_client(handler))
    assert client.get_product("96385074") is None
    assert client.get_product("761720051108") is None
    assert seen == ["/api/v2/product/96385074.json", "/api/v2/product/761720051108.json"]


def test_off_search_sends_terms():
    seen = {}

    def handler(request):
        seen.update(dict(request.url.params))
        return httpx.Response(200, json={"products": [{"code": "1"}, None]})

    client = OpenFoodFactsClient(http_client=_client(handler))
    assert client.search("oat drink", page_size=5) == [{"code": "1"}]
    assert seen == {"search_terms": "oat drink", "page_size": "5", "json": "1"}


def test_off_default_client_sends_user_agent():
    client = OpenFoodFactsClient()
    try:
        assert client._client.headers["User-Agent"].startswith("product-lookup/")
    finally:
        client.close()
