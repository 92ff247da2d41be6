"""Tests for ProviderClient and build_request with a mocked transport."""

import asyncio
import time
import uuid
from datetime import date

import httpx
import pytest

from pricefeed.db.models.price_mapping import AssetPriceMapping
from pricefeed.domain.models.provider import ApiConfig
from pricefeed.domain.templating import TemplateContext
from pricefeed.exceptions import (
    ConfigurationError,
    PathNotFoundError,
    ProviderHTTPError,
    ResponseParseError,
    TransportError,
)
from pricefeed.infra.http.rate_limited_client import RateLimitedClient
from pricefeed.infra.price.provider_client import ProviderClient, ProviderRequest, build_request

CTX = TemplateContext(symbol="BTC", provider_id="bitcoin", currency="USD", day=date(2024, 1, 15))


def _mapping(**overrides) -> AssetPriceMapping:
    fields = {
        "id": uuid.uuid4(),
        "asset_id": uuid.uuid4(),
        "provider": "custom",
        "provider_id": "bitcoin",
        "quote_currency": "USD",
        "api_endpoint": "https://api.test/{provider_id}/{date}",
        "api_config": {},
        "response_path": "price",
    }
    fields.update(overrides)
    return AssetPriceMapping(**fields)


def _client(handler) -> ProviderClient:
    return ProviderClient(RateLimitedClient(min_interval=0, transport=httpx.MockTransport(handler)))


class TestBuildRequest:
    def test_resolves_url_headers_and_params(self):
        config = ApiConfig(headers={"X-Day": "{date_yyyymmdd}"}, query_params={"vs": "{currency_lower}"})
        req = build_request("https://api.test/{provider_id}", config, CTX, env={})
        assert req.url == "https://api.test/bitcoin"
        assert req.method == "GET"
        assert req.headers == {"X-Day": "20240115"}
        assert req.params == {"vs": "usd"}

    def test_bearer_auth(self):
        config = ApiConfig(auth_type="bearer", auth_value="${TOKEN}")
        req = build_request("https://api.test", config, CTX, env={"TOKEN": "t0k"})
        assert req.headers["Authorization"] == "Bearer t0k"

    def test_apikey_auth(self):
        config = ApiConfig(auth_type="apikey", auth_value="plain-key")
        req = build_request("https://api.test", config, CTX, env={})
        assert req.headers["X-API-Key"] == "plain-key"

    def test_no_auth_adds_nothing(self):
        req = build_request("https://api.test", ApiConfig(), CTX, env={})
        assert req.headers == {}

    @pytest.mark.parametrize("endpoint", [None, "", "   "])
    def test_missing_endpoint(self, endpoint):
        with pytest.raises(ConfigurationError):
            build_request(endpoint, ApiConfig(), CTX, env={})

    def test_unset_env_var(self):
        config = ApiConfig(auth_type="bearer", auth_value="${NOT_SET_ANYWHERE}")
        with pytest.raises(ConfigurationError, match="NOT_SET_ANYWHERE"):
            build_request("https://api.test", config, CTX, env={})

    def test_post_method(self):
        req = build_request("https://api.test", ApiConfig(method="POST"), CTX, env={})
        assert req.method == "POST"


class TestProviderClient:
    async def test_fetch_price(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"price": 42000.5})

        price = await _client(handler).fetch_price(_mapping(), CTX, env={})
        assert price == 42000.5
        assert str(seen[0].url) == "https://api.test/bitcoin/2024-01-15"

    async def test_fetch_sends_auth_header(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"price": 1})

        mapping = _mapping(api_config={"auth_type": "apikey", "auth_value": "${KEY}", "query_params": {"d": "{date}"}})
        await _client(handler).fetch_price(mapping, CTX, env={"KEY": "secret"})
        assert seen[0].headers["X-API-Key"] == "secret"
        assert seen[0].url.params["d"] == "2024-01-15"

    async def test_unauthorized_is_auth_stage(self):
        client = _client(lambda request: httpx.Response(401, text="bad key"))
        with pytest.raises(ProviderHTTPError) as exc_info:
            await client.fetch_price(_mapping(), CTX, env={})
        assert exc_info.value.status == 401
        assert exc_info.value.stage == "auth"

    async def test_server_error_is_http_stage(self):
        client = _client(lambda request: httpx.Response(503, text="maintenance"))
        with pytest.raises(ProviderHTTPError) as exc_info:
            await client.fetch_price(_mapping(), CTX, env={})
        assert exc_info.value.stage == "http"
        assert "503" in str(exc_info.value)

    async def test_timeout_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportError):
            await _client(handler).fetch_price(_mapping(), CTX, env={})

    async def test_connect_error_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError) as exc_info:
            await _client(handler).fetch_price(_mapping(), CTX, env={})
        assert exc_info.value.stage == "transport"

    async def test_non_json_body(self):
        client = _client(lambda request: httpx.Response(200, text="<html></html>"))
        with pytest.raises(ResponseParseError):
            await client.fetch_price(_mapping(), CTX, env={})

    async def test_path_not_found(self):
        client = _client(lambda request: httpx.Response(200, json={"data": {}}))
        with pytest.raises(PathNotFoundError):
            await client.fetch_price(_mapping(response_path="data.price"), CTX, env={})

    async def test_invalid_stored_config(self):
        client = _client(lambda request: httpx.Response(200, json={"price": 1}))
        with pytest.raises(ConfigurationError):
            await client.fetch_price(_mapping(api_config={"auth_type": "oauth"}), CTX, env={})

    async def test_execute_returns_raw_body(self):
        client = _client(lambda request: httpx.Response(200, text='{"price": 7}'))
        response = await client.execute(ProviderRequest(method="GET", url="https://api.test"), rate_key="k")
        assert response.status_code == 200
        assert response.body == '{"price": 7}'


class TestRateLimitedClient:
    async def test_same_key_is_spaced(self):
        stamps: list[float] = []

        def handler(request: httpx.Request) -> httpx.Response:
            stamps.append(time.monotonic())
            return httpx.Response(200)

        async with RateLimitedClient(min_interval=0.05, transport=httpx.MockTransport(handler)) as client:
            await client.request("GET", "https://api.test", rate_key="m1")
            await client.request("GET", "https://api.test", rate_key="m1")

        assert stamps[1] - stamps[0] >= 0.045

    async def test_different_keys_do_not_wait(self):
        async with RateLimitedClient(
            min_interval=1.0, transport=httpx.MockTransport(lambda request: httpx.Response(200))
        ) as client:
            await client.request("GET", "https://api.test", rate_key="a")
            started = time.monotonic()
            await asyncio.gather(
                client.request("GET", "https://api.test", rate_key="b"),
                client.request("GET", "https://api.test", rate_key="c"),
            )
            assert time.monotonic() - started < 0.5
