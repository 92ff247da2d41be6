"""Generic REST price provider driven by an AssetPriceMapping recipe."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx

from pricefeed.db.models.price_mapping import AssetPriceMapping
from pricefeed.domain.enums import AuthType
from pricefeed.domain.extraction import extract_price, parse_document
from pricefeed.domain.models.provider import ApiConfig
from pricefeed.domain.templating import TemplateContext, resolve_template
from pricefeed.exceptions import ConfigurationError, ProviderHTTPError, TransportError
from pricefeed.infra.http.rate_limited_client import RateLimitedClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderRequest:
    """A fully resolved outbound call: no placeholders or ${VAR} left."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderResponse:
    status_code: int
    body: str


def build_request(
    endpoint: str | None,
    config: ApiConfig,
    ctx: TemplateContext,
    env: Mapping[str, str] | None = None,
) -> ProviderRequest:
    """Materialize the mapping recipe for one day and inject auth."""
    if not endpoint or not endpoint.strip():
        raise ConfigurationError("no API endpoint configured for mapping")

    url = resolve_template(endpoint.strip(), ctx, env)
    headers = {key: resolve_template(value, ctx, env) for key, value in config.headers.items()}
    params = {key: resolve_template(value, ctx, env) for key, value in config.query_params.items()}

    if config.auth_type is not AuthType.NONE:
        secret = resolve_template(config.auth_value, ctx, env)
        if config.auth_type is AuthType.BEARER:
            headers["Authorization"] = f"Bearer {secret}"
        elif config.auth_type is AuthType.APIKEY:
            headers["X-API-Key"] = secret

    return ProviderRequest(method=config.method.value, url=url, headers=headers, params=params)


class ProviderClient:
    """Execute provider requests and turn responses into prices."""

    def __init__(self, http_client: RateLimitedClient) -> None:
        self._http = http_client

    async def execute(self, request: ProviderRequest, rate_key: str) -> ProviderResponse:
        """One outbound call. Non-2xx is ProviderHTTPError, network failure is TransportError."""
        try:
            response = await self._http.request(
                request.method,
                request.url,
                rate_key=rate_key,
                params=request.params or None,
                headers=request.headers or None,
            )
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"invalid provider URL {request.url!r}: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise TransportError(f"request to {request.url} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"request to {request.url} failed: {exc}") from exc

        if not response.is_success:
            logger.warning("Provider returned %d for %s", response.status_code, request.url)
            raise ProviderHTTPError(response.status_code, response.text)

        return ProviderResponse(status_code=response.status_code, body=response.text)

    async def fetch_price(
        self,
        mapping: AssetPriceMapping,
        ctx: TemplateContext,
        env: Mapping[str, str] | None = None,
    ) -> float:
        """Resolve, call and extract the price for ``ctx.day``. Raises a PriceFeedError subclass on failure."""
        request = build_request(mapping.api_endpoint, mapping.config, ctx, env)
        response = await self.execute(request, rate_key=str(mapping.id))
        document = parse_document(response.body)
        return extract_price(document, mapping.response_path, ctx)
