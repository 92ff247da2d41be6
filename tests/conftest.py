import uuid

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pricefeed.db.models.asset import Asset
from pricefeed.db.models.price_mapping import AssetPriceMapping
from pricefeed.db.session import Base
from pricefeed.infra.http.rate_limited_client import RateLimitedClient
from pricefeed.infra.price.provider_client import ProviderClient
from pricefeed.services.backfill import BackfillController
import pricefeed.db.models  # noqa: F401 - register all models


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture()
async def session(engine) -> AsyncSession:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as sess:
        yield sess


@pytest.fixture()
async def db_url(tmp_path) -> str:
    """File-backed SQLite, so independent sessions get independent connections."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'pricefeed.db'}"
    eng = create_async_engine(url)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await eng.dispose()
    return url


@pytest.fixture()
async def session_factory(db_url):
    eng = create_async_engine(db_url)
    yield async_sessionmaker(eng, expire_on_commit=False)
    await eng.dispose()


class StubProvider:
    """httpx handler serving prices keyed by the `date` query param; records every request."""

    def __init__(self, prices: dict[str, object] | None = None, status: dict[str, int] | None = None):
        self.prices = prices or {}
        self.status = status or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        day = request.url.params.get("date", "")
        if day in self.status:
            return httpx.Response(self.status[day], text="upstream error")
        if day not in self.prices:
            return httpx.Response(404, text="no data")
        return httpx.Response(200, json={"data": {"price": self.prices[day]}})

    @property
    def days(self) -> list[str]:
        return [r.url.params.get("date", "") for r in self.requests]


@pytest.fixture()
def stub_provider() -> StubProvider:
    return StubProvider()


@pytest.fixture()
def seed_mapping(session_factory):
    """Insert an asset plus one active mapping. Returns (asset_id, mapping_id)."""

    async def _seed(
        symbol: str = "BTC",
        endpoint: str | None = "https://prices.test/{provider_id}?date={date}",
        response_path: str = "data.price",
        **mapping_fields,
    ) -> tuple[uuid.UUID, uuid.UUID]:
        async with session_factory() as sess:
            asset = Asset(symbol=symbol, name=symbol)
            sess.add(asset)
            await sess.flush()
            mapping = AssetPriceMapping(
                asset_id=asset.id,
                provider=mapping_fields.pop("provider", "stub"),
                provider_id=mapping_fields.pop("provider_id", symbol.lower()),
                quote_currency=mapping_fields.pop("quote_currency", "USD"),
                api_endpoint=endpoint,
                api_config=mapping_fields.pop("api_config", {}),
                response_path=response_path,
                **mapping_fields,
            )
            sess.add(mapping)
            await sess.commit()
            return asset.id, mapping.id

    return _seed


@pytest.fixture()
async def http_client(stub_provider):
    client = RateLimitedClient(min_interval=0, transport=httpx.MockTransport(stub_provider))
    yield client
    await client.close()


@pytest.fixture()
def controller(session_factory, http_client) -> BackfillController:
    return BackfillController(session_factory, ProviderClient(http_client), env={})
