"""Seed default assets and CoinGecko price mappings.

Usage:
    PYTHONPATH=src python scripts/seed_mappings.py

Idempotent: safe to run multiple times. Skips assets/mappings that already exist.
Mappings are created without auto_populate; start a backfill via:
    POST /api/price-population/jobs
"""

import asyncio
import logging
import sys

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s - %(message)s")
logger = logging.getLogger("seed_mappings")
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

COINGECKO_HISTORY = "https://api.coingecko.com/api/v3/coins/{provider_id}/history?date={date_ddmmyyyy}"
COINGECKO_PATH = "market_data.current_price.{currency_lower}"

ASSETS = [
    {"symbol": "BTC", "name": "Bitcoin", "provider_id": "bitcoin", "is_popular": True},
    {"symbol": "ETH", "name": "Ethereum", "provider_id": "ethereum", "is_popular": True},
    {"symbol": "USDT", "name": "Tether", "provider_id": "tether", "is_popular": True},
    {"symbol": "USDC", "name": "USD Coin", "provider_id": "usd-coin", "is_popular": True},
]


async def main() -> None:
    from pricefeed.config import settings
    from pricefeed.db.session import build_engine, build_session_factory

    logger.info("Database: %s:%s/%s", settings.db_host, settings.db_port, settings.db_name)

    engine = build_engine(settings.database_url, echo=False)
    session_factory = build_session_factory(engine)

    async with session_factory() as session:
        try:
            await seed(session)
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Seeding failed")
            sys.exit(1)

    await engine.dispose()


async def seed(session) -> None:
    from pricefeed.db.repos.asset_repo import AssetRepo
    from pricefeed.db.repos.mapping_repo import MappingRepo
    from pricefeed.domain.models.provider import MappingDraft
    from pricefeed.services.mapping_registry import MappingRegistry

    assets = AssetRepo(session)
    mappings = MappingRepo(session)
    registry = MappingRegistry(session)

    created = skipped = 0
    for spec in ASSETS:
        asset = await assets.get_by_symbol(spec["symbol"])
        if asset is None:
            asset = await assets.create(spec["symbol"], spec["name"])
            logger.info("Asset %s created id=%s", asset.symbol, asset.id)

        if await mappings.get_by_asset_and_provider(asset.id, "coingecko") is not None:
            skipped += 1
            continue

        mapping = await registry.create_mapping(
            MappingDraft(
                asset_id=asset.id,
                provider="coingecko",
                provider_id=spec["provider_id"],
                quote_currency="USD",
                is_popular=spec["is_popular"],
                api_endpoint=COINGECKO_HISTORY,
                response_path=COINGECKO_PATH,
            )
        )
        created += 1
        logger.info("  coingecko mapping %s -> %s", asset.symbol, mapping.provider_id)

    logger.info("Done. %d mappings created, %d skipped.", created, skipped)


if __name__ == "__main__":
    asyncio.run(main())
