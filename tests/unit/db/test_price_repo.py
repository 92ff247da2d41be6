from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from pricefeed.db.repos.price_repo import PriceRepo
from pricefeed.exceptions import ConfigurationError


class TestPriceRepo:
    async def test_upsert_inserts(self, session):
        repo = PriceRepo(session)
        await repo.upsert_price("btc", date(2024, 1, 1), "usd", 42000.5, source="coingecko")
        await session.commit()

        point = await repo.get_price("BTC", date(2024, 1, 1), "USD")
        assert point is not None
        assert point.symbol == "BTC"
        assert point.currency == "USD"
        assert point.price == Decimal("42000.5")
        assert point.source == "coingecko"

    async def test_upsert_last_write_wins(self, session):
        repo = PriceRepo(session)
        await repo.upsert_price("BTC", date(2024, 1, 1), "USD", 100)
        await repo.upsert_price("BTC", date(2024, 1, 1), "USD", 200, source="second")
        await session.commit()

        rows = await repo.list_prices("BTC", "USD")
        assert len(rows) == 1
        assert rows[0].price == Decimal("200")
        assert rows[0].source == "second"

    async def test_currency_is_part_of_key(self, session):
        repo = PriceRepo(session)
        await repo.upsert_price("BTC", date(2024, 1, 1), "USD", 100)
        await repo.upsert_price("BTC", date(2024, 1, 1), "EUR", 90)
        await session.commit()

        assert (await repo.get_price("BTC", date(2024, 1, 1), "EUR")).price == Decimal("90")
        assert (await repo.get_price("BTC", date(2024, 1, 1), "USD")).price == Decimal("100")

    async def test_get_price_missing(self, session):
        assert await PriceRepo(session).get_price("BTC", date(2024, 1, 1), "USD") is None

    async def test_latest_price(self, session):
        repo = PriceRepo(session)
        for day, price in [(date(2024, 1, 3), 3), (date(2024, 1, 1), 1), (date(2024, 1, 2), 2)]:
            await repo.upsert_price("ETH", day, "USD", price)
        await session.commit()

        latest = await repo.get_latest_price("eth", "usd")
        assert latest.price_date == date(2024, 1, 3)
        assert latest.price == Decimal("3")

    async def test_list_prices_range(self, session):
        repo = PriceRepo(session)
        for d in range(1, 6):
            await repo.upsert_price("ETH", date(2024, 1, d), "USD", d)
        await session.commit()

        rows = await repo.list_prices("ETH", "USD", start=date(2024, 1, 2), end=date(2024, 1, 4))
        assert [r.price_date.day for r in rows] == [2, 3, 4]

    async def test_unsupported_dialect(self):
        session = MagicMock()
        session.get_bind.return_value.dialect.name = "mysql"

        with pytest.raises(ConfigurationError, match="unsupported database dialect mysql"):
            await PriceRepo(session).upsert_price("BTC", date(2024, 1, 1), "USD", 1)
        session.execute.assert_not_called()
