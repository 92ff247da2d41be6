"""Idempotent price-point persistence."""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from pricefeed.db.models.asset_price import AssetPrice
from pricefeed.db.session import utcnow
from pricefeed.exceptions import ConfigurationError

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PriceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert_price(
        self,
        symbol: str,
        day: date,
        currency: str,
        price: float | Decimal,
        source: str = "",
    ) -> None:
        """Insert or overwrite the price for (symbol, day, currency). Last write wins."""
        dialect = self._session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise ConfigurationError(f"unsupported database dialect {dialect}")

        now = utcnow()
        value = price if isinstance(price, Decimal) else Decimal(str(price))
        stmt = insert(AssetPrice).values(
            symbol=symbol.upper(),
            price_date=day,
            currency=currency.upper(),
            price=value,
            source=source,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["symbol", "price_date", "currency"],
            set_={"price": stmt.excluded.price, "source": stmt.excluded.source, "updated_at": now},
        )
        await self._session.execute(stmt)

    async def get_price(self, symbol: str, day: date, currency: str) -> Optional[AssetPrice]:
        result = await self._session.execute(
            select(AssetPrice)
            .where(
                AssetPrice.symbol == symbol.upper(),
                AssetPrice.price_date == day,
                AssetPrice.currency == currency.upper(),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_latest_price(self, symbol: str, currency: str) -> Optional[AssetPrice]:
        result = await self._session.execute(
            select(AssetPrice)
            .where(AssetPrice.symbol == symbol.upper(), AssetPrice.currency == currency.upper())
            .order_by(AssetPrice.price_date.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_prices(
        self,
        symbol: str,
        currency: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[AssetPrice]:
        stmt = select(AssetPrice).where(
            AssetPrice.symbol == symbol.upper(),
            AssetPrice.currency == currency.upper(),
        )
        if start is not None:
            stmt = stmt.where(AssetPrice.price_date >= start)
        if end is not None:
            stmt = stmt.where(AssetPrice.price_date <= end)
        result = await self._session.execute(stmt.order_by(AssetPrice.price_date.asc()))
        return list(result.scalars().all())
