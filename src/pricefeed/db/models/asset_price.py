"""Historical price points written by backfill jobs."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pricefeed.db.session import Base, TimestampMixin


class AssetPrice(TimestampMixin, Base):
    """Daily price of a symbol in a quote currency. At most one row per (symbol, price_date, currency)."""

    __tablename__ = "asset_prices"
    __table_args__ = (
        UniqueConstraint("symbol", "price_date", "currency", name="uq_asset_prices_symbol_date_currency"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    symbol: Mapped[str] = mapped_column(String(50), index=True)
    price_date: Mapped[date] = mapped_column(Date, index=True)
    currency: Mapped[str] = mapped_column(String(10))
    price: Mapped[Decimal] = mapped_column(Numeric(28, 10))
    source: Mapped[str] = mapped_column(String(50), default="")  # provider tag of the mapping
