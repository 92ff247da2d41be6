from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from pricefeed.db.session import Base, TimestampMixin, UUIDPrimaryKey


class Asset(UUIDPrimaryKey, TimestampMixin, Base):
    """A tradable asset owned by the surrounding ledger. The engine only reads it."""

    __tablename__ = "assets"

    symbol: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    is_active: Mapped[bool] = mapped_column(default=True)

