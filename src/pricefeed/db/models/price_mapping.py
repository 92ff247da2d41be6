"""Asset → external price provider binding."""

import uuid
from datetime import date
from typing import Any, Optional

import pydantic
from sqlalchemy import JSON, Date, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pricefeed.db.session import Base, TimestampMixin, UUIDPrimaryKey
from pricefeed.domain.models.provider import ApiConfig
from pricefeed.exceptions import ConfigurationError


class AssetPriceMapping(UUIDPrimaryKey, TimestampMixin, Base):
    """How to fetch a point-in-time price for one asset from one provider."""

    __tablename__ = "asset_price_mappings"
    __table_args__ = (UniqueConstraint("asset_id", "provider", name="uq_asset_price_mappings_asset_provider"),)

    asset_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("assets.id"), index=True)
    provider: Mapped[str] = mapped_column(String(50))  # coingecko / metals / custom ...
    provider_id: Mapped[str] = mapped_column(String(100))  # provider's own id, e.g. "bitcoin"
    quote_currency: Mapped[str] = mapped_column(String(10), default="USD")
    is_popular: Mapped[bool] = mapped_column(default=False)
    api_endpoint: Mapped[Optional[str]] = mapped_column(Text, default=None)
    api_config: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    response_path: Mapped[Optional[str]] = mapped_column(Text, default=None)
    auto_populate: Mapped[bool] = mapped_column(default=False)
    populate_from_date: Mapped[Optional[date]] = mapped_column(Date, default=None)
    last_populated_date: Mapped[Optional[date]] = mapped_column(Date, default=None)
    is_active: Mapped[bool] = mapped_column(default=True, index=True)

    @property
    def config(self) -> ApiConfig:
        try:
            return ApiConfig.model_validate(self.api_config or {})
        except pydantic.ValidationError as exc:
            raise ConfigurationError(f"invalid api_config for mapping {self.id}: {exc}") from exc
