import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pricefeed.db.models.asset import Asset
from pricefeed.db.models.price_mapping import AssetPriceMapping


class MappingRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, mapping_id: uuid.UUID) -> Optional[AssetPriceMapping]:
        result = await self._session.execute(
            select(AssetPriceMapping).where(AssetPriceMapping.id == mapping_id)
        )
        return result.scalar_one_or_none()

    async def get_by_asset_and_provider(self, asset_id: uuid.UUID, provider: str) -> Optional[AssetPriceMapping]:
        result = await self._session.execute(
            select(AssetPriceMapping).where(
                AssetPriceMapping.asset_id == asset_id,
                AssetPriceMapping.provider == provider,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_asset(self, asset_id: uuid.UUID, active_only: bool = False) -> list[AssetPriceMapping]:
        stmt = select(AssetPriceMapping).where(AssetPriceMapping.asset_id == asset_id)
        if active_only:
            stmt = stmt.where(AssetPriceMapping.is_active.is_(True))
        result = await self._session.execute(stmt.order_by(AssetPriceMapping.created_at.asc()))
        return list(result.scalars().all())

    async def first_active_for_symbol(self, symbol: str) -> Optional[AssetPriceMapping]:
        result = await self._session.execute(
            select(AssetPriceMapping)
            .join(Asset, Asset.id == AssetPriceMapping.asset_id)
            .where(Asset.symbol == symbol.upper(), AssetPriceMapping.is_active.is_(True))
            .order_by(AssetPriceMapping.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def add(self, mapping: AssetPriceMapping) -> AssetPriceMapping:
        self._session.add(mapping)
        await self._session.flush()
        return mapping
