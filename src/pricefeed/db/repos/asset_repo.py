import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pricefeed.db.models.asset import Asset


class AssetRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, asset_id: uuid.UUID) -> Optional[Asset]:
        result = await self._session.execute(select(Asset).where(Asset.id == asset_id))
        return result.scalar_one_or_none()

    async def get_by_symbol(self, symbol: str) -> Optional[Asset]:
        result = await self._session.execute(select(Asset).where(Asset.symbol == symbol.upper()))
        return result.scalar_one_or_none()

    async def create(self, symbol: str, name: str = "") -> Asset:
        asset = Asset(symbol=symbol.upper(), name=name or symbol.upper())
        self._session.add(asset)
        await self._session.flush()
        return asset
