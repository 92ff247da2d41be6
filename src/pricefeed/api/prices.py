from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pricefeed.api.deps import get_db
from pricefeed.api.schemas.prices import PricePointResponse, PriceSeries
from pricefeed.db.repos.price_repo import PriceRepo

router = APIRouter(prefix="/api/prices", tags=["prices"])

DbDep = Annotated[AsyncSession, Depends(get_db)]


@router.get("/{symbol}/latest", response_model=PricePointResponse)
async def latest_price(symbol: str, db: DbDep, currency: str = Query("USD")) -> PricePointResponse:
    point = await PriceRepo(db).get_latest_price(symbol, currency)
    if point is None:
        raise HTTPException(status_code=404, detail=f"No {currency.upper()} price for {symbol.upper()}")
    return PricePointResponse.model_validate(point)


@router.get("/{symbol}", response_model=PriceSeries)
async def price_series(
    symbol: str,
    db: DbDep,
    currency: str = Query("USD"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
) -> PriceSeries:
    points = await PriceRepo(db).list_prices(symbol, currency, start=start, end=end)
    return PriceSeries(
        symbol=symbol.upper(),
        currency=currency.upper(),
        prices=[PricePointResponse.model_validate(p) for p in points],
    )
