from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class PricePointResponse(BaseModel):
    symbol: str
    price_date: date
    currency: str
    price: Decimal
    source: str

    model_config = {"from_attributes": True}


class PriceSeries(BaseModel):
    symbol: str
    currency: str
    prices: list[PricePointResponse]
