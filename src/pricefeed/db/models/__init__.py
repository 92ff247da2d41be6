from pricefeed.db.models.asset import Asset
from pricefeed.db.models.asset_price import AssetPrice
from pricefeed.db.models.price_mapping import AssetPriceMapping
from pricefeed.db.models.price_population_job import PricePopulationJob

__all__ = [
    "Asset",
    "AssetPrice",
    "AssetPriceMapping",
    "PricePopulationJob",
]
