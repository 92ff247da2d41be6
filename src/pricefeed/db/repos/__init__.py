from pricefeed.db.repos.asset_repo import AssetRepo
from pricefeed.db.repos.job_repo import JobRepo
from pricefeed.db.repos.mapping_repo import MappingRepo
from pricefeed.db.repos.price_repo import PriceRepo

__all__ = ["AssetRepo", "JobRepo", "MappingRepo", "PriceRepo"]
