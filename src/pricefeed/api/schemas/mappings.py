import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from pricefeed.domain.models.provider import ApiConfig


class MappingCreate(BaseModel):
    asset_id: uuid.UUID
    provider: str
    provider_id: str
    quote_currency: str = "USD"
    is_popular: bool = False
    api_endpoint: Optional[str] = None
    api_config: Optional[dict[str, Any]] = None
    response_path: Optional[str] = "price"
    auto_populate: bool = False
    populate_from_date: Optional[date] = None

    @field_validator("provider")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return v.strip().lower()


class MappingUpdate(BaseModel):
    provider_id: Optional[str] = None
    quote_currency: Optional[str] = None
    is_popular: Optional[bool] = None
    api_endpoint: Optional[str] = None
    api_config: Optional[dict[str, Any]] = None
    response_path: Optional[str] = None
    auto_populate: Optional[bool] = None
    populate_from_date: Optional[date] = None
    is_active: Optional[bool] = None


class MappingResponse(BaseModel):
    id: uuid.UUID
    asset_id: uuid.UUID
    provider: str
    provider_id: str
    quote_currency: str
    is_popular: bool
    api_endpoint: Optional[str] = None
    api_config: ApiConfig
    response_path: Optional[str] = None
    auto_populate: bool
    populate_from_date: Optional[date] = None
    last_populated_date: Optional[date] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MappingCreateResponse(MappingResponse):
    job_id: Optional[uuid.UUID] = None  # set when auto_populate enqueued a job


class MappingList(BaseModel):
    mappings: list[MappingResponse]
    total: int
