"""Typed shapes for provider configuration."""

import uuid
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pricefeed.domain.enums import AuthType, HttpMethod


class ApiConfig(BaseModel):
    """Request recipe stored in ``asset_price_mappings.api_config``.

    Values may contain placeholders ({date}, {provider_id}, ...) and ${ENV_VAR} references.
    """

    model_config = ConfigDict(extra="forbid")

    headers: dict[str, str] = Field(default_factory=dict)
    query_params: dict[str, str] = Field(default_factory=dict)
    auth_type: AuthType = AuthType.NONE
    auth_value: str = ""
    method: HttpMethod = HttpMethod.GET


class MappingDraft(BaseModel):
    """Operator input for a new asset → provider binding, before validation."""

    asset_id: uuid.UUID
    provider: str
    provider_id: str
    quote_currency: str = "USD"
    is_popular: bool = False
    api_endpoint: str | None = None
    api_config: dict[str, Any] | ApiConfig | None = None
    response_path: str | None = "price"
    auto_populate: bool = False
    populate_from_date: date | None = None
