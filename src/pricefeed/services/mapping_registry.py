"""MappingRegistry: owns AssetPriceMapping records and their validation."""

import logging
import uuid
from datetime import UTC, date, datetime, timedelta
from typing import Any, Optional

import pydantic
from sqlalchemy.ext.asyncio import AsyncSession

from pricefeed.db.models.price_mapping import AssetPriceMapping
from pricefeed.db.repos.asset_repo import AssetRepo
from pricefeed.db.repos.mapping_repo import MappingRepo
from pricefeed.domain.enums import AuthType
from pricefeed.domain.models.provider import ApiConfig, MappingDraft
from pricefeed.exceptions import DuplicateMappingError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_POPULATE_DAYS = 365

# Fields an operator may change after creation
UPDATABLE_FIELDS = {
    "provider_id",
    "quote_currency",
    "is_popular",
    "api_endpoint",
    "api_config",
    "response_path",
    "auto_populate",
    "populate_from_date",
    "is_active",
}

# Updatable fields that may be cleared with null
NULLABLE_FIELDS = {"api_endpoint", "api_config", "response_path", "populate_from_date"}


def today_utc() -> date:
    return datetime.now(UTC).date()


def parse_api_config(raw: dict[str, Any] | ApiConfig | None) -> ApiConfig:
    if isinstance(raw, ApiConfig):
        return raw
    try:
        return ApiConfig.model_validate(raw or {})
    except pydantic.ValidationError as exc:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
        raise ValidationError(f"invalid api_config: {problems}") from exc


class MappingRegistry:
    """Validate and persist mappings. Never touches prices or the network."""

    def __init__(self, session: AsyncSession, default_populate_days: int = DEFAULT_POPULATE_DAYS) -> None:
        self._session = session
        self._assets = AssetRepo(session)
        self._mappings = MappingRepo(session)
        self._default_populate_days = default_populate_days

    def resolve_populate_from(self, populate_from_date: Optional[date], today: Optional[date] = None) -> date:
        """Start of an auto-populate range; defaults to one lookback window before today."""
        today = today or today_utc()
        return populate_from_date or today - timedelta(days=self._default_populate_days)

    async def validate(self, draft: MappingDraft, today: Optional[date] = None) -> ApiConfig:
        """Check a draft before it becomes active. Returns the parsed ApiConfig."""
        today = today or today_utc()

        if await self._assets.get_by_id(draft.asset_id) is None:
            raise ValidationError(f"asset {draft.asset_id} does not exist")

        for name in ("provider", "provider_id", "quote_currency"):
            if not (getattr(draft, name) or "").strip():
                raise ValidationError(f"{name} must not be empty")

        config = parse_api_config(draft.api_config)
        if config.auth_type is not AuthType.NONE and not config.auth_value.strip():
            raise ValidationError(f"auth_type {config.auth_type.value} requires auth_value")

        if draft.auto_populate:
            if not (draft.api_endpoint or "").strip():
                raise ValidationError("auto_populate requires api_endpoint")
            start = self.resolve_populate_from(draft.populate_from_date, today)
            if start > today:
                raise ValidationError(f"populate_from_date {start.isoformat()} is in the future")

        return config

    async def create_mapping(self, draft: MappingDraft, today: Optional[date] = None) -> AssetPriceMapping:
        config = await self.validate(draft, today)

        provider = draft.provider.strip()
        existing = await self._mappings.get_by_asset_and_provider(draft.asset_id, provider)
        if existing is not None:
            raise DuplicateMappingError(f"asset {draft.asset_id} already has a {provider} mapping")

        populate_from = draft.populate_from_date
        if draft.auto_populate:
            populate_from = self.resolve_populate_from(populate_from, today)

        mapping = AssetPriceMapping(
            asset_id=draft.asset_id,
            provider=provider,
            provider_id=draft.provider_id.strip(),
            quote_currency=draft.quote_currency.strip().upper(),
            is_popular=draft.is_popular,
            api_endpoint=(draft.api_endpoint or "").strip() or None,
            api_config=config.model_dump(mode="json"),
            response_path=draft.response_path,
            auto_populate=draft.auto_populate,
            populate_from_date=populate_from,
            is_active=True,
        )
        await self._mappings.add(mapping)
        logger.info("Created %s mapping %s for asset %s", provider, mapping.id, draft.asset_id)
        return mapping

    async def get(self, mapping_id: uuid.UUID) -> AssetPriceMapping:
        mapping = await self._mappings.get_by_id(mapping_id)
        if mapping is None:
            raise NotFoundError(f"mapping {mapping_id} not found")
        return mapping

    async def update_mapping(
        self, mapping_id: uuid.UUID, today: Optional[date] = None, **changes: Any
    ) -> AssetPriceMapping:
        """Apply changes and re-validate the resulting mapping as a whole."""
        mapping = await self.get(mapping_id)
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"fields not updatable: {', '.join(sorted(unknown))}")
        cleared = sorted(key for key, value in changes.items() if value is None and key not in NULLABLE_FIELDS)
        if cleared:
            raise ValidationError(f"fields cannot be null: {', '.join(cleared)}")

        current = {
            "asset_id": mapping.asset_id,
            "provider": mapping.provider,
            "provider_id": mapping.provider_id,
            "quote_currency": mapping.quote_currency,
            "is_popular": mapping.is_popular,
            "api_endpoint": mapping.api_endpoint,
            "api_config": mapping.api_config,
            "response_path": mapping.response_path,
            "auto_populate": mapping.auto_populate,
            "populate_from_date": mapping.populate_from_date,
        }
        is_active = changes.pop("is_active", mapping.is_active)
        try:
            draft = MappingDraft(**{**current, **changes})
        except pydantic.ValidationError as exc:
            raise ValidationError(f"invalid mapping update: {exc.errors()[0]['msg']}") from exc
        config = await self.validate(draft, today)

        for key, value in changes.items():
            setattr(mapping, key, value)
        mapping.api_config = config.model_dump(mode="json")
        mapping.api_endpoint = (draft.api_endpoint or "").strip() or None
        mapping.quote_currency = draft.quote_currency.strip().upper()
        mapping.is_active = bool(is_active)
        if mapping.auto_populate and mapping.populate_from_date is None:
            mapping.populate_from_date = self.resolve_populate_from(None, today)
        await self._session.flush()
        return mapping

    async def deactivate(self, mapping_id: uuid.UUID) -> AssetPriceMapping:
        mapping = await self.get(mapping_id)
        mapping.is_active = False
        await self._session.flush()
        logger.info("Deactivated mapping %s", mapping_id)
        return mapping

    async def list_for_asset(self, asset_id: uuid.UUID, active_only: bool = False) -> list[AssetPriceMapping]:
        return await self._mappings.list_for_asset(asset_id, active_only=active_only)

    async def resolve_by_asset_id(self, asset_id: uuid.UUID) -> Optional[AssetPriceMapping]:
        """First active mapping of an asset, oldest first."""
        mappings = await self._mappings.list_for_asset(asset_id, active_only=True)
        return mappings[0] if mappings else None

    async def resolve_by_symbol(self, symbol: str) -> Optional[AssetPriceMapping]:
        return await self._mappings.first_active_for_symbol(symbol)
