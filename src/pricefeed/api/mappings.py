import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pricefeed.api.deps import get_db, get_runner, get_settings
from pricefeed.api.schemas.mappings import (
    MappingCreate,
    MappingCreateResponse,
    MappingList,
    MappingResponse,
    MappingUpdate,
)
from pricefeed.config import Settings
from pricefeed.domain.models.provider import MappingDraft
from pricefeed.services.mapping_registry import MappingRegistry
from pricefeed.workers.runner import JobRunner

router = APIRouter(prefix="/api/mappings", tags=["mappings"])

DbDep = Annotated[AsyncSession, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


@router.post("", response_model=MappingCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_mapping(
    body: MappingCreate,
    db: DbDep,
    settings: SettingsDep,
    runner: JobRunner = Depends(get_runner),
) -> MappingCreateResponse:
    """Create a mapping; with auto_populate a backfill job is enqueued right away."""
    registry = MappingRegistry(db, default_populate_days=settings.default_populate_days)
    mapping = await registry.create_mapping(MappingDraft(**body.model_dump()))
    await db.commit()

    response = MappingCreateResponse.model_validate(mapping)
    if mapping.auto_populate:
        job = await runner.auto_populate(mapping)
        response.job_id = job.id if job else None
    return response


@router.get("", response_model=MappingList)
async def list_mappings(
    db: DbDep,
    settings: SettingsDep,
    asset_id: uuid.UUID = Query(..., description="Owning asset"),
    active_only: bool = Query(False),
) -> MappingList:
    registry = MappingRegistry(db, default_populate_days=settings.default_populate_days)
    mappings = await registry.list_for_asset(asset_id, active_only=active_only)
    return MappingList(mappings=[MappingResponse.model_validate(m) for m in mappings], total=len(mappings))


@router.get("/resolve", response_model=Optional[MappingResponse])
async def resolve_mapping(
    db: DbDep,
    settings: SettingsDep,
    symbol: str = Query(..., min_length=1),
) -> Optional[MappingResponse]:
    """First active mapping for an asset symbol, or null."""
    registry = MappingRegistry(db, default_populate_days=settings.default_populate_days)
    mapping = await registry.resolve_by_symbol(symbol)
    return MappingResponse.model_validate(mapping) if mapping else None


@router.get("/{mapping_id}", response_model=MappingResponse)
async def get_mapping(mapping_id: uuid.UUID, db: DbDep, settings: SettingsDep) -> MappingResponse:
    registry = MappingRegistry(db, default_populate_days=settings.default_populate_days)
    return MappingResponse.model_validate(await registry.get(mapping_id))


@router.patch("/{mapping_id}", response_model=MappingResponse)
async def update_mapping(
    mapping_id: uuid.UUID, body: MappingUpdate, db: DbDep, settings: SettingsDep
) -> MappingResponse:
    registry = MappingRegistry(db, default_populate_days=settings.default_populate_days)
    mapping = await registry.update_mapping(mapping_id, **body.model_dump(exclude_unset=True))
    await db.commit()
    return MappingResponse.model_validate(mapping)


@router.post("/{mapping_id}/deactivate", response_model=MappingResponse)
async def deactivate_mapping(mapping_id: uuid.UUID, db: DbDep, settings: SettingsDep) -> MappingResponse:
    registry = MappingRegistry(db, default_populate_days=settings.default_populate_days)
    mapping = await registry.deactivate(mapping_id)
    await db.commit()
    return MappingResponse.model_validate(mapping)
