from typing import AsyncGenerator

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricefeed.config import Settings
from pricefeed.container import Container
from pricefeed.services.backfill import BackfillController
from pricefeed.workers.runner import JobRunner


@inject
async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(Provide[Container.session_factory]),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@inject
def get_settings(settings: Settings = Depends(Provide[Container.settings])) -> Settings:
    return settings


@inject
def get_controller(
    controller: BackfillController = Depends(Provide[Container.backfill_controller]),
) -> BackfillController:
    return controller


@inject
def get_runner(runner: JobRunner = Depends(Provide[Container.job_runner])) -> JobRunner:
    return runner
