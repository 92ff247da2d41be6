"""Job persistence with optimistic concurrency on the ``version`` column."""

import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from pricefeed.db.models.price_population_job import PricePopulationJob
from pricefeed.domain.enums import ACTIVE_JOB_STATUSES, JobStatus
from pricefeed.exceptions import ConcurrentModificationError


class JobRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, job: PricePopulationJob) -> PricePopulationJob:
        self._session.add(job)
        await self._session.flush()
        return job

    async def get_by_id(self, job_id: uuid.UUID) -> Optional[PricePopulationJob]:
        result = await self._session.execute(
            select(PricePopulationJob)
            .where(PricePopulationJob.id == job_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_jobs(
        self,
        asset_id: Optional[uuid.UUID] = None,
        mapping_id: Optional[uuid.UUID] = None,
        status: Optional[JobStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[PricePopulationJob], int]:
        """List jobs newest first. Returns (jobs, total_count)."""
        filters = []
        if asset_id is not None:
            filters.append(PricePopulationJob.asset_id == asset_id)
        if mapping_id is not None:
            filters.append(PricePopulationJob.mapping_id == mapping_id)
        if status is not None:
            filters.append(PricePopulationJob.status == status.value)

        count_result = await self._session.execute(
            select(func.count(PricePopulationJob.id)).where(*filters)
        )
        total = count_result.scalar() or 0

        result = await self._session.execute(
            select(PricePopulationJob)
            .where(*filters)
            .order_by(PricePopulationJob.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def list_by_status(self, *statuses: JobStatus) -> list[PricePopulationJob]:
        result = await self._session.execute(
            select(PricePopulationJob)
            .where(PricePopulationJob.status.in_([s.value for s in statuses]))
            .order_by(PricePopulationJob.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_active_for_mapping(self, mapping_id: uuid.UUID) -> Optional[PricePopulationJob]:
        result = await self._session.execute(
            select(PricePopulationJob)
            .where(
                PricePopulationJob.mapping_id == mapping_id,
                PricePopulationJob.status.in_([s.value for s in ACTIVE_JOB_STATUSES]),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def update(self, job: PricePopulationJob) -> PricePopulationJob:
        """Flush pending changes. A row changed since it was read raises ConcurrentModificationError."""
        try:
            await self._session.flush()
        except StaleDataError as exc:
            raise ConcurrentModificationError(f"job {job.id} was modified concurrently") from exc
        return job
