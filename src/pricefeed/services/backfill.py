"""BackfillController: the price population state machine.

pending -> running -> completed | failed

Every day is its own short transaction: read the job, fetch one price, upsert it,
advance the cursor, commit. A restart therefore resumes at ``current_date`` without
re-fetching finished days. A failed day fails the whole job; the operator re-creates
a job for the remainder.
"""

import enum
import logging
import uuid
from collections.abc import Mapping
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricefeed.db.models.price_population_job import PricePopulationJob
from pricefeed.db.repos.asset_repo import AssetRepo
from pricefeed.db.repos.job_repo import JobRepo
from pricefeed.db.repos.mapping_repo import MappingRepo
from pricefeed.db.repos.price_repo import PriceRepo
from pricefeed.db.session import utcnow
from pricefeed.domain.enums import JobStatus
from pricefeed.domain.templating import TemplateContext
from pricefeed.exceptions import JobConflictError, NotFoundError, PriceFeedError, ValidationError
from pricefeed.infra.price.provider_client import ProviderClient

logger = logging.getLogger(__name__)


class StepOutcome(str, enum.Enum):
    ADVANCED = "advanced"  # one day done, more to go
    COMPLETED = "completed"
    FAILED = "failed"
    IDLE = "idle"  # job missing or not running: nothing to do


def day_count(start: date, end: date) -> int:
    return (end - start).days + 1


def format_failure(day: date, exc: PriceFeedError) -> str:
    return f"{day.isoformat()}: [{exc.stage}] {exc}"


class BackfillController:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        provider_client: ProviderClient,
        env: Optional[Mapping[str, str]] = None,
        skip_cached: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self._provider = provider_client
        self._env = env
        self._skip_cached = skip_cached

    async def create_job(
        self,
        asset_id: uuid.UUID,
        mapping_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> PricePopulationJob:
        """Create a pending job. At most one pending/running job per mapping."""
        if start_date > end_date:
            raise ValidationError(f"start_date {start_date} is after end_date {end_date}")

        async with self._session_factory() as session:
            mapping = await MappingRepo(session).get_by_id(mapping_id)
            if mapping is None:
                raise NotFoundError(f"mapping {mapping_id} not found")
            if mapping.asset_id != asset_id:
                raise ValidationError(f"mapping {mapping_id} does not belong to asset {asset_id}")
            if not mapping.is_active:
                raise ValidationError(f"mapping {mapping_id} is inactive")
            if not mapping.api_endpoint:
                raise ValidationError(f"mapping {mapping_id} has no api_endpoint")

            jobs = JobRepo(session)
            active = await jobs.get_active_for_mapping(mapping_id)
            if active is not None:
                raise JobConflictError(f"mapping {mapping_id} already has active job {active.id}")

            job = await jobs.create(
                PricePopulationJob(
                    asset_id=asset_id,
                    mapping_id=mapping_id,
                    status=JobStatus.PENDING.value,
                    start_date=start_date,
                    end_date=end_date,
                    total_days=day_count(start_date, end_date),
                    completed_days=0,
                )
            )
            await session.commit()

        logger.info(
            "Created job %s for mapping %s: %s..%s (%d days)", job.id, mapping_id, start_date, end_date, job.total_days
        )
        return job

    async def get_job(self, job_id: uuid.UUID) -> Optional[PricePopulationJob]:
        async with self._session_factory() as session:
            return await JobRepo(session).get_by_id(job_id)

    async def start_job(self, job_id: uuid.UUID) -> Optional[PricePopulationJob]:
        """pending -> running. A running job is left as-is so it resumes from its cursor."""
        async with self._session_factory() as session:
            jobs = JobRepo(session)
            job = await jobs.get_by_id(job_id)
            if job is None:
                logger.error("Job %s not found", job_id)
                return None
            if job.job_status.is_terminal:
                logger.info("Job %s already %s, not starting", job.id, job.status)
                return job
            if job.job_status is JobStatus.RUNNING:
                logger.info(
                    "Resuming job %s at %s (%d/%d)", job.id, job.current_date, job.completed_days, job.total_days
                )
                return job

            job.status = JobStatus.RUNNING.value
            job.started_at = utcnow()
            if not job.total_days:
                job.total_days = day_count(job.start_date, job.end_date)
            if job.current_date is None:
                job.current_date = job.start_date
            await jobs.update(job)
            await session.commit()

        logger.info("Started job %s", job.id)
        return job

    async def step(self, job_id: uuid.UUID) -> StepOutcome:
        """Process the day under the cursor.

        Raises ConcurrentModificationError when another writer moved the job since it was read.
        """
        async with self._session_factory() as session:
            jobs = JobRepo(session)
            job = await jobs.get_by_id(job_id)
            if job is None or job.job_status is not JobStatus.RUNNING:
                return StepOutcome.IDLE

            if job.current_date is None:
                job.current_date = job.start_date
            if job.completed_days >= job.total_days or job.current_date > job.end_date:
                await self._complete(session, job)
                return StepOutcome.COMPLETED

            day = job.current_date
            try:
                await self._populate_day(session, job, day)
            except PriceFeedError as exc:
                # Discard a partial write for this day, then record the failure on a fresh read.
                await session.rollback()
                return await self._fail(session, job_id, day, exc)

            job.completed_days += 1
            if day >= job.end_date or job.completed_days >= job.total_days:
                await self._complete(session, job)
                return StepOutcome.COMPLETED

            job.current_date = day + timedelta(days=1)
            await jobs.update(job)
            await session.commit()
            return StepOutcome.ADVANCED

    async def run(self, job_id: uuid.UUID) -> Optional[PricePopulationJob]:
        """Drive a job to a terminal state in the current task."""
        job = await self.start_job(job_id)
        if job is None:
            return None
        while await self.step(job_id) is StepOutcome.ADVANCED:
            pass
        return await self.get_job(job_id)

    async def list_jobs(
        self,
        asset_id: Optional[uuid.UUID] = None,
        status: Optional[JobStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[PricePopulationJob], int]:
        async with self._session_factory() as session:
            return await JobRepo(session).list_jobs(asset_id=asset_id, status=status, limit=limit, offset=offset)

    async def _populate_day(self, session: AsyncSession, job: PricePopulationJob, day: date) -> None:
        mapping = await MappingRepo(session).get_by_id(job.mapping_id)
        if mapping is None:
            raise NotFoundError(f"mapping {job.mapping_id} no longer exists")
        asset = await AssetRepo(session).get_by_id(job.asset_id)
        if asset is None:
            raise NotFoundError(f"asset {job.asset_id} no longer exists")

        prices = PriceRepo(session)
        if self._skip_cached and await prices.get_price(asset.symbol, day, mapping.quote_currency) is not None:
            logger.debug("Job %s: %s %s already stored, skipping fetch", job.id, asset.symbol, day)
            return

        ctx = TemplateContext(
            symbol=asset.symbol,
            provider_id=mapping.provider_id,
            currency=mapping.quote_currency,
            day=day,
        )
        price = await self._provider.fetch_price(mapping, ctx, self._env)
        await prices.upsert_price(asset.symbol, day, mapping.quote_currency, price, source=mapping.provider)

    async def _complete(self, session: AsyncSession, job: PricePopulationJob) -> None:
        job.status = JobStatus.COMPLETED.value
        job.completed_days = job.total_days
        job.completed_at = utcnow()
        job.error_message = None

        mapping = await MappingRepo(session).get_by_id(job.mapping_id)
        if mapping is not None and (mapping.last_populated_date is None or mapping.last_populated_date < job.end_date):
            mapping.last_populated_date = job.end_date

        await JobRepo(session).update(job)
        await session.commit()
        logger.info("Job %s completed: %d days", job.id, job.total_days)

    async def _fail(self, session: AsyncSession, job_id: uuid.UUID, day: date, exc: PriceFeedError) -> StepOutcome:
        jobs = JobRepo(session)
        job = await jobs.get_by_id(job_id)
        if job is None or job.job_status is not JobStatus.RUNNING:
            return StepOutcome.IDLE

        job.status = JobStatus.FAILED.value
        job.error_message = format_failure(day, exc)
        job.completed_at = utcnow()
        await jobs.update(job)
        await session.commit()
        logger.warning("Job %s failed on %s: %s", job_id, day, job.error_message)
        return StepOutcome.FAILED
