"""In-process job runner: one asyncio task per active job."""

import asyncio
import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from pricefeed.db.models.price_mapping import AssetPriceMapping
from pricefeed.db.models.price_population_job import PricePopulationJob
from pricefeed.db.repos.job_repo import JobRepo
from pricefeed.domain.enums import JobStatus
from pricefeed.exceptions import ConcurrentModificationError
from pricefeed.services.backfill import BackfillController, StepOutcome
from pricefeed.services.mapping_registry import today_utc

logger = logging.getLogger(__name__)


class JobRunner:
    """Schedules BackfillController runs.

    Jobs run concurrently with each other; the days of one job never do.
    """

    def __init__(
        self,
        controller: BackfillController,
        session_factory: async_sessionmaker[AsyncSession],
        conflict_retries: int = 3,
    ) -> None:
        self._controller = controller
        self._session_factory = session_factory
        self._conflict_retries = max(1, conflict_retries)
        self._tasks: dict[uuid.UUID, asyncio.Task] = {}

    @property
    def active_job_ids(self) -> set[uuid.UUID]:
        return {job_id for job_id, task in self._tasks.items() if not task.done()}

    async def recover(self) -> list[uuid.UUID]:
        """Resume jobs left running by a previous process, and pick up orphaned pending ones."""
        async with self._session_factory() as session:
            jobs = await JobRepo(session).list_by_status(JobStatus.RUNNING, JobStatus.PENDING)

        for job in jobs:
            self.submit(job.id)
        if jobs:
            logger.info("Recovered %d price population jobs", len(jobs))
        return [job.id for job in jobs]

    def submit(self, job_id: uuid.UUID) -> asyncio.Task:
        """Start driving a job unless a task for it is already alive."""
        existing = self._tasks.get(job_id)
        if existing is not None and not existing.done():
            return existing
        task = asyncio.create_task(self._drive(job_id), name=f"price-population-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda done, key=job_id: self._forget(key, done))
        return task

    def _forget(self, job_id: uuid.UUID, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]

    async def create_and_submit(
        self,
        asset_id: uuid.UUID,
        mapping_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> PricePopulationJob:
        job = await self._controller.create_job(asset_id, mapping_id, start_date, end_date)
        self.submit(job.id)
        return job

    async def auto_populate(self, mapping: AssetPriceMapping) -> Optional[PricePopulationJob]:
        """Synthesize a [populate_from_date, today] job for an auto-populate mapping."""
        if not mapping.auto_populate or mapping.populate_from_date is None:
            return None
        return await self.create_and_submit(mapping.asset_id, mapping.id, mapping.populate_from_date, today_utc())

    async def wait(self, job_id: uuid.UUID) -> None:
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel running tasks. Their jobs stay `running` and resume on the next recover()."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _drive(self, job_id: uuid.UUID) -> None:
        try:
            job = await self._with_conflict_retry(self._controller.start_job, job_id)
            if job is None or job.job_status is not JobStatus.RUNNING:
                return
            outcome = StepOutcome.ADVANCED
            while outcome is StepOutcome.ADVANCED:
                outcome = await self._with_conflict_retry(self._controller.step, job_id)
            logger.info("Job %s finished: %s", job_id, outcome.value)
        except ConcurrentModificationError:
            logger.warning("Job %s kept changing under us, abandoning this run", job_id)
        except asyncio.CancelledError:
            logger.info("Job %s interrupted; it will resume from its cursor", job_id)
            raise
        except Exception:
            logger.exception("Job %s crashed; left running for recovery", job_id)

    async def _with_conflict_retry(self, func, job_id: uuid.UUID):
        """Call ``func(job_id)``, re-reading and retrying on ConcurrentModificationError."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(ConcurrentModificationError),
            stop=stop_after_attempt(self._conflict_retries),
            wait=wait_exponential(multiplier=0.05, max=1),
            reraise=True,
        ):
            with attempt:
                return await func(job_id)
