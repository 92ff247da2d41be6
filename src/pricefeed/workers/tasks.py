"""Celery tasks for running backfill jobs in a worker process."""

import asyncio
import logging
import uuid

from pricefeed.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="populate_prices")
def populate_prices_task(self, job_id: str) -> dict:
    """Drive one price population job to a terminal state.

    Bridges to async code via asyncio.run(); each task invocation
    creates its own engine + HTTP client (no shared state with FastAPI).
    """
    return asyncio.run(_populate_prices_async(job_id))


@celery_app.task(bind=True, name="resume_population_jobs")
def resume_population_jobs_task(self) -> dict:
    """Crash-recovery sweep: resume every running/pending job and wait for them."""
    return asyncio.run(_resume_population_jobs_async())


def _build_controller(session_factory, http_client, settings):
    from pricefeed.infra.price.provider_client import ProviderClient
    from pricefeed.services.backfill import BackfillController

    return BackfillController(
        session_factory,
        ProviderClient(http_client),
        skip_cached=settings.backfill_skip_cached,
    )


async def _populate_prices_async(job_id: str, database_url: str | None = None) -> dict:
    from pricefeed.config import settings
    from pricefeed.db.session import build_engine, build_session_factory
    from pricefeed.infra.http.rate_limited_client import RateLimitedClient

    engine = build_engine(database_url or settings.database_url, echo=False)
    session_factory = build_session_factory(engine)
    try:
        async with RateLimitedClient(
            min_interval=settings.provider_min_interval,
            timeout=settings.provider_timeout_seconds,
        ) as http_client:
            controller = _build_controller(session_factory, http_client, settings)
            job = await controller.run(uuid.UUID(job_id))

        if job is None:
            logger.error("Job %s not found", job_id)
            return {"status": "error", "message": "Job not found"}

        logger.info("Job %s ended %s (%d/%d days)", job_id, job.status, job.completed_days, job.total_days)
        return {"status": job.status, "completed_days": job.completed_days, "error_message": job.error_message}
    finally:
        await engine.dispose()


async def _resume_population_jobs_async(database_url: str | None = None) -> dict:
    from pricefeed.config import settings
    from pricefeed.db.session import build_engine, build_session_factory
    from pricefeed.infra.http.rate_limited_client import RateLimitedClient
    from pricefeed.workers.runner import JobRunner

    engine = build_engine(database_url or settings.database_url, echo=False)
    session_factory = build_session_factory(engine)
    try:
        async with RateLimitedClient(
            min_interval=settings.provider_min_interval,
            timeout=settings.provider_timeout_seconds,
        ) as http_client:
            controller = _build_controller(session_factory, http_client, settings)
            runner = JobRunner(controller, session_factory, conflict_retries=settings.job_conflict_retries)
            job_ids = await runner.recover()
            for job_id in job_ids:
                await runner.wait(job_id)
        return {"status": "ok", "resumed": len(job_ids)}
    finally:
        await engine.dispose()
