from dependency_injector import containers, providers

from pricefeed.config import Settings
from pricefeed.db.session import build_engine, build_session_factory
from pricefeed.infra.http.rate_limited_client import RateLimitedClient
from pricefeed.infra.price.provider_client import ProviderClient
from pricefeed.services.backfill import BackfillController
from pricefeed.workers.runner import JobRunner


class Container(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=["pricefeed.api.deps"])

    settings = providers.Singleton(Settings)

    engine = providers.Singleton(
        build_engine,
        database_url=settings.provided.database_url,
        echo=settings.provided.debug,
    )

    session_factory = providers.Singleton(
        build_session_factory,
        engine=engine,
    )

    http_client = providers.Singleton(
        RateLimitedClient,
        min_interval=settings.provided.provider_min_interval,
        timeout=settings.provided.provider_timeout_seconds,
    )

    provider_client = providers.Singleton(ProviderClient, http_client=http_client)

    backfill_controller = providers.Singleton(
        BackfillController,
        session_factory=session_factory,
        provider_client=provider_client,
        skip_cached=settings.provided.backfill_skip_cached,
    )

    job_runner = providers.Singleton(
        JobRunner,
        controller=backfill_controller,
        session_factory=session_factory,
        conflict_retries=settings.provided.job_conflict_retries,
    )
