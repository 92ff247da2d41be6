from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_host: str = "localhost"
    db_port: int = 54377
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "pricefeed"
    redis_url: str = "redis://localhost:6379/0"
    provider_timeout_seconds: float = 5.0
    provider_min_interval_ms: int = 100  # Per-mapping spacing between outbound calls
    backfill_skip_cached: bool = False
    job_conflict_retries: int = 3
    default_populate_days: int = 365  # Auto-populate lookback when populate_from_date is unset
    debug: bool = False

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def provider_min_interval(self) -> float:
        return self.provider_min_interval_ms / 1000.0

    class Config:
        env_file = ".env"


settings = Settings()
