"""Backfill job: walks [start_date, end_date] one day at a time."""

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pricefeed.db.session import Base, TimestampMixin, UUIDPrimaryKey
from pricefeed.domain.enums import JobStatus


class PricePopulationJob(UUIDPrimaryKey, TimestampMixin, Base):
    """Persisted state machine: pending -> running -> completed | failed."""

    __tablename__ = "price_population_jobs"

    asset_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("assets.id"), index=True)
    mapping_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("asset_price_mappings.id"), index=True)
    status: Mapped[str] = mapped_column(String(20), default=JobStatus.PENDING.value, index=True)
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    # Next unprocessed day. "current_date" is an SQL keyword, hence the column name.
    current_date: Mapped[Optional[date]] = mapped_column("current_progress_date", Date, default=None)
    total_days: Mapped[int] = mapped_column(Integer, default=0)
    completed_days: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, default=None)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def job_status(self) -> JobStatus:
        return JobStatus(self.status)

    @property
    def progress(self) -> float:
        if not self.total_days:
            return 0.0
        return round(self.completed_days / self.total_days, 4)
