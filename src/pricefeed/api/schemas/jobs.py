import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, model_validator


class JobCreate(BaseModel):
    asset_id: uuid.UUID
    mapping_id: uuid.UUID
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_range(self) -> "JobCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class JobResponse(BaseModel):
    id: uuid.UUID
    asset_id: uuid.UUID
    mapping_id: uuid.UUID
    status: str
    start_date: date
    end_date: date
    current_date: Optional[date] = None
    total_days: int
    completed_days: int
    progress: float
    error_message: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: datetime

    model_config = {"from_attributes": True}


class JobList(BaseModel):
    jobs: list[JobResponse]
    total: int
    limit: int
    offset: int
