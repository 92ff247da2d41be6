import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pricefeed.api.deps import get_controller, get_runner
from pricefeed.api.schemas.jobs import JobCreate, JobList, JobResponse
from pricefeed.domain.enums import JobStatus
from pricefeed.services.backfill import BackfillController
from pricefeed.workers.runner import JobRunner

router = APIRouter(prefix="/api/price-population", tags=["price-population"])


@router.post("/jobs", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(body: JobCreate, runner: JobRunner = Depends(get_runner)) -> JobResponse:
    """Create a backfill job and start it in the background."""
    job = await runner.create_and_submit(body.asset_id, body.mapping_id, body.start_date, body.end_date)
    return JobResponse.model_validate(job)


@router.get("/jobs", response_model=JobList)
async def list_jobs(
    asset_id: Optional[uuid.UUID] = Query(None),
    job_status: Optional[JobStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    controller: BackfillController = Depends(get_controller),
) -> JobList:
    jobs, total = await controller.list_jobs(asset_id=asset_id, status=job_status, limit=limit, offset=offset)
    return JobList(jobs=[JobResponse.model_validate(j) for j in jobs], total=total, limit=limit, offset=offset)


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: uuid.UUID, controller: BackfillController = Depends(get_controller)) -> JobResponse:
    job = await controller.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse.model_validate(job)
