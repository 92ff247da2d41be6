from enum import Enum


class JobStatus(str, Enum):
    """Price population job lifecycle."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


ACTIVE_JOB_STATUSES = (JobStatus.PENDING, JobStatus.RUNNING)
