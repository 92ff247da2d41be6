from pricefeed.domain.enums.provider import AuthType, HttpMethod
from pricefeed.domain.enums.status import ACTIVE_JOB_STATUSES, JobStatus

__all__ = [
    "ACTIVE_JOB_STATUSES",
    "AuthType",
    "HttpMethod",
    "JobStatus",
]
