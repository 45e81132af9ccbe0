"""
Job Classifier

Splits an RO's jobs into performed (repeat candidates) and declined.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from app.models.enums import PERFORMED_STATUSES, DECLINED_STATUSES
from app.models.schemas import Job, RepairOrderSnapshot

UNNAMED_SERVICE = "Unnamed Service"

# First non-null field wins
STATUS_FIELDS = ("authorization_status", "authorized_status", "approval_status", "status")

# Keys tried when a status arrives as an object
STATUS_OBJECT_KEYS = ("code", "name")


@dataclass(frozen=True)
class ServiceItem:
    """A classified job with its checkbox id"""
    stable_id: str
    name: str
    job: Job


def _decode_status(value: Any) -> str:
    if isinstance(value, dict):
        for key in STATUS_OBJECT_KEYS:
            if value.get(key) is not None:
                return str(value[key])
        return ""
    return str(value)


def normalize_job_status(job: Job) -> str:
    """Status from the first populated status field, trimmed and upper-cased"""
    for field_name in STATUS_FIELDS:
        raw = getattr(job, field_name)
        if raw is not None:
            return _decode_status(raw).strip().upper()
    return ""


def is_performed_job(job: Job) -> bool:
    """Authorized/approved flag decides when present, else the status vocabulary"""
    flags = [flag for flag in (job.authorized, job.approved) if flag is not None]
    if True in flags:
        return True
    if flags:
        return False
    return normalize_job_status(job) in PERFORMED_STATUSES


def is_declined_job(job: Job) -> bool:
    """Declined flag decides when present; Tekmetric marks declined jobs authorized=False"""
    if job.declined is not None:
        return job.declined
    if job.authorized is False:
        return True
    return normalize_job_status(job) in DECLINED_STATUSES


def job_name(job: Job) -> str:
    return job.name or UNNAMED_SERVICE


def stable_job_id(job: Job, index: int, prefix: str) -> str:
    if job.id is not None:
        return str(job.id)
    if job.job_id is not None:
        return str(job.job_id)
    return f"{prefix}{index}"


def _with_stable_ids(jobs: Iterable[Job], prefix: str) -> List[ServiceItem]:
    return [
        ServiceItem(stable_id=stable_job_id(job, idx, prefix), name=job_name(job), job=job)
        for idx, job in enumerate(jobs)
    ]


def get_performed_services(ro: Optional[RepairOrderSnapshot]) -> List[ServiceItem]:
    jobs = ro.jobs if ro else []
    return _with_stable_ids([j for j in jobs if is_performed_job(j)], "p")


def get_declined_services(ro: Optional[RepairOrderSnapshot]) -> List[ServiceItem]:
    jobs = ro.jobs if ro else []
    return _with_stable_ids([j for j in jobs if is_declined_job(j)], "d")
