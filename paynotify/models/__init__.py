"""Domain models: job payloads, dispatch outcomes, Slack event schemas, DB records."""
from .enums import DispatchStatus, JobAction, JobState
from .job import Job, Row, make_job_id
from .dispatch import DispatchOutcome, DispatchReport

__all__ = [
    "DispatchStatus",
    "JobAction",
    "JobState",
    "Job",
    "Row",
    "make_job_id",
    "DispatchOutcome",
    "DispatchReport",
]
