"""Exception taxonomy for the notification pipeline.

Job-creation errors (structural parse, download, unsupported artifact) abort
staging and are reported to the originating channel. Row-level errors
(validation, send) are captured per row and aggregated into the dispatch
report. Authorization and not-found errors only ever reject a single action.
"""
from __future__ import annotations

from typing import Iterable


class PayNotifyError(Exception):
    """Base class for all pipeline errors."""


class StructuralParseError(PayNotifyError):
    """The uploaded file cannot be read as a table with the expected header."""


class MissingColumnsError(StructuralParseError):
    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required columns: {', '.join(self.missing)}")


class RowValidationError(PayNotifyError):
    """A single row cannot be dispatched (missing or invalid values)."""

    def __init__(self, status: str, message: str):
        self.status = status
        super().__init__(message)


class ExternalSendError(PayNotifyError):
    """The messaging platform rejected or failed a send/update call."""


class ArtifactDownloadError(PayNotifyError):
    """Fetching the uploaded file's metadata or content failed."""


class AuthorizationError(PayNotifyError):
    def __init__(self, job_id: str, user_id: str):
        self.job_id = job_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not allowed to act on job {job_id}")


class JobNotFoundError(PayNotifyError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")


__all__ = [
    "PayNotifyError",
    "StructuralParseError",
    "MissingColumnsError",
    "RowValidationError",
    "ExternalSendError",
    "ArtifactDownloadError",
    "AuthorizationError",
    "JobNotFoundError",
]
