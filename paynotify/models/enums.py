"""Central Enum definitions for job and dispatch states.

These replace scattered string literals so the controller, dispatcher,
stores and Slack payloads agree on the same values.
"""
from __future__ import annotations
import enum


class JobState(str, enum.Enum):
    STAGED = "staged"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class DispatchStatus(str, enum.Enum):
    SENT = "sent"
    SKIPPED_MISSING_DATA = "skipped-missing-data"
    SKIPPED_INVALID_NUMERIC = "skipped-invalid-numeric"
    SEND_FAILED = "send-failed"


class JobAction(str, enum.Enum):
    """Block Kit action ids attached to the confirmation prompt buttons."""
    CONFIRM = "confirm_job"
    CANCEL = "cancel_job"
    PREVIEW = "preview_job"


__all__ = [
    "JobState",
    "DispatchStatus",
    "JobAction",
]
