"""Job and row payload structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from paynotify.models.enums import JobState
from paynotify.utils.time import ensure_utc, utc_now


def make_job_id(artifact_id: str) -> str:
    """Job ids are derived from the artifact id so repeated signals collide."""
    return f"job-{artifact_id}"


@dataclass(slots=True)
class Row:
    recipient_id: Optional[str] = None
    name: Optional[str] = None
    amount: Optional[str] = None
    # Raw cell text; parsed by the dispatcher
    absences: str = ""
    holidays_worked: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, str], columns: Mapping[str, str]) -> "Row":
        """Build a row from a header-keyed record using the field -> header mapping."""
        def _cell(field_name: str) -> Optional[str]:
            value = (record.get(columns[field_name]) or "").strip()
            return value or None

        return cls(
            recipient_id=_cell("recipient_id"),
            name=_cell("name"),
            amount=_cell("amount"),
            absences=_cell("absences") or "",
            holidays_worked=_cell("holidays_worked") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipient_id": self.recipient_id,
            "name": self.name,
            "amount": self.amount,
            "absences": self.absences,
            "holidays_worked": self.holidays_worked,
        }


@dataclass(slots=True)
class Job:
    job_id: str
    artifact_id: str
    channel_id: str
    user_id: str
    rows: list[Row]
    file_path: str
    file_name: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    state: JobState = JobState.STAGED
    prompt_ts: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "artifact_id": self.artifact_id,
            "channel_id": self.channel_id,
            "user_id": self.user_id,
            "rows": [row.to_dict() for row in self.rows],
            "file_path": self.file_path,
            "file_name": self.file_name,
            "created_at": self.created_at.isoformat(),
            "state": self.state.value,
            "prompt_ts": self.prompt_ts,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Job":
        return cls(
            job_id=data["job_id"],
            artifact_id=data["artifact_id"],
            channel_id=data["channel_id"],
            user_id=data["user_id"],
            rows=[Row(**row) for row in data.get("rows", [])],
            file_path=data["file_path"],
            file_name=data.get("file_name"),
            created_at=ensure_utc(datetime.fromisoformat(data["created_at"])),
            state=JobState(data.get("state", JobState.STAGED.value)),
            prompt_ts=data.get("prompt_ts"),
        )


__all__ = ["Row", "Job", "make_job_id"]
