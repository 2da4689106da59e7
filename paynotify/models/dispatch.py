"""Per-row dispatch outcomes and the aggregate report built from them."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from paynotify.models.enums import DispatchStatus


@dataclass(slots=True)
class DispatchOutcome:
    recipient_id: Optional[str]
    name: Optional[str]
    status: DispatchStatus
    message_ts: Optional[str] = None
    error: Optional[str] = None
    detail: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == DispatchStatus.SENT


@dataclass
class DispatchReport:
    job_id: str
    outcomes: list[DispatchOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failures(self) -> list[DispatchOutcome]:
        """Failed or skipped outcomes, in row order."""
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def sent(self) -> list[DispatchOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed_names(self) -> list[str]:
        return [display_name(o) for o in self.failures]


def display_name(outcome: DispatchOutcome) -> str:
    return outcome.name or outcome.recipient_id or "(unnamed row)"


__all__ = ["DispatchOutcome", "DispatchReport", "display_name"]
