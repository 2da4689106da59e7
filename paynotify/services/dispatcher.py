"""Notification dispatcher.

``NotificationDispatcher.dispatch(job)`` walks the job's rows in order and
makes exactly one send attempt per dispatchable row:

1. Recipient, amount or name missing  -> SKIPPED_MISSING_DATA.
2. Absences / holidays not integers   -> SKIPPED_INVALID_NUMERIC
   (blank cells count as 0; negative or non-numeric values are never coerced).
3. Render the message and send it as a direct message to the recipient.
4. Success -> SENT, and the message ts is registered with the AckTracker.
5. Any gateway error -> SEND_FAILED. Not retried; the next row proceeds.

Rows are processed sequentially so the report order matches the file and the
messaging API never sees concurrent bursts from one job.
``publish_report`` then emits the single aggregate summary to the channel.
"""
from __future__ import annotations

import time
from typing import Optional

from paynotify.config import MESSAGE_SETTINGS
from paynotify.errors import RowValidationError
from paynotify.models.dispatch import DispatchOutcome, DispatchReport
from paynotify.models.enums import DispatchStatus
from paynotify.models.job import Job, Row
from paynotify.services import prompts
from paynotify.services.ack_tracker import AckTracker
from paynotify.services.message_renderer import render_payment_message
from paynotify.services.slack_gateway import MessagingGateway
from paynotify.utils import get_logger, log_performance

logger = get_logger(__name__)


def parse_count(raw: Optional[str], field: str) -> int:
    """Parse a non-negative integer cell; blank means 0."""
    text = (raw or "").strip()
    if not text:
        return 0
    try:
        value = int(text)
    except ValueError:
        raise RowValidationError(
            DispatchStatus.SKIPPED_INVALID_NUMERIC.value, f"{field} is not an integer: {text!r}"
        ) from None
    if value < 0:
        raise RowValidationError(DispatchStatus.SKIPPED_INVALID_NUMERIC.value, f"{field} is negative: {value}")
    return value


def validate_row(row: Row) -> tuple[int, int]:
    """Return (absences, holidays_worked) or raise RowValidationError."""
    missing = [f for f in ("recipient_id", "amount", "name") if not getattr(row, f)]
    if missing:
        raise RowValidationError(
            DispatchStatus.SKIPPED_MISSING_DATA.value, f"missing {', '.join(missing)}"
        )
    return parse_count(row.absences, "absences"), parse_count(row.holidays_worked, "holidays_worked")


class NotificationDispatcher:
    def __init__(self, gateway: MessagingGateway, ack_tracker: AckTracker) -> None:
        self.gateway = gateway
        self.ack_tracker = ack_tracker

    async def _dispatch_row(self, job: Job, index: int, row: Row) -> DispatchOutcome:
        try:
            absences, holidays = validate_row(row)
        except RowValidationError as e:
            logger.info("Row skipped", job_id=job.job_id, row=index, status=e.status, reason=str(e))
            return DispatchOutcome(row.recipient_id, row.name, DispatchStatus(e.status), error=str(e))

        message = render_payment_message(row.name, row.amount, absences, holidays)
        try:
            ts = await self.gateway.post_message(row.recipient_id, message)  # type: ignore[arg-type]
        except Exception as e:  # any send failure is recorded, never retried
            logger.warning(
                "Notification send failed",
                job_id=job.job_id,
                row=index,
                recipient=row.recipient_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return DispatchOutcome(row.recipient_id, row.name, DispatchStatus.SEND_FAILED, error=str(e))

        self.ack_tracker.record(ts, row.recipient_id, row.name)  # type: ignore[arg-type]
        logger.info("Notification sent", job_id=job.job_id, row=index, recipient=row.recipient_id, ts=ts)
        detail = f"{MESSAGE_SETTINGS['currency_prefix']}{row.amount}, absences {absences}, holidays worked {holidays}"
        return DispatchOutcome(row.recipient_id, row.name, DispatchStatus.SENT, message_ts=ts, detail=detail)

    async def dispatch(self, job: Job) -> DispatchReport:
        started = time.perf_counter()
        report = DispatchReport(job_id=job.job_id)
        for index, row in enumerate(job.rows, start=1):
            report.outcomes.append(await self._dispatch_row(job, index, row))
        log_performance(
            "dispatch_job",
            round((time.perf_counter() - started) * 1000, 2),
            {"job_id": job.job_id, "total": report.total, "sent": report.success_count},
        )
        return report

    async def publish_report(self, report: DispatchReport, channel_id: str, message_ts: Optional[str] = None) -> None:
        """Replace the prompt at ``message_ts`` with the report, or post it fresh."""
        text = prompts.report_text(report)
        blocks = prompts.report_blocks(report)
        if message_ts:
            await self.gateway.update_message(channel_id, message_ts, text, blocks)
        else:
            await self.gateway.post_message(channel_id, text, blocks)


__all__ = ["NotificationDispatcher", "parse_count", "validate_row"]
