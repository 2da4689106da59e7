"""Block Kit payloads for channel prompts, reports and modals."""
from __future__ import annotations

from typing import Sequence

from paynotify.models.dispatch import DispatchReport, display_name
from paynotify.models.enums import DispatchStatus, JobAction
from paynotify.models.job import Job, Row

_FAILURE_LABELS = {
    DispatchStatus.SKIPPED_MISSING_DATA: "skipped, missing data",
    DispatchStatus.SKIPPED_INVALID_NUMERIC: "skipped, invalid number",
    DispatchStatus.SEND_FAILED: "send failed",
}


# Slack rejects section text over 3000 characters
_SECTION_LIMIT = 3000


def _section(text: str) -> dict:
    if len(text) > _SECTION_LIMIT:
        text = text[: _SECTION_LIMIT - 3] + "..."
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def confirmation_text(job: Job) -> str:
    file_label = f" `{job.file_name}`" if job.file_name else ""
    return (
        f"<@{job.user_id}> the spreadsheet{file_label} was read: *{len(job.rows)}* rows ready. "
        "Send the payment notifications now?"
    )


def confirmation_blocks(job: Job) -> list[dict]:
    def _button(label: str, action: JobAction, style: str | None = None) -> dict:
        button = {
            "type": "button",
            "text": {"type": "plain_text", "text": label},
            "action_id": action.value,
            "value": job.job_id,
        }
        if style:
            button["style"] = style
        return button

    return [
        _section(confirmation_text(job)),
        {
            "type": "actions",
            "block_id": f"job_actions:{job.job_id}",
            "elements": [
                _button("Confirm and send", JobAction.CONFIRM, "primary"),
                _button("Cancel", JobAction.CANCEL, "danger"),
                _button("Preview data", JobAction.PREVIEW),
            ],
        },
    ]


def in_progress_text(job: Job) -> str:
    return f":hourglass_flowing_sand: Sending {len(job.rows)} notifications..."


def cancelled_text(job: Job, user_id: str) -> str:
    return f":no_entry_sign: Sending cancelled by <@{user_id}>. No notification was sent."


def expired_text(job: Job) -> str:
    return ":hourglass: This request expired before it was confirmed. Upload the file again to restart."


def parse_error_text(error: Exception) -> str:
    return f":x: The spreadsheet could not be processed: {error}"


def report_text(report: DispatchReport) -> str:
    lines = [f":white_check_mark: Spreadsheet processed! Notifications: *{report.success_count} of {report.total} sent*."]
    if report.failures:
        lines.append("")
        lines.append("*Not sent:*")
        for outcome in report.failures:
            lines.append(f"• {display_name(outcome)} ({_FAILURE_LABELS[outcome.status]})")
    if report.sent:
        lines.append("")
        lines.append("*Details sent:*")
        for outcome in report.sent:
            lines.append(f"• *{display_name(outcome)}:* {outcome.detail or 'sent'}")
    return "\n".join(lines)


def report_blocks(report: DispatchReport) -> list[dict]:
    return [_section(report_text(report))]


def acknowledgment_text(name: str, user_id: str) -> str:
    return f":white_check_mark: {name} (<@{user_id}>) confirmed receipt of the payment message."


def access_denied_view() -> dict:
    return {
        "type": "modal",
        "title": {"type": "plain_text", "text": "Access denied"},
        "close": {"type": "plain_text", "text": "Close"},
        "blocks": [_section("Only the user who uploaded the spreadsheet can confirm or cancel this job.")],
    }


def preview_view(job: Job, rows: Sequence[Row]) -> dict:
    lines = [
        f"• *{row.name or '?'}* (<@{row.recipient_id}>): {row.amount or '?'}, "
        f"absences {row.absences or '0'}, holidays {row.holidays_worked or '0'}"
        if row.recipient_id
        else f"• *{row.name or '?'}* (no recipient): {row.amount or '?'}"
        for row in rows
    ]
    more = len(job.rows) - len(rows)
    if more > 0:
        lines.append(f"_...and {more} more rows_")
    return {
        "type": "modal",
        "title": {"type": "plain_text", "text": "Data preview"},
        "close": {"type": "plain_text", "text": "Close"},
        "blocks": [_section("\n".join(lines) or "_No rows_")],
    }


__all__ = [
    "confirmation_text",
    "confirmation_blocks",
    "in_progress_text",
    "cancelled_text",
    "expired_text",
    "parse_error_text",
    "report_text",
    "report_blocks",
    "acknowledgment_text",
    "access_denied_view",
    "preview_view",
]
