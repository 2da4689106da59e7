"""Renders the personalized payment notification sent to each recipient.

Pure functions only: same inputs (and configuration) always give the same
text, and nothing here raises for well-typed numeric inputs.
"""
from __future__ import annotations

from typing import Optional, Sequence

from paynotify.config import MESSAGE_SETTINGS

NAME_PLACEHOLDER = "there"


def _plural(count: int, *, none: str, one: str, many: str) -> str:
    if count == 1:
        return one.format(count=count)
    if count > 1:
        return many.format(count=count)
    return none


def absences_text(absences: int) -> str:
    return _plural(
        absences,
        none="*no absences*",
        one="*{count} absence*",
        many="*{count} absences*",
    )


def holidays_text(holidays_worked: int) -> str:
    return _plural(
        holidays_worked,
        none="*did not work on any holiday*",
        one="worked on *{count} holiday*",
        many="worked on *{count} holidays*",
    )


def _emails_paragraph(emails: Sequence[str]) -> str:
    if not emails:
        return ""
    addresses = ", ".join(f"*{e}*" for e in emails)
    return f"Please send the invoice to {addresses}, copying your supervisors.\n"


def render_payment_message(
    name: Optional[str],
    amount: object,
    absences: int,
    holidays_worked: int,
    *,
    currency_prefix: Optional[str] = None,
    invoice_emails: Optional[Sequence[str]] = None,
    signature: Optional[str] = None,
) -> str:
    """Build the Slack mrkdwn body for one recipient.

    ``amount`` is shown exactly as it appeared in the spreadsheet.
    """
    prefix = currency_prefix if currency_prefix is not None else MESSAGE_SETTINGS["currency_prefix"]
    emails = invoice_emails if invoice_emails is not None else MESSAGE_SETTINGS["invoice_emails"]
    sign_off = signature if signature is not None else MESSAGE_SETTINGS["signature"]
    display = name or NAME_PLACEHOLDER
    amount_text = "" if amount is None else str(amount)

    return (
        f":wave: *Hi, {display}!*\n"
        "We hope all is well. Here are the details of your payment for this month.\n"
        "\n"
        f"*Amount to be paid this month:* {prefix}{amount_text}\n"
        "\n"
        "*Invoice instructions:*\n"
        "• The invoice must be issued by the _last business day of the month_.\n"
        "• Include the exchange rate used and the reference month in the invoice description.\n"
        "\n"
        "*Additional details:*\n"
        f"• Absences: {absences_text(absences)}.\n"
        f"• Holidays worked: {holidays_text(holidays_worked)}.\n"
        "\n"
        "*If everything looks right*, you can issue the invoice with the values above.\n"
        f"{_emails_paragraph(emails)}"
        "\n"
        "Please confirm that you received this message and agree with the values above "
        "by reacting with a :white_check_mark:.\n"
        "\n"
        "Thank you!\n"
        f"_{sign_off}_"
    )


__all__ = ["render_payment_message", "absences_text", "holidays_text", "NAME_PLACEHOLDER"]
