"""Bulk payment notification service.

Turns an uploaded spreadsheet into one Slack direct message per recipient,
after explicit confirmation by the uploader, and reports acknowledgments.
"""

__all__: list[str] = []
