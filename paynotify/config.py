"""Core application configuration & tunable workflow rules.

Everything that may differ between deployments (Slack credentials, expiration
windows, storage backends, spreadsheet column names, message wording) is
centralized here so it can be adjusted without diving into service logic.
Values are read from environment variables at import time; tests monkeypatch
the settings dicts directly.
"""
from __future__ import annotations

import os


def _env_bool(name: str, default: str = "false") -> bool:
	return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> list[str]:
	raw = os.getenv(name, "")
	return [item.strip() for item in raw.split(",") if item.strip()]


# ---------------------------------- Slack --------------------------------- #
SLACK_SETTINGS: dict[str, str | None] = {
	"bot_token": os.getenv("SLACK_BOT_TOKEN") or None,
	"signing_secret": os.getenv("SLACK_SIGNING_SECRET") or None,
	# Channel receiving acknowledgment notices
	"admin_channel_id": os.getenv("SLACK_ADMIN_CHANNEL_ID", "C0123456789"),
}

# ------------------------------- Expiration ------------------------------- #
# Lifetime of acknowledgment entries and of the processed-artifact set.
# MESSAGE_EXPIRATION_MS is accepted for compatibility with older deployments.
_expiration_ms = os.getenv("MESSAGE_EXPIRATION_MS", "").strip()
_default_expiration = int(_expiration_ms) // 1000 if _expiration_ms.isdigit() else 12 * 60 * 60

EXPIRATION_SETTINGS: dict[str, int] = {
	"message_expiration_seconds": int(os.getenv("MESSAGE_EXPIRATION_SECONDS", str(_default_expiration))),
}

# -------------------------- Expiring key-value store ---------------------- #
STORE_SETTINGS: dict[str, str | float | bool] = {
	"use_redis": _env_bool("USE_REDIS"),
	"redis_url": os.getenv("REDIS_URL", "redis://localhost:6379/0"),
	"redis_key_prefix": os.getenv("REDIS_KEY_PREFIX", "paynotify"),
	"redis_health_check_timeout": float(os.getenv("REDIS_HEALTH_CHECK_TIMEOUT", "2.0")),
}

# -------------------------------- Job store ------------------------------- #
JOB_STORE_SETTINGS: dict[str, str] = {
	"backend": os.getenv("JOB_STORE_BACKEND", "memory"),  # memory | sql
}

# ---------------------------------- Jobs ---------------------------------- #
JOB_SETTINGS: dict[str, str | int | float | dict[str, str]] = {
	# Temporary storage for downloaded artifacts
	"upload_dir": os.getenv("UPLOAD_DIR", "uploads"),
	# Slack filetype -> delimiter. Anything else is ignored.
	"accepted_filetypes": {"csv": ",", "tsv": "\t"},
	# Staged jobs never confirmed or cancelled are dropped after this window
	"staged_job_ttl_hours": float(os.getenv("STAGED_JOB_TTL_HOURS", "24")),
	"sweep_interval_seconds": int(os.getenv("STAGED_JOB_SWEEP_SECONDS", "300")),
	"preview_rows": int(os.getenv("PREVIEW_ROWS", "10")),
	"download_timeout_seconds": float(os.getenv("DOWNLOAD_TIMEOUT_SECONDS", "30")),
}

# --------------------------- Spreadsheet columns -------------------------- #
# Row field -> header name expected in the uploaded file. Every column listed
# here must be present in the header row.
COLUMN_SETTINGS: dict[str, str] = {
	"recipient_id": os.getenv("COLUMN_RECIPIENT", "Slack User"),
	"name": os.getenv("COLUMN_NAME", "Name"),
	"amount": os.getenv("COLUMN_AMOUNT", "Salary"),
	"absences": os.getenv("COLUMN_ABSENCES", "Absences"),
	"holidays_worked": os.getenv("COLUMN_HOLIDAYS_WORKED", "Holidays Worked"),
}

# --------------------------------- Messages ------------------------------- #
MESSAGE_SETTINGS: dict[str, str | list[str]] = {
	"currency_prefix": os.getenv("CURRENCY_PREFIX", "US$"),
	# Kept out of the repository; supplied by the deployment environment
	"invoice_emails": _env_list("INVOICE_EMAILS"),
	"signature": os.getenv("MESSAGE_SIGNATURE", "Payroll Team"),
	# Reactions counted as an acknowledgment of receipt
	"ack_reactions": ["white_check_mark", "heavy_check_mark"],
}

__all__ = [
	"SLACK_SETTINGS",
	"EXPIRATION_SETTINGS",
	"STORE_SETTINGS",
	"JOB_STORE_SETTINGS",
	"JOB_SETTINGS",
	"COLUMN_SETTINGS",
	"MESSAGE_SETTINGS",
]
