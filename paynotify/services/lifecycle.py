"""Job lifecycle controller.

State machine per job id (derived from the Slack file id):

    none --file_shared--> staged --confirm--> dispatching --> completed
                            |
                            +--cancel--> cancelled
                            +--sweep (too old)--> expired

Terminal states are not stored: the job entry and its downloaded file are
deleted, which returns the id to ``none``.

Guards:
 - file_shared is ignored when the artifact is in the processed set or a job
   for it is already staged.
 - confirm / cancel / preview require the acting user to be the uploader;
   anyone else gets an access-denied modal and the job is untouched.
 - Actions for an absent job are acknowledged and ignored.

Every handler that touches a job holds that job's lock for its whole
read-check-act-delete sequence, giving at most one dispatch per job. A cancel
arriving mid-dispatch waits for the lock and then finds the job gone.
Cleanup (job entry + temporary file) runs in ``finally`` blocks.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Mapping, Optional

from paynotify.config import COLUMN_SETTINGS, JOB_SETTINGS, MESSAGE_SETTINGS, SLACK_SETTINGS
from paynotify.errors import (
    AuthorizationError,
    ExternalSendError,
    JobNotFoundError,
    PayNotifyError,
    StructuralParseError,
)
from paynotify.jobs.expiring_store import ExpiringStore
from paynotify.jobs.job_store import JobStore
from paynotify.models.dispatch import DispatchReport
from paynotify.models.enums import JobState
from paynotify.models.job import Job, make_job_id
from paynotify.models.schemas.events import FileSharedEvent, JobActionEvent, ReactionEvent
from paynotify.services import prompts
from paynotify.services.ack_tracker import AckTracker
from paynotify.services.dispatcher import NotificationDispatcher
from paynotify.services.slack_gateway import MessagingGateway
from paynotify.services.tabular_reader import read_rows_from_path
from paynotify.utils import get_logger, log_business_event
from paynotify.utils.keyed_locks import KeyedLocks
from paynotify.utils.time import ensure_utc, utc_now

logger = get_logger(__name__)


def remove_file(path: str | Path | None) -> None:
    """Delete a temporary artifact; a missing file is not an error."""
    if not path:
        return
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to remove temporary file", path=str(path), error=str(e))


class JobLifecycleController:
    def __init__(
        self,
        gateway: MessagingGateway,
        job_store: JobStore,
        dispatcher: NotificationDispatcher,
        ack_tracker: AckTracker,
        processed_store: ExpiringStore,
        *,
        upload_dir: str | Path | None = None,
        admin_channel_id: Optional[str] = None,
        staged_job_ttl_hours: Optional[float] = None,
        preview_rows: Optional[int] = None,
        columns: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.gateway = gateway
        self.job_store = job_store
        self.dispatcher = dispatcher
        self.ack_tracker = ack_tracker
        self.processed = processed_store
        self.upload_dir = Path(upload_dir or JOB_SETTINGS["upload_dir"])  # type: ignore[arg-type]
        self.admin_channel_id = admin_channel_id or SLACK_SETTINGS["admin_channel_id"]
        ttl_hours = staged_job_ttl_hours if staged_job_ttl_hours is not None else JOB_SETTINGS["staged_job_ttl_hours"]
        self.staged_job_ttl = timedelta(hours=float(ttl_hours))  # type: ignore[arg-type]
        self.preview_rows = int(preview_rows if preview_rows is not None else JOB_SETTINGS["preview_rows"])  # type: ignore[arg-type]
        self.columns = dict(columns or COLUMN_SETTINGS)
        self.accepted_filetypes: dict[str, str] = dict(JOB_SETTINGS["accepted_filetypes"])  # type: ignore[arg-type]
        self.ack_reactions = set(MESSAGE_SETTINGS["ack_reactions"])
        self._locks = KeyedLocks()

    # ------------------------------- helpers -------------------------------- #
    def _release(self, job: Job) -> None:
        self.job_store.delete(job.job_id)
        remove_file(job.file_path)

    def _require_job(self, job_id: str) -> Job:
        job = self.job_store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    @staticmethod
    def _authorize(job: Job, user_id: str) -> None:
        if job.user_id != user_id:
            raise AuthorizationError(job.job_id, user_id)

    async def _open_modal(self, trigger_id: Optional[str], view: dict, **context) -> None:
        if not trigger_id:
            logger.warning("Cannot open modal without trigger id", **context)
            return
        try:
            await self.gateway.open_modal(trigger_id, view)
        except PayNotifyError as e:
            logger.warning("Failed to open modal", error=str(e), **context)

    async def _resolve_action_job(self, action: JobActionEvent) -> Optional[Job]:
        """Load the job an action refers to, enforcing the uploader-only guard."""
        try:
            job = self._require_job(action.job_id)
            self._authorize(job, action.user_id)
        except JobNotFoundError:
            logger.info("Action for absent job ignored", job_id=action.job_id, action=action.action_id.value)
            return None
        except AuthorizationError as e:
            logger.warning("Unauthorized job action", job_id=e.job_id, user_id=e.user_id, action=action.action_id.value)
            await self._open_modal(action.trigger_id, prompts.access_denied_view(), job_id=action.job_id)
            return None
        return job

    async def _update_prompt(self, job: Job, text: str, blocks: Optional[list[dict]] = None) -> None:
        if not job.prompt_ts:
            return
        try:
            await self.gateway.update_message(job.channel_id, job.prompt_ts, text, blocks)
        except Exception as e:  # never blocks dispatch or cleanup
            logger.warning(
                "Failed to update job prompt", job_id=job.job_id, error=str(e), error_type=type(e).__name__
            )

    async def _notify_creation_error(self, channel_id: str, error: Exception) -> None:
        try:
            await self.gateway.post_message(channel_id, prompts.parse_error_text(error))
        except ExternalSendError as e:
            logger.error("Failed to post job creation error", channel_id=channel_id, error=str(e))

    # ---------------------------- none -> staged ---------------------------- #
    async def handle_file_shared(self, event: FileSharedEvent) -> Optional[Job]:
        job_id = make_job_id(event.file_id)
        async with self._locks.hold(job_id):
            if self.processed.contains(event.file_id):
                logger.info("Ignoring already processed artifact", file_id=event.file_id)
                return None
            if self.job_store.get(job_id) is not None:
                logger.info("Ignoring duplicate signal for staged job", job_id=job_id)
                return None
            return await self._stage(job_id, event)

    async def _stage(self, job_id: str, event: FileSharedEvent) -> Optional[Job]:
        try:
            info = await self.gateway.fetch_file_info(event.file_id)
        except PayNotifyError as e:
            logger.error("Failed to fetch file metadata", file_id=event.file_id, error=str(e))
            await self._notify_creation_error(event.channel_id, e)
            return None

        delimiter = self.accepted_filetypes.get(info.filetype)
        if delimiter is None:
            logger.info("Ignoring non-tabular file", file_id=event.file_id, filetype=info.filetype)
            return None

        dest = self.upload_dir / f"{event.file_id}.{info.filetype}"
        try:
            if not info.download_url:
                raise StructuralParseError("the file has no download link")
            await self.gateway.download_file(info.download_url, dest)
            rows = read_rows_from_path(dest, delimiter=delimiter, columns=self.columns)
            if not rows:
                raise StructuralParseError("the file has no data rows")
        except (PayNotifyError, OSError) as e:
            remove_file(dest)
            logger.warning("Job creation failed", job_id=job_id, error=str(e), error_type=type(e).__name__)
            await self._notify_creation_error(event.channel_id, e)
            return None
        except Exception as e:
            remove_file(dest)
            logger.error("Job creation failed unexpectedly", job_id=job_id, error_type=type(e).__name__, exc_info=True)
            await self._notify_creation_error(event.channel_id, e)
            raise

        job = Job(
            job_id=job_id,
            artifact_id=event.file_id,
            channel_id=event.channel_id,
            user_id=event.user_id,
            rows=rows,
            file_path=str(dest),
            file_name=info.name,
        )
        self.job_store.put(job)
        try:
            job.prompt_ts = await self.gateway.post_message(
                event.channel_id, prompts.confirmation_text(job), prompts.confirmation_blocks(job)
            )
            self.job_store.put(job)
        except Exception:
            logger.error("Failed to post confirmation prompt", job_id=job_id, exc_info=True)
            self._release(job)
            raise

        log_business_event("job_staged", {"rows": len(rows), "file_id": event.file_id}, user_id=event.user_id, job_id=job_id)
        return job

    # ------------------- staged -> dispatching -> completed ------------------ #
    async def handle_confirm(self, action: JobActionEvent) -> Optional[DispatchReport]:
        async with self._locks.hold(action.job_id):
            job = await self._resolve_action_job(action)
            if job is None:
                return None

            job.state = JobState.DISPATCHING
            self.job_store.put(job)
            try:
                await self._update_prompt(job, prompts.in_progress_text(job))
                report = await self.dispatcher.dispatch(job)
                try:
                    await self.dispatcher.publish_report(report, job.channel_id, job.prompt_ts)
                except Exception as e:
                    logger.error(
                        "Failed to publish dispatch report", job_id=job.job_id, error=str(e), error_type=type(e).__name__
                    )
            finally:
                # Dispatch has started: never let the same file be sent twice.
                self.processed.set(job.artifact_id, True)
                self._release(job)

        log_business_event(
            "job_completed",
            {"sent": report.success_count, "total": report.total, "not_sent": report.failed_names},
            user_id=action.user_id,
            job_id=job.job_id,
        )
        return report

    # -------------------------- staged -> cancelled -------------------------- #
    async def handle_cancel(self, action: JobActionEvent) -> bool:
        async with self._locks.hold(action.job_id):
            job = await self._resolve_action_job(action)
            if job is None:
                return False
            try:
                await self._update_prompt(job, prompts.cancelled_text(job, action.user_id))
            finally:
                self._release(job)

        log_business_event("job_cancelled", {"rows": len(job.rows)}, user_id=action.user_id, job_id=job.job_id)
        return True

    async def handle_preview(self, action: JobActionEvent) -> bool:
        job = await self._resolve_action_job(action)
        if job is None:
            return False
        view = prompts.preview_view(job, job.rows[: self.preview_rows])
        await self._open_modal(action.trigger_id, view, job_id=job.job_id)
        return True

    # ---------------------------- acknowledgments ---------------------------- #
    async def handle_reaction(self, event: ReactionEvent) -> Optional[str]:
        if event.reaction not in self.ack_reactions or not event.message_ts:
            return None
        name = self.ack_tracker.resolve(event.message_ts, event.user_id)
        if name is None:
            return None
        try:
            await self.gateway.post_message(self.admin_channel_id, prompts.acknowledgment_text(name, event.user_id))
        except ExternalSendError as e:
            logger.error("Failed to post acknowledgment notice", message_ts=event.message_ts, error=str(e))
        log_business_event("notification_acknowledged", {"name": name, "message_ts": event.message_ts}, user_id=event.user_id)
        return name

    # ------------------------------- expiry ------------------------------- #
    async def expire_stale_jobs(self, now: Optional[datetime] = None) -> list[str]:
        """Drop jobs older than the staged-job TTL that no handler is working on."""
        now = now or utc_now()
        expired: list[str] = []
        for job in self.job_store.list_jobs():
            if now - ensure_utc(job.created_at) < self.staged_job_ttl:
                continue
            if self._locks.is_locked(job.job_id):
                continue
            async with self._locks.hold(job.job_id):
                current = self.job_store.get(job.job_id)
                if current is None:
                    continue
                try:
                    await self._update_prompt(current, prompts.expired_text(current))
                finally:
                    self._release(current)
            expired.append(job.job_id)
            log_business_event("job_expired", {"state": job.state.value}, user_id=job.user_id, job_id=job.job_id)
        self.processed.purge_expired()
        return expired


__all__ = ["JobLifecycleController", "remove_file"]
