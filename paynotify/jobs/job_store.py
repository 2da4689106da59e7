"""Job store: staged jobs keyed by job id.

Two backends share the same small interface:
- ``InMemoryJobStore``: process-local dict, lost on restart.
- ``SqlJobStore``: one row per job in ``staged_jobs`` (JSON payload). A missing
  row means the job is absent, so deleting twice is a no-op.

Writes overwrite. There is no implicit expiry here; stale staged jobs are
removed by the controller's sweep (see ``paynotify.jobs.sweeper``).
"""
from __future__ import annotations

import threading
from typing import Callable, Optional, Protocol

from sqlalchemy.orm import Session

from paynotify.config import JOB_STORE_SETTINGS
from paynotify.database import Base, SessionLocal, engine
from paynotify.models.db import StagedJobRecord
from paynotify.models.job import Job
from paynotify.utils import get_logger

logger = get_logger(__name__)


class JobStore(Protocol):
    def put(self, job: Job) -> None: ...
    def get(self, job_id: str) -> Optional[Job]: ...
    def delete(self, job_id: str) -> None: ...
    def list_jobs(self) -> list[Job]: ...


class InMemoryJobStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._jobs: dict[str, dict] = {}

    # Jobs are stored serialized so callers never share mutable state with the store.
    def put(self, job: Job) -> None:
        with self._lock:
            self._jobs[job.job_id] = job.to_dict()

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            data = self._jobs.get(job_id)
        return Job.from_dict(data) if data is not None else None

    def delete(self, job_id: str) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)

    def list_jobs(self) -> list[Job]:
        with self._lock:
            payloads = list(self._jobs.values())
        return [Job.from_dict(p) for p in payloads]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


class SqlJobStore:
    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        self._session_factory: Callable[[], Session] = session_factory or SessionLocal

    def put(self, job: Job) -> None:
        session = self._session_factory()
        try:
            record = session.get(StagedJobRecord, job.job_id)
            if record is None:
                record = StagedJobRecord(job_id=job.job_id, artifact_id=job.artifact_id)
                session.add(record)
            record.payload = job.to_dict()
            record.created_at = job.created_at
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get(self, job_id: str) -> Optional[Job]:
        session = self._session_factory()
        try:
            record = session.get(StagedJobRecord, job_id)
            return Job.from_dict(record.payload) if record is not None else None
        finally:
            session.close()

    def delete(self, job_id: str) -> None:
        session = self._session_factory()
        try:
            session.query(StagedJobRecord).filter(StagedJobRecord.job_id == job_id).delete()
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def list_jobs(self) -> list[Job]:
        session = self._session_factory()
        try:
            records = session.query(StagedJobRecord).order_by(StagedJobRecord.created_at).all()
            return [Job.from_dict(r.payload) for r in records]
        finally:
            session.close()


def create_job_store() -> JobStore:
    """Create the configured job store, creating the SQL table if needed."""
    backend = str(JOB_STORE_SETTINGS.get("backend", "memory")).lower()
    if backend == "sql":
        Base.metadata.create_all(bind=engine, tables=[StagedJobRecord.__table__])
        logger.info("Using SQL job store", url=str(engine.url))
        return SqlJobStore()
    if backend != "memory":
        logger.warning("Unknown job store backend, using memory", backend=backend)
    logger.info("Using in-memory job store")
    return InMemoryJobStore()


__all__ = ["JobStore", "InMemoryJobStore", "SqlJobStore", "create_job_store"]
