"""SQLAlchemy model for jobs waiting for confirmation (SQL job store backend)."""
from __future__ import annotations
from datetime import datetime
from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from paynotify.database import Base

class StagedJobRecord(Base):
    __tablename__ = "staged_jobs"
    job_id: Mapped[str] = mapped_column(String, primary_key=True)
    artifact_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # Full Job.to_dict() payload, rows included
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
