"""
Pydantic schemas for the inbound Slack signals the pipeline consumes.

Slack payloads carry many more fields; only the ones the controller needs are
kept, and ``from_slack`` normalises the differing payload shapes.
"""
from typing import Any, Mapping, Optional
from pydantic import BaseModel, Field

from paynotify.models.enums import JobAction


class FileSharedEvent(BaseModel):
    file_id: str = Field(min_length=1, description="Slack file id (artifact id)")
    channel_id: str = Field(min_length=1, description="Channel where the file was shared")
    user_id: str = Field(min_length=1, description="Uploader; the only user allowed to confirm")

    @classmethod
    def from_slack(cls, event: Mapping[str, Any]) -> "FileSharedEvent":
        file_id = event.get("file_id") or (event.get("file") or {}).get("id")
        return cls(
            file_id=file_id or "",
            channel_id=event.get("channel_id") or "",
            user_id=event.get("user_id") or "",
        )


class JobActionEvent(BaseModel):
    action_id: JobAction
    job_id: str = Field(min_length=1, description="Carried in the button value")
    user_id: str = Field(min_length=1, description="User who clicked the button")
    trigger_id: Optional[str] = Field(None, description="Token for opening a modal")

    @classmethod
    def from_slack(cls, body: Mapping[str, Any]) -> "JobActionEvent":
        action = (body.get("actions") or [{}])[0]
        return cls(
            action_id=JobAction(action.get("action_id")),
            job_id=action.get("value") or "",
            user_id=(body.get("user") or {}).get("id") or "",
            trigger_id=body.get("trigger_id"),
        )


class ReactionEvent(BaseModel):
    reaction: str
    message_ts: Optional[str] = Field(None, description="ts of the reacted message")
    channel_id: Optional[str] = None
    user_id: str = Field(min_length=1, description="User who reacted")

    @classmethod
    def from_slack(cls, event: Mapping[str, Any]) -> "ReactionEvent":
        item = event.get("item") or {}
        return cls(
            reaction=event.get("reaction") or "",
            message_ts=item.get("ts"),
            channel_id=item.get("channel"),
            user_id=event.get("user") or "",
        )


__all__ = ["FileSharedEvent", "JobActionEvent", "ReactionEvent"]
