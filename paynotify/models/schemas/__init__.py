from .events import FileSharedEvent, JobActionEvent, ReactionEvent

__all__ = [
    "FileSharedEvent",
    "JobActionEvent",
    "ReactionEvent",
]
