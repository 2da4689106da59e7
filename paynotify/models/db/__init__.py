from .staged_jobs import StagedJobRecord

__all__ = [
    "StagedJobRecord",
]
