"""Acknowledgment tracking for sent payment notifications.

Maps the Slack ``ts`` of each delivered direct message to the recipient it
was addressed to. Only a reaction from that same recipient resolves the
entry, and resolving consumes it so a repeated reaction is ignored.
"""
from __future__ import annotations

from typing import Optional

from paynotify.jobs.expiring_store import ExpiringStore
from paynotify.utils import get_logger

logger = get_logger(__name__)


class AckTracker:
    def __init__(self, store: ExpiringStore, *, ttl_seconds: Optional[float] = None) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    def record(self, message_id: str, recipient_id: str, name: Optional[str]) -> None:
        self._store.set(message_id, {"user": recipient_id, "name": name}, self._ttl_seconds)
        logger.debug("Acknowledgment entry recorded", message_id=message_id, recipient=recipient_id)

    def resolve(self, message_id: str, reacting_user: str) -> Optional[str]:
        """Return the recipient's name if ``reacting_user`` is the recipient.

        A reaction from anyone else leaves the entry in place.
        """
        entry = self._store.get(message_id)
        if entry is None:
            return None
        if entry.get("user") != reacting_user:
            logger.info(
                "Ignoring acknowledgment from non-recipient",
                message_id=message_id,
                reacting_user=reacting_user,
            )
            return None
        # A concurrent duplicate that lost the race sees None here.
        consumed = self._store.pop(message_id)
        if consumed is None:
            return None
        return consumed.get("name") or reacting_user


__all__ = ["AckTracker"]
