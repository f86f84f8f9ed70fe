"""Notification lifecycle history.

HistoryStore keeps, per notification, the latest notification snapshot plus
append-only logs of status transitions and delivery attempts. Records live
in the DurableStore under ``history:notification:<id>``; the list of known
ids is kept under ``history:index``.

Statistics, export and retention cleanup are computed from these records.
"""

import threading
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from carenotify.clock import Clock, SystemClock
from carenotify.errors import NotificationNotFoundError
from carenotify.logging import get_module_logger
from carenotify.notifications.models import (
    DELIVERED_STATUSES,
    ChannelType,
    DeliveryAttempt,
    DeliveryOutcome,
    Notification,
    NotificationStatus,
    NotificationType,
    StatusTransition,
)
from carenotify.persistence import DurableStore

logger = get_module_logger()

RECORD_PREFIX = "history:notification"
INDEX_KEY = "history:index"
EXPORT_VERSION = "1.0.0"

SUCCESS_RATE_WINDOW = 100
RECENT_ACTIVITY_LIMIT = 50
EXPORT_ATTEMPT_LIMIT = 1000

# Still owned by the dispatch queue; cleanup never removes these.
IN_FLIGHT_STATUSES = frozenset({NotificationStatus.PENDING, NotificationStatus.SENDING})


class HistoryFilters(BaseModel):
    """Scope for stats and export. Every field is optional.

    ``start`` and ``end`` bound the notification ``created_at``.
    """

    type: Optional[NotificationType] = None
    status: Optional[NotificationStatus] = None
    channel: Optional[ChannelType] = None
    user_id: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def matches(self, notification: Notification) -> bool:
        if self.type is not None and notification.type != self.type:
            return False
        if self.status is not None and notification.status != self.status:
            return False
        if self.channel is not None and self.channel not in notification.channels:
            return False
        if self.user_id is not None and notification.target_user.id != self.user_id:
            return False
        if self.start is not None and notification.created_at < self.start:
            return False
        if self.end is not None and notification.created_at > self.end:
            return False
        return True


def is_unread(notification: Notification) -> bool:
    """Unread: not yet final, or delivered without a read acknowledgement."""
    if notification.status in IN_FLIGHT_STATUSES:
        return True
    return notification.status in DELIVERED_STATUSES and notification.read_time is None


class HistoryRecord(BaseModel):
    notification: Notification
    transitions: List[StatusTransition] = []
    attempts: List[DeliveryAttempt] = []


class HistoryStore:
    """Append-only lifecycle log with statistics and retention.

    Args:
        store: DurableStore holding the records
        clock: Time source for cleanup cutoffs and recent activity
        recent_days: Window of the ``recent_activity`` feed

    Example:
        history = HistoryStore(store, clock)
        history.record_created(notification)
        stats = history.stats(HistoryFilters(user_id="u-1"))
    """

    def __init__(
        self,
        store: DurableStore,
        clock: Optional[Clock] = None,
        recent_days: int = 7,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.recent_days = recent_days
        self._lock = threading.RLock()

    @staticmethod
    def key(notification_id: str) -> str:
        return f"{RECORD_PREFIX}:{notification_id}"

    # Persistence helpers

    def _index(self) -> List[str]:
        return list(self.store.get(INDEX_KEY) or [])

    def _load(self, notification_id: str) -> Optional[HistoryRecord]:
        raw = self.store.get(self.key(notification_id))
        return HistoryRecord.model_validate(raw) if raw else None

    def _save(self, record: HistoryRecord) -> None:
        self.store.set(self.key(record.notification.id), record.model_dump(mode="json"))

    def _require(self, notification_id: str) -> HistoryRecord:
        record = self._load(notification_id)
        if record is None:
            raise NotificationNotFoundError(notification_id)
        return record

    def _records(self) -> List[HistoryRecord]:
        records = []
        for notification_id in self._index():
            record = self._load(notification_id)
            if record is not None:
                records.append(record)
        return records

    # Writes

    def record_created(self, notification: Notification) -> None:
        with self._lock:
            record = HistoryRecord(
                notification=notification,
                transitions=[
                    StatusTransition(
                        notification_id=notification.id,
                        from_status=None,
                        to_status=notification.status,
                        reason="created",
                        timestamp=notification.created_at,
                    )
                ],
            )
            self._save(record)
            index = self._index()
            if notification.id not in index:
                index.append(notification.id)
                self.store.set(INDEX_KEY, index)

    def record_transition(
        self,
        notification: Notification,
        from_status: Optional[NotificationStatus],
        reason: Optional[str] = None,
    ) -> StatusTransition:
        """Append a status change and refresh the stored snapshot."""
        transition = StatusTransition(
            notification_id=notification.id,
            from_status=from_status,
            to_status=notification.status,
            reason=reason,
            timestamp=notification.updated_at,
        )
        with self._lock:
            record = self._require(notification.id)
            record.notification = notification
            record.transitions.append(transition)
            self._save(record)
        return transition

    def record_attempt(self, attempt: DeliveryAttempt) -> None:
        with self._lock:
            record = self._require(attempt.notification_id)
            record.attempts.append(attempt)
            self._save(record)

    def save_notification(self, notification: Notification) -> None:
        """Refresh the stored snapshot without logging a transition."""
        with self._lock:
            record = self._require(notification.id)
            record.notification = notification
            self._save(record)

    def discard(self, notification_id: str) -> None:
        """Remove a record whose notification never entered the queue."""
        with self._lock:
            self.store.delete(self.key(notification_id))
            index = self._index()
            if notification_id in index:
                index.remove(notification_id)
                self.store.set(INDEX_KEY, index)

    # Reads

    def get_notification(self, notification_id: str) -> Notification:
        """Return a copy of the latest snapshot.

        Raises:
            NotificationNotFoundError: If the id is unknown
        """
        return self._require(notification_id).notification

    def get_record(self, notification_id: str) -> HistoryRecord:
        return self._require(notification_id)

    def list_notifications(
        self, filters: Optional[HistoryFilters] = None
    ) -> List[Notification]:
        filters = filters or HistoryFilters()
        return [
            r.notification for r in self._records() if filters.matches(r.notification)
        ]

    def stats(self, filters: Optional[HistoryFilters] = None) -> Dict[str, Any]:
        """Aggregate statistics over the notifications in scope.

        Returns:
            Dict with total, unread, read, total_by_type, total_by_status,
            total_by_channel, total_by_priority, success_rate (percentage of
            successful channel attempts among the latest 100, 2 decimals)
            and recent_activity (latest 50 events of the last days).
        """
        filters = filters or HistoryFilters()
        with self._lock:
            records = [r for r in self._records() if filters.matches(r.notification)]

        by_type: Dict[str, int] = {}
        by_status: Dict[str, int] = {}
        by_channel: Dict[str, int] = {}
        by_priority: Dict[str, int] = {}
        read = 0
        unread = 0
        attempts: List[DeliveryAttempt] = []
        events: List[Dict[str, Any]] = []

        for record in records:
            n = record.notification
            by_type[n.type.value] = by_type.get(n.type.value, 0) + 1
            by_status[n.status.value] = by_status.get(n.status.value, 0) + 1
            by_priority[n.priority.name] = by_priority.get(n.priority.name, 0) + 1
            for channel in n.channels:
                by_channel[channel.value] = by_channel.get(channel.value, 0) + 1
            if is_unread(n):
                unread += 1
            if n.read_time is not None:
                read += 1

            for attempt in record.attempts:
                if filters.channel is None or attempt.channel == filters.channel:
                    attempts.append(attempt)
                    events.append(
                        {
                            "kind": "attempt",
                            "notification_id": n.id,
                            "channel": attempt.channel.value,
                            "attempt_number": attempt.attempt_number,
                            "outcome": attempt.outcome.value,
                            "error": attempt.error,
                            "timestamp": attempt.timestamp,
                        }
                    )
            for transition in record.transitions:
                events.append(
                    {
                        "kind": "transition",
                        "notification_id": n.id,
                        "from_status": transition.from_status.value
                        if transition.from_status
                        else None,
                        "to_status": transition.to_status.value,
                        "reason": transition.reason,
                        "timestamp": transition.timestamp,
                    }
                )

        attempts.sort(key=lambda a: a.timestamp)
        window = attempts[-SUCCESS_RATE_WINDOW:]
        successes = sum(1 for a in window if a.outcome == DeliveryOutcome.SUCCESS)
        success_rate = round(successes / len(window) * 100, 2) if window else 0.0

        cutoff = self.clock.now() - timedelta(days=self.recent_days)
        recent = sorted(
            (e for e in events if e["timestamp"] >= cutoff),
            key=lambda e: e["timestamp"],
            reverse=True,
        )[:RECENT_ACTIVITY_LIMIT]
        for event in recent:
            event["timestamp"] = event["timestamp"].isoformat()

        return {
            "total": len(records),
            "unread": unread,
            "read": read,
            "total_by_type": by_type,
            "total_by_status": by_status,
            "total_by_channel": by_channel,
            "total_by_priority": by_priority,
            "success_rate": success_rate,
            "recent_activity": recent,
        }

    def cleanup(
        self,
        older_than_days: int = 30,
        max_count: int = 1000,
        keep_unread: bool = True,
    ) -> Dict[str, int]:
        """Delete old history, oldest first.

        Notifications created before the age cutoff are removed, then the
        oldest remaining ones until at most ``max_count`` are left. Pending
        and sending notifications are never removed; with ``keep_unread``
        delivered but unread ones are kept as well, so the remaining count
        may stay above ``max_count``.

        Returns:
            {"removed_count": int, "remaining_count": int}
        """
        cutoff = self.clock.now() - timedelta(days=older_than_days)

        with self._lock:
            records = sorted(self._records(), key=lambda r: r.notification.created_at)
            removable = [
                r
                for r in records
                if r.notification.status not in IN_FLIGHT_STATUSES
                and not (keep_unread and is_unread(r.notification))
            ]

            to_remove = {
                r.notification.id for r in removable if r.notification.created_at < cutoff
            }
            excess = len(records) - len(to_remove) - max_count
            for record in removable:
                if excess <= 0:
                    break
                if record.notification.id not in to_remove:
                    to_remove.add(record.notification.id)
                    excess -= 1

            for notification_id in to_remove:
                self.store.delete(self.key(notification_id))
            index = [i for i in self._index() if i not in to_remove]
            self.store.set(INDEX_KEY, index)

        logger.info(
            "history_cleaned_up",
            removed_count=len(to_remove),
            remaining_count=len(index),
            older_than_days=older_than_days,
            max_count=max_count,
            keep_unread=keep_unread,
        )
        return {"removed_count": len(to_remove), "remaining_count": len(index)}

    def export(self, filters: Optional[HistoryFilters] = None) -> Dict[str, Any]:
        """Export notifications, their latest attempts and stats as JSON data."""
        filters = filters or HistoryFilters()
        with self._lock:
            records = [r for r in self._records() if filters.matches(r.notification)]
            stats = self.stats(filters)

        attempts = sorted(
            (a for r in records for a in r.attempts), key=lambda a: a.timestamp
        )[-EXPORT_ATTEMPT_LIMIT:]

        return {
            "version": EXPORT_VERSION,
            "exported_at": self.clock.now().isoformat(),
            "filters": filters.model_dump(mode="json", exclude_none=True),
            "notifications": [r.notification.model_dump(mode="json") for r in records],
            "attempts": [a.model_dump(mode="json") for a in attempts],
            "stats": stats,
        }
