"""Priority-ordered, time-gated dispatch queue.

Entries are ordered by (scheduled time, descending priority, insertion
sequence). Only entries whose time has come are popped. Removal is lazy:
removed ids are dropped when they reach the top of the heap.
"""

import heapq
import itertools
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from carenotify.errors import QueueFullError
from carenotify.logging import get_module_logger
from carenotify.notifications.models import Notification

logger = get_module_logger()


@dataclass
class QueueEntry:
    """A notification waiting in the queue.

    Attributes:
        notification: The queued notification
        next_attempt_at: Earliest time it may be popped
        backoff_exponent: Attempts already made
        sequence: Insertion order tie-breaker
    """

    notification: Notification
    next_attempt_at: datetime
    backoff_exponent: int = 0
    sequence: int = 0
    removed: bool = field(default=False, repr=False)

    def sort_key(self) -> Tuple[datetime, int, int]:
        return (self.next_attempt_at, -int(self.notification.priority), self.sequence)


class DispatchQueue:
    """Min-heap of pending notifications.

    Args:
        max_size: Maximum number of live entries (QueueFullError beyond)

    Example:
        queue = DispatchQueue(max_size=1000)
        queue.push(notification)
        for entry in queue.pop_due(clock.now(), limit=50):
            ...
    """

    def __init__(self, max_size: int = 1000):
        self.max_size = max_size
        self._heap: List[Tuple[Tuple[datetime, int, int], QueueEntry]] = []
        self._entries: Dict[str, QueueEntry] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, notification_id: str) -> bool:
        with self._lock:
            return notification_id in self._entries

    def _insert(self, notification: Notification, next_attempt_at: Optional[datetime]) -> QueueEntry:
        existing = self._entries.pop(notification.id, None)
        if existing is not None:
            existing.removed = True

        entry = QueueEntry(
            notification=notification,
            next_attempt_at=next_attempt_at or notification.scheduled_time,
            backoff_exponent=notification.attempt_count,
            sequence=next(self._counter),
        )
        heapq.heappush(self._heap, (entry.sort_key(), entry))
        self._entries[notification.id] = entry
        return entry

    def _has_room(self, notifications: List[Notification]) -> bool:
        new_ids = {n.id for n in notifications if n.id not in self._entries}
        return len(self._entries) + len(new_ids) <= self.max_size

    def push(
        self, notification: Notification, next_attempt_at: Optional[datetime] = None
    ) -> QueueEntry:
        """Add a notification, replacing any entry with the same id.

        Raises:
            QueueFullError: If the queue holds ``max_size`` entries
        """
        with self._lock:
            if not self._has_room([notification]):
                logger.warning(
                    "dispatch_queue_full",
                    notification_id=notification.id,
                    max_size=self.max_size,
                )
                raise QueueFullError(f"Dispatch queue is full ({self.max_size} entries)")
            return self._insert(notification, next_attempt_at)

    def push_batch(self, notifications: Iterable[Notification]) -> List[QueueEntry]:
        """Add several notifications, higher priority first.

        The batch is accepted whole or not at all.

        Raises:
            QueueFullError: If the batch does not fit
        """
        ordered = sorted(notifications, key=lambda n: -int(n.priority))
        with self._lock:
            if not self._has_room(ordered):
                logger.warning(
                    "dispatch_queue_full",
                    batch_size=len(ordered),
                    max_size=self.max_size,
                )
                raise QueueFullError(f"Dispatch queue is full ({self.max_size} entries)")
            return [self._insert(n, None) for n in ordered]

    def requeue(self, entry: QueueEntry) -> QueueEntry:
        """Put back an entry popped by ``pop_due``, ignoring ``max_size``."""
        with self._lock:
            return self._insert(entry.notification, entry.next_attempt_at)

    def pop_due(self, now: datetime, limit: Optional[int] = None) -> List[QueueEntry]:
        """Pop entries due at ``now`` in queue order, at most ``limit``."""
        due: List[QueueEntry] = []
        with self._lock:
            while self._heap and (limit is None or len(due) < limit):
                _, entry = self._heap[0]
                if entry.removed:
                    heapq.heappop(self._heap)
                    continue
                if entry.next_attempt_at > now:
                    break
                heapq.heappop(self._heap)
                self._entries.pop(entry.notification.id, None)
                due.append(entry)
        return due

    def peek_next_time(self) -> Optional[datetime]:
        with self._lock:
            while self._heap and self._heap[0][1].removed:
                heapq.heappop(self._heap)
            return self._heap[0][1].next_attempt_at if self._heap else None

    def remove(self, notification_id: str) -> bool:
        with self._lock:
            entry = self._entries.pop(notification_id, None)
            if entry is None:
                return False
            entry.removed = True
            return True

    def snapshot(self) -> List[Dict[str, Any]]:
        """Serialize live entries in queue order."""
        with self._lock:
            live = sorted(self._entries.values(), key=lambda e: e.sort_key())
            return [
                {
                    "notification": e.notification.model_dump(mode="json"),
                    "next_attempt_at": e.next_attempt_at.isoformat(),
                }
                for e in live
            ]

    def restore(self, snapshot: Iterable[Dict[str, Any]]) -> int:
        """Load entries produced by ``snapshot``; returns the number restored."""
        restored = 0
        with self._lock:
            for item in snapshot:
                notification = Notification.model_validate(item["notification"])
                self._insert(
                    notification, datetime.fromisoformat(item["next_attempt_at"])
                )
                restored += 1
        logger.info("dispatch_queue_restored", restored=restored)
        return restored
