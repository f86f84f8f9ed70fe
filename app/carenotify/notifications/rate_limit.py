"""Per-user, per-type rate limiting.

Each (user, type) pair has a record holding a daily counter over a rolling
24h window and the time of the last send. ``admit`` is a read-only check;
``record_send`` spends quota and is called only when a first dispatch
attempt is actually issued.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from carenotify.clock import Clock, SystemClock
from carenotify.logging import get_module_logger
from carenotify.notifications.models import NotificationType
from carenotify.notifications.policies import RateLimitRule, rate_limit_for
from carenotify.persistence import DurableStore

logger = get_module_logger()

WINDOW = timedelta(hours=24)
KEY_PREFIX = "rate_limit"


@dataclass
class RateLimitRecord:
    """Quota state for one (user, type) pair.

    Attributes:
        daily_count: Sends counted in the current window
        window_start: Start of the current rolling window
        last_sent_at: Time of the most recent counted send
    """

    daily_count: int
    window_start: datetime
    last_sent_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "daily_count": self.daily_count,
            "window_start": self.window_start.isoformat(),
            "last_sent_at": self.last_sent_at.isoformat() if self.last_sent_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RateLimitRecord":
        last_sent = data.get("last_sent_at")
        return cls(
            daily_count=int(data.get("daily_count", 0)),
            window_start=datetime.fromisoformat(data["window_start"]),
            last_sent_at=datetime.fromisoformat(last_sent) if last_sent else None,
        )

    def rolled(self, now: datetime) -> "RateLimitRecord":
        """Return the record with its window reset if 24h have elapsed."""
        if now - self.window_start > WINDOW:
            return RateLimitRecord(
                daily_count=0, window_start=now, last_sent_at=self.last_sent_at
            )
        return self


class RateLimiter:
    """Enforces daily caps and minimum intervals per (user, type).

    Args:
        store: DurableStore holding ``rate_limit:<user>:<type>`` records
        clock: Time source
        rules: Optional override of the per-type rule table
    """

    def __init__(
        self,
        store: DurableStore,
        clock: Optional[Clock] = None,
        rules: Optional[Dict[NotificationType, RateLimitRule]] = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.rules = rules
        self._lock = threading.Lock()

    @staticmethod
    def key(user_id: str, notification_type: NotificationType) -> str:
        return f"{KEY_PREFIX}:{user_id}:{notification_type.value}"

    def get_record(
        self, user_id: str, notification_type: NotificationType
    ) -> Optional[RateLimitRecord]:
        raw = self.store.get(self.key(user_id, notification_type))
        return RateLimitRecord.from_dict(raw) if raw else None

    def admit(self, user_id: str, notification_type: NotificationType) -> bool:
        """Check quota without spending it."""
        now = self.clock.now()
        rule = rate_limit_for(notification_type, self.rules)
        record = self.get_record(user_id, notification_type)
        if record is None:
            return True

        record = record.rolled(now)
        if record.daily_count >= rule.max_per_day:
            logger.info(
                "rate_limit_daily_cap_reached",
                user_id=user_id,
                notification_type=notification_type.value,
                daily_count=record.daily_count,
                max_per_day=rule.max_per_day,
            )
            return False

        if record.last_sent_at and now - record.last_sent_at < rule.min_interval:
            logger.info(
                "rate_limit_min_interval_not_elapsed",
                user_id=user_id,
                notification_type=notification_type.value,
                last_sent_at=record.last_sent_at.isoformat(),
                min_interval_seconds=rule.min_interval.total_seconds(),
            )
            return False

        return True

    def record_send(
        self, user_id: str, notification_type: NotificationType
    ) -> RateLimitRecord:
        """Spend one unit of quota for (user, type)."""
        with self._lock:
            now = self.clock.now()
            record = self.get_record(user_id, notification_type)
            if record is None:
                record = RateLimitRecord(daily_count=0, window_start=now)
            record = record.rolled(now)
            record.daily_count += 1
            record.last_sent_at = now
            self.store.set(self.key(user_id, notification_type), record.to_dict())

        logger.debug(
            "rate_limit_recorded",
            user_id=user_id,
            notification_type=notification_type.value,
            daily_count=record.daily_count,
        )
        return record

    def next_allowed_time(
        self, user_id: str, notification_type: NotificationType
    ) -> Optional[datetime]:
        """Earliest time ``admit`` can succeed, or None if it already does."""
        now = self.clock.now()
        rule = rate_limit_for(notification_type, self.rules)
        record = self.get_record(user_id, notification_type)
        if record is None:
            return None

        record = record.rolled(now)
        candidates = []
        if record.daily_count >= rule.max_per_day:
            candidates.append(record.window_start + WINDOW + timedelta(seconds=1))
        if record.last_sent_at and now - record.last_sent_at < rule.min_interval:
            candidates.append(record.last_sent_at + rule.min_interval)
        return max(candidates) if candidates else None
