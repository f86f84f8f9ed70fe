"""Time-of-day admission.

Non-urgent notifications are only sent inside an allowed window (08:00 to
22:00 by default, in the configured timezone). A blocked notification is
rescheduled to the start of the next allowed window, never dropped. A
user's do-not-disturb schedule blocks on top of the window.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import FrozenSet, Optional

import pytz

from carenotify.clock import Clock, SystemClock
from carenotify.notifications.models import NotificationPriority, NotificationType
from carenotify.notifications.policies import (
    FULL_DAY_TYPES,
    QUIET_HOURS_BYPASS_PRIORITY,
)
from carenotify.notifications.preferences import DoNotDisturbSchedule, parse_hhmm


@dataclass(frozen=True)
class QuietHoursDecision:
    """Result of a quiet-hours check.

    Attributes:
        allowed: True if the notification may be sent now
        next_allowed_time: When a blocked notification should be retried
        reason: 'quiet_hours' or 'do_not_disturb' when blocked
    """

    allowed: bool
    next_allowed_time: Optional[datetime] = None
    reason: Optional[str] = None


def _minute_of(t: time) -> tuple:
    return (t.hour, t.minute)


def in_window(moment: time, start: time, end: time) -> bool:
    """True if ``moment`` lies in [start, end] at minute resolution.

    A window with ``start > end`` crosses midnight.
    """
    current = _minute_of(moment)
    if start <= end:
        return _minute_of(start) <= current <= _minute_of(end)
    return current >= _minute_of(start) or current <= _minute_of(end)


class QuietHoursGate:
    """Sending-window gate with priority override.

    Args:
        start_time: Start of the allowed window, HH:MM
        end_time: End of the allowed window, HH:MM
        timezone: IANA timezone name the window is expressed in
        clock: Time source used when ``now`` is not passed
        full_day_types: Types allowed around the clock
        bypass_priority: Priorities at or above this bypass every check

    Example:
        gate = QuietHoursGate(timezone="Asia/Shanghai")
        decision = gate.admit(NotificationType.PAYMENT_REMINDER, NotificationPriority.NORMAL)
        if not decision.allowed:
            notification.scheduled_time = decision.next_allowed_time
    """

    def __init__(
        self,
        start_time: str = "08:00",
        end_time: str = "22:00",
        timezone: str = "UTC",
        clock: Optional[Clock] = None,
        full_day_types: FrozenSet[NotificationType] = FULL_DAY_TYPES,
        bypass_priority: NotificationPriority = QUIET_HOURS_BYPASS_PRIORITY,
    ):
        self.start = parse_hhmm(start_time)
        self.end = parse_hhmm(end_time)
        self.tz = pytz.timezone(timezone)
        self.clock = clock or SystemClock()
        self.full_day_types = full_day_types
        self.bypass_priority = bypass_priority

    def _at(self, local: datetime, day_offset: int, at: time) -> datetime:
        day = (local + timedelta(days=day_offset)).date()
        return self.tz.localize(datetime.combine(day, at))

    def _next_window_start(self, local: datetime) -> datetime:
        candidate = self._at(local, 0, self.start)
        if candidate <= local:
            candidate = self._at(local, 1, self.start)
        return candidate

    def _do_not_disturb_end(
        self, local: datetime, schedule: DoNotDisturbSchedule
    ) -> Optional[datetime]:
        """Return the end of the do-not-disturb period covering ``local``."""
        start = parse_hhmm(schedule.start_time)
        end = parse_hhmm(schedule.end_time)
        current = _minute_of(local.time())
        today = local.weekday()
        yesterday = (local - timedelta(days=1)).weekday()

        if start <= end:
            if today in schedule.weekdays and _minute_of(start) <= current < _minute_of(end):
                return self._at(local, 0, end)
            return None

        if today in schedule.weekdays and current >= _minute_of(start):
            return self._at(local, 1, end)
        if yesterday in schedule.weekdays and current < _minute_of(end):
            return self._at(local, 0, end)
        return None

    def admit(
        self,
        notification_type: NotificationType,
        priority: NotificationPriority,
        now: Optional[datetime] = None,
        do_not_disturb: Optional[DoNotDisturbSchedule] = None,
    ) -> QuietHoursDecision:
        if priority >= self.bypass_priority:
            return QuietHoursDecision(allowed=True)

        now = now or self.clock.now()
        local = now.astimezone(self.tz)

        if notification_type not in self.full_day_types and not in_window(
            local.time(), self.start, self.end
        ):
            next_time = self._next_window_start(local)
            return QuietHoursDecision(
                allowed=False,
                next_allowed_time=next_time.astimezone(now.tzinfo),
                reason="quiet_hours",
            )

        if do_not_disturb is not None and do_not_disturb.enabled:
            dnd_end = self._do_not_disturb_end(local, do_not_disturb)
            if dnd_end is not None:
                return QuietHoursDecision(
                    allowed=False,
                    next_allowed_time=dnd_end.astimezone(now.tzinfo),
                    reason="do_not_disturb",
                )

        return QuietHoursDecision(allowed=True)
