"""Bounded retry scheduling for failed notifications."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from carenotify.logging import get_module_logger
from carenotify.notifications.models import Notification, NotificationStatus
from carenotify.resilience.retry.config import STRATEGY_TABLE, RetryConfig

logger = get_module_logger()


@dataclass(frozen=True)
class RetryDecision:
    """What happens to a notification after a fully failed attempt.

    Attributes:
        retry: True if it goes back to Pending for another attempt
        delay_seconds: Backoff applied when retrying
        next_attempt_at: New scheduled time when retrying
        error: Aggregate failure reason of the attempt
    """

    retry: bool
    delay_seconds: float = 0.0
    next_attempt_at: Optional[datetime] = None
    error: Optional[str] = None


class RetryScheduler:
    """Decides and applies retries with table or exponential backoff.

    ``schedule`` mutates the notification: either back to Pending with a
    new scheduled time, or to Failed with the error retained. The caller
    re-enqueues and records history.
    """

    def __init__(self, config: Optional[RetryConfig] = None):
        self.config = config or RetryConfig()

    def compute_delay(self, attempt: int) -> float:
        """Delay in seconds after failed attempt number ``attempt`` (1-based)."""
        attempt = max(attempt, 1)
        if self.config.strategy == STRATEGY_TABLE:
            intervals = self.config.retry_intervals
            delay = intervals[min(attempt - 1, len(intervals) - 1)]
        else:
            delay = self.config.base_delay_seconds * (
                self.config.backoff_multiplier ** (attempt - 1)
            )
        return min(delay, self.config.max_backoff_seconds)

    def schedule(
        self, notification: Notification, error: Optional[str], now: datetime
    ) -> RetryDecision:
        """Apply the retry policy to a notification in Sending.

        Args:
            notification: Notification whose attempt just failed on every channel
            error: Aggregate failure reason
            now: Current time

        Returns:
            RetryDecision describing the outcome
        """
        notification.last_error = error
        cap = min(notification.max_attempts, self.config.max_attempts)

        if notification.attempt_count < cap:
            delay = self.compute_delay(notification.attempt_count)
            next_attempt_at = now + timedelta(seconds=delay)
            notification.transition_to(NotificationStatus.PENDING, now)
            notification.scheduled_time = next_attempt_at

            logger.info(
                "retry_scheduled",
                notification_id=notification.id,
                attempt=notification.attempt_count,
                max_attempts=cap,
                delay_seconds=delay,
                next_attempt_at=next_attempt_at.isoformat(),
            )
            return RetryDecision(
                retry=True,
                delay_seconds=delay,
                next_attempt_at=next_attempt_at,
                error=error,
            )

        notification.transition_to(NotificationStatus.FAILED, now)
        logger.warning(
            "notification_failed_permanently",
            notification_id=notification.id,
            attempts=notification.attempt_count,
            error=error,
        )
        return RetryDecision(retry=False, error=error)
