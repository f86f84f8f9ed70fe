"""Concurrent channel fan-out.

ChannelRouter sends one notification on all of its channels at once and
joins on every send. Overall success means at least one channel succeeded.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from carenotify.errors import ChannelSendError
from carenotify.logging import get_module_logger
from carenotify.notifications.channels.base import ChannelSender
from carenotify.notifications.models import (
    ChannelResult,
    ChannelType,
    Notification,
)

logger = get_module_logger()


@dataclass
class RoutingOutcome:
    """Aggregate of one fan-out: per-channel results in channel order."""

    notification_id: str
    results: List[ChannelResult] = field(default_factory=list)

    @property
    def any_success(self) -> bool:
        return any(r.is_success for r in self.results)

    @property
    def error_summary(self) -> Optional[str]:
        failures = [r.message for r in self.results if not r.is_success]
        return "; ".join(failures) if failures else None


class ChannelRouter:
    """Registry of ChannelType → ChannelSender with concurrent dispatch.

    Args:
        senders: Initial senders, keyed by their channel type
        max_workers: Thread pool size for concurrent sends

    Example:
        router = ChannelRouter(max_workers=4)
        router.register(InAppChannelSender(store))
        outcome = router.dispatch(notification)
        if outcome.any_success:
            ...
    """

    def __init__(
        self,
        senders: Optional[List[ChannelSender]] = None,
        max_workers: int = 4,
    ):
        self.max_workers = max_workers
        self._senders: Dict[ChannelType, ChannelSender] = {}
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="carenotify-fanout"
        )
        for sender in senders or []:
            self.register(sender)

    @property
    def channels(self) -> List[ChannelType]:
        return list(self._senders.keys())

    def register(self, sender: ChannelSender) -> None:
        self._senders[sender.channel_type] = sender
        logger.info("channel_sender_registered", channel=sender.channel_type.value)

    def get_sender(self, channel: ChannelType) -> Optional[ChannelSender]:
        return self._senders.get(channel)

    def _send_one(self, notification: Notification, channel: ChannelType) -> ChannelResult:
        sender = self._senders.get(channel)
        if sender is None:
            error = ChannelSendError(channel.value, "No sender registered")
            logger.error(
                "channel_sender_missing",
                notification_id=notification.id,
                channel=channel.value,
            )
            return ChannelResult.failure(
                notification.id, channel, str(error), error_code="NO_SENDER"
            )

        try:
            return sender.send(notification)
        except Exception as e:
            error = ChannelSendError(channel.value, str(e), cause=e)
            logger.error(
                "channel_send_exception",
                notification_id=notification.id,
                channel=channel.value,
                error=str(e),
                exc_info=True,
            )
            return ChannelResult.failure(
                notification.id, channel, str(error), error_code="SENDER_EXCEPTION"
            )

    def dispatch(self, notification: Notification) -> RoutingOutcome:
        """Send on every channel of the notification and join on all."""
        futures = [
            self._executor.submit(self._send_one, notification, channel)
            for channel in notification.channels
        ]
        outcome = RoutingOutcome(
            notification_id=notification.id,
            results=[future.result() for future in futures],
        )

        logger.info(
            "notification_routed",
            notification_id=notification.id,
            channel_count=len(outcome.results),
            success_count=sum(1 for r in outcome.results if r.is_success),
        )
        return outcome

    def health_check(self) -> Dict[str, bool]:
        return {
            channel.value: sender.health_check()
            for channel, sender in self._senders.items()
        }

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
