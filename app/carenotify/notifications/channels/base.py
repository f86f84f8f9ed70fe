"""Channel sender abstract base class.

All channel implementations (template push, subscribe push, SMS, in-app)
must implement this interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from carenotify.notifications.models import (
    ChannelResult,
    ChannelType,
    Notification,
)


class ChannelSender(ABC):
    """Abstract base class for channel senders.

    Each sender handles delivery through a single mechanism. The router
    calls ``send`` once per notification per channel, possibly from a
    worker thread, so implementations must be thread-safe.

    Example Implementation:
        class FaxSender(ChannelSender):

            @property
            def channel_type(self) -> ChannelType:
                return ChannelType.SMS

            def send(self, notification: Notification) -> ChannelResult:
                ...
    """

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Channel this sender delivers on."""
        pass

    @abstractmethod
    def send(self, notification: Notification) -> ChannelResult:
        """Deliver the notification to its target user.

        Must handle provider errors gracefully and return a FAILURE
        ChannelResult rather than raising.

        Args:
            notification: Notification to send

        Returns:
            ChannelResult for this channel
        """
        pass

    def resolve_address(self, notification: Notification) -> Optional[str]:
        """Return the target user's address on this channel, if any."""
        return notification.target_user.address_for(self.channel_type)

    def health_check(self) -> bool:
        """Check channel health (connectivity, credentials)."""
        return True
