"""In-app message feed.

Each user has a feed of the latest in-app messages stored in the
DurableStore under ``in_app:<user_id>``, newest first, capped at 100.
"""

import threading
from typing import Any, Dict, List, Optional

from carenotify.clock import Clock, SystemClock
from carenotify.logging import get_module_logger
from carenotify.notifications.channels.base import ChannelSender
from carenotify.notifications.models import ChannelResult, ChannelType, Notification
from carenotify.persistence import DurableStore

logger = get_module_logger()

KEY_PREFIX = "in_app"
MAX_FEED_SIZE = 100


class InAppChannelSender(ChannelSender):
    """Stores notifications in the user's in-app feed.

    Args:
        store: DurableStore holding the feeds
        clock: Time source for ``received_at``
        max_feed_size: Messages kept per user (oldest dropped first)
    """

    def __init__(
        self,
        store: DurableStore,
        clock: Optional[Clock] = None,
        max_feed_size: int = MAX_FEED_SIZE,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.max_feed_size = max_feed_size
        self._lock = threading.Lock()

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.IN_APP

    @staticmethod
    def key(user_id: str) -> str:
        return f"{KEY_PREFIX}:{user_id}"

    def resolve_address(self, notification: Notification) -> Optional[str]:
        return notification.target_user.id

    def send(self, notification: Notification) -> ChannelResult:
        user_id = notification.target_user.id
        message = {
            "id": notification.id,
            "type": notification.type.value,
            "title": notification.title,
            "content": notification.content,
            "priority": int(notification.priority),
            "data": notification.data,
            "received_at": self.clock.now().isoformat(),
            "read": False,
        }
        with self._lock:
            feed = [m for m in self.get_feed(user_id) if m.get("id") != notification.id]
            feed.insert(0, message)
            self.store.set(self.key(user_id), feed[: self.max_feed_size])

        logger.info(
            "in_app_message_stored",
            notification_id=notification.id,
            user_id=user_id,
        )
        return ChannelResult.success(
            notification.id,
            self.channel_type,
            message="Stored in in-app feed",
            provider_message_id=notification.id,
        )

    def get_feed(self, user_id: str) -> List[Dict[str, Any]]:
        return self.store.get(self.key(user_id)) or []

    def unread_count(self, user_id: str) -> int:
        return sum(1 for m in self.get_feed(user_id) if not m.get("read"))

    def mark_read(self, user_id: str, notification_id: str) -> bool:
        """Mark a feed message as read; False if it is not in the feed."""
        with self._lock:
            feed = self.get_feed(user_id)
            for message in feed:
                if message.get("id") == notification_id:
                    message["read"] = True
                    self.store.set(self.key(user_id), feed)
                    return True
        return False
