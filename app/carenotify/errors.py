"""Exception hierarchy for the notification dispatch core.

Rate limiting and quiet hours are not errors: they are admission outcomes
reported through ``AdmissionOutcome``.
"""

from typing import Optional


class NotificationError(Exception):
    """Base class for all carenotify errors."""


class InvalidNotification(NotificationError, ValueError):
    """A notification is missing a required field or carries an invalid value.

    Raised at creation time. An invalid notification is never enqueued.
    """


class PermissionDeniedError(NotificationError):
    """The target user's role may not receive this type on these channels."""

    def __init__(self, role: str, notification_type: str, channels: list[str]):
        self.role = role
        self.notification_type = notification_type
        self.channels = channels
        super().__init__(
            f"Role '{role}' may not receive '{notification_type}' "
            f"on channels {channels}"
        )


class InvalidTransitionError(NotificationError):
    """A status change does not follow the notification state machine."""

    def __init__(self, notification_id: str, from_status: str, to_status: str):
        self.notification_id = notification_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Notification {notification_id}: invalid transition "
            f"{from_status} -> {to_status}"
        )


class QueueFullError(NotificationError):
    """The dispatch queue reached its configured capacity."""


class NotificationNotFoundError(NotificationError, KeyError):
    """No notification with the given id is known to the history store."""

    def __str__(self) -> str:
        return f"Notification not found: {self.args[0] if self.args else ''}"


class ChannelSendError(NotificationError):
    """A channel sender failed or raised while delivering a notification."""

    def __init__(self, channel: str, message: str, cause: Optional[Exception] = None):
        self.channel = channel
        self.cause = cause
        super().__init__(f"[{channel}] {message}")


class StorageError(NotificationError):
    """The durable store failed to read or write a key."""

    def __init__(self, operation: str, key: str, message: str):
        self.operation = operation
        self.key = key
        super().__init__(f"Storage {operation} failed for '{key}': {message}")
