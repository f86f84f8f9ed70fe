"""Role-based permission gate.

A role either may receive a notification on every requested channel or the
notification is rejected as a whole. There is no partial delivery.
"""

from typing import Dict, Iterable, Optional

from carenotify.errors import PermissionDeniedError
from carenotify.logging import get_module_logger
from carenotify.notifications.models import ChannelType, NotificationType
from carenotify.notifications.policies import ROLE_PERMISSIONS, RolePermission

logger = get_module_logger()


class PermissionGate:
    """All-or-nothing role/type/channel check.

    Example:
        gate = PermissionGate()
        gate.allowed("patient", NotificationType.HEALTH_ALERT, [ChannelType.SMS])
        # False: patients do not receive health alerts
    """

    def __init__(self, permissions: Optional[Dict[str, RolePermission]] = None):
        self.permissions = ROLE_PERMISSIONS if permissions is None else permissions

    def allowed(
        self,
        role: str,
        notification_type: NotificationType,
        channels: Iterable[ChannelType],
    ) -> bool:
        permission = self.permissions.get(role)
        if permission is None:
            return False
        if permission.types is not None and notification_type not in permission.types:
            return False
        if permission.channels is not None:
            return all(channel in permission.channels for channel in channels)
        return True

    def check(
        self,
        role: str,
        notification_type: NotificationType,
        channels: Iterable[ChannelType],
    ) -> None:
        """Raise PermissionDeniedError unless ``allowed`` holds."""
        channel_list = list(channels)
        if not self.allowed(role, notification_type, channel_list):
            logger.warning(
                "notification_permission_denied",
                role=role,
                notification_type=notification_type.value,
                channels=[c.value for c in channel_list],
            )
            raise PermissionDeniedError(
                role, notification_type.value, [c.value for c in channel_list]
            )
