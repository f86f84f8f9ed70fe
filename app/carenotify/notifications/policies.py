"""Static policy tables for notification dispatch.

Rate limits, time-to-live, sending windows, role permissions and scene
presets. The gates and the factory take these as constructor defaults so
deployments and tests can pass their own tables.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, FrozenSet, Optional, Tuple

from carenotify.notifications.models import (
    ChannelType,
    NotificationPriority,
    NotificationType,
)


@dataclass(frozen=True)
class RateLimitRule:
    """Quota applied per (user, type)."""

    max_per_day: int
    min_interval: timedelta


DEFAULT_RATE_LIMIT = RateLimitRule(max_per_day=10, min_interval=timedelta(minutes=1))

RATE_LIMITS: Dict[NotificationType, RateLimitRule] = {
    NotificationType.HEALTH_REMINDER: RateLimitRule(3, timedelta(hours=2)),
    NotificationType.PAYMENT_REMINDER: RateLimitRule(2, timedelta(hours=4)),
    NotificationType.APPOINTMENT_REMINDER: RateLimitRule(5, timedelta(minutes=30)),
    NotificationType.TIME_ADJUST_REQUEST: RateLimitRule(10, timedelta(minutes=5)),
    NotificationType.TIME_ADJUST_CONFIRM: RateLimitRule(20, timedelta(minutes=1)),
    NotificationType.TIME_ADJUST_EMERGENCY: RateLimitRule(50, timedelta(seconds=30)),
    NotificationType.TIME_ADJUST_BATCH: RateLimitRule(5, timedelta(minutes=10)),
}


DEFAULT_TTL = timedelta(hours=24)

TTL_BY_TYPE: Dict[NotificationType, timedelta] = {
    NotificationType.HEALTH_ALERT: timedelta(hours=1),
    NotificationType.APPOINTMENT_REMINDER: timedelta(hours=2),
    NotificationType.PAYMENT_REMINDER: timedelta(hours=72),
}


# Types whose sending window covers the whole day.
FULL_DAY_TYPES: FrozenSet[NotificationType] = frozenset(
    {NotificationType.HEALTH_ALERT, NotificationType.TIME_ADJUST_EMERGENCY}
)

# Priorities at or above this bypass quiet hours and do-not-disturb.
QUIET_HOURS_BYPASS_PRIORITY = NotificationPriority.URGENT


@dataclass(frozen=True)
class RolePermission:
    """Types and channels a role may receive. ``None`` means unrestricted."""

    types: Optional[FrozenSet[NotificationType]] = None
    channels: Optional[FrozenSet[ChannelType]] = None


ROLE_PERMISSIONS: Dict[str, RolePermission] = {
    "patient": RolePermission(
        types=frozenset(
            {
                NotificationType.APPOINTMENT_CONFIRM,
                NotificationType.APPOINTMENT_REMINDER,
                NotificationType.SERVICE_COMPLETE,
                NotificationType.PAYMENT_REMINDER,
                NotificationType.HEALTH_REMINDER,
            }
        ),
        channels=frozenset(
            {ChannelType.TEMPLATE_PUSH, ChannelType.SMS, ChannelType.IN_APP}
        ),
    ),
    "recorder": RolePermission(),
    "admin": RolePermission(),
}


@dataclass(frozen=True)
class ScenePreset:
    """Fixed type, channels, priority and template for a business scene."""

    type: NotificationType
    channels: Tuple[ChannelType, ...]
    priority: NotificationPriority
    template_id: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


SCENES: Dict[str, ScenePreset] = {
    "appointment_confirm": ScenePreset(
        type=NotificationType.APPOINTMENT_CONFIRM,
        channels=(ChannelType.TEMPLATE_PUSH, ChannelType.SMS),
        priority=NotificationPriority.HIGH,
        template_id="tpl_appointment_confirm",
    ),
    "appointment_reminder": ScenePreset(
        type=NotificationType.APPOINTMENT_REMINDER,
        channels=(ChannelType.SUBSCRIBE_PUSH, ChannelType.IN_APP),
        priority=NotificationPriority.NORMAL,
        template_id="tpl_appointment_reminder",
    ),
    "payment_reminder": ScenePreset(
        type=NotificationType.PAYMENT_REMINDER,
        channels=(ChannelType.IN_APP, ChannelType.SMS),
        priority=NotificationPriority.NORMAL,
        template_id="tpl_payment_reminder",
    ),
    "health_alert": ScenePreset(
        type=NotificationType.HEALTH_ALERT,
        channels=(ChannelType.TEMPLATE_PUSH, ChannelType.SMS, ChannelType.IN_APP),
        priority=NotificationPriority.CRITICAL,
        template_id="tpl_health_alert",
    ),
    "service_complete": ScenePreset(
        type=NotificationType.SERVICE_COMPLETE,
        channels=(ChannelType.IN_APP, ChannelType.TEMPLATE_PUSH),
        priority=NotificationPriority.NORMAL,
        template_id="tpl_service_complete",
    ),
    "medication_reminder": ScenePreset(
        type=NotificationType.MEDICATION_REMINDER,
        channels=(ChannelType.SUBSCRIBE_PUSH, ChannelType.IN_APP),
        priority=NotificationPriority.HIGH,
        template_id="tpl_medication_reminder",
    ),
}


def rate_limit_for(
    notification_type: NotificationType,
    table: Optional[Dict[NotificationType, RateLimitRule]] = None,
) -> RateLimitRule:
    table = RATE_LIMITS if table is None else table
    return table.get(notification_type, DEFAULT_RATE_LIMIT)


def ttl_for(
    notification_type: NotificationType,
    table: Optional[Dict[NotificationType, timedelta]] = None,
) -> timedelta:
    table = TTL_BY_TYPE if table is None else table
    return table.get(notification_type, DEFAULT_TTL)
