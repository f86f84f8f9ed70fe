"""Notification dispatch core.

Usage:
    from carenotify.notifications import (
        NotificationDispatcher,
        NotificationService,
        NotificationType,
        NotificationPriority,
        ChannelType,
        TargetUser,
    )
"""

from carenotify.notifications.dispatcher import NotificationDispatcher, TickReport
from carenotify.notifications.factory import NotificationFactory
from carenotify.notifications.history import HistoryFilters, HistoryStore
from carenotify.notifications.models import (
    AdmissionOutcome,
    ChannelResult,
    ChannelType,
    DeliveryAttempt,
    DeliveryOutcome,
    EnqueueResult,
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    StatusTransition,
    TargetUser,
)
from carenotify.notifications.permissions import PermissionGate
from carenotify.notifications.preferences import (
    DoNotDisturbSchedule,
    PreferenceStore,
    UserPreferences,
)
from carenotify.notifications.queue import DispatchQueue, QueueEntry
from carenotify.notifications.quiet_hours import QuietHoursDecision, QuietHoursGate
from carenotify.notifications.rate_limit import RateLimiter, RateLimitRecord
from carenotify.notifications.router import ChannelRouter, RoutingOutcome
from carenotify.notifications.service import NotificationService
from carenotify.notifications.templates import DictTemplateRenderer, TemplateRenderer

__all__ = [
    "AdmissionOutcome",
    "ChannelResult",
    "ChannelRouter",
    "ChannelType",
    "DeliveryAttempt",
    "DeliveryOutcome",
    "DictTemplateRenderer",
    "DispatchQueue",
    "DoNotDisturbSchedule",
    "EnqueueResult",
    "HistoryFilters",
    "HistoryStore",
    "Notification",
    "NotificationDispatcher",
    "NotificationFactory",
    "NotificationPriority",
    "NotificationService",
    "NotificationStatus",
    "NotificationType",
    "PermissionGate",
    "PreferenceStore",
    "QueueEntry",
    "QuietHoursDecision",
    "QuietHoursGate",
    "RateLimitRecord",
    "RateLimiter",
    "RoutingOutcome",
    "StatusTransition",
    "TargetUser",
    "TemplateRenderer",
    "TickReport",
    "UserPreferences",
]
