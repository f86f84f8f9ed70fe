"""
Type aliases for FastAPI dependency injection.

Provides annotated type hints for common dependencies.
"""

from typing import Annotated

from fastapi import Depends

from carenotify.configuration import Settings
from carenotify.notifications.service import NotificationService
from carenotify.services.providers import get_notification_service, get_settings

# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Notification service dependency
NotificationServiceDep = Annotated[
    NotificationService, Depends(get_notification_service)
]

__all__ = [
    "SettingsDep",
    "NotificationServiceDep",
]
