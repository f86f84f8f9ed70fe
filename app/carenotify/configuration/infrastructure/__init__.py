"""Infrastructure settings __init__ - exports all infrastructure settings."""

from carenotify.configuration.infrastructure.dispatch import (
    DispatchSettings,
    QuietHoursSettings,
    HistorySettings,
)
from carenotify.configuration.infrastructure.retry import RetrySettings
from carenotify.configuration.infrastructure.storage import StorageSettings

__all__ = [
    "DispatchSettings",
    "QuietHoursSettings",
    "HistorySettings",
    "RetrySettings",
    "StorageSettings",
]
