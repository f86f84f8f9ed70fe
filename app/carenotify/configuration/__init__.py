"""Configuration module - public API.

Centralized configuration management using Pydantic BaseSettings with
domain-based organization.

Example:
    ```python
    from carenotify.services import get_settings

    settings = get_settings()

    tick = settings.dispatch.tick_seconds
    max_attempts = settings.retry.max_attempts
    window = (settings.quiet_hours.start_time, settings.quiet_hours.end_time)
    ```
"""

from carenotify.configuration.settings import Settings
from carenotify.configuration.infrastructure import (
    DispatchSettings,
    QuietHoursSettings,
    HistorySettings,
    RetrySettings,
    StorageSettings,
)
from carenotify.configuration.integrations import GatewaySettings

__all__ = [
    "Settings",
    "DispatchSettings",
    "QuietHoursSettings",
    "HistorySettings",
    "RetrySettings",
    "StorageSettings",
    "GatewaySettings",
]
