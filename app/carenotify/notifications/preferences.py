"""Per-user notification preferences.

Users can switch notifications off globally or per type and set a
do-not-disturb schedule. Preferences are stored in the DurableStore under
``preferences:<user_id>``; a user without a record gets the defaults.
"""

from datetime import time
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from carenotify.logging import get_module_logger
from carenotify.notifications.models import NotificationType
from carenotify.persistence import DurableStore

logger = get_module_logger()

KEY_PREFIX = "preferences"


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a time."""
    parts = value.split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Time must be in HH:MM format: {value}")
    hour, minute = int(parts[0]), int(parts[1])
    if hour > 23 or minute > 59:
        raise ValueError(f"Time out of range: {value}")
    return time(hour, minute)


class DoNotDisturbSchedule(BaseModel):
    """Blocked window on selected weekdays.

    Attributes:
        enabled: Whether the schedule applies at all
        start_time: Start of the blocked window, HH:MM (default: 22:00)
        end_time: End of the blocked window, HH:MM (default: 08:00)
        weekdays: Days the window starts on, Monday=0 .. Sunday=6
    """

    enabled: bool = False
    start_time: str = "22:00"
    end_time: str = "08:00"
    weekdays: List[int] = Field(default_factory=lambda: list(range(7)))

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        parse_hhmm(v)
        return v

    @field_validator("weekdays")
    @classmethod
    def validate_weekdays(cls, v: List[int]) -> List[int]:
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("weekdays must be between 0 (Monday) and 6 (Sunday)")
        return sorted(set(v))


class UserPreferences(BaseModel):
    user_id: str
    global_enabled: bool = True
    disabled_types: List[NotificationType] = Field(default_factory=list)
    do_not_disturb: DoNotDisturbSchedule = Field(default_factory=DoNotDisturbSchedule)

    def is_type_enabled(self, notification_type: NotificationType) -> bool:
        return self.global_enabled and notification_type not in self.disabled_types


class PreferenceStore:
    """Reads and writes UserPreferences through the DurableStore."""

    def __init__(self, store: DurableStore):
        self.store = store

    @staticmethod
    def key(user_id: str) -> str:
        return f"{KEY_PREFIX}:{user_id}"

    def get(self, user_id: str) -> UserPreferences:
        raw = self.store.get(self.key(user_id))
        if raw is None:
            return UserPreferences(user_id=user_id)
        return UserPreferences.model_validate(raw)

    def save(self, preferences: UserPreferences) -> UserPreferences:
        self.store.set(self.key(preferences.user_id), preferences.model_dump(mode="json"))
        logger.info(
            "user_preferences_saved",
            user_id=preferences.user_id,
            global_enabled=preferences.global_enabled,
            disabled_types=[t.value for t in preferences.disabled_types],
            do_not_disturb=preferences.do_not_disturb.enabled,
        )
        return preferences

    def is_enabled(self, user_id: str, notification_type: NotificationType) -> bool:
        return self.get(user_id).is_type_enabled(notification_type)

    def set_global_enabled(self, user_id: str, enabled: bool) -> UserPreferences:
        preferences = self.get(user_id)
        preferences.global_enabled = enabled
        return self.save(preferences)

    def set_type_enabled(
        self, user_id: str, notification_type: NotificationType, enabled: bool
    ) -> UserPreferences:
        preferences = self.get(user_id)
        disabled = [t for t in preferences.disabled_types if t != notification_type]
        if not enabled:
            disabled.append(notification_type)
        preferences.disabled_types = disabled
        return self.save(preferences)

    def set_do_not_disturb(
        self, user_id: str, schedule: Optional[DoNotDisturbSchedule]
    ) -> UserPreferences:
        preferences = self.get(user_id)
        preferences.do_not_disturb = schedule or DoNotDisturbSchedule()
        return self.save(preferences)

    def reset(self, user_id: str) -> None:
        self.store.delete(self.key(user_id))
