"""Dispatch loop, quiet hours and history settings."""

from pydantic import Field, field_validator

from carenotify.configuration.base import InfrastructureSettings


class DispatchSettings(InfrastructureSettings):
    """Dispatch queue and processing loop configuration.

    Environment Variables:
        NOTIFY_TICK_SECONDS: Interval between processing ticks (default: 5s)
        NOTIFY_BATCH_SIZE: Maximum due entries processed per tick (default: 50)
        NOTIFY_MAX_QUEUE_SIZE: Maximum pending entries held in the queue (default: 1000)
        NOTIFY_MAX_FANOUT_WORKERS: Threads used for concurrent channel sends (default: 4)

    Example:
        ```python
        from carenotify.services import get_settings

        settings = get_settings()
        interval = settings.dispatch.tick_seconds
        ```
    """

    tick_seconds: float = Field(
        default=5.0,
        alias="NOTIFY_TICK_SECONDS",
        description="Interval between processing ticks (seconds)",
    )
    batch_size: int = Field(
        default=50,
        alias="NOTIFY_BATCH_SIZE",
        description="Maximum due queue entries processed per tick",
    )
    max_queue_size: int = Field(
        default=1000,
        alias="NOTIFY_MAX_QUEUE_SIZE",
        description="Maximum number of pending queue entries",
    )
    max_fanout_workers: int = Field(
        default=4,
        alias="NOTIFY_MAX_FANOUT_WORKERS",
        description="Worker threads for concurrent channel sends",
    )


class QuietHoursSettings(InfrastructureSettings):
    """Default sending window outside of which non-urgent notifications wait.

    Environment Variables:
        QUIET_HOURS_START: Start of the allowed sending window, HH:MM (default: 08:00)
        QUIET_HOURS_END: End of the allowed sending window, HH:MM (default: 22:00)
        QUIET_HOURS_TIMEZONE: IANA timezone the window is expressed in (default: UTC)
    """

    start_time: str = Field(default="08:00", alias="QUIET_HOURS_START")
    end_time: str = Field(default="22:00", alias="QUIET_HOURS_END")
    timezone: str = Field(default="UTC", alias="QUIET_HOURS_TIMEZONE")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        """Validate HH:MM format."""
        parts = v.split(":")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Time must be in HH:MM format: {v}")
        hour, minute = int(parts[0]), int(parts[1])
        if hour > 23 or minute > 59:
            raise ValueError(f"Time out of range: {v}")
        return v


class HistorySettings(InfrastructureSettings):
    """History retention and statistics configuration.

    Environment Variables:
        HISTORY_RETENTION_DAYS: Default age cutoff used by cleanup (default: 30)
        HISTORY_MAX_COUNT: Default maximum retained notifications (default: 1000)
        HISTORY_RECENT_DAYS: Window for the recent activity feed (default: 7)
    """

    retention_days: int = Field(default=30, alias="HISTORY_RETENTION_DAYS")
    max_count: int = Field(default=1000, alias="HISTORY_MAX_COUNT")
    recent_days: int = Field(default=7, alias="HISTORY_RECENT_DAYS")
