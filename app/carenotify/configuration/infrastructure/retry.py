"""Retry backoff settings for failed channel deliveries."""

from typing import List

from pydantic import Field

from carenotify.configuration.base import InfrastructureSettings


class RetrySettings(InfrastructureSettings):
    """Retry configuration for notifications whose every channel failed.

    Environment Variables:
        RETRY_MAX_ATTEMPTS: Send attempts before a notification is Failed (default: 3)
        RETRY_STRATEGY: 'table' (fixed intervals) or 'exponential' (default: table)
        RETRY_INTERVALS: JSON list of delays in seconds for the table strategy
            (default: [1, 5, 30])
        RETRY_BASE_DELAY_SECONDS: First delay of the exponential strategy (default: 1)
        RETRY_BACKOFF_MULTIPLIER: Growth factor of the exponential strategy (default: 2)
        RETRY_MAX_BACKOFF_SECONDS: Cap for any computed delay (default: 300)

    Exponential Backoff:
        Delay calculation: min(base_delay * multiplier ^ (attempt - 1), max_backoff)

        Example with defaults (base=1s, multiplier=2, max=300s):
            Attempt 1 failed: 1s
            Attempt 2 failed: 2s
            Attempt 3 failed: 4s
    """

    max_attempts: int = Field(default=3, alias="RETRY_MAX_ATTEMPTS")
    strategy: str = Field(
        default="table",
        alias="RETRY_STRATEGY",
        description="Backoff strategy: 'table' or 'exponential'",
    )
    intervals: List[float] = Field(
        default_factory=lambda: [1.0, 5.0, 30.0], alias="RETRY_INTERVALS"
    )
    base_delay_seconds: float = Field(default=1.0, alias="RETRY_BASE_DELAY_SECONDS")
    backoff_multiplier: float = Field(default=2.0, alias="RETRY_BACKOFF_MULTIPLIER")
    max_backoff_seconds: float = Field(
        default=300.0, alias="RETRY_MAX_BACKOFF_SECONDS"
    )
