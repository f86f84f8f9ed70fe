"""Retry system configuration.

This module defines configuration for retrying notifications whose every
channel failed.
"""

from dataclasses import dataclass, field
from typing import List

STRATEGY_TABLE = "table"
STRATEGY_EXPONENTIAL = "exponential"


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Send attempts before a notification is Failed
        strategy: 'table' uses ``retry_intervals``; 'exponential' uses
            base_delay * multiplier ^ (attempt - 1)
        retry_intervals: Delays in seconds, indexed by failed attempt; the
            last value is reused past the end
        base_delay_seconds: First delay of the exponential strategy
        backoff_multiplier: Growth factor of the exponential strategy
        max_backoff_seconds: Cap for any computed delay

    Example:
        # Default configuration: 1s, 5s, 30s
        config = RetryConfig()

        # Exponential: 2s, 4s, 8s ... capped at 60s
        config = RetryConfig(
            strategy="exponential",
            base_delay_seconds=2,
            max_backoff_seconds=60,
        )
    """

    max_attempts: int = 3
    strategy: str = STRATEGY_TABLE
    retry_intervals: List[float] = field(default_factory=lambda: [1.0, 5.0, 30.0])
    base_delay_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    max_backoff_seconds: float = 300.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.strategy not in (STRATEGY_TABLE, STRATEGY_EXPONENTIAL):
            raise ValueError(
                f"strategy must be '{STRATEGY_TABLE}' or '{STRATEGY_EXPONENTIAL}'"
            )
        if self.strategy == STRATEGY_TABLE and not self.retry_intervals:
            raise ValueError("retry_intervals cannot be empty for the table strategy")
        if any(interval < 0 for interval in self.retry_intervals):
            raise ValueError("retry_intervals must not be negative")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must not be negative")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be at least 1")
        if self.max_backoff_seconds < 0:
            raise ValueError("max_backoff_seconds must not be negative")

    @classmethod
    def from_settings(cls, settings) -> "RetryConfig":
        """Build from RetrySettings."""
        return cls(
            max_attempts=settings.max_attempts,
            strategy=settings.strategy,
            retry_intervals=list(settings.intervals),
            base_delay_seconds=settings.base_delay_seconds,
            backoff_multiplier=settings.backoff_multiplier,
            max_backoff_seconds=settings.max_backoff_seconds,
        )
