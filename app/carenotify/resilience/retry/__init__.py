"""Retry scheduling for failed notification deliveries."""

from carenotify.resilience.retry.config import RetryConfig
from carenotify.resilience.retry.scheduler import RetryDecision, RetryScheduler

__all__ = ["RetryConfig", "RetryDecision", "RetryScheduler"]
