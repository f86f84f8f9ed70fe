"""Shared fixtures for carenotify tests.

Every time-dependent component is driven by a ManualClock starting on
Monday 2024-01-01 12:00 UTC, inside the default 08:00-22:00 window.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

import pytest

from carenotify.clock import ManualClock
from carenotify.notifications.channels.base import ChannelSender
from carenotify.notifications.dispatcher import NotificationDispatcher
from carenotify.notifications.factory import NotificationFactory
from carenotify.notifications.history import HistoryStore
from carenotify.notifications.models import (
    ChannelResult,
    ChannelType,
    Notification,
    NotificationPriority,
    NotificationType,
    TargetUser,
)
from carenotify.notifications.queue import DispatchQueue
from carenotify.notifications.quiet_hours import QuietHoursGate
from carenotify.notifications.rate_limit import RateLimiter
from carenotify.notifications.router import ChannelRouter
from carenotify.persistence import InMemoryDurableStore
from carenotify.resilience.retry import RetryConfig, RetryScheduler

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeSender(ChannelSender):
    """Channel sender with scripted outcomes.

    ``outcomes`` is consumed one item per send: True succeeds, False fails,
    an Exception instance is raised. Once exhausted, ``default`` applies.
    """

    def __init__(
        self,
        channel: ChannelType,
        outcomes: Optional[Iterable[Union[bool, Exception]]] = None,
        default: bool = True,
    ):
        self._channel = channel
        self.outcomes = list(outcomes or [])
        self.default = default
        self.calls: List[str] = []
        self._lock = threading.Lock()

    @property
    def channel_type(self) -> ChannelType:
        return self._channel

    def send(self, notification: Notification) -> ChannelResult:
        with self._lock:
            self.calls.append(notification.id)
            outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, Exception):
            raise outcome
        if outcome:
            return ChannelResult.success(
                notification.id,
                self._channel,
                provider_message_id=f"{self._channel.value}-{len(self.calls)}",
            )
        return ChannelResult.failure(
            notification.id, self._channel, f"{self._channel.value} unavailable"
        )


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def store():
    return InMemoryDurableStore()


@pytest.fixture
def target_user_factory():
    """Factory for TargetUser instances.

    Example:
        patient = target_user_factory(role="patient")
    """

    def _factory(
        id: str = "user-1",
        role: str = "recorder",
        name: Optional[str] = "Li Wei",
        addresses: Optional[Dict[ChannelType, str]] = None,
    ) -> TargetUser:
        return TargetUser(
            id=id,
            role=role,
            name=name,
            addresses=addresses
            if addresses is not None
            else {
                ChannelType.SMS: "+8613800000000",
                ChannelType.TEMPLATE_PUSH: "open-id-1",
                ChannelType.SUBSCRIBE_PUSH: "open-id-1",
            },
        )

    return _factory


@pytest.fixture
def notification_factory(clock, target_user_factory):
    """Factory for Pending notifications built through NotificationFactory."""
    factory = NotificationFactory(clock=clock)

    def _factory(
        type: NotificationType = NotificationType.SYSTEM_NOTICE,
        title: str = "Notice",
        content: str = "Service window changed",
        target_user: Optional[TargetUser] = None,
        channels: Optional[List[ChannelType]] = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        **kwargs: Any,
    ) -> Notification:
        return factory.create(
            type=type,
            title=title,
            content=content,
            target_user=target_user or target_user_factory(),
            channels=channels or [ChannelType.IN_APP],
            priority=priority,
            **kwargs,
        )

    return _factory


@pytest.fixture
def fake_sender_factory():
    def _factory(
        channel: ChannelType = ChannelType.IN_APP,
        outcomes: Optional[Iterable[Union[bool, Exception]]] = None,
        default: bool = True,
    ) -> FakeSender:
        return FakeSender(channel, outcomes=outcomes, default=default)

    return _factory


@pytest.fixture
def dispatcher_factory(clock, store):
    """Factory for dispatchers wired to the shared clock and store.

    Example:
        sender = fake_sender_factory(ChannelType.SMS, outcomes=[False])
        dispatcher = dispatcher_factory(senders=[sender])
    """
    created: List[NotificationDispatcher] = []

    def _factory(
        senders: Optional[List[ChannelSender]] = None,
        retry_config: Optional[RetryConfig] = None,
        max_queue_size: int = 1000,
        batch_size: int = 50,
        quiet_hours: Optional[QuietHoursGate] = None,
    ) -> NotificationDispatcher:
        retry_config = retry_config or RetryConfig()
        dispatcher = NotificationDispatcher(
            store=store,
            router=ChannelRouter(
                senders if senders is not None else [FakeSender(ChannelType.IN_APP)]
            ),
            clock=clock,
            factory=NotificationFactory(
                clock=clock, default_max_attempts=retry_config.max_attempts
            ),
            rate_limiter=RateLimiter(store, clock),
            quiet_hours=quiet_hours or QuietHoursGate(clock=clock),
            queue=DispatchQueue(max_size=max_queue_size),
            retry_scheduler=RetryScheduler(retry_config),
            history=HistoryStore(store, clock),
            batch_size=batch_size,
        )
        created.append(dispatcher)
        return dispatcher

    yield _factory

    for dispatcher in created:
        dispatcher.router.shutdown()
