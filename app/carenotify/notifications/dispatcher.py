"""Notification dispatcher with gating, fan-out, retry and lifecycle tracking.

Centralized notification delivery system that:
- Builds notifications through the factory (direct, template, scene)
- Applies permission, preference, rate-limit and quiet-hours gates
- Holds pending work in a priority-ordered, time-gated queue
- Fans out to every channel concurrently and treats any success as sent
- Retries fully failed attempts with bounded backoff
- Records every transition and channel outcome in the history store
- Notifies observers on every status change

The dispatcher is an explicit context object: it owns its collaborators
and no module-level state is shared between instances.

Usage Example:
    from carenotify.notifications import NotificationDispatcher

    dispatcher = NotificationDispatcher(store=store, router=router, clock=clock)
    notification = dispatcher.create_from_scene("payment_reminder", user, data)
    result = dispatcher.enqueue(notification)

    # Driven periodically by the scheduled tasks thread
    report = dispatcher.tick()
"""

import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from carenotify.clock import Clock, SystemClock
from carenotify.errors import (
    InvalidNotification,
    InvalidTransitionError,
    NotificationNotFoundError,
    PermissionDeniedError,
    QueueFullError,
)
from carenotify.logging import get_module_logger
from carenotify.notifications.factory import NotificationFactory
from carenotify.notifications.history import HistoryFilters, HistoryStore
from carenotify.notifications.models import (
    AdmissionOutcome,
    DeliveryAttempt,
    EnqueueResult,
    Notification,
    NotificationStatus,
)
from carenotify.notifications.permissions import PermissionGate
from carenotify.notifications.preferences import PreferenceStore
from carenotify.notifications.queue import DispatchQueue, QueueEntry
from carenotify.notifications.quiet_hours import QuietHoursGate
from carenotify.notifications.rate_limit import RateLimiter
from carenotify.notifications.router import ChannelRouter
from carenotify.persistence import DurableStore
from carenotify.resilience.retry import RetryScheduler

logger = get_module_logger()

QUEUE_SNAPSHOT_KEY = "dispatch:queue"

Observer = Callable[[Notification], None]


@dataclass
class TickReport:
    """Counts for one processing tick."""

    processed: int = 0
    sent: int = 0
    retried: int = 0
    failed: int = 0
    expired: int = 0
    rescheduled: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class NotificationDispatcher:
    """Owns the dispatch pipeline for one process.

    Attributes:
        clock: Time source for every decision
        store: DurableStore shared by the gates, history and queue snapshot
        router: ChannelRouter with the registered senders
        factory: NotificationFactory for create_* operations
        permissions: PermissionGate
        preferences: PreferenceStore
        rate_limiter: RateLimiter
        quiet_hours: QuietHoursGate
        queue: DispatchQueue
        retry_scheduler: RetryScheduler
        history: HistoryStore
        batch_size: Maximum entries processed per tick

    Example:
        dispatcher = NotificationDispatcher(
            store=InMemoryDurableStore(),
            router=ChannelRouter([InAppChannelSender(store)]),
            clock=ManualClock(),
        )
    """

    def __init__(
        self,
        store: DurableStore,
        router: ChannelRouter,
        clock: Optional[Clock] = None,
        factory: Optional[NotificationFactory] = None,
        permissions: Optional[PermissionGate] = None,
        preferences: Optional[PreferenceStore] = None,
        rate_limiter: Optional[RateLimiter] = None,
        quiet_hours: Optional[QuietHoursGate] = None,
        queue: Optional[DispatchQueue] = None,
        retry_scheduler: Optional[RetryScheduler] = None,
        history: Optional[HistoryStore] = None,
        batch_size: int = 50,
        persist_queue: bool = True,
    ):
        self.clock = clock or SystemClock()
        self.store = store
        self.router = router
        self.retry_scheduler = retry_scheduler or RetryScheduler()
        self.factory = factory or NotificationFactory(
            clock=self.clock,
            default_max_attempts=self.retry_scheduler.config.max_attempts,
        )
        self.permissions = permissions or PermissionGate()
        self.preferences = preferences or PreferenceStore(store)
        self.rate_limiter = rate_limiter or RateLimiter(store, self.clock)
        self.quiet_hours = quiet_hours or QuietHoursGate(clock=self.clock)
        self.queue = queue if queue is not None else DispatchQueue()
        self.history = history or HistoryStore(store, self.clock)
        self.batch_size = batch_size
        self.persist_queue = persist_queue

        self._observers: List[Observer] = []
        self._observers_lock = threading.Lock()
        self._tick_lock = threading.Lock()

        logger.info(
            "initialized_notification_dispatcher",
            channels=[c.value for c in router.channels],
            batch_size=batch_size,
            max_queue_size=self.queue.max_size,
            max_attempts=self.retry_scheduler.config.max_attempts,
        )

    # Creation

    def create_notification(self, **kwargs: Any) -> Notification:
        """Build a notification; see NotificationFactory.create."""
        return self.factory.create(**kwargs)

    def create_from_template(self, **kwargs: Any) -> Notification:
        return self.factory.create_from_template(**kwargs)

    def create_from_scene(
        self, scene: str, target_user: Any, data: Optional[Dict[str, Any]] = None
    ) -> Notification:
        return self.factory.create_from_scene(scene, target_user, data)

    # Observers

    def subscribe(self, observer: Observer) -> Observer:
        """Register a callable invoked with the notification on every status change."""
        with self._observers_lock:
            if observer not in self._observers:
                self._observers.append(observer)
        return observer

    def unsubscribe(self, observer: Observer) -> bool:
        with self._observers_lock:
            if observer in self._observers:
                self._observers.remove(observer)
                return True
        return False

    def _notify(self, notification: Notification) -> None:
        with self._observers_lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(notification.model_copy(deep=True))
            except Exception as e:
                logger.error(
                    "observer_error",
                    notification_id=notification.id,
                    status=notification.status.value,
                    observer=getattr(observer, "__name__", repr(observer)),
                    error=str(e),
                    exc_info=True,
                )

    def _transition(
        self,
        notification: Notification,
        status: NotificationStatus,
        reason: Optional[str] = None,
    ) -> None:
        previous = notification.transition_to(status, self.clock.now())
        self.history.record_transition(notification, previous, reason)
        logger.info(
            "notification_status_changed",
            notification_id=notification.id,
            from_status=previous.value,
            to_status=status.value,
            reason=reason,
        )
        self._notify(notification)

    # Admission

    def enqueue(self, notification: Notification) -> EnqueueResult:
        """Gate a Pending notification and queue it for dispatch.

        Returns:
            EnqueueResult with QUEUED, RESCHEDULED (quiet hours or
            do-not-disturb), RATE_LIMITED or PREFERENCE_DISABLED

        Raises:
            InvalidNotification: If the notification is not Pending
            PermissionDeniedError: If the target role may not receive it
            QueueFullError: If the queue is at capacity
            StorageError: If the durable store fails
        """
        if notification.status != NotificationStatus.PENDING:
            raise InvalidNotification(
                f"Only pending notifications can be enqueued, got {notification.status.value}"
            )

        user = notification.target_user
        self.permissions.check(user.role, notification.type, notification.channels)

        preferences = self.preferences.get(user.id)
        if not preferences.is_type_enabled(notification.type):
            logger.info(
                "notification_skipped_by_preference",
                notification_id=notification.id,
                user_id=user.id,
                notification_type=notification.type.value,
            )
            return EnqueueResult(
                notification_id=notification.id,
                outcome=AdmissionOutcome.PREFERENCE_DISABLED,
            )

        if not self.rate_limiter.admit(user.id, notification.type):
            logger.info(
                "notification_skipped_by_rate_limit",
                notification_id=notification.id,
                user_id=user.id,
                notification_type=notification.type.value,
            )
            return EnqueueResult(
                notification_id=notification.id,
                outcome=AdmissionOutcome.RATE_LIMITED,
            )

        outcome = AdmissionOutcome.QUEUED
        check_at = max(self.clock.now(), notification.scheduled_time)
        decision = self.quiet_hours.admit(
            notification.type,
            notification.priority,
            now=check_at,
            do_not_disturb=preferences.do_not_disturb,
        )
        if not decision.allowed and decision.next_allowed_time is not None:
            notification.scheduled_time = decision.next_allowed_time
            outcome = AdmissionOutcome.RESCHEDULED

        scheduled_time = notification.scheduled_time
        self.history.record_created(notification)
        try:
            self.queue.push(notification)
        except QueueFullError:
            self.history.discard(notification.id)
            raise
        self._save_queue()

        logger.info(
            "notification_enqueued",
            notification_id=notification.id,
            user_id=user.id,
            notification_type=notification.type.value,
            priority=notification.priority.name,
            outcome=outcome.value,
            scheduled_time=scheduled_time.isoformat(),
        )
        return EnqueueResult(
            notification_id=notification.id,
            outcome=outcome,
            scheduled_time=scheduled_time,
        )

    def send_batch(self, notifications: Iterable[Notification]) -> List[EnqueueResult]:
        """Enqueue several notifications, highest priority first.

        Invalid, forbidden or overflowing notifications are reported as
        REJECTED instead of aborting the batch. Results follow the
        priority order.
        """
        ordered = sorted(notifications, key=lambda n: -int(n.priority))
        results: List[EnqueueResult] = []
        for notification in ordered:
            try:
                results.append(self.enqueue(notification))
            except (InvalidNotification, PermissionDeniedError, QueueFullError) as e:
                logger.warning(
                    "batch_notification_rejected",
                    notification_id=notification.id,
                    error=str(e),
                )
                results.append(
                    EnqueueResult(
                        notification_id=notification.id,
                        outcome=AdmissionOutcome.REJECTED,
                        error=str(e),
                    )
                )

        logger.info(
            "notification_batch_enqueued",
            total=len(results),
            accepted=sum(1 for r in results if r.accepted),
        )
        return results

    # Processing

    def tick(self) -> TickReport:
        """Process every due queue entry, bounded by ``batch_size``.

        A failure while processing one entry is logged and counted in
        ``errors``; the other entries of the batch are still processed.
        """
        report = TickReport()
        with self._tick_lock:
            now = self.clock.now()
            entries = self.queue.pop_due(now, self.batch_size)
            try:
                for entry in entries:
                    report.processed += 1
                    self._process_entry(entry, report)
            finally:
                if entries:
                    self._save_queue()

        if report.processed:
            logger.info("dispatch_tick_completed", **report.to_dict())
        return report

    def _process_entry(self, entry: QueueEntry, report: TickReport) -> None:
        """Process one popped entry.

        The history record is the source of truth: an entry whose record
        is gone or no longer Pending is dropped. Any other failure puts the
        entry back as it was popped so the next tick retries it.
        """
        popped = entry.notification.model_copy(deep=True)
        try:
            self._process(entry.notification, report)
        except (NotificationNotFoundError, InvalidTransitionError) as e:
            report.errors += 1
            logger.error(
                "queued_notification_dropped",
                notification_id=popped.id,
                error=str(e),
            )
        except Exception as e:
            report.errors += 1
            self.queue.requeue(
                QueueEntry(notification=popped, next_attempt_at=entry.next_attempt_at)
            )
            logger.error(
                "notification_processing_failed",
                notification_id=popped.id,
                error=str(e),
                exc_info=True,
            )

    def _reschedule(
        self, notification: Notification, when: datetime, reason: Optional[str]
    ) -> None:
        notification.scheduled_time = when
        notification.updated_at = self.clock.now()
        self.history.save_notification(notification)
        self.queue.push(notification)
        logger.info(
            "notification_rescheduled",
            notification_id=notification.id,
            reason=reason,
            scheduled_time=when.isoformat(),
        )

    def _process(self, notification: Notification, report: TickReport) -> None:
        now = self.clock.now()
        user = notification.target_user

        if notification.is_expired(now):
            self._transition(notification, NotificationStatus.EXPIRED, reason="expired")
            report.expired += 1
            return

        first_attempt = notification.attempt_count == 0
        if first_attempt:
            blocked_until = self.rate_limiter.next_allowed_time(user.id, notification.type)
            if blocked_until is not None:
                self._reschedule(notification, blocked_until, "rate_limited")
                report.rescheduled += 1
                return

        preferences = self.preferences.get(user.id)
        decision = self.quiet_hours.admit(
            notification.type,
            notification.priority,
            now=now,
            do_not_disturb=preferences.do_not_disturb,
        )
        if not decision.allowed and decision.next_allowed_time is not None:
            self._reschedule(notification, decision.next_allowed_time, decision.reason)
            report.rescheduled += 1
            return

        notification.attempt_count += 1
        self._transition(
            notification,
            NotificationStatus.SENDING,
            reason=f"attempt {notification.attempt_count}",
        )
        if first_attempt:
            self.rate_limiter.record_send(user.id, notification.type)

        outcome = self.router.dispatch(notification)
        for result in outcome.results:
            self.history.record_attempt(
                DeliveryAttempt.from_result(
                    result, notification.attempt_count, self.clock.now()
                )
            )

        if outcome.any_success:
            self._transition(notification, NotificationStatus.SENT, reason="delivered")
            report.sent += 1
            return

        previous = notification.status
        decision = self.retry_scheduler.schedule(
            notification, outcome.error_summary, self.clock.now()
        )
        self.history.record_transition(
            notification,
            previous,
            reason="retry_scheduled" if decision.retry else "retries_exhausted",
        )
        self._notify(notification)
        if decision.retry:
            self.queue.push(notification)
            report.retried += 1
        else:
            report.failed += 1

    # Acknowledgements

    def mark_delivered(self, notification_id: str) -> Notification:
        """Record a delivery receipt.

        Raises:
            NotificationNotFoundError: If the id is unknown
            InvalidTransitionError: If the notification is not Sent
        """
        notification = self.history.get_notification(notification_id)
        self._transition(notification, NotificationStatus.DELIVERED, reason="receipt")
        return notification

    def mark_read(self, notification_id: str) -> Notification:
        """Record that the user read the notification.

        Raises:
            NotificationNotFoundError: If the id is unknown
            InvalidTransitionError: If the notification was never delivered
        """
        notification = self.history.get_notification(notification_id)
        self._transition(notification, NotificationStatus.READ, reason="read")
        return notification

    # Queries and maintenance

    def get_notification(self, notification_id: str) -> Notification:
        return self.history.get_notification(notification_id)

    def stats(self, filters: Optional[HistoryFilters] = None) -> Dict[str, Any]:
        return self.history.stats(filters)

    def export(self, filters: Optional[HistoryFilters] = None) -> Dict[str, Any]:
        return self.history.export(filters)

    def cleanup(
        self,
        older_than_days: int = 30,
        max_count: int = 1000,
        keep_unread: bool = True,
    ) -> Dict[str, int]:
        return self.history.cleanup(
            older_than_days=older_than_days,
            max_count=max_count,
            keep_unread=keep_unread,
        )

    def pending_count(self) -> int:
        return len(self.queue)

    # Queue persistence

    def _save_queue(self) -> None:
        if self.persist_queue:
            self.store.set(QUEUE_SNAPSHOT_KEY, self.queue.snapshot())

    def restore_queue(self) -> int:
        """Reload pending entries saved by a previous process."""
        snapshot = self.store.get(QUEUE_SNAPSHOT_KEY) or []
        return self.queue.restore(snapshot)
