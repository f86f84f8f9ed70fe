from datetime import datetime, timedelta, timezone

import pytest

from carenotify.errors import (
    InvalidNotification,
    InvalidTransitionError,
    NotificationNotFoundError,
    PermissionDeniedError,
    QueueFullError,
    StorageError,
)
from carenotify.notifications.models import (
    AdmissionOutcome,
    ChannelType,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from carenotify.notifications.preferences import DoNotDisturbSchedule
from carenotify.resilience.retry import RetryConfig


def at(hour, minute=0, day=1):
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


@pytest.mark.unit
class TestEnqueue:
    def test_queued(self, dispatcher_factory, notification_factory):
        dispatcher = dispatcher_factory()
        notification = notification_factory()

        result = dispatcher.enqueue(notification)

        assert result.outcome == AdmissionOutcome.QUEUED
        assert result.accepted
        assert result.scheduled_time == notification.scheduled_time
        assert dispatcher.pending_count() == 1
        assert dispatcher.get_notification(notification.id).status == NotificationStatus.PENDING

    def test_rejects_non_pending(self, dispatcher_factory, notification_factory, clock):
        dispatcher = dispatcher_factory()
        notification = notification_factory()
        notification.transition_to(NotificationStatus.EXPIRED, clock.now())

        with pytest.raises(InvalidNotification):
            dispatcher.enqueue(notification)
        assert dispatcher.pending_count() == 0

    def test_permission_denied(
        self, dispatcher_factory, notification_factory, target_user_factory
    ):
        dispatcher = dispatcher_factory()
        notification = notification_factory(target_user=target_user_factory(role="patient"))

        with pytest.raises(PermissionDeniedError):
            dispatcher.enqueue(notification)
        assert dispatcher.pending_count() == 0

    def test_preference_disabled(self, dispatcher_factory, notification_factory):
        dispatcher = dispatcher_factory()
        dispatcher.preferences.set_type_enabled(
            "user-1", NotificationType.SYSTEM_NOTICE, False
        )
        notification = notification_factory()

        result = dispatcher.enqueue(notification)

        assert result.outcome == AdmissionOutcome.PREFERENCE_DISABLED
        assert not result.accepted
        assert dispatcher.pending_count() == 0
        with pytest.raises(NotificationNotFoundError):
            dispatcher.get_notification(notification.id)

    def test_rate_limited(self, dispatcher_factory, notification_factory):
        dispatcher = dispatcher_factory()
        dispatcher.enqueue(notification_factory())
        dispatcher.tick()

        result = dispatcher.enqueue(notification_factory())

        assert result.outcome == AdmissionOutcome.RATE_LIMITED
        assert dispatcher.pending_count() == 0

    def test_quiet_hours_reschedule(self, dispatcher_factory, notification_factory, clock):
        clock.set(at(23))
        dispatcher = dispatcher_factory()
        notification = notification_factory()

        result = dispatcher.enqueue(notification)

        assert result.outcome == AdmissionOutcome.RESCHEDULED
        assert result.accepted
        assert result.scheduled_time == at(8, day=2)
        assert dispatcher.tick().processed == 0

        clock.set(at(8, day=2))
        assert dispatcher.tick().sent == 1

    def test_quiet_hours_checked_at_scheduled_time(
        self, dispatcher_factory, notification_factory
    ):
        dispatcher = dispatcher_factory()
        notification = notification_factory(scheduled_time=at(22, 30))

        result = dispatcher.enqueue(notification)

        assert result.outcome == AdmissionOutcome.RESCHEDULED
        assert result.scheduled_time == at(8, day=2)

    def test_urgent_bypasses_quiet_hours(
        self, dispatcher_factory, notification_factory, clock
    ):
        clock.set(at(23))
        dispatcher = dispatcher_factory()

        result = dispatcher.enqueue(
            notification_factory(priority=NotificationPriority.URGENT)
        )

        assert result.outcome == AdmissionOutcome.QUEUED
        assert dispatcher.tick().sent == 1

    def test_do_not_disturb_reschedule(self, dispatcher_factory, notification_factory):
        dispatcher = dispatcher_factory()
        dispatcher.preferences.set_do_not_disturb(
            "user-1",
            DoNotDisturbSchedule(enabled=True, start_time="11:00", end_time="14:00"),
        )

        result = dispatcher.enqueue(notification_factory())

        assert result.outcome == AdmissionOutcome.RESCHEDULED
        assert result.scheduled_time == at(14)

    def test_queue_full(self, dispatcher_factory, notification_factory, target_user_factory):
        dispatcher = dispatcher_factory(max_queue_size=1)
        dispatcher.enqueue(notification_factory(target_user=target_user_factory(id="a")))

        with pytest.raises(QueueFullError):
            dispatcher.enqueue(notification_factory(target_user=target_user_factory(id="b")))

    def test_storage_failure_leaves_nothing_queued(
        self, dispatcher_factory, notification_factory, monkeypatch
    ):
        dispatcher = dispatcher_factory()

        def fail(notification):
            raise StorageError("set", "history", "disk full")

        monkeypatch.setattr(dispatcher.history, "record_created", fail)

        with pytest.raises(StorageError):
            dispatcher.enqueue(notification_factory())
        assert dispatcher.pending_count() == 0


@pytest.mark.unit
class TestSendBatch:
    def test_priority_order_and_rejections(
        self,
        dispatcher_factory,
        fake_sender_factory,
        notification_factory,
        target_user_factory,
    ):
        sender = fake_sender_factory()
        dispatcher = dispatcher_factory(senders=[sender])
        low = notification_factory(
            priority=NotificationPriority.LOW, target_user=target_user_factory(id="a")
        )
        forbidden = notification_factory(
            target_user=target_user_factory(id="b", role="patient")
        )
        critical = notification_factory(
            priority=NotificationPriority.CRITICAL, target_user=target_user_factory(id="c")
        )

        results = dispatcher.send_batch([low, forbidden, critical])

        assert [r.notification_id for r in results] == [critical.id, forbidden.id, low.id]
        assert [r.outcome for r in results] == [
            AdmissionOutcome.QUEUED,
            AdmissionOutcome.REJECTED,
            AdmissionOutcome.QUEUED,
        ]
        assert "patient" in results[1].error

        dispatcher.tick()
        assert sender.calls == [critical.id, low.id]

    def test_overflow_rejected(
        self, dispatcher_factory, notification_factory, target_user_factory
    ):
        dispatcher = dispatcher_factory(max_queue_size=1)

        results = dispatcher.send_batch(
            [
                notification_factory(target_user=target_user_factory(id="a")),
                notification_factory(target_user=target_user_factory(id="b")),
            ]
        )

        assert [r.outcome for r in results] == [
            AdmissionOutcome.QUEUED,
            AdmissionOutcome.REJECTED,
        ]


@pytest.mark.unit
class TestTick:
    def test_sent(self, dispatcher_factory, fake_sender_factory, notification_factory):
        sender = fake_sender_factory()
        dispatcher = dispatcher_factory(senders=[sender])
        notification = notification_factory()
        dispatcher.enqueue(notification)

        report = dispatcher.tick()

        assert report.to_dict() == {
            "processed": 1,
            "sent": 1,
            "retried": 0,
            "failed": 0,
            "expired": 0,
            "rescheduled": 0,
            "errors": 0,
        }
        stored = dispatcher.get_notification(notification.id)
        assert stored.status == NotificationStatus.SENT
        assert stored.attempt_count == 1
        assert stored.sent_time is not None
        assert sender.calls == [notification.id]
        assert dispatcher.pending_count() == 0

        record = dispatcher.history.get_record(notification.id)
        assert [t.to_status for t in record.transitions] == [
            NotificationStatus.PENDING,
            NotificationStatus.SENDING,
            NotificationStatus.SENT,
        ]
        assert len(record.attempts) == 1

    def test_partial_channel_failure_counts_as_sent(
        self, dispatcher_factory, fake_sender_factory, notification_factory
    ):
        dispatcher = dispatcher_factory(
            senders=[
                fake_sender_factory(ChannelType.SMS, default=False),
                fake_sender_factory(ChannelType.IN_APP),
            ]
        )
        notification = notification_factory(channels=[ChannelType.SMS, ChannelType.IN_APP])
        dispatcher.enqueue(notification)

        assert dispatcher.tick().sent == 1
        attempts = dispatcher.history.get_record(notification.id).attempts
        assert sorted(a.outcome.value for a in attempts) == ["failure", "success"]

    def test_retry_then_success(
        self, dispatcher_factory, fake_sender_factory, notification_factory, clock
    ):
        sender = fake_sender_factory(outcomes=[False, False, True])
        dispatcher = dispatcher_factory(senders=[sender])
        notification = notification_factory()
        dispatcher.enqueue(notification)

        assert dispatcher.tick().retried == 1
        stored = dispatcher.get_notification(notification.id)
        assert stored.status == NotificationStatus.PENDING
        assert stored.scheduled_time == clock.now() + timedelta(seconds=1)
        assert stored.last_error == "in_app unavailable"

        assert dispatcher.tick().processed == 0

        clock.advance(seconds=1)
        assert dispatcher.tick().retried == 1
        assert dispatcher.get_notification(notification.id).scheduled_time == clock.now() + timedelta(
            seconds=5
        )

        clock.advance(seconds=5)
        assert dispatcher.tick().sent == 1
        stored = dispatcher.get_notification(notification.id)
        assert stored.status == NotificationStatus.SENT
        assert stored.attempt_count == 3
        assert len(sender.calls) == 3

    def test_failed_after_max_attempts(
        self, dispatcher_factory, fake_sender_factory, notification_factory, clock
    ):
        dispatcher = dispatcher_factory(
            senders=[fake_sender_factory(default=False)],
            retry_config=RetryConfig(max_attempts=2, retry_intervals=[10]),
        )
        notification = notification_factory()
        dispatcher.enqueue(notification)

        dispatcher.tick()
        clock.advance(seconds=10)
        report = dispatcher.tick()

        assert report.failed == 1
        stored = dispatcher.get_notification(notification.id)
        assert stored.status == NotificationStatus.FAILED
        assert stored.attempt_count == 2
        assert stored.last_error == "in_app unavailable"
        assert dispatcher.pending_count() == 0
        reasons = [t.reason for t in dispatcher.history.get_record(notification.id).transitions]
        assert reasons[-1] == "retries_exhausted"
        assert "retry_scheduled" in reasons

    def test_sender_exception_is_retried(
        self, dispatcher_factory, fake_sender_factory, notification_factory
    ):
        dispatcher = dispatcher_factory(
            senders=[fake_sender_factory(outcomes=[RuntimeError("socket closed")])]
        )
        notification = notification_factory()
        dispatcher.enqueue(notification)

        assert dispatcher.tick().retried == 1
        assert "socket closed" in dispatcher.get_notification(notification.id).last_error

    def test_expired(
        self, dispatcher_factory, fake_sender_factory, notification_factory, clock
    ):
        sender = fake_sender_factory()
        dispatcher = dispatcher_factory(senders=[sender])
        notification = notification_factory(
            scheduled_time=clock.now() + timedelta(minutes=2),
            expire_time=clock.now() + timedelta(minutes=1),
        )
        dispatcher.enqueue(notification)

        clock.advance(minutes=2)
        report = dispatcher.tick()

        assert report.expired == 1
        assert sender.calls == []
        assert dispatcher.get_notification(notification.id).status == NotificationStatus.EXPIRED

    def test_rate_limit_rechecked_on_first_attempt(
        self, dispatcher_factory, fake_sender_factory, notification_factory, clock
    ):
        sender = fake_sender_factory()
        dispatcher = dispatcher_factory(senders=[sender])
        first = notification_factory()
        second = notification_factory()
        dispatcher.enqueue(first)
        dispatcher.enqueue(second)

        report = dispatcher.tick()

        assert report.sent == 1
        assert report.rescheduled == 1
        stored = dispatcher.get_notification(second.id)
        assert stored.status == NotificationStatus.PENDING
        assert stored.attempt_count == 0
        assert stored.scheduled_time == clock.now() + timedelta(minutes=1)

        clock.advance(minutes=1)
        assert dispatcher.tick().sent == 1
        assert sender.calls == [first.id, second.id]

    def test_retries_skip_rate_limit(
        self, dispatcher_factory, fake_sender_factory, notification_factory, clock
    ):
        dispatcher = dispatcher_factory(senders=[fake_sender_factory(outcomes=[False])])
        dispatcher.enqueue(notification_factory())
        dispatcher.tick()

        clock.advance(seconds=1)

        assert dispatcher.tick().sent == 1

    def test_quiet_hours_rechecked_at_pop(
        self, dispatcher_factory, fake_sender_factory, notification_factory, clock
    ):
        sender = fake_sender_factory()
        dispatcher = dispatcher_factory(senders=[sender])
        notification = notification_factory()
        dispatcher.enqueue(notification)

        clock.set(at(23))
        report = dispatcher.tick()

        assert report.rescheduled == 1
        assert sender.calls == []
        stored = dispatcher.get_notification(notification.id)
        assert stored.scheduled_time == at(8, day=2)
        assert stored.attempt_count == 0

    def test_batch_size_bounds_tick(
        self, dispatcher_factory, notification_factory, target_user_factory
    ):
        dispatcher = dispatcher_factory(batch_size=2)
        for user_id in ("a", "b", "c"):
            dispatcher.enqueue(notification_factory(target_user=target_user_factory(id=user_id)))

        assert dispatcher.tick().processed == 2
        assert dispatcher.pending_count() == 1
        assert dispatcher.tick().processed == 1

    def test_restore_queue(self, dispatcher_factory, notification_factory):
        first = dispatcher_factory()
        notification = notification_factory()
        first.enqueue(notification)

        second = dispatcher_factory()

        assert second.restore_queue() == 1
        assert second.pending_count() == 1
        assert second.tick().sent == 1


@pytest.mark.unit
class TestObservers:
    def test_observer_sees_every_status(
        self, dispatcher_factory, fake_sender_factory, notification_factory, clock
    ):
        dispatcher = dispatcher_factory(senders=[fake_sender_factory(outcomes=[False])])
        seen = []
        dispatcher.subscribe(lambda n: seen.append(n.status))
        dispatcher.enqueue(notification_factory())

        dispatcher.tick()
        clock.advance(seconds=1)
        dispatcher.tick()

        assert seen == [
            NotificationStatus.SENDING,
            NotificationStatus.PENDING,
            NotificationStatus.SENDING,
            NotificationStatus.SENT,
        ]

    def test_observer_receives_copy(self, dispatcher_factory, notification_factory):
        dispatcher = dispatcher_factory()

        def tamper(notification):
            notification.title = "changed"

        dispatcher.subscribe(tamper)
        notification = notification_factory()
        dispatcher.enqueue(notification)
        dispatcher.tick()

        assert dispatcher.get_notification(notification.id).title == "Notice"

    def test_observer_error_does_not_stop_dispatch(
        self, dispatcher_factory, notification_factory
    ):
        dispatcher = dispatcher_factory()
        seen = []

        def broken(notification):
            raise RuntimeError("observer down")

        dispatcher.subscribe(broken)
        dispatcher.subscribe(lambda n: seen.append(n.status))
        dispatcher.enqueue(notification_factory())

        assert dispatcher.tick().sent == 1
        assert seen[-1] == NotificationStatus.SENT

    def test_unsubscribe(self, dispatcher_factory, notification_factory):
        dispatcher = dispatcher_factory()
        seen = []
        observer = dispatcher.subscribe(lambda n: seen.append(n.status))

        assert dispatcher.unsubscribe(observer)
        assert not dispatcher.unsubscribe(observer)

        dispatcher.enqueue(notification_factory())
        dispatcher.tick()
        assert seen == []


@pytest.mark.unit
class TestAcknowledgements:
    def test_delivered_then_read(self, dispatcher_factory, notification_factory, clock):
        dispatcher = dispatcher_factory()
        notification = notification_factory()
        dispatcher.enqueue(notification)
        dispatcher.tick()

        clock.advance(minutes=1)
        delivered = dispatcher.mark_delivered(notification.id)
        clock.advance(minutes=1)
        read = dispatcher.mark_read(notification.id)

        assert delivered.delivered_time == at(12, 1)
        assert read.status == NotificationStatus.READ
        assert read.read_time == at(12, 2)
        assert dispatcher.stats()["read"] == 1

    def test_read_straight_from_sent(self, dispatcher_factory, notification_factory):
        dispatcher = dispatcher_factory()
        notification = notification_factory()
        dispatcher.enqueue(notification)
        dispatcher.tick()

        assert dispatcher.mark_read(notification.id).status == NotificationStatus.READ

    def test_read_before_send_is_invalid(self, dispatcher_factory, notification_factory):
        dispatcher = dispatcher_factory()
        notification = notification_factory()
        dispatcher.enqueue(notification)

        with pytest.raises(InvalidTransitionError):
            dispatcher.mark_read(notification.id)

    def test_unknown_notification(self, dispatcher_factory):
        with pytest.raises(NotificationNotFoundError):
            dispatcher_factory().mark_delivered("missing")


@pytest.mark.unit
def test_cleanup_removes_failed_history(
    dispatcher_factory, fake_sender_factory, notification_factory, clock
):
    dispatcher = dispatcher_factory(
        senders=[fake_sender_factory(default=False)],
        retry_config=RetryConfig(max_attempts=1),
    )
    dispatcher.enqueue(notification_factory())
    dispatcher.tick()
    clock.advance(days=31)

    assert dispatcher.cleanup(older_than_days=30)["removed_count"] == 1
