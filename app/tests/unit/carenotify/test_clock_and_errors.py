from datetime import datetime, timedelta, timezone

import pytest

from carenotify.clock import ManualClock, SystemClock
from carenotify.errors import (
    InvalidTransitionError,
    NotificationNotFoundError,
    PermissionDeniedError,
    StorageError,
)


@pytest.mark.unit
def test_system_clock_is_utc():
    assert SystemClock().now().tzinfo == timezone.utc


@pytest.mark.unit
def test_manual_clock_advance_and_set():
    clock = ManualClock(datetime(2024, 3, 1, 9, 0))

    assert clock.now() == datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
    assert clock.advance(seconds=90) == datetime(2024, 3, 1, 9, 1, 30, tzinfo=timezone.utc)
    assert clock.advance(timedelta(hours=1)).hour == 10

    clock.set(datetime(2024, 3, 2, 0, 0))
    assert clock.now() == datetime(2024, 3, 2, 0, 0, tzinfo=timezone.utc)


@pytest.mark.unit
def test_manual_clock_rejects_going_backwards():
    with pytest.raises(ValueError):
        ManualClock().advance(seconds=-1)


@pytest.mark.unit
def test_error_messages():
    assert str(PermissionDeniedError("patient", "task_assign", ["sms"])) == (
        "Role 'patient' may not receive 'task_assign' on channels ['sms']"
    )
    assert str(InvalidTransitionError("n1", "read", "sent")) == (
        "Notification n1: invalid transition read -> sent"
    )
    assert str(NotificationNotFoundError("n2")) == "Notification not found: n2"
    assert str(StorageError("put", "history:n1", "timeout")) == (
        "Storage put failed for 'history:n1': timeout"
    )


@pytest.mark.unit
def test_not_found_is_a_key_error():
    with pytest.raises(KeyError):
        raise NotificationNotFoundError("n3")
