import pytest
from pydantic import ValidationError

from carenotify.notifications.models import NotificationType
from carenotify.notifications.preferences import (
    DoNotDisturbSchedule,
    PreferenceStore,
    UserPreferences,
    parse_hhmm,
)


@pytest.fixture
def preferences(store):
    return PreferenceStore(store)


@pytest.mark.unit
class TestParseHHMM:
    def test_valid(self):
        parsed = parse_hhmm("07:45")
        assert (parsed.hour, parsed.minute) == (7, 45)

    @pytest.mark.parametrize("value", ["7", "24:00", "12:60", "ab:cd", "1:2:3"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_hhmm(value)


@pytest.mark.unit
class TestDoNotDisturbSchedule:
    def test_defaults(self):
        schedule = DoNotDisturbSchedule()

        assert schedule.enabled is False
        assert schedule.start_time == "22:00"
        assert schedule.end_time == "08:00"
        assert schedule.weekdays == [0, 1, 2, 3, 4, 5, 6]

    def test_weekdays_normalized(self):
        assert DoNotDisturbSchedule(weekdays=[4, 1, 4]).weekdays == [1, 4]

    def test_rejects_bad_weekday(self):
        with pytest.raises(ValidationError):
            DoNotDisturbSchedule(weekdays=[7])

    def test_rejects_bad_time(self):
        with pytest.raises(ValidationError):
            DoNotDisturbSchedule(start_time="25:00")


@pytest.mark.unit
class TestPreferenceStore:
    def test_unknown_user_gets_defaults(self, preferences):
        prefs = preferences.get("nobody")

        assert prefs == UserPreferences(user_id="nobody")
        assert preferences.is_enabled("nobody", NotificationType.HEALTH_ALERT)

    def test_global_switch(self, preferences):
        preferences.set_global_enabled("user-1", False)

        assert not preferences.is_enabled("user-1", NotificationType.SYSTEM_NOTICE)
        assert not preferences.is_enabled("user-1", NotificationType.HEALTH_ALERT)

    def test_per_type_switch(self, preferences):
        preferences.set_type_enabled("user-1", NotificationType.PAYMENT_REMINDER, False)

        assert not preferences.is_enabled("user-1", NotificationType.PAYMENT_REMINDER)
        assert preferences.is_enabled("user-1", NotificationType.SYSTEM_NOTICE)

        preferences.set_type_enabled("user-1", NotificationType.PAYMENT_REMINDER, True)

        assert preferences.is_enabled("user-1", NotificationType.PAYMENT_REMINDER)

    def test_disabling_twice_keeps_single_entry(self, preferences):
        preferences.set_type_enabled("user-1", NotificationType.PAYMENT_REMINDER, False)
        prefs = preferences.set_type_enabled(
            "user-1", NotificationType.PAYMENT_REMINDER, False
        )

        assert prefs.disabled_types == [NotificationType.PAYMENT_REMINDER]

    def test_do_not_disturb_persisted(self, preferences, store):
        schedule = DoNotDisturbSchedule(enabled=True, start_time="13:00", end_time="14:00")

        preferences.set_do_not_disturb("user-1", schedule)

        assert preferences.get("user-1").do_not_disturb == schedule
        assert store.get("preferences:user-1")["do_not_disturb"]["enabled"] is True

    def test_clearing_do_not_disturb(self, preferences):
        preferences.set_do_not_disturb("user-1", DoNotDisturbSchedule(enabled=True))

        prefs = preferences.set_do_not_disturb("user-1", None)

        assert prefs.do_not_disturb.enabled is False

    def test_reset(self, preferences):
        preferences.set_global_enabled("user-1", False)

        preferences.reset("user-1")

        assert preferences.get("user-1").global_enabled is True
