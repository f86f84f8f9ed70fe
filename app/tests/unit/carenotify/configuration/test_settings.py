import pytest
from pydantic import ValidationError

from carenotify.configuration import QuietHoursSettings, RetrySettings, Settings


@pytest.mark.unit
class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("PREFIX", "NOTIFY_TICK_SECONDS", "QUIET_HOURS_START", "RETRY_INTERVALS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()

        assert settings.is_production
        assert settings.dispatch.tick_seconds == 5.0
        assert settings.dispatch.batch_size == 50
        assert settings.quiet_hours.start_time == "08:00"
        assert settings.quiet_hours.end_time == "22:00"
        assert settings.retry.intervals == [1.0, 5.0, 30.0]
        assert settings.history.retention_days == 30
        assert settings.storage.backend == "memory"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PREFIX", "dev-")
        monkeypatch.setenv("NOTIFY_TICK_SECONDS", "1.5")
        monkeypatch.setenv("QUIET_HOURS_TIMEZONE", "Asia/Shanghai")
        monkeypatch.setenv("RETRY_INTERVALS", "[2, 10]")

        settings = Settings()

        assert not settings.is_production
        assert settings.dispatch.tick_seconds == 1.5
        assert settings.quiet_hours.timezone == "Asia/Shanghai"
        assert settings.retry.intervals == [2.0, 10.0]

    def test_explicit_section_kept(self):
        settings = Settings(retry=RetrySettings(RETRY_MAX_ATTEMPTS=7))

        assert settings.retry.max_attempts == 7

    @pytest.mark.parametrize("value", ["8am", "24:00", "12:75"])
    def test_quiet_hours_validation(self, value):
        with pytest.raises(ValidationError):
            QuietHoursSettings(QUIET_HOURS_START=value)
