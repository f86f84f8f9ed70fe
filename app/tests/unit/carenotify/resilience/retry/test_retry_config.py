import pytest

from carenotify.configuration import RetrySettings
from carenotify.resilience.retry import RetryConfig


@pytest.mark.unit
class TestRetryConfig:
    def test_defaults(self):
        config = RetryConfig()

        assert config.max_attempts == 3
        assert config.strategy == "table"
        assert config.retry_intervals == [1.0, 5.0, 30.0]
        assert config.max_backoff_seconds == 300.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"strategy": "linear"},
            {"retry_intervals": []},
            {"retry_intervals": [1, -1]},
            {"base_delay_seconds": -1},
            {"backoff_multiplier": 0.5},
            {"max_backoff_seconds": -5},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)

    def test_exponential_allows_empty_intervals(self):
        config = RetryConfig(strategy="exponential", retry_intervals=[])

        assert config.retry_intervals == []

    def test_from_settings(self):
        settings = RetrySettings(
            RETRY_MAX_ATTEMPTS=5,
            RETRY_STRATEGY="exponential",
            RETRY_BASE_DELAY_SECONDS=2,
            RETRY_MAX_BACKOFF_SECONDS=60,
        )

        config = RetryConfig.from_settings(settings)

        assert config.max_attempts == 5
        assert config.strategy == "exponential"
        assert config.base_delay_seconds == 2
        assert config.max_backoff_seconds == 60
