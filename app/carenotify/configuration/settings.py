"""Top-level Settings object grouping every configuration section."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from carenotify.configuration.integrations import GatewaySettings
from carenotify.configuration.infrastructure import (
    DispatchSettings,
    QuietHoursSettings,
    HistorySettings,
    RetrySettings,
    StorageSettings,
)


class Settings(BaseSettings):
    """Service configuration.

    Each section reads its own environment variables when it is not passed
    explicitly, so tests can override a single section:

        Settings(gateway=GatewaySettings(SMS_GATEWAY_URL=""))

    Environment Variables:
        PREFIX: Deployment prefix such as "dev-" or "staging-"; empty in production
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Build identifier reported by /version and stamped on logs
    """

    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    gateway: GatewaySettings = Field(default_factory=GatewaySettings)

    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    quiet_hours: QuietHoursSettings = Field(default_factory=QuietHoursSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return not self.PREFIX
