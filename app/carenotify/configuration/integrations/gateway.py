"""Message gateway configuration settings."""

from pydantic import Field

from carenotify.configuration.base import IntegrationSettings


class GatewaySettings(IntegrationSettings):
    """Push and short-message gateway configuration.

    Both gateways accept JSON over HTTPS and authenticate with a short-lived
    HS256 token signed with the client secret.
    """

    SMS_GATEWAY_URL: str = Field(default="", alias="SMS_GATEWAY_URL")
    PUSH_GATEWAY_URL: str = Field(default="", alias="PUSH_GATEWAY_URL")
    GATEWAY_CLIENT_ID: str | None = Field(default=None, alias="GATEWAY_CLIENT_ID")
    GATEWAY_CLIENT_SECRET: str | None = Field(
        default=None, alias="GATEWAY_CLIENT_SECRET"
    )
    GATEWAY_TIMEOUT_SECONDS: int = Field(default=10, alias="GATEWAY_TIMEOUT_SECONDS")
