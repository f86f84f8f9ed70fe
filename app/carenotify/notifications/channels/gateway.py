"""HTTP gateway client shared by the push and SMS senders.

Gateways accept JSON over HTTPS and authenticate with a short-lived HS256
token: claims ``iss`` (client id) and ``iat`` (epoch seconds).
"""

import calendar
import json
import time
from typing import Any, Dict, Optional, Tuple

import jwt
import requests

from carenotify.logging import get_module_logger
from carenotify.notifications.models import ChannelResult, ChannelType, Notification

logger = get_module_logger()


def epoch_seconds() -> int:
    return calendar.timegm(time.gmtime())


def create_jwt_token(secret: Optional[str], client_id: Optional[str]) -> str:
    """Generate a gateway JWT token.

    Raises:
        ValueError: If the secret or client id is missing
    """
    if not secret:
        logger.error("jwt_token_creation_failed", error="Missing secret key")
        raise ValueError("Missing secret key")
    if not client_id:
        logger.error("jwt_token_creation_failed", error="Missing client id")
        raise ValueError("Missing client id")

    headers = {"typ": "JWT", "alg": "HS256"}
    claims = {"iss": client_id, "iat": epoch_seconds()}
    token = jwt.encode(payload=claims, key=secret, headers=headers)
    if isinstance(token, str):
        return token
    return token.decode()


class GatewayClient:
    """Posts JSON payloads to a message gateway.

    Args:
        base_url: Gateway root URL
        client_id: Token issuer
        client_secret: Token signing secret
        timeout_seconds: Request timeout
    """

    def __init__(
        self,
        base_url: str,
        client_id: Optional[str],
        client_secret: Optional[str],
        timeout_seconds: int = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout_seconds = timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.client_id and self.client_secret)

    def create_authorization_header(self) -> Tuple[str, str]:
        token = create_jwt_token(secret=self.client_secret, client_id=self.client_id)
        return "Authorization", f"Bearer {token}"

    def post_event(self, path: str, payload: Dict[str, Any]) -> requests.Response:
        header_key, header_value = self.create_authorization_header()
        headers = {header_key: header_value, "Content-Type": "application/json"}
        return requests.post(
            f"{self.base_url}{path}",
            data=json.dumps(payload),
            headers=headers,
            timeout=self.timeout_seconds,
        )


def post_to_gateway(
    client: GatewayClient,
    notification: Notification,
    channel: ChannelType,
    path: str,
    payload: Dict[str, Any],
) -> ChannelResult:
    """POST a payload and convert the response into a ChannelResult.

    Any 2xx status is a success; the provider id is read from ``id``.
    """
    try:
        response = client.post_event(path, payload)
    except (requests.RequestException, ValueError) as e:
        logger.error(
            "gateway_send_error",
            channel=channel.value,
            notification_id=notification.id,
            error=str(e),
            exc_info=True,
        )
        return ChannelResult.failure(
            notification.id, channel, f"Gateway error: {e}", error_code="SEND_ERROR"
        )

    if 200 <= response.status_code < 300:
        try:
            body = response.json()
        except ValueError:
            body = {}
        return ChannelResult.success(
            notification.id,
            channel,
            message=f"Sent via {channel.value} gateway",
            provider_message_id=body.get("id") if isinstance(body, dict) else None,
        )

    logger.warning(
        "gateway_send_rejected",
        channel=channel.value,
        notification_id=notification.id,
        status_code=response.status_code,
    )
    return ChannelResult.failure(
        notification.id,
        channel,
        f"Gateway error: HTTP {response.status_code}",
        error_code=f"HTTP_{response.status_code}",
    )
