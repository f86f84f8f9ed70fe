"""Short-message channel over the SMS gateway."""

from carenotify.logging import get_module_logger
from carenotify.notifications.channels.base import ChannelSender
from carenotify.notifications.channels.gateway import GatewayClient, post_to_gateway
from carenotify.notifications.models import ChannelResult, ChannelType, Notification

logger = get_module_logger()

SMS_MAX_LENGTH = 500


def validate_phone_number(phone: str) -> bool:
    """E.164: '+' followed by 1 to 15 digits."""
    phone = phone.strip()
    digits = phone[1:]
    return phone.startswith("+") and digits.isdigit() and 1 <= len(digits) <= 15


class SMSChannelSender(ChannelSender):
    """Sends the notification title and content as a short message.

    Requires the target user's phone number in E.164 format under the
    ``sms`` address.
    """

    def __init__(self, client: GatewayClient):
        self.client = client
        logger.info("initialized_sms_channel", gateway=client.base_url)

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.SMS

    def send(self, notification: Notification) -> ChannelResult:
        phone = self.resolve_address(notification)
        if not phone:
            return ChannelResult.failure(
                notification.id,
                self.channel_type,
                "Phone number required for SMS",
                error_code="MISSING_PHONE",
            )
        if not validate_phone_number(phone):
            return ChannelResult.failure(
                notification.id,
                self.channel_type,
                "Phone number must be in E.164 format (+8613800000000)",
                error_code="INVALID_PHONE_FORMAT",
            )

        message = f"{notification.title}: {notification.content}"
        if len(message) > SMS_MAX_LENGTH:
            logger.warning(
                "sms_message_truncated",
                notification_id=notification.id,
                original_length=len(message),
            )
            message = message[: SMS_MAX_LENGTH - 3] + "..."

        result = post_to_gateway(
            self.client,
            notification,
            self.channel_type,
            "/v1/sms",
            {"phone_number": phone.strip(), "message": message, "reference": notification.id},
        )
        if result.is_success:
            logger.info(
                "sms_sent",
                notification_id=notification.id,
                priority=notification.priority.name,
            )
        return result

    def health_check(self) -> bool:
        return self.client.configured
