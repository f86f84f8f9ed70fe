"""Push channels: template messages and subscription messages.

Both are delivered through the push gateway to the user's open id. A
template push needs a template id (from the notification metadata or the
type default); a subscribe push sends the title, content and payload.
"""

from carenotify.logging import get_module_logger
from carenotify.notifications.channels.base import ChannelSender
from carenotify.notifications.channels.gateway import GatewayClient, post_to_gateway
from carenotify.notifications.models import ChannelResult, ChannelType, Notification

logger = get_module_logger()


class _PushSender(ChannelSender):
    path = ""

    def __init__(self, client: GatewayClient):
        self.client = client
        logger.info(
            "initialized_push_channel",
            channel=self.channel_type.value,
            gateway=client.base_url,
        )

    def build_payload(self, notification: Notification, open_id: str) -> dict:
        raise NotImplementedError

    def send(self, notification: Notification) -> ChannelResult:
        open_id = self.resolve_address(notification)
        if not open_id:
            return ChannelResult.failure(
                notification.id,
                self.channel_type,
                "Push open id required",
                error_code="MISSING_OPEN_ID",
            )

        result = post_to_gateway(
            self.client,
            notification,
            self.channel_type,
            self.path,
            self.build_payload(notification, open_id),
        )
        if result.is_success:
            logger.info(
                "push_sent",
                channel=self.channel_type.value,
                notification_id=notification.id,
            )
        return result

    def health_check(self) -> bool:
        return self.client.configured


class TemplatePushSender(_PushSender):
    path = "/v1/push/template"

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.TEMPLATE_PUSH

    def build_payload(self, notification: Notification, open_id: str) -> dict:
        template_id = notification.metadata.get(
            "template_id", f"{notification.type.value}_default"
        )
        return {
            "open_id": open_id,
            "template_id": template_id,
            "title": notification.title,
            "data": {"content": notification.content, **notification.data},
            "reference": notification.id,
        }


class SubscribePushSender(_PushSender):
    path = "/v1/push/subscribe"

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.SUBSCRIBE_PUSH

    def build_payload(self, notification: Notification, open_id: str) -> dict:
        return {
            "open_id": open_id,
            "title": notification.title,
            "content": notification.content,
            "data": notification.data,
            "reference": notification.id,
        }
