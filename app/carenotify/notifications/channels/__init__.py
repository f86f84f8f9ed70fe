"""Channel senders."""

from carenotify.notifications.channels.base import ChannelSender
from carenotify.notifications.channels.gateway import GatewayClient
from carenotify.notifications.channels.in_app import InAppChannelSender
from carenotify.notifications.channels.push import (
    SubscribePushSender,
    TemplatePushSender,
)
from carenotify.notifications.channels.sms import SMSChannelSender

__all__ = [
    "ChannelSender",
    "GatewayClient",
    "InAppChannelSender",
    "SMSChannelSender",
    "SubscribePushSender",
    "TemplatePushSender",
]
