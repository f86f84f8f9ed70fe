"""Notification service for dependency injection.

Provides a class-based interface to the notification system for easier DI
and testing.
"""

from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING

from carenotify.clock import Clock, SystemClock
from carenotify.logging import get_module_logger
from carenotify.notifications.channels import (
    ChannelSender,
    GatewayClient,
    InAppChannelSender,
    SMSChannelSender,
    SubscribePushSender,
    TemplatePushSender,
)
from carenotify.notifications.dispatcher import (
    NotificationDispatcher,
    Observer,
    TickReport,
)
from carenotify.notifications.factory import NotificationFactory
from carenotify.notifications.history import HistoryFilters, HistoryStore
from carenotify.notifications.models import (
    ChannelType,
    EnqueueResult,
    Notification,
)
from carenotify.notifications.preferences import PreferenceStore
from carenotify.notifications.queue import DispatchQueue
from carenotify.notifications.quiet_hours import QuietHoursGate
from carenotify.notifications.rate_limit import RateLimiter
from carenotify.notifications.router import ChannelRouter
from carenotify.persistence import DurableStore, create_durable_store
from carenotify.resilience.retry import RetryConfig, RetryScheduler

if TYPE_CHECKING:
    from carenotify.configuration import Settings

logger = get_module_logger()


def build_default_senders(
    settings: "Settings", store: DurableStore, clock: Clock
) -> List[ChannelSender]:
    """In-app feed always; push and SMS when their gateway URL is set."""
    gateway = settings.gateway
    senders: List[ChannelSender] = [InAppChannelSender(store, clock)]

    if gateway.PUSH_GATEWAY_URL:
        push_client = GatewayClient(
            gateway.PUSH_GATEWAY_URL,
            gateway.GATEWAY_CLIENT_ID,
            gateway.GATEWAY_CLIENT_SECRET,
            gateway.GATEWAY_TIMEOUT_SECONDS,
        )
        senders.append(TemplatePushSender(push_client))
        senders.append(SubscribePushSender(push_client))
    else:
        logger.warning("push_gateway_not_configured")

    if gateway.SMS_GATEWAY_URL:
        sms_client = GatewayClient(
            gateway.SMS_GATEWAY_URL,
            gateway.GATEWAY_CLIENT_ID,
            gateway.GATEWAY_CLIENT_SECRET,
            gateway.GATEWAY_TIMEOUT_SECONDS,
        )
        senders.append(SMSChannelSender(sms_client))
    else:
        logger.warning("sms_gateway_not_configured")

    return senders


class NotificationService:
    """Class-based notification service.

    Wraps the NotificationDispatcher with a service interface to support
    dependency injection and easier testing with mocks. Builds the
    dispatcher and its collaborators from Settings when none is given.

    Usage:
        # Via dependency injection
        from carenotify.services import NotificationServiceDep

        @router.get("/stats")
        def stats(service: NotificationServiceDep):
            return service.stats()

        # Direct instantiation
        settings = get_settings()
        service = NotificationService(settings)
        service.enqueue(service.create_from_scene("health_alert", user, data))
    """

    def __init__(
        self,
        settings: "Settings",
        store: Optional[DurableStore] = None,
        clock: Optional[Clock] = None,
        senders: Optional[List[ChannelSender]] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        """Initialize notification service.

        Args:
            settings: Settings instance (required, passed from provider).
            store: Optional DurableStore. Defaults to the configured backend.
            clock: Optional Clock. Defaults to SystemClock.
            senders: Optional channel senders. Defaults to the in-app feed
                plus the configured gateways.
            dispatcher: Optional pre-configured NotificationDispatcher.
        """
        self._settings = settings

        if dispatcher is None:
            clock = clock or SystemClock()
            if store is None:
                store = create_durable_store(settings.storage)
            if senders is None:
                senders = build_default_senders(settings, store, clock)

            retry_config = RetryConfig.from_settings(settings.retry)
            dispatcher = NotificationDispatcher(
                store=store,
                router=ChannelRouter(
                    senders, max_workers=settings.dispatch.max_fanout_workers
                ),
                clock=clock,
                factory=NotificationFactory(
                    clock=clock, default_max_attempts=retry_config.max_attempts
                ),
                preferences=PreferenceStore(store),
                rate_limiter=RateLimiter(store, clock),
                quiet_hours=QuietHoursGate(
                    start_time=settings.quiet_hours.start_time,
                    end_time=settings.quiet_hours.end_time,
                    timezone=settings.quiet_hours.timezone,
                    clock=clock,
                ),
                queue=DispatchQueue(max_size=settings.dispatch.max_queue_size),
                retry_scheduler=RetryScheduler(retry_config),
                history=HistoryStore(
                    store, clock, recent_days=settings.history.recent_days
                ),
                batch_size=settings.dispatch.batch_size,
            )
            restored = dispatcher.restore_queue()
            if restored:
                logger.info("pending_notifications_restored", count=restored)

        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def preferences(self) -> PreferenceStore:
        return self._dispatcher.preferences

    def create_notification(self, **kwargs: Any) -> Notification:
        return self._dispatcher.create_notification(**kwargs)

    def create_from_template(self, **kwargs: Any) -> Notification:
        return self._dispatcher.create_from_template(**kwargs)

    def create_from_scene(
        self, scene: str, target_user: Any, data: Optional[Dict[str, Any]] = None
    ) -> Notification:
        return self._dispatcher.create_from_scene(scene, target_user, data)

    def enqueue(self, notification: Notification) -> EnqueueResult:
        return self._dispatcher.enqueue(notification)

    def send_batch(self, notifications: Iterable[Notification]) -> List[EnqueueResult]:
        return self._dispatcher.send_batch(notifications)

    def tick(self) -> TickReport:
        return self._dispatcher.tick()

    def mark_delivered(self, notification_id: str) -> Notification:
        return self._dispatcher.mark_delivered(notification_id)

    def mark_read(self, notification_id: str) -> Notification:
        """Mark read and clear the matching in-app feed entry."""
        notification = self._dispatcher.mark_read(notification_id)
        sender = self._dispatcher.router.get_sender(ChannelType.IN_APP)
        if isinstance(sender, InAppChannelSender):
            sender.mark_read(notification.target_user.id, notification_id)
        return notification

    def get_notification(self, notification_id: str) -> Notification:
        return self._dispatcher.get_notification(notification_id)

    def stats(self, filters: Optional[HistoryFilters] = None) -> Dict[str, Any]:
        return self._dispatcher.stats(filters)

    def export(self, filters: Optional[HistoryFilters] = None) -> Dict[str, Any]:
        return self._dispatcher.export(filters)

    def cleanup(
        self,
        older_than_days: Optional[int] = None,
        max_count: Optional[int] = None,
        keep_unread: bool = True,
    ) -> Dict[str, int]:
        """Retention cleanup; defaults come from HistorySettings."""
        history = self._settings.history
        return self._dispatcher.cleanup(
            older_than_days=older_than_days
            if older_than_days is not None
            else history.retention_days,
            max_count=max_count if max_count is not None else history.max_count,
            keep_unread=keep_unread,
        )

    def subscribe(self, observer: Observer) -> Observer:
        return self._dispatcher.subscribe(observer)

    def unsubscribe(self, observer: Observer) -> bool:
        return self._dispatcher.unsubscribe(observer)

    def pending_count(self) -> int:
        return self._dispatcher.pending_count()

    def health_check(self) -> Dict[str, bool]:
        return self._dispatcher.router.health_check()

    def shutdown(self) -> None:
        self._dispatcher.router.shutdown()
