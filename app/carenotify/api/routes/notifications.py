from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Request

from carenotify.api.rate_limits import get_limiter
from carenotify.api.schemas import (
    BatchCreateRequest,
    CleanupRequest,
    NotificationCreateRequest,
)
from carenotify.logging import get_module_logger
from carenotify.notifications.history import HistoryFilters
from carenotify.notifications.models import (
    ChannelType,
    Notification,
    NotificationStatus,
    NotificationType,
)
from carenotify.notifications.service import NotificationService
from carenotify.services import NotificationServiceDep

logger = get_module_logger()

router = APIRouter(tags=["Notifications"])
limiter = get_limiter()


def _build(service: NotificationService, body: NotificationCreateRequest) -> Notification:
    """Create a notification through the scene, template or direct path."""
    if body.scene:
        return service.create_from_scene(body.scene, body.target_user, body.data)

    if body.template_id or not (body.title and body.content):
        return service.create_from_template(
            type=body.type,
            target_user=body.target_user,
            data=body.data,
            template_id=body.template_id,
            channels=body.channels or None,
            priority=body.priority,
            scheduled_time=body.scheduled_time,
            expire_time=body.expire_time,
            max_attempts=body.max_attempts,
        )

    return service.create_notification(
        type=body.type,
        title=body.title,
        content=body.content,
        target_user=body.target_user,
        channels=body.channels,
        priority=body.priority,
        scheduled_time=body.scheduled_time,
        expire_time=body.expire_time,
        data=body.data,
        max_attempts=body.max_attempts,
    )


def _filters(
    type: Optional[NotificationType],
    status: Optional[NotificationStatus],
    channel: Optional[ChannelType],
    user_id: Optional[str],
    start: Optional[datetime],
    end: Optional[datetime],
) -> HistoryFilters:
    return HistoryFilters(
        type=type,
        status=status,
        channel=channel,
        user_id=user_id,
        start=start,
        end=end,
    )


@router.post("/notifications", status_code=202)
@limiter.limit("100/minute")
def create_notification(
    request: Request,  # pylint: disable=unused-argument
    body: NotificationCreateRequest,
    service: NotificationServiceDep,
):
    """Create a notification and hand it to the dispatcher."""
    notification = _build(service, body)
    result = service.enqueue(notification)
    return {
        "notification": notification.model_dump(mode="json"),
        "result": result.model_dump(mode="json"),
    }


@router.post("/notifications/batch", status_code=202)
@limiter.limit("20/minute")
def create_batch(
    request: Request,  # pylint: disable=unused-argument
    body: BatchCreateRequest,
    service: NotificationServiceDep,
):
    """Create several notifications and enqueue them highest priority first.

    Creation errors reject the whole request; admission outcomes are
    reported per notification.
    """
    notifications = [_build(service, item) for item in body.notifications]
    results = service.send_batch(notifications)
    return {
        "total": len(results),
        "accepted": sum(1 for r in results if r.accepted),
        "results": [r.model_dump(mode="json") for r in results],
    }


@router.get("/notifications/stats")
@limiter.limit("50/minute")
def get_stats(
    request: Request,  # pylint: disable=unused-argument
    service: NotificationServiceDep,
    type: Optional[NotificationType] = None,
    status: Optional[NotificationStatus] = None,
    channel: Optional[ChannelType] = None,
    user_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
):
    return service.stats(_filters(type, status, channel, user_id, start, end))


@router.post("/notifications/cleanup")
@limiter.limit("10/minute")
def cleanup(
    request: Request,  # pylint: disable=unused-argument
    body: CleanupRequest,
    service: NotificationServiceDep,
):
    return service.cleanup(
        older_than_days=body.older_than_days,
        max_count=body.max_count,
        keep_unread=body.keep_unread,
    )


@router.get("/notifications/export")
@limiter.limit("10/minute")
def export(
    request: Request,  # pylint: disable=unused-argument
    service: NotificationServiceDep,
    type: Optional[NotificationType] = None,
    status: Optional[NotificationStatus] = None,
    channel: Optional[ChannelType] = None,
    user_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
):
    return service.export(_filters(type, status, channel, user_id, start, end))


@router.get("/notifications/{notification_id}")
@limiter.limit("100/minute")
def get_notification(
    request: Request,  # pylint: disable=unused-argument
    notification_id: str,
    service: NotificationServiceDep,
):
    return service.get_notification(notification_id).model_dump(mode="json")


@router.post("/notifications/{notification_id}/read")
@limiter.limit("100/minute")
def mark_read(
    request: Request,  # pylint: disable=unused-argument
    notification_id: str,
    service: NotificationServiceDep,
):
    notification = service.mark_read(notification_id)
    logger.info("notification_read_via_api", notification_id=notification_id)
    return notification.model_dump(mode="json")
