"""Notification construction.

NotificationFactory turns direct, template or scene inputs into validated
Notification objects. Every failure surfaces as ``InvalidNotification`` so
callers have a single error to handle at creation time.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Union

from pydantic import ValidationError

from carenotify.clock import Clock, SystemClock
from carenotify.errors import InvalidNotification
from carenotify.logging import get_module_logger
from carenotify.notifications.models import (
    ChannelType,
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    TargetUser,
)
from carenotify.notifications.policies import SCENES, ScenePreset, ttl_for
from carenotify.notifications.templates import DictTemplateRenderer, TemplateRenderer

logger = get_module_logger()

TypeLike = Union[NotificationType, str]
PriorityLike = Union[NotificationPriority, int, str]
ChannelLike = Union[ChannelType, str]
UserLike = Union[TargetUser, Dict[str, Any]]


def _coerce_type(value: Optional[TypeLike]) -> NotificationType:
    if value is None or value == "":
        raise InvalidNotification("Notification type is required")
    if isinstance(value, NotificationType):
        return value
    try:
        return NotificationType(value)
    except ValueError as e:
        raise InvalidNotification(f"Unknown notification type: {value}") from e


def _coerce_priority(value: Optional[PriorityLike]) -> NotificationPriority:
    if value is None:
        return NotificationPriority.NORMAL
    if isinstance(value, NotificationPriority):
        return value
    try:
        if isinstance(value, str) and not value.isdigit():
            return NotificationPriority[value.upper()]
        return NotificationPriority(int(value))
    except (KeyError, ValueError) as e:
        raise InvalidNotification(f"Unknown priority: {value}") from e


def _coerce_channels(values: Optional[Iterable[ChannelLike]]) -> list[ChannelType]:
    channels = []
    for value in values or []:
        try:
            channels.append(
                value if isinstance(value, ChannelType) else ChannelType(value)
            )
        except ValueError as e:
            raise InvalidNotification(f"Unknown channel: {value}") from e
    if not channels:
        raise InvalidNotification("At least one channel is required")
    return channels


def _coerce_user(value: Optional[UserLike]) -> TargetUser:
    if value is None:
        raise InvalidNotification("Target user is required")
    if isinstance(value, TargetUser):
        return value
    try:
        return TargetUser.model_validate(value)
    except ValidationError as e:
        raise InvalidNotification(f"Invalid target user: {e}") from e


class NotificationFactory:
    """Builds validated notifications.

    Args:
        clock: Time source for created_at and default scheduling
        renderer: TemplateRenderer used by template and scene creation
        default_max_attempts: Attempt cap applied when none is given
        ttl_table: Optional override of the per-type time-to-live table
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        renderer: Optional[TemplateRenderer] = None,
        default_max_attempts: int = 3,
        ttl_table: Optional[Dict[NotificationType, timedelta]] = None,
    ):
        self.clock = clock or SystemClock()
        self.renderer = renderer or DictTemplateRenderer()
        self.default_max_attempts = default_max_attempts
        self.ttl_table = ttl_table

    def create(
        self,
        type: Optional[TypeLike],
        title: Optional[str],
        content: Optional[str],
        target_user: Optional[UserLike],
        channels: Optional[Iterable[ChannelLike]],
        priority: Optional[PriorityLike] = None,
        scheduled_time: Optional[datetime] = None,
        expire_time: Optional[datetime] = None,
        data: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        max_attempts: Optional[int] = None,
    ) -> Notification:
        """Create a Pending notification.

        ``expire_time`` defaults to creation time plus the type's TTL.

        Raises:
            InvalidNotification: On any missing or invalid field
        """
        notification_type = _coerce_type(type)
        if not title or not title.strip():
            raise InvalidNotification("Notification title is required")
        if not content or not content.strip():
            raise InvalidNotification("Notification content is required")
        user = _coerce_user(target_user)
        channel_list = _coerce_channels(channels)
        level = _coerce_priority(priority)

        now = self.clock.now()
        try:
            notification = Notification(
                type=notification_type,
                title=title,
                content=content,
                target_user=user,
                channels=channel_list,
                priority=level,
                status=NotificationStatus.PENDING,
                data=dict(data or {}),
                metadata=dict(metadata or {}),
                scheduled_time=scheduled_time or now,
                expire_time=expire_time
                or now + ttl_for(notification_type, self.ttl_table),
                max_attempts=max_attempts or self.default_max_attempts,
                created_at=now,
                updated_at=now,
            )
        except ValidationError as e:
            raise InvalidNotification(str(e)) from e

        logger.debug(
            "notification_created",
            notification_id=notification.id,
            notification_type=notification_type.value,
            user_id=user.id,
            channels=[c.value for c in notification.channels],
            priority=level.name,
        )
        return notification

    def create_from_template(
        self,
        type: Optional[TypeLike],
        target_user: Optional[UserLike],
        data: Optional[Dict[str, Any]] = None,
        template_id: Optional[str] = None,
        channels: Optional[Iterable[ChannelLike]] = None,
        priority: Optional[PriorityLike] = None,
        scheduled_time: Optional[datetime] = None,
        expire_time: Optional[datetime] = None,
        metadata: Optional[Dict[str, Any]] = None,
        max_attempts: Optional[int] = None,
    ) -> Notification:
        """Create a notification whose title and content come from a template.

        Without a template id the type's ``<type>_default`` template is used
        when registered, otherwise ``data["title"]``/``data["content"]`` or a
        generic text.

        Raises:
            InvalidNotification: If an explicit template cannot be rendered
        """
        notification_type = _coerce_type(type)
        payload = dict(data or {})
        user = _coerce_user(target_user)
        payload.setdefault("name", user.name or "")

        if template_id:
            rendered = self.renderer.render(template_id, payload)
        else:
            default_id = f"{notification_type.value}_default"
            if self.renderer.has_template(default_id):
                template_id = default_id
                rendered = self.renderer.render(default_id, payload)
            else:
                rendered = {
                    "title": payload.get("title") or "Notification",
                    "content": payload.get("content")
                    or f"You have a new {notification_type.value.replace('_', ' ')} notification.",
                }

        meta = dict(metadata or {})
        if template_id:
            meta.setdefault("template_id", template_id)

        return self.create(
            type=notification_type,
            title=rendered.get("title"),
            content=rendered.get("content"),
            target_user=user,
            channels=channels or [ChannelType.IN_APP],
            priority=priority,
            scheduled_time=scheduled_time,
            expire_time=expire_time,
            data=payload,
            metadata=meta,
            max_attempts=max_attempts,
        )

    def create_from_scene(
        self,
        scene: str,
        target_user: Optional[UserLike],
        data: Optional[Dict[str, Any]] = None,
        scheduled_time: Optional[datetime] = None,
    ) -> Notification:
        """Create a notification from a named business scene preset.

        Raises:
            InvalidNotification: If the scene is unknown
        """
        preset: Optional[ScenePreset] = SCENES.get(scene)
        if preset is None:
            raise InvalidNotification(f"Unknown scene: {scene}")

        template_id = preset.template_id
        if template_id and not self.renderer.has_template(template_id):
            template_id = None

        return self.create_from_template(
            type=preset.type,
            target_user=target_user,
            data=data,
            template_id=template_id,
            channels=list(preset.channels),
            priority=preset.priority,
            scheduled_time=scheduled_time,
            metadata={"scene": scene, **preset.metadata},
        )
