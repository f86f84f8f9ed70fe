"""Notification system core models.

Channel-agnostic notification models for centralized dispatch. Features
describe the message, the dispatcher owns gating, delivery and lifecycle.

Uses Pydantic BaseModel for:
- Runtime validation of required fields (blank titles, empty channel lists)
- Model-level invariants (expire_time after created_at, attempt cap)
- JSON round-tripping through the durable store (model_dump(mode="json"))
"""

import uuid
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from carenotify.errors import InvalidTransitionError


class NotificationType(Enum):
    """Closed set of notification types."""

    # Appointments
    APPOINTMENT_CONFIRM = "appointment_confirm"
    APPOINTMENT_REMINDER = "appointment_reminder"
    APPOINTMENT_CHANGE = "appointment_change"
    APPOINTMENT_CANCEL = "appointment_cancel"
    APPOINTMENT_COMPLETE = "appointment_complete"

    # Schedule time adjustments
    TIME_ADJUST_REQUEST = "time_adjust_request"
    TIME_ADJUST_CONFIRM = "time_adjust_confirm"
    TIME_ADJUST_REJECT = "time_adjust_reject"
    TIME_ADJUST_SUCCESS = "time_adjust_success"
    TIME_ADJUST_CONFLICT = "time_adjust_conflict"
    TIME_ADJUST_EMERGENCY = "time_adjust_emergency"
    TIME_ADJUST_BATCH = "time_adjust_batch"
    TIME_ADJUST_REMINDER = "time_adjust_reminder"

    # Service visits
    SERVICE_START = "service_start"
    SERVICE_PROGRESS = "service_progress"
    SERVICE_COMPLETE = "service_complete"
    SERVICE_EVALUATION = "service_evaluation"
    SERVICE_EXCEPTION = "service_exception"

    # Payments
    PAYMENT_REMINDER = "payment_reminder"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_OVERDUE = "payment_overdue"
    REFUND_NOTICE = "refund_notice"
    BILL_CHANGE = "bill_change"

    # Health
    HEALTH_REMINDER = "health_reminder"
    MEDICATION_REMINDER = "medication_reminder"
    FOLLOWUP_REMINDER = "followup_reminder"
    HEALTH_REPORT = "health_report"
    HEALTH_ALERT = "health_alert"

    # System
    SYSTEM_NOTICE = "system_notice"
    VERSION_UPDATE = "version_update"
    MAINTENANCE_NOTICE = "maintenance_notice"


class NotificationPriority(IntEnum):
    """Notification priority levels, ordinal 1..5.

    URGENT and above bypass quiet hours and do-not-disturb.
    """

    LOW = 1
    NORMAL = 2
    HIGH = 3
    URGENT = 4
    CRITICAL = 5


class NotificationStatus(Enum):
    """Lifecycle status of a notification.

    See ``ALLOWED_TRANSITIONS`` for the state machine.
    """

    PENDING = "pending"
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"
    EXPIRED = "expired"


class ChannelType(Enum):
    """Delivery mechanisms a notification can fan out to."""

    TEMPLATE_PUSH = "template_push"
    SUBSCRIBE_PUSH = "subscribe_push"
    SMS = "sms"
    IN_APP = "in_app"


class DeliveryOutcome(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class AdmissionOutcome(Enum):
    """What enqueue() did with a notification.

    Values:
        QUEUED: Accepted for dispatch at its scheduled time
        RESCHEDULED: Held by quiet hours / do-not-disturb, queued for later
        RATE_LIMITED: Silently skipped, per-user quota or interval exceeded
        PREFERENCE_DISABLED: Silently skipped, user switched this type off
        REJECTED: Not accepted (batch sends only; single enqueue raises)
    """

    QUEUED = "queued"
    RESCHEDULED = "rescheduled"
    RATE_LIMITED = "rate_limited"
    PREFERENCE_DISABLED = "preference_disabled"
    REJECTED = "rejected"


ALLOWED_TRANSITIONS: Dict[NotificationStatus, frozenset] = {
    NotificationStatus.PENDING: frozenset(
        {NotificationStatus.SENDING, NotificationStatus.EXPIRED}
    ),
    NotificationStatus.SENDING: frozenset(
        {
            NotificationStatus.SENT,
            NotificationStatus.DELIVERED,
            NotificationStatus.PENDING,
            NotificationStatus.FAILED,
            NotificationStatus.EXPIRED,
        }
    ),
    NotificationStatus.SENT: frozenset(
        {NotificationStatus.DELIVERED, NotificationStatus.READ}
    ),
    NotificationStatus.DELIVERED: frozenset({NotificationStatus.READ}),
    NotificationStatus.READ: frozenset(),
    NotificationStatus.FAILED: frozenset(),
    NotificationStatus.EXPIRED: frozenset(),
}

# No automatic transition leaves these. SENT and DELIVERED still accept
# user acknowledgements (delivered / read).
TERMINAL_STATUSES = frozenset(
    {
        NotificationStatus.SENT,
        NotificationStatus.DELIVERED,
        NotificationStatus.READ,
        NotificationStatus.FAILED,
        NotificationStatus.EXPIRED,
    }
)

DELIVERED_STATUSES = frozenset(
    {
        NotificationStatus.SENT,
        NotificationStatus.DELIVERED,
        NotificationStatus.READ,
    }
)


def generate_notification_id() -> str:
    return f"notify_{uuid.uuid4().hex[:16]}"


class TargetUser(BaseModel):
    """Recipient of a notification.

    Attributes:
        id: Platform user id (required)
        role: Role used by the permission gate (patient, recorder, admin)
        name: Display name used by templates (optional)
        addresses: Per-channel address, e.g. phone number for SMS or the
            push open id for template/subscribe push. The in-app feed is
            keyed by ``id`` and needs no address.

    Example:
        user = TargetUser(
            id="u-100",
            role="patient",
            addresses={ChannelType.SMS: "+8613800000000"},
        )
    """

    id: str
    role: str
    name: Optional[str] = None
    addresses: Dict[ChannelType, str] = Field(default_factory=dict)

    @field_validator("id", "role")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Target user id and role cannot be empty")
        return v

    def address_for(self, channel: ChannelType) -> Optional[str]:
        """Return the address registered for ``channel``, if any."""
        return self.addresses.get(channel)


class Notification(BaseModel):
    """A single logical notification and its latest lifecycle state.

    Full delivery history lives in the HistoryStore; a Notification only
    carries its current status and timestamps.

    Attributes:
        id: Opaque unique id
        type: NotificationType
        title: Short title (push card title, SMS prefix)
        content: Message body
        target_user: TargetUser receiving the notification
        channels: Ordered, duplicate-free, non-empty list of ChannelType
        priority: NotificationPriority (default: NORMAL)
        status: NotificationStatus (default: PENDING)
        data: Template/scene payload used to build the message
        metadata: Free-form context (source, scene, template id)
        scheduled_time: Earliest time the dispatcher may send it
        expire_time: After this instant the notification is dropped
        attempt_count: Send attempts issued so far
        max_attempts: Attempt cap before the notification is Failed
        last_error: Last aggregate failure reason
    """

    id: str = Field(default_factory=generate_notification_id)
    type: NotificationType
    title: str
    content: str
    target_user: TargetUser
    channels: List[ChannelType] = Field(..., min_length=1)
    priority: NotificationPriority = NotificationPriority.NORMAL
    status: NotificationStatus = NotificationStatus.PENDING
    data: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    scheduled_time: datetime
    sent_time: Optional[datetime] = None
    delivered_time: Optional[datetime] = None
    read_time: Optional[datetime] = None
    expire_time: datetime
    attempt_count: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, ge=1)
    last_error: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("title", "content")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Ensure title and content are not empty."""
        if not v or not v.strip():
            raise ValueError("Notification title and content cannot be empty")
        return v

    @field_validator("channels")
    @classmethod
    def dedupe_channels(cls, v: List[ChannelType]) -> List[ChannelType]:
        """Drop repeated channels, keeping the first occurrence."""
        seen: List[ChannelType] = []
        for channel in v:
            if channel not in seen:
                seen.append(channel)
        return seen

    @model_validator(mode="after")
    def validate_invariants(self) -> "Notification":
        if self.expire_time <= self.created_at:
            raise ValueError("expire_time must be after created_at")
        if self.attempt_count > self.max_attempts:
            raise ValueError("attempt_count cannot exceed max_attempts")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_unread(self) -> bool:
        return self.read_time is None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expire_time

    def can_transition_to(self, status: NotificationStatus) -> bool:
        return status in ALLOWED_TRANSITIONS[self.status]

    def transition_to(
        self, status: NotificationStatus, at: datetime
    ) -> NotificationStatus:
        """Move to ``status`` following the state machine.

        Args:
            status: Target status
            at: Time of the change, stamped on updated_at and the matching
                lifecycle timestamp

        Returns:
            The previous status

        Raises:
            InvalidTransitionError: If the state machine forbids the change
        """
        if not self.can_transition_to(status):
            raise InvalidTransitionError(self.id, self.status.value, status.value)

        previous = self.status
        self.status = status
        self.updated_at = at

        if status == NotificationStatus.SENT:
            self.sent_time = at
        elif status == NotificationStatus.DELIVERED:
            self.delivered_time = at
            if self.sent_time is None:
                self.sent_time = at
        elif status == NotificationStatus.READ:
            self.read_time = at

        return previous


class ChannelResult(BaseModel):
    """Result of one channel send for one notification.

    Returned by ChannelSender.send(). A sender reports failures through
    this object instead of raising.

    Attributes:
        notification_id: Notification that was sent
        channel: ChannelType used
        outcome: DeliveryOutcome (SUCCESS / FAILURE)
        message: Human-readable result message
        error_code: Optional machine error code for failures
        provider_message_id: Provider-side id of the delivered message

    Example:
        result = ChannelResult(
            notification_id=notification.id,
            channel=ChannelType.SMS,
            outcome=DeliveryOutcome.SUCCESS,
            message="Sent SMS",
            provider_message_id="sms-123",
        )
    """

    notification_id: str
    channel: ChannelType
    outcome: DeliveryOutcome
    message: str = ""
    error_code: Optional[str] = None
    provider_message_id: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.outcome == DeliveryOutcome.SUCCESS

    @classmethod
    def success(
        cls,
        notification_id: str,
        channel: ChannelType,
        message: str = "ok",
        provider_message_id: Optional[str] = None,
    ) -> "ChannelResult":
        return cls(
            notification_id=notification_id,
            channel=channel,
            outcome=DeliveryOutcome.SUCCESS,
            message=message,
            provider_message_id=provider_message_id,
        )

    @classmethod
    def failure(
        cls,
        notification_id: str,
        channel: ChannelType,
        message: str,
        error_code: Optional[str] = None,
    ) -> "ChannelResult":
        return cls(
            notification_id=notification_id,
            channel=channel,
            outcome=DeliveryOutcome.FAILURE,
            message=message,
            error_code=error_code,
        )


class DeliveryAttempt(BaseModel):
    """One channel outcome, appended to the history log."""

    notification_id: str
    channel: ChannelType
    attempt_number: int
    outcome: DeliveryOutcome
    error: Optional[str] = None
    error_code: Optional[str] = None
    provider_message_id: Optional[str] = None
    timestamp: datetime

    @classmethod
    def from_result(
        cls, result: ChannelResult, attempt_number: int, timestamp: datetime
    ) -> "DeliveryAttempt":
        return cls(
            notification_id=result.notification_id,
            channel=result.channel,
            attempt_number=attempt_number,
            outcome=result.outcome,
            error=None if result.is_success else result.message,
            error_code=result.error_code,
            provider_message_id=result.provider_message_id,
            timestamp=timestamp,
        )


class StatusTransition(BaseModel):
    """One lifecycle status change, appended to the history log.

    Creation is recorded with ``from_status=None``.
    """

    notification_id: str
    from_status: Optional[NotificationStatus] = None
    to_status: NotificationStatus
    reason: Optional[str] = None
    timestamp: datetime


class EnqueueResult(BaseModel):
    """Outcome of handing a notification to the dispatcher."""

    notification_id: str
    outcome: AdmissionOutcome
    scheduled_time: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.outcome in (AdmissionOutcome.QUEUED, AdmissionOutcome.RESCHEDULED)
