"""Request bodies for the notification API.

Enum values arrive as plain strings and are validated by the
NotificationFactory, so unknown types or channels surface as
InvalidNotification (HTTP 422) like any other creation error.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class NotificationCreateRequest(BaseModel):
    """One notification to create and enqueue.

    Exactly one creation path applies: ``scene`` if set, otherwise a
    template when ``template_id`` is set or no title/content is given,
    otherwise direct creation.
    """

    type: Optional[str] = None
    target_user: Dict[str, Any]
    title: Optional[str] = None
    content: Optional[str] = None
    channels: List[str] = Field(default_factory=list)
    priority: Union[int, str, None] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    template_id: Optional[str] = None
    scene: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    expire_time: Optional[datetime] = None
    max_attempts: Optional[int] = Field(default=None, ge=1)


class BatchCreateRequest(BaseModel):
    notifications: List[NotificationCreateRequest] = Field(..., min_length=1)


class CleanupRequest(BaseModel):
    older_than_days: Optional[int] = Field(default=None, ge=0)
    max_count: Optional[int] = Field(default=None, ge=0)
    keep_unread: bool = True
