import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from carelog.api.modules.v1.notifications.models.notification_model import NotificationType


class NotificationResponse(BaseModel):
    """Response schema for a single notification."""

    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    ticket_id: Optional[uuid.UUID] = None
    related_user_id: Optional[uuid.UUID] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="notification_metadata")
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationMarkRead(BaseModel):
    """Mark the given notifications as read, or every unread one when omitted."""

    notification_ids: Optional[List[uuid.UUID]] = None
