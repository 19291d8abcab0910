import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, DateTime, Text
from sqlmodel import Field, SQLModel


class NotificationType(str, enum.Enum):
    """Kinds of in-app notification raised by ticket activity."""

    TICKET_CREATED = "ticket_created"
    TICKET_ASSIGNED = "ticket_assigned"
    TICKET_COMMENT = "ticket_comment"
    TICKET_STATUS_CHANGED = "ticket_status_changed"
    TICKET_PRIORITY_CHANGED = "ticket_priority_changed"


class Notification(SQLModel, table=True):
    """
    In-app notification for a single recipient.

    Notifications are only ever created server side, as a consequence of a
    ticket mutation. Clients can list them and flip ``is_read``.

    Attributes:
        user_id:
            The recipient.

        ticket_id:
            Ticket that triggered the notification, when there is one.

        related_user_id:
            The user whose action caused the notification.

        is_read / read_at:
            Read flag and the moment it was set.
    """

    __tablename__ = "notifications"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    user_id: uuid.UUID = Field(foreign_key="profiles.id", index=True, nullable=False)
    type: NotificationType = Field(nullable=False)
    title: str = Field(max_length=255, nullable=False)
    message: str = Field(sa_column=Column(Text, nullable=False))
    ticket_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="care_log_tickets.id", index=True, nullable=True
    )
    related_user_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="profiles.id", nullable=True
    )
    notification_metadata: Optional[Dict[str, Any]] = Field(
        default=None, sa_column=Column("metadata", JSON, nullable=True)
    )
    is_read: bool = Field(default=False, nullable=False, index=True)
    read_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
        default_factory=lambda: datetime.now(timezone.utc),
    )
