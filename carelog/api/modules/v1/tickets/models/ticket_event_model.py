import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, DateTime, Text
from sqlmodel import Field, SQLModel


class TicketEventType(str, Enum):
    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    COMMENT_ADDED = "comment_added"
    ATTACHMENT_ADDED = "attachment_added"
    PRIORITY_CHANGED = "priority_changed"
    UPDATED = "updated"


class TicketEvent(SQLModel, table=True):
    """Append-only audit entry. Rows are never updated or deleted."""

    __tablename__ = "ticket_events"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    ticket_id: uuid.UUID = Field(foreign_key="care_log_tickets.id", index=True, nullable=False)
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="profiles.id", nullable=True)
    event_type: TicketEventType = Field(nullable=False, index=True)
    old_value: Optional[str] = Field(default=None, max_length=255)
    new_value: Optional[str] = Field(default=None, max_length=255)
    comment: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    event_metadata: Optional[Dict[str, Any]] = Field(
        default=None, sa_column=Column("metadata", JSON, nullable=True)
    )

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
        default_factory=lambda: datetime.now(timezone.utc),
    )
