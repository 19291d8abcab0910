import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel


class TicketAttachment(SQLModel, table=True):
    """Metadata for a file stored in external blob storage."""

    __tablename__ = "ticket_attachments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    ticket_id: uuid.UUID = Field(foreign_key="care_log_tickets.id", index=True, nullable=False)
    uploaded_by: uuid.UUID = Field(foreign_key="profiles.id", nullable=False)
    file_name: str = Field(max_length=255, nullable=False)
    file_url: str = Field(max_length=1024, nullable=False)
    file_type: Optional[str] = Field(default=None, max_length=100)
    file_size: Optional[int] = Field(default=None)

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
