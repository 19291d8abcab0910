import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel


class TicketComment(SQLModel, table=True):
    """
    A message on a ticket.

    Internal notes (``is_internal``) are visible to platform staff only and
    are never sent to the summarization provider.
    """

    __tablename__ = "ticket_comments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    ticket_id: uuid.UUID = Field(foreign_key="care_log_tickets.id", index=True, nullable=False)
    user_id: uuid.UUID = Field(foreign_key="profiles.id", index=True, nullable=False)
    comment: str = Field(sa_column=Column(Text, nullable=False))
    is_internal: bool = Field(default=False, nullable=False)

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_public(self) -> bool:
        return not self.is_internal
