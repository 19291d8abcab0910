import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, Column, DateTime
from sqlmodel import Field, SQLModel


class TicketTimingAnalytics(SQLModel, table=True):
    """Derived SLA durations in milliseconds, one row per ticket."""

    __tablename__ = "ticket_timing_analytics"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    ticket_id: uuid.UUID = Field(
        foreign_key="care_log_tickets.id", unique=True, index=True, nullable=False
    )
    time_to_first_response_ms: Optional[int] = Field(
        default=None, sa_column=Column(BigInteger, nullable=True)
    )
    time_to_resolve_ms: Optional[int] = Field(
        default=None, sa_column=Column(BigInteger, nullable=True)
    )
    time_open_total_ms: Optional[int] = Field(
        default=None, sa_column=Column(BigInteger, nullable=True)
    )

    updated_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
