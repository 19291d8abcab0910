import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class TicketPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Ticket(SQLModel, table=True):
    """
    A support ticket raised against an organization's location and,
    optionally, a specific hardware asset.

    Status only moves along the lifecycle graph; milestone timestamps
    (``first_response_at``, ``resolved_at``, ``closed_at``) are stamped once
    and never cleared.
    """

    __tablename__ = "care_log_tickets"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    ticket_number: str = Field(max_length=32, nullable=False, unique=True, index=True)

    org_id: uuid.UUID = Field(foreign_key="organizations.id", index=True, nullable=False)
    location_id: uuid.UUID = Field(foreign_key="locations.id", index=True, nullable=False)
    hardware_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="hardware.id", index=True, nullable=True
    )
    submitted_by: uuid.UUID = Field(foreign_key="profiles.id", index=True, nullable=False)
    assigned_to: Optional[uuid.UUID] = Field(
        default=None, foreign_key="profiles.id", index=True, nullable=True
    )

    title: str = Field(max_length=255, nullable=False)
    description: str = Field(sa_column=Column(Text, nullable=False))
    priority: TicketPriority = Field(default=TicketPriority.NORMAL, nullable=False)
    status: TicketStatus = Field(default=TicketStatus.OPEN, nullable=False, index=True)

    sop_acknowledged: bool = Field(default=False, nullable=False)
    sop_acknowledged_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    acknowledged_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    customer_satisfaction_rating: Optional[int] = Field(default=None, nullable=True)
    customer_satisfaction_feedback: Optional[str] = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
    first_response_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    resolved_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    closed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    closed_summary: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
