from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from carelog.api.modules.v1.tickets.models.ticket_model import TicketPriority, TicketStatus


class TicketCreate(BaseModel):
    """Schema for submitting a new ticket."""

    org_id: UUID
    location_id: UUID
    hardware_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: TicketPriority = TicketPriority.NORMAL
    sop_acknowledged: bool = False

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v


class TicketUpdate(BaseModel):
    """Editable ticket details. Status, assignment and milestones have their own operations."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    priority: Optional[TicketPriority] = None


class StatusChangeRequest(BaseModel):
    # Kept as a plain string so unknown values surface as INVALID_STATUS.
    status: str
    comment: Optional[str] = None


class AssignRequest(BaseModel):
    """``assigned_to`` is a profile id, or ``"unassigned"`` / null to clear."""

    assigned_to: Optional[str] = None


class SatisfactionRequest(BaseModel):
    rating: int
    feedback: Optional[str] = None


class TicketResponse(BaseModel):
    id: UUID
    ticket_number: str
    org_id: UUID
    location_id: UUID
    hardware_id: Optional[UUID] = None
    submitted_by: UUID
    assigned_to: Optional[UUID] = None
    title: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    sop_acknowledged: bool
    sop_acknowledged_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    customer_satisfaction_rating: Optional[int] = None
    customer_satisfaction_feedback: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    closed_summary: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
