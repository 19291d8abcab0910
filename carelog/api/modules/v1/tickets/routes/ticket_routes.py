"""
Ticket Routes
Thin HTTP wrappers around the ticket lifecycle.

Lifecycle errors (not found, invalid transition, conflict...) propagate to
the application-level handler, which renders them with their own status code.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.core.dependencies.auth import get_current_actor, require_platform_staff
from carelog.api.db.database import get_db
from carelog.api.modules.v1.tickets.exceptions import TicketValidationError
from carelog.api.modules.v1.tickets.models.ticket_model import TicketStatus
from carelog.api.modules.v1.tickets.schemas.comment_schema import (
    AttachmentCreate,
    AttachmentResponse,
    CommentCreate,
    CommentResponse,
)
from carelog.api.modules.v1.tickets.schemas.ticket_schema import (
    AssignRequest,
    SatisfactionRequest,
    StatusChangeRequest,
    TicketCreate,
    TicketResponse,
    TicketUpdate,
)
from carelog.api.modules.v1.tickets.service.closing_summary_service import ClosingSummaryService
from carelog.api.modules.v1.tickets.service.ticket_lifecycle_service import TicketLifecycleService
from carelog.api.modules.v1.users.schemas.actor_schema import Actor
from carelog.api.utils.response_payloads import error_response, success_response

router = APIRouter(prefix="/tickets", tags=["Tickets"])
logger = logging.getLogger("app")


def _ticket_payload(ticket) -> dict:
    return TicketResponse.model_validate(ticket).model_dump()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Submit a new ticket in the ``open`` state."""
    ticket = await TicketLifecycleService(db).create_ticket(payload, actor)
    return success_response(
        status.HTTP_201_CREATED, "Ticket created successfully", _ticket_payload(ticket)
    )


@router.post("/generate-all-summaries", status_code=status.HTTP_200_OK)
async def generate_all_summaries(
    actor: Actor = Depends(require_platform_staff),
    db: AsyncSession = Depends(get_db),
):
    """Generate closing summaries for every closed ticket that lacks one."""
    logger.info(f"Summary backfill requested by {actor.id}")
    results = await ClosingSummaryService(db).backfill_missing_summaries()
    return success_response(
        status.HTTP_200_OK,
        f"Generated {results['successful']} of {results['total']} summaries",
        results,
    )


@router.put("/{ticket_id}", status_code=status.HTTP_200_OK)
async def update_ticket(
    ticket_id: UUID,
    payload: TicketUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    ticket = await TicketLifecycleService(db).update_details(ticket_id, payload, actor)
    return success_response(status.HTTP_200_OK, "Ticket updated successfully", _ticket_payload(ticket))


@router.post("/{ticket_id}/status", status_code=status.HTTP_200_OK)
async def change_ticket_status(
    ticket_id: UUID,
    payload: StatusChangeRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Move a ticket to a new status.

    Returns 403 for non-staff callers, 422 for unknown statuses, 404 for
    missing tickets and 409 when the edge is not allowed or a concurrent
    change won.
    """
    logger.info(f"Status change to {payload.status!r} on ticket {ticket_id} by {actor.id}")
    ticket = await TicketLifecycleService(db).change_status(
        ticket_id, payload.status, actor, payload.comment
    )
    return success_response(
        status.HTTP_200_OK,
        f"Ticket status updated to {ticket.status.value}",
        _ticket_payload(ticket),
    )


@router.post("/{ticket_id}/assign", status_code=status.HTTP_200_OK)
async def assign_ticket(
    ticket_id: UUID,
    payload: AssignRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    assignee_id = None
    if payload.assigned_to and payload.assigned_to.lower() != "unassigned":
        try:
            assignee_id = UUID(payload.assigned_to)
        except ValueError:
            raise TicketValidationError("assigned_to must be a user id or 'unassigned'")

    ticket = await TicketLifecycleService(db).assign(ticket_id, assignee_id, actor)
    message = "Ticket assigned successfully" if assignee_id else "Ticket unassigned"
    return success_response(status.HTTP_200_OK, message, _ticket_payload(ticket))


@router.get("/{ticket_id}/comments", status_code=status.HTTP_200_OK)
async def list_ticket_comments(
    ticket_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    service = TicketLifecycleService(db)
    comments = await service.list_comments(ticket_id, actor)
    authors = await service.repository.get_profiles(c.user_id for c in comments)

    data = []
    for comment in comments:
        item = CommentResponse.model_validate(comment)
        author = authors.get(comment.user_id)
        item.author_name = author.full_name if author else None
        data.append(item.model_dump())

    return success_response(status.HTTP_200_OK, "Comments retrieved successfully", data)


@router.post("/{ticket_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_ticket_comment(
    ticket_id: UUID,
    payload: CommentCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    comment = await TicketLifecycleService(db).add_comment(
        ticket_id, payload.comment, payload.is_internal, actor
    )
    data = CommentResponse.model_validate(comment)
    data.author_name = actor.display_name
    return success_response(status.HTTP_201_CREATED, "Comment added successfully", data.model_dump())


@router.post("/{ticket_id}/attachments", status_code=status.HTTP_201_CREATED)
async def add_ticket_attachment(
    ticket_id: UUID,
    payload: AttachmentCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    attachment = await TicketLifecycleService(db).add_attachment(ticket_id, payload, actor)
    return success_response(
        status.HTTP_201_CREATED,
        "Attachment recorded successfully",
        AttachmentResponse.model_validate(attachment).model_dump(),
    )


@router.post("/{ticket_id}/acknowledge", status_code=status.HTTP_200_OK)
async def acknowledge_ticket(
    ticket_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    ticket = await TicketLifecycleService(db).acknowledge(ticket_id, actor)
    return success_response(status.HTTP_200_OK, "Ticket acknowledged", _ticket_payload(ticket))


@router.post("/{ticket_id}/satisfaction", status_code=status.HTTP_200_OK)
async def rate_ticket(
    ticket_id: UUID,
    payload: SatisfactionRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    ticket = await TicketLifecycleService(db).rate_satisfaction(
        ticket_id, payload.rating, payload.feedback, actor
    )
    return success_response(status.HTTP_200_OK, "Thank you for your feedback", _ticket_payload(ticket))


@router.post("/{ticket_id}/summary", status_code=status.HTTP_200_OK)
async def generate_ticket_summary(
    ticket_id: UUID,
    actor: Actor = Depends(require_platform_staff),
    db: AsyncSession = Depends(get_db),
):
    """Generate (or return the existing) closing summary of a closed ticket."""
    ticket = await TicketLifecycleService(db).get_ticket(ticket_id, actor)
    if ticket.status != TicketStatus.CLOSED:
        raise TicketValidationError("Summaries can only be generated for closed tickets")

    summary = await ClosingSummaryService(db).generate_closing_summary(ticket_id)
    if not summary:
        return error_response(
            status_code=status.HTTP_502_BAD_GATEWAY,
            message="Failed to generate summary",
            error="SUMMARY_FAILED",
        )

    return success_response(
        status.HTTP_200_OK, "Summary generated", {"ticket_id": str(ticket_id), "summary": summary}
    )
