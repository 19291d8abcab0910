import logging
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.modules.v1.tickets.models.ticket_comment_model import TicketComment
from carelog.api.modules.v1.tickets.models.ticket_event_model import TicketEvent
from carelog.api.modules.v1.tickets.models.ticket_model import Ticket, TicketStatus
from carelog.api.modules.v1.tickets.service.summary_client import SummaryClient
from carelog.api.modules.v1.tickets.service.ticket_repository import TicketRepository
from carelog.api.modules.v1.users.models.users_model import Profile

logger = logging.getLogger("app")

SUMMARY_PERSONA = (
    "You are an IT support specialist writing the closing summary of a support ticket. "
    "Write 2 to 4 sentences in a professional tone. "
    "State the problem that was reported, the action that resolved it, and confirm that "
    "the issue is resolved. "
    "Be specific and avoid vague phrases such as 'the issue was addressed' or "
    "'the team worked on it'."
)


def _author_name(author: Optional[Profile]) -> str:
    # Only names go to the provider, never e-mail addresses.
    if author is None:
        return "User"
    parts = [author.first_name, author.last_name]
    return " ".join(p for p in parts if p) or "User"


def build_summary_prompt(
    ticket: Ticket,
    comments: Sequence[TicketComment],
    events: Sequence[TicketEvent],
    authors: Optional[Dict[UUID, Profile]] = None,
) -> str:
    """
    Build the text sent to the summary provider.

    Internal notes are dropped here regardless of what the caller passes in.
    """
    authors = authors or {}
    lines: List[str] = [
        f"Ticket Title: {ticket.title}",
        f"Description: {ticket.description}",
    ]

    public_comments = [c for c in comments if not c.is_internal]
    if public_comments:
        lines.append("")
        lines.append("Comments:")
        for index, comment in enumerate(public_comments, start=1):
            author = authors.get(comment.user_id)
            name = _author_name(author)
            lines.append(f"{index}. {name}: {comment.comment}")

    if events:
        lines.append("")
        lines.append("Status History:")
        for event in events:
            lines.append(f"- {event.old_value or 'N/A'} → {event.new_value or 'N/A'}")

    return "\n".join(lines)


class ClosingSummaryService:
    """Generates and stores the closing summary of closed tickets."""

    def __init__(self, db: AsyncSession, client: Optional[SummaryClient] = None):
        self.db = db
        self.repository = TicketRepository(db)
        self.client = client or SummaryClient()

    async def generate_closing_summary(self, ticket_id: UUID) -> Optional[str]:
        """
        Generate the summary for a closed ticket.

        Safe to call repeatedly: an existing summary is returned without
        contacting the provider, and the write only fills an empty column.

        Returns:
            The stored summary, or None when the ticket is missing, not
            closed, or the provider produced nothing.
        """
        try:
            ticket = await self.repository.get_ticket(ticket_id)
            if ticket is None:
                logger.warning(f"Closing summary skipped: ticket {ticket_id} not found")
                return None

            if ticket.status != TicketStatus.CLOSED:
                logger.info(
                    f"Closing summary skipped: ticket {ticket_id} is {ticket.status.value}"
                )
                return None

            if ticket.closed_summary:
                return ticket.closed_summary

            comments = await self.repository.list_public_comments(ticket.id)
            events = await self.repository.list_status_change_events(ticket.id)
            authors = await self.repository.get_profiles(c.user_id for c in comments)
            prompt = build_summary_prompt(ticket, comments, events, authors)

            summary = await self.client.summarize(SUMMARY_PERSONA, prompt)
            if not summary:
                logger.warning(f"No closing summary produced for ticket {ticket_id}")
                return None

            written = await self.repository.set_closed_summary(ticket.id, summary)
            if not written:
                # Another run stored a summary first; keep it.
                ticket = await self.repository.get_ticket(ticket_id)
                return ticket.closed_summary if ticket else summary

            logger.info(f"Closing summary stored for ticket {ticket_id}")
            return summary

        except Exception as e:
            await self.db.rollback()
            logger.error(
                f"Closing summary generation failed for ticket {ticket_id}: {str(e)}",
                exc_info=True,
            )
            return None

    async def backfill_missing_summaries(self) -> Dict:
        """
        Generate summaries for every closed ticket that lacks one, newest first.

        Returns:
            dict: ``{"total", "successful", "failed", "errors"}``
        """
        tickets = await self.repository.list_closed_without_summary()
        results = {"total": len(tickets), "successful": 0, "failed": 0, "errors": []}

        for ticket in tickets:
            ticket_id, ticket_number = ticket.id, ticket.ticket_number
            summary = await self.generate_closing_summary(ticket_id)
            if summary:
                results["successful"] += 1
            else:
                results["failed"] += 1
                results["errors"].append(f"{ticket_number}: summary generation failed")

        logger.info(
            f"Summary backfill finished: {results['successful']}/{results['total']} succeeded"
        )
        return results
