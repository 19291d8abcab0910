import logging
import re
from email.utils import parseaddr
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.modules.v1.tickets.exceptions import TicketNotFoundError, TicketValidationError
from carelog.api.modules.v1.tickets.models.ticket_model import Ticket
from carelog.api.modules.v1.tickets.schemas.email_reply_schema import InboundEmailReply
from carelog.api.modules.v1.tickets.service.ticket_lifecycle_service import TicketLifecycleService
from carelog.api.modules.v1.tickets.service.ticket_repository import TicketRepository
from carelog.api.modules.v1.users.models.users_model import Profile
from carelog.api.modules.v1.users.schemas.actor_schema import Actor

logger = logging.getLogger("app")

_TICKET_ADDRESS_RE = re.compile(r"ticket-([a-f0-9-]+)@", re.IGNORECASE)
_TICKET_NUMBER_RE = re.compile(r"\[(TKT-\d{8}-\d{6})\]", re.IGNORECASE)

EMAIL_REPLY_EVENT_COMMENT = "Reply via email"


def extract_ticket_reference(
    subject: Optional[str],
    reply_to: Optional[str],
    in_reply_to: Optional[str],
    recipient: Optional[str],
) -> Optional[str]:
    """
    Find the ticket an inbound e-mail belongs to.

    Checked in order: ``ticket-<id>@`` recipient, ``[TKT-...]`` in the
    subject, then ``ticket-<id>@`` in Reply-To and In-Reply-To.

    Returns:
        A ticket id or ticket number, or None.
    """
    if recipient:
        match = _TICKET_ADDRESS_RE.search(recipient)
        if match:
            return match.group(1)

    if subject:
        match = _TICKET_NUMBER_RE.search(subject)
        if match:
            return match.group(1).upper()

    for header in (reply_to, in_reply_to):
        if header:
            match = _TICKET_ADDRESS_RE.search(header)
            if match:
                return match.group(1)

    return None


def strip_quoted_reply(body: Optional[str]) -> str:
    """Drop the quoted original message and forwarded header lines from a reply."""
    text = body or ""
    text = re.sub(r"On .+ wrote:.*$", "", text, flags=re.DOTALL)
    text = re.sub(r"-----Original Message-----.*$", "", text, flags=re.DOTALL)
    text = re.sub(r"^(From|Sent|To|Subject):.*$", "", text, flags=re.MULTILINE)
    return text.strip()


class EmailReplyService:
    """Turns inbound e-mail replies into public ticket comments."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = TicketRepository(db)

    async def _find_ticket(self, reference: str) -> Optional[Ticket]:
        try:
            ticket = await self.repository.get_ticket(UUID(reference))
        except ValueError:
            ticket = None
        if ticket is None:
            ticket = await self.repository.get_ticket_by_number(reference)
        return ticket

    async def process_reply(self, payload: InboundEmailReply) -> Dict[str, str]:
        reference = extract_ticket_reference(
            payload.subject, payload.reply_to, payload.in_reply_to, payload.recipient
        )
        if not reference:
            logger.warning(f"Could not match e-mail reply from {payload.sender} to a ticket")
            raise TicketValidationError(
                "Could not determine which ticket this reply is for", error="TICKET_REFERENCE_MISSING"
            )

        ticket = await self._find_ticket(reference)
        if ticket is None:
            raise TicketNotFoundError(reference)

        _, sender_address = parseaddr(payload.sender)
        sender_address = (sender_address or payload.sender).strip().lower()

        result = await self.db.execute(
            select(Profile).where(func.lower(Profile.email) == sender_address)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise TicketValidationError(
                "User not found. Please create an account first.", error="UNKNOWN_SENDER"
            )

        comment = await TicketLifecycleService(self.db).add_comment(
            ticket.id,
            strip_quoted_reply(payload.body_plain),
            is_internal=False,
            actor=Actor.from_profile(profile),
            event_comment=EMAIL_REPLY_EVENT_COMMENT,
        )

        logger.info(f"E-mail reply from {sender_address} added to ticket {ticket.ticket_number}")
        return {
            "ticket_id": str(ticket.id),
            "ticket_number": ticket.ticket_number,
            "comment_id": str(comment.id),
        }
