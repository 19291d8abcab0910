import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.core.config import settings
from carelog.api.core.dependencies.send_mail import render_email, send_email, ticket_reply_address
from carelog.api.modules.v1.notifications.models.notification_model import NotificationType
from carelog.api.modules.v1.notifications.service.notification_service import NotificationService
from carelog.api.modules.v1.tickets.models.ticket_model import Ticket
from carelog.api.modules.v1.tickets.service.ticket_repository import TicketRepository, as_utc
from carelog.api.modules.v1.users.models.users_model import Profile
from carelog.api.modules.v1.users.schemas.actor_schema import Actor

logger = logging.getLogger("app")


def notification_recipients(ticket: Ticket, actor_id: Optional[UUID]) -> List[UUID]:
    """Submitter and assignee, deduplicated, without the acting user."""
    recipients: List[UUID] = []
    for user_id in (ticket.submitted_by, ticket.assigned_to):
        if user_id is None or user_id == actor_id or user_id in recipients:
            continue
        recipients.append(user_id)
    return recipients


def format_duration(start: datetime, end: datetime) -> str:
    """Format an elapsed time as ``"{h}h {m}m"``, or ``"{m}m"`` under an hour."""
    total_minutes = max(int((as_utc(end) - as_utc(start)).total_seconds() // 60), 0)
    hours, minutes = divmod(total_minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def ticket_url(ticket: Ticket) -> str:
    return f"{settings.APP_URL}/tickets/{ticket.id}"


class TicketNotifier:
    """
    In-app notification and e-mail fan-out for ticket activity.

    Every method is best effort: failures are logged against the ticket and
    never raised, so they cannot undo a committed ticket change.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = TicketRepository(db)

    async def _deliver(
        self,
        ticket: Ticket,
        recipient: Profile,
        notification_type: NotificationType,
        title: str,
        message: str,
        actor: Optional[Actor],
        template_name: Optional[str] = None,
        subject: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        await NotificationService.create_notification(
            self.db,
            user_id=recipient.id,
            type=notification_type,
            title=title,
            message=message,
            ticket_id=ticket.id,
            related_user_id=actor.id if actor else None,
            metadata=metadata,
        )

        if not template_name:
            return

        await self._email(ticket, recipient, template_name, subject or title, context or {})

    async def _email(
        self,
        ticket: Ticket,
        recipient: Profile,
        template_name: str,
        subject: str,
        context: Dict[str, Any],
    ) -> None:
        try:
            html = render_email(
                template_name,
                {
                    "recipient_name": recipient.full_name,
                    "ticket_number": ticket.ticket_number,
                    "title": ticket.title,
                    "ticket_url": ticket_url(ticket),
                    **context,
                },
            )
        except Exception as e:
            logger.error(
                f"Failed to render {template_name} for ticket {ticket.id}: {str(e)}",
                exc_info=True,
            )
            return

        result = await send_email(
            to=recipient.email,
            subject=subject,
            html=html,
            reply_to=ticket_reply_address(ticket.id),
        )
        if not result.success:
            logger.warning(
                f"Email to {recipient.email} for ticket {ticket.id} not delivered: {result.error}"
            )

    async def _profiles(self, user_ids: Iterable[UUID]) -> List[Profile]:
        user_ids = list(user_ids)
        profiles = await self.repository.get_profiles(user_ids)
        return [profiles[uid] for uid in user_ids if uid in profiles]

    async def status_changed(
        self,
        ticket: Ticket,
        old_status: str,
        new_status: str,
        actor: Actor,
        comment: Optional[str] = None,
    ) -> None:
        recipients = await self._profiles(notification_recipients(ticket, actor.id))
        for recipient in recipients:
            await self._deliver(
                ticket,
                recipient,
                NotificationType.TICKET_STATUS_CHANGED,
                title=f"Ticket {ticket.ticket_number} is now {new_status}",
                message=f"{actor.display_name} changed the status from {old_status} to {new_status}",
                actor=actor,
                template_name="ticket_status_changed.html",
                subject=f"[{ticket.ticket_number}] Status changed to {new_status}",
                context={
                    "actor_name": actor.display_name,
                    "old_status": old_status,
                    "new_status": new_status,
                    "comment": comment,
                },
                metadata={"old_status": old_status, "new_status": new_status},
            )

    async def resolved(self, ticket: Ticket, actor: Actor, comment: Optional[str] = None) -> None:
        """Send the resolution e-mail to the submitter, with the time to resolve."""
        submitter = await self.repository.get_profile(ticket.submitted_by)
        if submitter is None or ticket.resolved_at is None:
            return

        await self._email(
            ticket,
            submitter,
            "ticket_resolved.html",
            f"[{ticket.ticket_number}] Your ticket has been resolved",
            {
                "actor_name": actor.display_name,
                "resolution_time": format_duration(ticket.created_at, ticket.resolved_at),
                "comment": comment,
            },
        )

    async def assigned(self, ticket: Ticket, assignee: Profile, actor: Actor) -> None:
        if assignee.id == actor.id:
            return

        await self._deliver(
            ticket,
            assignee,
            NotificationType.TICKET_ASSIGNED,
            title=f"Ticket {ticket.ticket_number} assigned to you",
            message=f"{actor.display_name} assigned you: {ticket.title}",
            actor=actor,
            template_name="ticket_assigned.html",
            subject=f"[{ticket.ticket_number}] Assigned to you",
            context={
                "actor_name": actor.display_name,
                "priority": ticket.priority.value,
                "status": ticket.status.value,
            },
        )

    async def comment_added(self, ticket: Ticket, body: str, actor: Actor) -> None:
        recipients = await self._profiles(notification_recipients(ticket, actor.id))
        preview = body if len(body) <= 100 else f"{body[:100]}..."
        for recipient in recipients:
            await self._deliver(
                ticket,
                recipient,
                NotificationType.TICKET_COMMENT,
                title=f"New comment on {ticket.ticket_number}",
                message=f"{actor.display_name}: {preview}",
                actor=actor,
                template_name="ticket_comment.html",
                subject=f"[{ticket.ticket_number}] New comment from {actor.display_name}",
                context={"author_name": actor.display_name, "comment": body},
            )

    async def priority_changed(
        self, ticket: Ticket, old_priority: str, new_priority: str, actor: Actor
    ) -> None:
        recipients = await self._profiles(notification_recipients(ticket, actor.id))
        for recipient in recipients:
            await self._deliver(
                ticket,
                recipient,
                NotificationType.TICKET_PRIORITY_CHANGED,
                title=f"Ticket {ticket.ticket_number} priority changed",
                message=f"{actor.display_name} changed the priority from {old_priority} to {new_priority}",
                actor=actor,
                metadata={"old_priority": old_priority, "new_priority": new_priority},
            )

    async def ticket_created(
        self, ticket: Ticket, actor: Actor, organization_name: str, location_name: str
    ) -> None:
        """Tell every platform staff member (except the submitter) about a new ticket."""
        staff = await self.repository.list_platform_staff()
        for recipient in staff:
            if recipient.id == actor.id:
                continue
            await self._deliver(
                ticket,
                recipient,
                NotificationType.TICKET_CREATED,
                title=f"New ticket {ticket.ticket_number}",
                message=f"{actor.display_name} submitted: {ticket.title}",
                actor=actor,
                template_name="ticket_created.html",
                subject=f"[{ticket.ticket_number}] New {ticket.priority.value} priority ticket",
                context={
                    "submitter_name": actor.display_name,
                    "priority": ticket.priority.value,
                    "description": ticket.description,
                    "organization_name": organization_name,
                    "location_name": location_name,
                },
            )
