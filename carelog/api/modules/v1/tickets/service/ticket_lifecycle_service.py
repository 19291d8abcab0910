import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.modules.v1.hardware.models.hardware_model import Hardware
from carelog.api.modules.v1.organization.models.organization_model import Location, Organization
from carelog.api.modules.v1.tickets.exceptions import (
    TicketLifecycleError,
    TicketNotFoundError,
    TicketValidationError,
    TransitionConflictError,
    UnauthorizedActionError,
)
from carelog.api.modules.v1.tickets.models.ticket_attachment_model import TicketAttachment
from carelog.api.modules.v1.tickets.models.ticket_comment_model import TicketComment
from carelog.api.modules.v1.tickets.models.ticket_event_model import TicketEventType
from carelog.api.modules.v1.tickets.models.ticket_model import Ticket, TicketStatus
from carelog.api.modules.v1.tickets.schemas.comment_schema import AttachmentCreate
from carelog.api.modules.v1.tickets.schemas.ticket_schema import TicketCreate, TicketUpdate
from carelog.api.modules.v1.tickets.service.status_transitions import (
    milestone_patch,
    parse_status,
    validate_transition,
)
from carelog.api.modules.v1.tickets.service.tasks import generate_ticket_summary
from carelog.api.modules.v1.tickets.service.ticket_notifier import TicketNotifier
from carelog.api.modules.v1.tickets.service.ticket_repository import TicketRepository
from carelog.api.modules.v1.users.models.users_model import MembershipRole, OrgMembership
from carelog.api.modules.v1.users.schemas.actor_schema import Actor

logger = logging.getLogger("app")

INTERNAL_NOTE_MARKER = "[Internal Note]"
TICKET_NUMBER_ATTEMPTS = 5


class TicketLifecycleService:
    """
    The single place where tickets change.

    Every operation receives the acting user explicitly. State-machine errors
    abort the operation; notification, e-mail and summary side effects run
    after the commit and are best effort.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = TicketRepository(db)
        self.notifier = TicketNotifier(db)

    async def _load(self, ticket_id: UUID) -> Ticket:
        ticket = await self.repository.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket

    async def _membership(self, org_id: UUID, user_id: UUID) -> Optional[OrgMembership]:
        result = await self.db.execute(
            select(OrgMembership).where(
                OrgMembership.org_id == org_id, OrgMembership.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def _ensure_can_view(self, ticket: Ticket, actor: Actor) -> None:
        if actor.is_platform_staff:
            return
        if await self._membership(ticket.org_id, actor.id) is None:
            raise UnauthorizedActionError("You do not have access to this ticket")

    @staticmethod
    def _ensure_staff(actor: Actor, action: str) -> None:
        if not actor.is_platform_staff:
            raise UnauthorizedActionError(f"Only platform staff can {action}")

    async def _side_effect(self, ticket_id: UUID, label: str, coro) -> None:
        try:
            await coro
        except Exception as e:
            logger.error(f"{label} failed for ticket {ticket_id}: {str(e)}", exc_info=True)

    async def get_ticket(self, ticket_id: UUID, actor: Actor) -> Ticket:
        ticket = await self._load(ticket_id)
        await self._ensure_can_view(ticket, actor)
        return ticket

    async def change_status(
        self,
        ticket_id: UUID,
        requested_status,
        actor: Actor,
        comment: Optional[str] = None,
    ) -> Ticket:
        """
        Move a ticket along the lifecycle graph.

        The status write is conditional on the status observed when the
        ticket was read. If another writer changed it first, the ticket is
        re-read: an edge that is no longer legal raises InvalidTransitionError,
        otherwise TransitionConflictError is raised and the caller may retry.

        Raises:
            UnauthorizedActionError: actor is not platform staff.
            InvalidStatusError: requested value is not a ticket status.
            TicketNotFoundError: ticket does not exist.
            InvalidTransitionError: edge not in the lifecycle graph.
            TransitionConflictError: lost a concurrent write.
        """
        self._ensure_staff(actor, "change ticket status")
        requested = parse_status(requested_status)

        ticket = await self._load(ticket_id)
        observed = ticket.status
        validate_transition(observed, requested)

        now = datetime.now(timezone.utc)
        patch = milestone_patch(ticket, requested, now)

        try:
            updated = await self.repository.update_status(
                ticket.id, observed, requested, patch, now
            )
            if not updated:
                await self.db.rollback()
                current = await self._load(ticket_id)
                logger.warning(
                    f"Status write on ticket {ticket_id} lost a race: expected "
                    f"{observed.value}, found {current.status.value}"
                )
                validate_transition(current.status, requested)
                raise TransitionConflictError(
                    f"Ticket status changed from '{observed.value}' to "
                    f"'{current.status.value}' while the update was in progress. "
                    "Reload the ticket and try again."
                )

            self.repository.append_event(
                ticket.id,
                TicketEventType.STATUS_CHANGED,
                user_id=actor.id,
                old_value=observed.value,
                new_value=requested.value,
                comment=comment,
            )

            ticket = await self._load(ticket_id)
            if patch:
                await self.repository.upsert_timing(ticket)

            await self.db.commit()
        except TicketLifecycleError:
            raise
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Ticket {ticket.id} status {observed.value} -> {requested.value} "
            f"by {actor.display_name} ({actor.id})"
        )

        await self._side_effect(
            ticket.id,
            "Status change notification",
            self.notifier.status_changed(ticket, observed.value, requested.value, actor, comment),
        )

        if requested == TicketStatus.RESOLVED:
            await self._side_effect(
                ticket.id, "Resolution email", self.notifier.resolved(ticket, actor, comment)
            )

        if requested == TicketStatus.CLOSED:
            self._enqueue_summary(ticket.id)

        return ticket

    def _enqueue_summary(self, ticket_id: UUID) -> None:
        try:
            generate_ticket_summary.delay(str(ticket_id))
            logger.info(f"Queued closing summary for ticket {ticket_id}")
        except Exception as e:
            logger.error(
                f"Failed to queue closing summary for ticket {ticket_id}: {str(e)}",
                exc_info=True,
            )

    async def create_ticket(self, data: TicketCreate, actor: Actor) -> Ticket:
        organization = await self.db.get(Organization, data.org_id)
        if organization is None:
            raise TicketValidationError("Organization not found")

        if not actor.is_platform_staff and await self._membership(data.org_id, actor.id) is None:
            raise UnauthorizedActionError("You are not a member of this organization")

        location = await self.db.get(Location, data.location_id)
        if location is None or location.org_id != organization.id:
            raise TicketValidationError("Location does not belong to this organization")

        if data.hardware_id is not None:
            hardware = await self.db.get(Hardware, data.hardware_id)
            if hardware is None or hardware.location_id != location.id:
                raise TicketValidationError("Hardware does not belong to this location")

        org_id, location_id, org_name, location_name = (
            organization.id,
            location.id,
            organization.name,
            location.name,
        )
        now = datetime.now(timezone.utc)

        # Concurrent creates can pick the same number; the unique index rejects
        # the loser, which retries with the next free sequence.
        for attempt in range(1, TICKET_NUMBER_ATTEMPTS + 1):
            ticket_number = await self.repository.next_ticket_number(now)
            ticket = Ticket(
                ticket_number=ticket_number,
                org_id=org_id,
                location_id=location_id,
                hardware_id=data.hardware_id,
                submitted_by=actor.id,
                title=data.title,
                description=data.description,
                priority=data.priority,
                status=TicketStatus.OPEN,
                sop_acknowledged=data.sop_acknowledged,
                sop_acknowledged_at=now if data.sop_acknowledged else None,
                created_at=now,
                updated_at=now,
            )

            try:
                self.db.add(ticket)
                self.repository.append_event(
                    ticket.id,
                    TicketEventType.CREATED,
                    user_id=actor.id,
                    new_value=TicketStatus.OPEN.value,
                )
                await self.repository.upsert_timing(ticket)
                await self.db.commit()
                break
            except IntegrityError:
                await self.db.rollback()
                if attempt == TICKET_NUMBER_ATTEMPTS:
                    raise
                logger.warning(
                    f"Ticket number {ticket_number} already taken, retrying ({attempt})"
                )
            except Exception:
                await self.db.rollback()
                raise

        logger.info(f"Ticket {ticket.ticket_number} ({ticket.id}) created by {actor.id}")

        await self._side_effect(
            ticket.id,
            "New ticket notification",
            self.notifier.ticket_created(ticket, actor, org_name, location_name),
        )
        return ticket

    async def assign(self, ticket_id: UUID, assignee_id: Optional[UUID], actor: Actor) -> Ticket:
        self._ensure_staff(actor, "assign tickets")
        ticket = await self._load(ticket_id)

        assignee = None
        if assignee_id is not None:
            assignee = await self.repository.get_profile(assignee_id)
            if assignee is None or not assignee.is_platform_admin:
                raise TicketValidationError("Tickets can only be assigned to platform staff")

        previous = ticket.assigned_to
        ticket.assigned_to = assignee_id
        ticket.updated_at = datetime.now(timezone.utc)

        self.repository.append_event(
            ticket.id,
            TicketEventType.ASSIGNED,
            user_id=actor.id,
            old_value=str(previous) if previous else None,
            new_value=str(assignee_id) if assignee_id else "Unassigned",
        )
        await self.db.commit()

        logger.info(f"Ticket {ticket.id} assigned to {assignee_id or 'nobody'} by {actor.id}")

        if assignee is not None:
            await self._side_effect(
                ticket.id, "Assignment notification", self.notifier.assigned(ticket, assignee, actor)
            )
        return ticket

    async def add_comment(
        self,
        ticket_id: UUID,
        body: str,
        is_internal: bool,
        actor: Actor,
        event_comment: Optional[str] = None,
    ) -> TicketComment:
        body = (body or "").strip()
        if not body:
            raise TicketValidationError("Comment cannot be empty")

        ticket = await self._load(ticket_id)
        await self._ensure_can_view(ticket, actor)
        if is_internal and not actor.is_platform_staff:
            raise UnauthorizedActionError("Only platform staff can add internal notes")

        comment = TicketComment(
            ticket_id=ticket.id, user_id=actor.id, comment=body, is_internal=is_internal
        )
        self.db.add(comment)
        self.repository.append_event(
            ticket.id,
            TicketEventType.COMMENT_ADDED,
            user_id=actor.id,
            comment=event_comment or (INTERNAL_NOTE_MARKER if is_internal else body[:100]),
            metadata={"is_internal": is_internal},
        )
        ticket.updated_at = datetime.now(timezone.utc)
        await self.db.commit()

        if not is_internal:
            await self._side_effect(
                ticket.id, "Comment notification", self.notifier.comment_added(ticket, body, actor)
            )
        return comment

    async def list_comments(self, ticket_id: UUID, actor: Actor) -> List[TicketComment]:
        ticket = await self._load(ticket_id)
        await self._ensure_can_view(ticket, actor)
        return await self.repository.list_comments(
            ticket.id, include_internal=actor.is_platform_staff
        )

    async def update_details(self, ticket_id: UUID, changes: TicketUpdate, actor: Actor) -> Ticket:
        ticket = await self._load(ticket_id)
        if not actor.is_platform_staff:
            membership = await self._membership(ticket.org_id, actor.id)
            if membership is None or membership.role != MembershipRole.ORG_ADMIN:
                raise UnauthorizedActionError(
                    "Only platform staff or organization admins can edit tickets"
                )

        changed_fields = []
        if changes.title is not None and changes.title != ticket.title:
            ticket.title = changes.title
            changed_fields.append("title")
        if changes.description is not None and changes.description != ticket.description:
            ticket.description = changes.description
            changed_fields.append("description")

        old_priority = ticket.priority
        if changes.priority is not None and changes.priority != ticket.priority:
            ticket.priority = changes.priority
            changed_fields.append("priority")

        if not changed_fields:
            return ticket

        ticket.updated_at = datetime.now(timezone.utc)
        self.repository.append_event(
            ticket.id,
            TicketEventType.UPDATED,
            user_id=actor.id,
            new_value=", ".join(changed_fields),
            metadata={"fields": changed_fields},
        )
        if "priority" in changed_fields:
            self.repository.append_event(
                ticket.id,
                TicketEventType.PRIORITY_CHANGED,
                user_id=actor.id,
                old_value=old_priority.value,
                new_value=ticket.priority.value,
            )
        await self.db.commit()

        if "priority" in changed_fields:
            await self._side_effect(
                ticket.id,
                "Priority change notification",
                self.notifier.priority_changed(
                    ticket, old_priority.value, ticket.priority.value, actor
                ),
            )
        return ticket

    async def acknowledge(self, ticket_id: UUID, actor: Actor) -> Ticket:
        ticket = await self._load(ticket_id)
        if not actor.is_platform_staff and ticket.assigned_to != actor.id:
            raise UnauthorizedActionError("Only platform staff or the assignee can acknowledge")
        if ticket.acknowledged_at is not None:
            raise TicketValidationError("Ticket has already been acknowledged")

        now = datetime.now(timezone.utc)
        ticket.acknowledged_at = now
        ticket.updated_at = now
        self.repository.append_event(
            ticket.id, TicketEventType.UPDATED, user_id=actor.id, new_value="acknowledged"
        )
        await self.db.commit()
        return ticket

    async def rate_satisfaction(
        self, ticket_id: UUID, rating: int, feedback: Optional[str], actor: Actor
    ) -> Ticket:
        ticket = await self._load(ticket_id)
        if ticket.submitted_by != actor.id:
            raise UnauthorizedActionError("Only the submitter can rate a ticket")
        if ticket.status != TicketStatus.CLOSED:
            raise TicketValidationError("Only closed tickets can be rated")
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise TicketValidationError("Rating must be between 1 and 5")
        if ticket.customer_satisfaction_rating is not None:
            raise TicketValidationError("Ticket has already been rated")

        ticket.customer_satisfaction_rating = rating
        ticket.customer_satisfaction_feedback = (feedback or "").strip() or None
        ticket.updated_at = datetime.now(timezone.utc)
        self.repository.append_event(
            ticket.id,
            TicketEventType.UPDATED,
            user_id=actor.id,
            new_value=f"satisfaction_rated_{rating}",
        )
        await self.db.commit()
        return ticket

    async def add_attachment(
        self, ticket_id: UUID, data: AttachmentCreate, actor: Actor
    ) -> TicketAttachment:
        ticket = await self._load(ticket_id)
        await self._ensure_can_view(ticket, actor)

        attachment = TicketAttachment(
            ticket_id=ticket.id,
            uploaded_by=actor.id,
            file_name=data.file_name,
            file_url=data.file_url,
            file_type=data.file_type,
            file_size=data.file_size,
        )
        self.db.add(attachment)
        self.repository.append_event(
            ticket.id,
            TicketEventType.ATTACHMENT_ADDED,
            user_id=actor.id,
            new_value=data.file_name,
            metadata={"file_type": data.file_type, "file_size": data.file_size},
        )
        await self.db.commit()
        return attachment
