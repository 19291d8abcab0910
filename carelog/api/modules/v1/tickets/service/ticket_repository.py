import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.modules.v1.tickets.models.ticket_comment_model import TicketComment
from carelog.api.modules.v1.tickets.models.ticket_event_model import TicketEvent, TicketEventType
from carelog.api.modules.v1.tickets.models.ticket_model import Ticket, TicketStatus
from carelog.api.modules.v1.tickets.models.ticket_timing_model import TicketTimingAnalytics
from carelog.api.modules.v1.users.models.users_model import Profile

logger = logging.getLogger("app")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _elapsed_ms(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    if start is None or end is None:
        return None
    return int((as_utc(end) - as_utc(start)).total_seconds() * 1000)


class TicketRepository:
    """
    Record-store access for tickets and their history.

    Methods only stage or read data; committing is left to the caller so a
    status write and its audit event land in one transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_ticket(self, ticket_id: UUID) -> Optional[Ticket]:
        result = await self.db.execute(
            select(Ticket)
            .where(Ticket.id == ticket_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_ticket_by_number(self, ticket_number: str) -> Optional[Ticket]:
        result = await self.db.execute(
            select(Ticket).where(Ticket.ticket_number == ticket_number.upper())
        )
        return result.scalar_one_or_none()

    async def get_profile(self, profile_id: Optional[UUID]) -> Optional[Profile]:
        if profile_id is None:
            return None
        result = await self.db.execute(select(Profile).where(Profile.id == profile_id))
        return result.scalar_one_or_none()

    async def get_profiles(self, profile_ids) -> Dict[UUID, Profile]:
        ids = {pid for pid in profile_ids if pid is not None}
        if not ids:
            return {}
        result = await self.db.execute(select(Profile).where(Profile.id.in_(ids)))
        return {p.id: p for p in result.scalars().all()}

    async def list_platform_staff(self) -> List[Profile]:
        result = await self.db.execute(
            select(Profile).where(Profile.is_platform_admin.is_(True))
        )
        return list(result.scalars().all())

    async def next_ticket_number(self, now: Optional[datetime] = None) -> str:
        """Return ``TKT-YYYYMMDD-NNNNNN`` for the given creation day."""
        now = now or datetime.now(timezone.utc)
        prefix = f"TKT-{now.strftime('%Y%m%d')}-"
        result = await self.db.execute(
            select(func.max(Ticket.ticket_number)).where(Ticket.ticket_number.like(f"{prefix}%"))
        )
        last = result.scalar_one_or_none()
        sequence = int(last[len(prefix):]) + 1 if last else 1
        return f"{prefix}{sequence:06d}"

    async def update_status(
        self,
        ticket_id: UUID,
        observed_status: TicketStatus,
        new_status: TicketStatus,
        patch: Dict[str, Any],
        now: datetime,
    ) -> bool:
        """
        Conditionally write a new status.

        The row is only updated while it still holds ``observed_status``.

        Returns:
            True when the row was updated, False when another writer got there first.
        """
        stmt = (
            update(Ticket)
            .where(Ticket.id == ticket_id, Ticket.status == observed_status)
            .values(status=new_status, updated_at=now, **patch)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    def append_event(
        self,
        ticket_id: UUID,
        event_type: TicketEventType,
        user_id: Optional[UUID] = None,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        comment: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TicketEvent:
        event = TicketEvent(
            ticket_id=ticket_id,
            user_id=user_id,
            event_type=event_type,
            old_value=old_value,
            new_value=new_value,
            comment=comment,
            event_metadata=metadata,
        )
        self.db.add(event)
        return event

    async def upsert_timing(self, ticket: Ticket) -> TicketTimingAnalytics:
        """Recompute the derived SLA durations from the ticket's milestones."""
        result = await self.db.execute(
            select(TicketTimingAnalytics).where(TicketTimingAnalytics.ticket_id == ticket.id)
        )
        timing = result.scalar_one_or_none()
        if timing is None:
            timing = TicketTimingAnalytics(ticket_id=ticket.id)
            self.db.add(timing)

        timing.time_to_first_response_ms = _elapsed_ms(ticket.created_at, ticket.first_response_at)
        timing.time_to_resolve_ms = _elapsed_ms(ticket.created_at, ticket.resolved_at)
        timing.time_open_total_ms = _elapsed_ms(ticket.created_at, ticket.closed_at)
        timing.updated_at = datetime.now(timezone.utc)
        return timing

    async def get_timing(self, ticket_id: UUID) -> Optional[TicketTimingAnalytics]:
        result = await self.db.execute(
            select(TicketTimingAnalytics).where(TicketTimingAnalytics.ticket_id == ticket_id)
        )
        return result.scalar_one_or_none()

    async def list_comments(self, ticket_id: UUID, include_internal: bool = True) -> List[TicketComment]:
        query = select(TicketComment).where(TicketComment.ticket_id == ticket_id)
        if not include_internal:
            query = query.where(TicketComment.is_internal.is_(False))
        result = await self.db.execute(query.order_by(TicketComment.created_at))
        return list(result.scalars().all())

    async def list_public_comments(self, ticket_id: UUID) -> List[TicketComment]:
        return await self.list_comments(ticket_id, include_internal=False)

    async def list_events(
        self, ticket_id: UUID, event_type: Optional[TicketEventType] = None
    ) -> List[TicketEvent]:
        query = select(TicketEvent).where(TicketEvent.ticket_id == ticket_id)
        if event_type is not None:
            query = query.where(TicketEvent.event_type == event_type)
        result = await self.db.execute(query.order_by(TicketEvent.created_at))
        return list(result.scalars().all())

    async def list_status_change_events(self, ticket_id: UUID) -> List[TicketEvent]:
        return await self.list_events(ticket_id, TicketEventType.STATUS_CHANGED)

    async def set_closed_summary(self, ticket_id: UUID, summary: str) -> bool:
        """
        Store the closing summary unless one is already present.

        Returns:
            True when this call wrote the summary.
        """
        stmt = (
            update(Ticket)
            .where(Ticket.id == ticket_id, Ticket.closed_summary.is_(None))
            .values(closed_summary=summary)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount == 1

    async def list_closed_without_summary(self) -> List[Ticket]:
        result = await self.db.execute(
            select(Ticket)
            .where(Ticket.status == TicketStatus.CLOSED, Ticket.closed_summary.is_(None))
            .order_by(Ticket.closed_at.desc())
        )
        return list(result.scalars().all())
