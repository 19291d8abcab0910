from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from carelog.api.modules.v1.notifications.models.notification_model import (
    Notification,
    NotificationType,
)
from carelog.api.modules.v1.tickets.exceptions import (
    InvalidStatusError,
    InvalidTransitionError,
    TicketNotFoundError,
    TransitionConflictError,
    UnauthorizedActionError,
)
from carelog.api.modules.v1.tickets.models import (
    TicketEvent,
    TicketEventType,
    TicketStatus,
    TicketTimingAnalytics,
)
from carelog.api.modules.v1.tickets.service.ticket_lifecycle_service import TicketLifecycleService
from carelog.api.modules.v1.tickets.service.ticket_repository import TicketRepository, as_utc
from tests.factories import make_ticket


async def _events(session, ticket_id, event_type=None):
    return await TicketRepository(session).list_events(ticket_id, event_type)


async def _notifications(session, user_id):
    result = await session.execute(select(Notification).where(Notification.user_id == user_id))
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_open_to_in_progress_stamps_first_response(test_session, seed):
    ticket = await make_ticket(test_session, seed)
    service = TicketLifecycleService(test_session)

    before = datetime.now(timezone.utc)
    updated = await service.change_status(ticket.id, "in_progress", seed.staff_actor)
    after = datetime.now(timezone.utc)

    assert updated.status == TicketStatus.IN_PROGRESS
    assert before <= as_utc(updated.first_response_at) <= after
    assert updated.resolved_at is None

    events = await _events(test_session, ticket.id, TicketEventType.STATUS_CHANGED)
    assert len(events) == 1
    assert events[0].old_value == "open"
    assert events[0].new_value == "in_progress"
    assert events[0].user_id == seed.staff.id


@pytest.mark.asyncio
async def test_closed_ticket_cannot_be_reopened(test_session, seed):
    ticket = await make_ticket(test_session, seed, status=TicketStatus.CLOSED)
    service = TicketLifecycleService(test_session)

    with pytest.raises(InvalidTransitionError) as exc:
        await service.change_status(ticket.id, "in_progress", seed.staff_actor)

    assert "ticket is final" in exc.value.message
    stored = await TicketRepository(test_session).get_ticket(ticket.id)
    assert stored.status == TicketStatus.CLOSED
    assert await _events(test_session, ticket.id) == []


@pytest.mark.asyncio
async def test_closing_enqueues_summary_job(test_session, seed, mock_summary_task):
    ticket = await make_ticket(test_session, seed, status=TicketStatus.RESOLVED)
    service = TicketLifecycleService(test_session)

    updated = await service.change_status(ticket.id, TicketStatus.CLOSED, seed.staff_actor)

    assert updated.status == TicketStatus.CLOSED
    assert updated.closed_at is not None
    assert updated.closed_summary is None
    mock_summary_task.delay.assert_called_once_with(str(ticket.id))


@pytest.mark.asyncio
async def test_enqueue_failure_does_not_fail_transition(test_session, seed, mock_summary_task):
    ticket = await make_ticket(test_session, seed, status=TicketStatus.RESOLVED)
    mock_summary_task.delay.side_effect = ConnectionError("broker down")

    updated = await TicketLifecycleService(test_session).change_status(
        ticket.id, "closed", seed.staff_actor
    )

    assert updated.status == TicketStatus.CLOSED


@pytest.mark.asyncio
async def test_non_staff_cannot_change_status(test_session, seed):
    ticket = await make_ticket(test_session, seed)

    with pytest.raises(UnauthorizedActionError):
        await TicketLifecycleService(test_session).change_status(
            ticket.id, "in_progress", seed.submitter_actor
        )


@pytest.mark.asyncio
async def test_authorization_checked_before_status_value(test_session, seed):
    ticket = await make_ticket(test_session, seed)

    with pytest.raises(UnauthorizedActionError):
        await TicketLifecycleService(test_session).change_status(
            ticket.id, "bogus", seed.submitter_actor
        )


@pytest.mark.asyncio
async def test_unknown_status_rejected(test_session, seed):
    ticket = await make_ticket(test_session, seed)

    with pytest.raises(InvalidStatusError):
        await TicketLifecycleService(test_session).change_status(
            ticket.id, "waiting", seed.staff_actor
        )


@pytest.mark.asyncio
async def test_missing_ticket(test_session, seed):
    from uuid import uuid4

    with pytest.raises(TicketNotFoundError):
        await TicketLifecycleService(test_session).change_status(
            uuid4(), "in_progress", seed.staff_actor
        )


@pytest.mark.asyncio
async def test_milestones_survive_reopen(test_session, seed):
    ticket = await make_ticket(test_session, seed)
    service = TicketLifecycleService(test_session)

    first = await service.change_status(ticket.id, "in_progress", seed.staff_actor)
    first_response_at = first.first_response_at

    resolved = await service.change_status(ticket.id, "resolved", seed.staff_actor)
    resolved_at = resolved.resolved_at

    reopened = await service.change_status(ticket.id, "in_progress", seed.staff_actor)
    assert reopened.first_response_at == first_response_at
    assert reopened.resolved_at == resolved_at

    again = await service.change_status(ticket.id, "resolved", seed.staff_actor)
    assert again.resolved_at == resolved_at

    closed = await service.change_status(ticket.id, "closed", seed.staff_actor)
    assert closed.first_response_at == first_response_at
    assert closed.resolved_at == resolved_at
    assert closed.closed_at is not None

    events = await _events(test_session, ticket.id, TicketEventType.STATUS_CHANGED)
    assert [(e.old_value, e.new_value) for e in events] == [
        ("open", "in_progress"),
        ("in_progress", "resolved"),
        ("resolved", "in_progress"),
        ("in_progress", "resolved"),
        ("resolved", "closed"),
    ]


@pytest.mark.asyncio
async def test_timing_analytics_follow_milestones(test_session, seed):
    ticket = await make_ticket(test_session, seed)
    service = TicketLifecycleService(test_session)

    await service.change_status(ticket.id, "in_progress", seed.staff_actor)
    await service.change_status(ticket.id, "resolved", seed.staff_actor)

    result = await test_session.execute(
        select(TicketTimingAnalytics).where(TicketTimingAnalytics.ticket_id == ticket.id)
    )
    timing = result.scalar_one()
    assert timing.time_to_first_response_ms is not None
    assert timing.time_to_resolve_ms >= timing.time_to_first_response_ms
    assert timing.time_open_total_ms is None


@pytest.mark.asyncio
async def test_concurrent_transition_made_illegal_is_rejected(test_session, seed):
    """A cancel that lands first leaves the slower in_progress request with an illegal edge."""
    ticket = await make_ticket(test_session, seed)
    slow = TicketLifecycleService(test_session)
    fast = TicketLifecycleService(test_session)

    original_update = slow.repository.update_status

    async def update_after_competitor(*args, **kwargs):
        await fast.change_status(ticket.id, "cancelled", seed.other_staff_actor)
        return await original_update(*args, **kwargs)

    slow.repository.update_status = update_after_competitor

    with pytest.raises(InvalidTransitionError) as exc:
        await slow.change_status(ticket.id, "in_progress", seed.staff_actor)

    assert "'cancelled'" in exc.value.message
    stored = await TicketRepository(test_session).get_ticket(ticket.id)
    assert stored.status == TicketStatus.CANCELLED
    assert stored.first_response_at is None

    events = await _events(test_session, ticket.id, TicketEventType.STATUS_CHANGED)
    assert [(e.old_value, e.new_value) for e in events] == [("open", "cancelled")]


@pytest.mark.asyncio
async def test_concurrent_transition_still_legal_reports_conflict(test_session, seed):
    """When the competing write leaves the requested edge legal, the loser gets a conflict."""
    ticket = await make_ticket(test_session, seed)
    slow = TicketLifecycleService(test_session)
    fast = TicketLifecycleService(test_session)

    original_update = slow.repository.update_status

    async def update_after_competitor(*args, **kwargs):
        await fast.change_status(ticket.id, "in_progress", seed.other_staff_actor)
        return await original_update(*args, **kwargs)

    slow.repository.update_status = update_after_competitor

    with pytest.raises(TransitionConflictError):
        await slow.change_status(ticket.id, "cancelled", seed.staff_actor)

    stored = await TicketRepository(test_session).get_ticket(ticket.id)
    assert stored.status == TicketStatus.IN_PROGRESS

    events = await _events(test_session, ticket.id, TicketEventType.STATUS_CHANGED)
    assert [(e.old_value, e.new_value) for e in events] == [("open", "in_progress")]


@pytest.mark.asyncio
async def test_status_change_notifies_submitter_and_assignee(test_session, seed, mock_send_email):
    ticket = await make_ticket(test_session, seed, assigned_to=seed.other_staff.id)

    await TicketLifecycleService(test_session).change_status(
        ticket.id, "in_progress", seed.staff_actor, comment="On my way"
    )

    submitter_notes = await _notifications(test_session, seed.submitter.id)
    assignee_notes = await _notifications(test_session, seed.other_staff.id)
    actor_notes = await _notifications(test_session, seed.staff.id)

    assert [n.type for n in submitter_notes] == [NotificationType.TICKET_STATUS_CHANGED]
    assert [n.type for n in assignee_notes] == [NotificationType.TICKET_STATUS_CHANGED]
    assert actor_notes == []

    recipients = sorted(call.kwargs["to"] for call in mock_send_email.await_args_list)
    assert recipients == sorted([seed.submitter.email, seed.other_staff.email])


@pytest.mark.asyncio
async def test_actor_is_never_notified_about_own_change(test_session, seed, mock_send_email):
    ticket = await make_ticket(test_session, seed, assigned_to=seed.staff.id)

    await TicketLifecycleService(test_session).change_status(
        ticket.id, "in_progress", seed.staff_actor
    )

    assert await _notifications(test_session, seed.staff.id) == []
    assert [call.kwargs["to"] for call in mock_send_email.await_args_list] == [
        seed.submitter.email
    ]


@pytest.mark.asyncio
async def test_resolution_email_sent_to_submitter(test_session, seed, mock_send_email):
    ticket = await make_ticket(test_session, seed, status=TicketStatus.IN_PROGRESS)

    await TicketLifecycleService(test_session).change_status(
        ticket.id, "resolved", seed.staff_actor
    )

    subjects = [call.kwargs["subject"] for call in mock_send_email.await_args_list]
    assert any("resolved" in s.lower() and "status changed" not in s.lower() for s in subjects)
    resolution = next(
        call for call in mock_send_email.await_args_list if "has been resolved" in call.kwargs["subject"]
    )
    assert resolution.kwargs["to"] == seed.submitter.email
    assert "Resolution time" in resolution.kwargs["html"]


@pytest.mark.asyncio
async def test_email_failure_does_not_fail_transition(test_session, seed, mock_send_email):
    ticket = await make_ticket(test_session, seed)
    mock_send_email.side_effect = RuntimeError("smtp exploded")

    updated = await TicketLifecycleService(test_session).change_status(
        ticket.id, "in_progress", seed.staff_actor
    )

    assert updated.status == TicketStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_status_change_event_keeps_comment(test_session, seed):
    ticket = await make_ticket(test_session, seed)

    await TicketLifecycleService(test_session).change_status(
        ticket.id, "cancelled", seed.staff_actor, comment="Duplicate of TKT-1"
    )

    result = await test_session.execute(select(TicketEvent).where(TicketEvent.ticket_id == ticket.id))
    event = result.scalar_one()
    assert event.comment == "Duplicate of TKT-1"
