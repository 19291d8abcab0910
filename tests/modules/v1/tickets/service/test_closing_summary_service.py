from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from carelog.api.modules.v1.tickets.models import (
    Ticket,
    TicketComment,
    TicketEvent,
    TicketEventType,
    TicketStatus,
)
from carelog.api.modules.v1.tickets.service.closing_summary_service import (
    SUMMARY_PERSONA,
    ClosingSummaryService,
    build_summary_prompt,
)
from carelog.api.modules.v1.tickets.service.ticket_repository import TicketRepository
from carelog.api.modules.v1.users.models.users_model import Profile
from tests.factories import make_ticket


def _fake_client(*results):
    client = MagicMock()
    client.summarize = AsyncMock(side_effect=list(results))
    return client


async def _closed_ticket_with_history(session, seed):
    ticket = await make_ticket(session, seed, status=TicketStatus.CLOSED)
    start = datetime.now(timezone.utc)
    session.add_all(
        [
            TicketComment(
                ticket_id=ticket.id,
                user_id=seed.submitter.id,
                comment="It still jams on the second page.",
                created_at=start,
            ),
            TicketComment(
                ticket_id=ticket.id,
                user_id=seed.staff.id,
                comment="Vendor contract expires soon, do not mention",
                is_internal=True,
                created_at=start + timedelta(minutes=1),
            ),
            TicketComment(
                ticket_id=ticket.id,
                user_id=seed.staff.id,
                comment="Replaced the pickup roller.",
                created_at=start + timedelta(minutes=2),
            ),
        ]
    )
    repository = TicketRepository(session)
    for old, new in (("open", "in_progress"), ("in_progress", "resolved"), ("resolved", "closed")):
        repository.append_event(
            ticket.id,
            TicketEventType.STATUS_CHANGED,
            user_id=seed.staff.id,
            old_value=old,
            new_value=new,
        )
    await session.commit()
    return ticket


@pytest.mark.asyncio
async def test_summary_prompt_excludes_internal_notes(test_session, seed):
    ticket = await _closed_ticket_with_history(test_session, seed)
    client = _fake_client("The printer pickup roller was replaced and printing works again.")
    service = ClosingSummaryService(test_session, client=client)

    summary = await service.generate_closing_summary(ticket.id)

    assert summary == "The printer pickup roller was replaced and printing works again."
    persona, prompt = client.summarize.await_args.args
    assert persona == SUMMARY_PERSONA
    assert "Vendor contract" not in prompt
    assert "Ticket Title: Printer jams on every job" in prompt
    assert "1. Jane Doe: It still jams on the second page." in prompt
    assert "2. Tara Tech: Replaced the pickup roller." in prompt
    assert "- open → in_progress" in prompt
    assert "- resolved → closed" in prompt

    stored = await TicketRepository(test_session).get_ticket(ticket.id)
    assert stored.closed_summary == summary


@pytest.mark.asyncio
async def test_summary_generated_once(test_session, seed):
    ticket = await _closed_ticket_with_history(test_session, seed)
    client = _fake_client("First summary", "Second summary")
    service = ClosingSummaryService(test_session, client=client)

    first = await service.generate_closing_summary(ticket.id)
    second = await service.generate_closing_summary(ticket.id)

    assert first == second == "First summary"
    assert client.summarize.await_count == 1


@pytest.mark.asyncio
async def test_existing_summary_is_not_overwritten(test_session, seed):
    ticket = await make_ticket(test_session, seed, status=TicketStatus.CLOSED)
    client = _fake_client("Late summary")
    service = ClosingSummaryService(test_session, client=client)
    real_set = service.repository.set_closed_summary

    async def competitor_wins(ticket_id, summary):
        await TicketRepository(test_session).set_closed_summary(ticket_id, "Early summary")
        return await real_set(ticket_id, summary)

    service.repository.set_closed_summary = competitor_wins

    assert await service.generate_closing_summary(ticket.id) == "Early summary"
    stored = await TicketRepository(test_session).get_ticket(ticket.id)
    assert stored.closed_summary == "Early summary"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [TicketStatus.OPEN, TicketStatus.RESOLVED])
async def test_open_tickets_are_skipped(test_session, seed, status):
    ticket = await make_ticket(test_session, seed, status=status)
    client = _fake_client("unused")

    assert await ClosingSummaryService(test_session, client=client).generate_closing_summary(
        ticket.id
    ) is None
    client.summarize.assert_not_awaited()


@pytest.mark.asyncio
async def test_provider_failure_leaves_summary_empty(test_session, seed):
    ticket = await make_ticket(test_session, seed, status=TicketStatus.CLOSED)
    client = _fake_client(None)

    assert await ClosingSummaryService(test_session, client=client).generate_closing_summary(
        ticket.id
    ) is None
    stored = await TicketRepository(test_session).get_ticket(ticket.id)
    assert stored.closed_summary is None


@pytest.mark.asyncio
async def test_unexpected_errors_are_contained(test_session, seed):
    ticket = await make_ticket(test_session, seed, status=TicketStatus.CLOSED)
    client = _fake_client(RuntimeError("boom"))

    assert await ClosingSummaryService(test_session, client=client).generate_closing_summary(
        ticket.id
    ) is None


@pytest.mark.asyncio
async def test_backfill_counts(test_session, seed):
    done = await make_ticket(test_session, seed, status=TicketStatus.CLOSED)
    done.closed_summary = "Already there"
    await test_session.commit()
    await make_ticket(test_session, seed, status=TicketStatus.CLOSED)
    await make_ticket(test_session, seed, status=TicketStatus.CLOSED)
    await make_ticket(test_session, seed, status=TicketStatus.OPEN)
    client = _fake_client("Generated", None)

    results = await ClosingSummaryService(test_session, client=client).backfill_missing_summaries()

    assert results["total"] == 2
    assert results["successful"] == 1
    assert results["failed"] == 1
    assert len(results["errors"]) == 1
    assert results["errors"][0].endswith("summary generation failed")


def test_build_prompt_without_comments_or_history():
    ticket = Ticket(title="Wi-Fi down", description="No signal in room 2")

    prompt = build_summary_prompt(ticket, [], [])

    assert prompt == "Ticket Title: Wi-Fi down\nDescription: No signal in room 2"


@pytest.mark.asyncio
async def test_unnamed_author_is_sent_as_user_not_email(test_session, seed):
    ticket = await make_ticket(test_session, seed, status=TicketStatus.CLOSED)
    unnamed = Profile(email="private.person@acme.test")
    test_session.add(unnamed)
    await test_session.flush()
    test_session.add(
        TicketComment(ticket_id=ticket.id, user_id=unnamed.id, comment="Still broken")
    )
    await test_session.commit()
    client = _fake_client("The access point was replaced and the signal is back.")

    await ClosingSummaryService(test_session, client=client).generate_closing_summary(ticket.id)

    _, prompt = client.summarize.await_args.args
    assert "1. User: Still broken" in prompt
    assert "private.person@acme.test" not in prompt


def test_build_prompt_uses_placeholder_for_missing_history_values():
    ticket = Ticket(title="Wi-Fi down", description="No signal in room 2")
    event = TicketEvent(
        ticket_id=ticket.id,
        event_type=TicketEventType.STATUS_CHANGED,
        old_value=None,
        new_value="in_progress",
    )

    prompt = build_summary_prompt(ticket, [], [event])

    assert prompt.endswith("Status History:\n- N/A → in_progress")
