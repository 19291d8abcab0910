from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import pytest

from carelog.api.modules.v1.tickets.models import TicketStatus
from scripts import generate_missing_summaries as script
from tests.factories import make_ticket


@pytest.mark.asyncio
async def test_script_reports_each_ticket(test_session, seed, capsys):
    ok = await make_ticket(test_session, seed, status=TicketStatus.CLOSED, title="Router down")
    failed = await make_ticket(test_session, seed, status=TicketStatus.CLOSED, title="Fax broken")

    @asynccontextmanager
    async def session_factory():
        yield test_session

    async def fake_summarize(persona, prompt):
        return "Router rebooted and firmware updated." if "Router down" in prompt else None

    with patch.object(script, "AsyncSessionLocal", session_factory), patch(
        "carelog.api.modules.v1.tickets.service.closing_summary_service.SummaryClient"
    ) as client_cls:
        client_cls.return_value.summarize = AsyncMock(side_effect=fake_summarize)
        await script.generate_missing_summaries()

    output = capsys.readouterr().out
    assert f"[OK]     {ok.ticket_number} Router down" in output
    assert f"[FAILED] {failed.ticket_number} Fax broken" in output
    assert "Done: 1 succeeded, 1 failed" in output


@pytest.mark.asyncio
async def test_script_with_nothing_to_do(test_session, capsys):
    @asynccontextmanager
    async def session_factory():
        yield test_session

    with patch.object(script, "AsyncSessionLocal", session_factory):
        await script.generate_missing_summaries()

    assert "No closed tickets without a summary." in capsys.readouterr().out
