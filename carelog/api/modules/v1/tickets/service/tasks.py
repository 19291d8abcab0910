"""Celery tasks for closing summaries.

Delivery is at least once (``acks_late``); duplicate runs are harmless
because generation re-checks ``closed_summary`` before calling the provider.
"""

import asyncio
from typing import Dict, Optional
from uuid import UUID

from celery import shared_task
from celery.utils.log import get_task_logger

from carelog.api.db.database import AsyncSessionLocal

logger = get_task_logger(__name__)


async def _generate_summary_async(ticket_id: str) -> Optional[str]:
    from carelog.api.modules.v1.tickets.service.closing_summary_service import (
        ClosingSummaryService,
    )

    async with AsyncSessionLocal() as db:
        service = ClosingSummaryService(db)
        return await service.generate_closing_summary(UUID(ticket_id))


async def _backfill_async() -> Dict:
    from carelog.api.modules.v1.tickets.service.closing_summary_service import (
        ClosingSummaryService,
    )

    async with AsyncSessionLocal() as db:
        service = ClosingSummaryService(db)
        return await service.backfill_missing_summaries()


@shared_task(name="tickets.generate_ticket_summary", acks_late=True)
def generate_ticket_summary(ticket_id: str) -> str:
    """Generate and store the closing summary of a closed ticket."""
    logger.info(f"Generating closing summary for ticket {ticket_id}")
    summary = asyncio.run(_generate_summary_async(ticket_id))
    if summary:
        return f"Summary stored for ticket {ticket_id}"
    return f"No summary stored for ticket {ticket_id}"


@shared_task(name="tickets.backfill_ticket_summaries", acks_late=True)
def backfill_ticket_summaries() -> Dict:
    """Fill in summaries for closed tickets that are still missing one."""
    results = asyncio.run(_backfill_async())
    logger.info(
        f"Backfill complete: {results['successful']} succeeded, {results['failed']} failed "
        f"of {results['total']}"
    )
    return results
