"""Generate closing summaries for closed tickets that are still missing one.

Runs in-process (no Celery worker needed):

    python -m scripts.generate_missing_summaries
"""

import asyncio

from carelog.api.db.database import AsyncSessionLocal
from carelog.api.modules.v1.tickets.service.closing_summary_service import ClosingSummaryService


async def generate_missing_summaries():
    print("=" * 80)
    print("Generating missing closing summaries")
    print("=" * 80)

    async with AsyncSessionLocal() as db:
        service = ClosingSummaryService(db)
        tickets = await service.repository.list_closed_without_summary()

        if not tickets:
            print("No closed tickets without a summary.")
            return

        print(f"Found {len(tickets)} ticket(s)\n")
        successful = 0

        for ticket in tickets:
            ticket_id, ticket_number, title = ticket.id, ticket.ticket_number, ticket.title
            summary = await service.generate_closing_summary(ticket_id)
            if summary:
                successful += 1
                print(f"[OK]     {ticket_number} {title}")
                print(f"         {summary}\n")
            else:
                print(f"[FAILED] {ticket_number} {title}\n")

        print("=" * 80)
        print(f"Done: {successful} succeeded, {len(tickets) - successful} failed")


if __name__ == "__main__":
    asyncio.run(generate_missing_summaries())
