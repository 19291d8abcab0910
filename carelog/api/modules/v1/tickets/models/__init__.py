"""
Ticket models package.
"""

from carelog.api.modules.v1.tickets.models.ticket_attachment_model import TicketAttachment
from carelog.api.modules.v1.tickets.models.ticket_comment_model import TicketComment
from carelog.api.modules.v1.tickets.models.ticket_event_model import TicketEvent, TicketEventType
from carelog.api.modules.v1.tickets.models.ticket_model import (
    Ticket,
    TicketPriority,
    TicketStatus,
)
from carelog.api.modules.v1.tickets.models.ticket_timing_model import TicketTimingAnalytics

__all__ = [
    "Ticket",
    "TicketStatus",
    "TicketPriority",
    "TicketEvent",
    "TicketEventType",
    "TicketComment",
    "TicketAttachment",
    "TicketTimingAnalytics",
]
