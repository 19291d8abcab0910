from carelog.api.modules.v1.tickets.schemas.comment_schema import (
    AttachmentCreate,
    AttachmentResponse,
    CommentCreate,
    CommentResponse,
)
from carelog.api.modules.v1.tickets.schemas.ticket_schema import (
    AssignRequest,
    SatisfactionRequest,
    StatusChangeRequest,
    TicketCreate,
    TicketResponse,
    TicketUpdate,
)

__all__ = [
    "TicketCreate",
    "TicketUpdate",
    "TicketResponse",
    "StatusChangeRequest",
    "AssignRequest",
    "SatisfactionRequest",
    "CommentCreate",
    "CommentResponse",
    "AttachmentCreate",
    "AttachmentResponse",
]
