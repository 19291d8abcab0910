"""Domain errors raised by the ticket lifecycle."""

from typing import Optional


class TicketLifecycleError(Exception):
    """
    Base class for errors that abort a ticket operation.

    Attributes:
        status_code: HTTP status used when the error reaches a route.
        error: Machine-readable error code.
        message: Human-readable explanation.
    """

    status_code: int = 400
    error: str = "TICKET_ERROR"

    def __init__(self, message: str, error: Optional[str] = None):
        self.message = message
        if error:
            self.error = error
        super().__init__(message)


class UnauthorizedActionError(TicketLifecycleError):
    status_code = 403
    error = "UNAUTHORIZED"


class TicketNotFoundError(TicketLifecycleError):
    status_code = 404
    error = "TICKET_NOT_FOUND"

    def __init__(self, ticket_id=None, message: Optional[str] = None):
        self.ticket_id = ticket_id
        super().__init__(message or f"Ticket {ticket_id} not found")


class InvalidStatusError(TicketLifecycleError):
    status_code = 422
    error = "INVALID_STATUS"


class InvalidTransitionError(TicketLifecycleError):
    status_code = 409
    error = "INVALID_TRANSITION"


class TransitionConflictError(TicketLifecycleError):
    """The ticket changed between read and write; the caller should reload and retry."""

    status_code = 409
    error = "TRANSITION_CONFLICT"


class TicketValidationError(TicketLifecycleError):
    status_code = 400
    error = "VALIDATION_ERROR"
