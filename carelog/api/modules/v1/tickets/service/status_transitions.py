"""
Ticket status state machine.

    open        -> in_progress, cancelled
    in_progress -> resolved, cancelled
    resolved    -> closed, in_progress   (reopen)
    closed      -> (final)
    cancelled   -> (final)
"""

from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping, Union

from carelog.api.modules.v1.tickets.exceptions import InvalidStatusError, InvalidTransitionError
from carelog.api.modules.v1.tickets.models.ticket_model import Ticket, TicketStatus

ALLOWED_TRANSITIONS: Mapping[TicketStatus, FrozenSet[TicketStatus]] = {
    TicketStatus.OPEN: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED}),
    TicketStatus.IN_PROGRESS: frozenset({TicketStatus.RESOLVED, TicketStatus.CANCELLED}),
    TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED, TicketStatus.IN_PROGRESS}),
    TicketStatus.CLOSED: frozenset(),
    TicketStatus.CANCELLED: frozenset(),
}

# Fixed display order for error messages.
_STATUS_ORDER = list(TicketStatus)


def allowed_next_states(current: TicketStatus) -> list[TicketStatus]:
    targets = ALLOWED_TRANSITIONS.get(current, frozenset())
    return [s for s in _STATUS_ORDER if s in targets]


def is_final(status: TicketStatus) -> bool:
    return not ALLOWED_TRANSITIONS.get(status)


def parse_status(value: Union[str, TicketStatus]) -> TicketStatus:
    """Convert a raw value into a TicketStatus, listing valid values on failure."""
    if isinstance(value, TicketStatus):
        return value
    try:
        return TicketStatus(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(s.value for s in _STATUS_ORDER)
        raise InvalidStatusError(f"Invalid status '{value}'. Must be one of: {valid}")


def can_transition(current: TicketStatus, requested: TicketStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


def validate_transition(current: TicketStatus, requested: TicketStatus) -> None:
    """
    Raise InvalidTransitionError unless ``current -> requested`` is an edge.

    The message names the current state and either lists the allowed next
    states or says that the ticket is final.
    """
    if can_transition(current, requested):
        return

    prefix = f"Cannot change status from '{current.value}' to '{requested.value}'"
    allowed = allowed_next_states(current)
    if not allowed:
        raise InvalidTransitionError(f"{prefix}: ticket is final")

    raise InvalidTransitionError(
        f"{prefix}. Allowed next states: {', '.join(s.value for s in allowed)}"
    )


def milestone_patch(ticket: Ticket, requested: TicketStatus, now: datetime) -> Dict[str, Any]:
    """
    Milestone columns stamped by moving ``ticket`` to ``requested`` at ``now``.

    Only unset milestones are returned, so applying the patch never
    overwrites or clears an earlier stamp.
    """
    patch: Dict[str, Any] = {}

    if (
        ticket.status == TicketStatus.OPEN
        and requested == TicketStatus.IN_PROGRESS
        and ticket.first_response_at is None
    ):
        patch["first_response_at"] = now

    if requested == TicketStatus.RESOLVED and ticket.resolved_at is None:
        patch["resolved_at"] = now

    if requested == TicketStatus.CLOSED and ticket.closed_at is None:
        patch["closed_at"] = now

    return patch
