"""
Booking precondition gate.

A mentee may open the booking dialog for a tutorial only while holding
a ticket for it with credits left, not expired, and with no requested
or confirmed lesson still outstanding on that ticket. Otherwise the
caller sends them to the purchase flow instead.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from mentorbook.schemas.booking_schema import Lesson, Ticket
from mentorbook.services.client import ApiError

logger = logging.getLogger(__name__)


class AccessDecision(str, Enum):
    BOOK = "book"
    PURCHASE = "purchase"


@dataclass(frozen=True)
class BookingAccess:
    """Where the caller should send the mentee next."""

    decision: AccessDecision
    ticket: Optional[Ticket] = None
    reason: str = ""

    @property
    def can_book(self) -> bool:
        return self.decision == AccessDecision.BOOK


class TicketLessonSource(Protocol):
    async def get_my_tickets(self) -> list[Ticket]:
        ...

    async def get_my_lessons(self) -> list[Lesson]:
        ...


def ticket_can_book(ticket: Ticket, lessons: Iterable[Lesson]) -> bool:
    """True if ``ticket`` has credits left and nothing outstanding against it."""
    if ticket.remaining_count <= 0 or ticket.expired:
        return False
    return not any(
        lesson.ticket_id == ticket.id and lesson.is_outstanding for lesson in lessons
    )


def find_bookable_ticket(
    tickets: Iterable[Ticket], lessons: Iterable[Lesson], tutorial_id: int
) -> Optional[Ticket]:
    """First ticket for ``tutorial_id`` that passes ``ticket_can_book``."""
    lessons = list(lessons)
    for ticket in tickets:
        if ticket.tutorial_id == tutorial_id and ticket_can_book(ticket, lessons):
            return ticket
    return None


async def check_booking_access(source: TicketLessonSource, tutorial_id: int) -> BookingAccess:
    """
    Decide whether the mentee can book ``tutorial_id`` right now.

    A failure to read tickets or lessons routes to the purchase flow,
    so the booking dialog is never opened on unverified credit.
    """
    try:
        tickets = await source.get_my_tickets()
        lessons = await source.get_my_lessons()
    except ApiError as exc:
        logger.warning("Ticket check failed for tutorial %s: %s", tutorial_id, exc)
        return BookingAccess(AccessDecision.PURCHASE, reason="Could not verify your tickets.")

    ticket = find_bookable_ticket(tickets, lessons, tutorial_id)
    if ticket is None:
        if any(t.tutorial_id == tutorial_id and t.remaining_count > 0 and not t.expired
               for t in tickets):
            reason = "A lesson is already pending on your ticket."
        else:
            reason = "No usable ticket for this tutorial."
        logger.debug("Booking access for tutorial %s denied: %s", tutorial_id, reason)
        return BookingAccess(AccessDecision.PURCHASE, reason=reason)

    return BookingAccess(AccessDecision.BOOK, ticket=ticket)
