"""
Lesson and ticket endpoints.

Wraps ticket listing, lesson listing, lesson booking and the mentor's
confirm/reject actions. Booking state itself lives behind the API.
"""

import logging
from datetime import date, time
from typing import Optional

from mentorbook.schemas.booking_schema import (
    OUTSTANDING_STATUSES,
    Lesson,
    LessonBookingRequest,
    LessonStatus,
    Ticket,
)
from mentorbook.services.client import ApiClient, ApiRequestError, parse_model

logger = logging.getLogger(__name__)


def _item_list(data: object, key: str) -> list:
    if isinstance(data, dict):
        data = data.get(key)
    if data is None:
        return []
    if not isinstance(data, list):
        raise ApiRequestError(f"Expected a list of {key}, got {type(data).__name__}.")
    return data


def _lesson_list(data: object) -> list[Lesson]:
    return [parse_model(Lesson, item, "lesson") for item in _item_list(data, "lessons")]


class LessonService:
    """Ticket and lesson operations for the signed-in user."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_my_tickets(self) -> list[Ticket]:
        data = await self._client.get("/api/tickets/my")
        return [parse_model(Ticket, item, "ticket") for item in _item_list(data, "tickets")]

    async def get_my_lessons(self, status: Optional[LessonStatus] = None) -> list[Lesson]:
        """Lessons booked by the signed-in mentee."""
        params = {"status": status.value} if status else None
        return _lesson_list(await self._client.get("/api/lessons/my", params=params))

    async def get_lesson_requests(self, status: Optional[LessonStatus] = None) -> list[Lesson]:
        """Lessons requested from the signed-in mentor."""
        params = {"status": status.value} if status else None
        return _lesson_list(await self._client.get("/api/lessons/requests", params=params))

    async def booked_start_times(self, mentor_id: int, on_date: date) -> set[time]:
        """Start times on ``on_date`` held by a requested or confirmed lesson.

        The lesson-requests endpoint only lists lessons of the signed-in
        mentor and filters by nothing but status, so the client must carry
        the credentials of ``mentor_id`` itself. The date filter is applied
        here.
        """
        data = await self._client.get("/api/lessons/requests")
        taken = {
            lesson.scheduled_at.time().replace(second=0, microsecond=0)
            for lesson in _lesson_list(data)
            if lesson.status in OUTSTANDING_STATUSES
            and lesson.scheduled_at is not None
            and lesson.scheduled_at.date() == on_date
        }
        logger.debug("Mentor %s has %d booked slots on %s", mentor_id, len(taken), on_date)
        return taken

    async def create_lesson_booking(
        self, ticket_id: int, request: LessonBookingRequest
    ) -> Lesson:
        """Book a lesson against a ticket. The API decrements the ticket on success."""
        data = await self._client.post(
            f"/api/tickets/{ticket_id}/lessons", json=request.to_payload()
        )
        if not data:
            raise ApiRequestError("Booking was accepted but no lesson was returned.")
        lesson = parse_model(Lesson, data, "lesson")
        logger.info(
            "Lesson booked: %s on ticket %s for %s %s",
            lesson.lesson_id, ticket_id, request.lesson_date, request.lesson_time,
        )
        return lesson

    async def confirm_lesson(self, lesson_id: int) -> Lesson:
        data = await self._client.put(f"/api/lessons/{lesson_id}/confirm")
        logger.info("Lesson confirmed: %s", lesson_id)
        return parse_model(Lesson, data, "lesson")

    async def reject_lesson(self, lesson_id: int, reason: str) -> Lesson:
        """Reject a requested lesson. A non-blank reason is required."""
        if not reason or not reason.strip():
            raise ValueError("A rejection reason is required.")
        data = await self._client.put(
            f"/api/lessons/{lesson_id}/reject", json={"rejectReason": reason.strip()}
        )
        logger.info("Lesson rejected: %s", lesson_id)
        return parse_model(Lesson, data, "lesson")
