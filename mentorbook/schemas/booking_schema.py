"""Ticket, lesson and booking data models."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator

from mentorbook.config import settings
from mentorbook.schemas.availability_schema import ApiModel
from mentorbook.utils import format_hhmm, parse_hhmm


class LessonStatus(str, Enum):
    """Lifecycle status of a lesson."""

    REQUESTED = "REQUESTED"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# Lessons that hold their slot and keep the ticket busy.
OUTSTANDING_STATUSES = frozenset({LessonStatus.REQUESTED, LessonStatus.CONFIRMED})


class Tutorial(ApiModel):
    """Tutorial metadata needed for scheduling."""

    id: int
    mentor_id: int
    title: str = ""
    duration: int = Field(gt=0, description="Lesson length in minutes")


class Ticket(ApiModel):
    """A mentee's prepaid bundle of lesson credits for one tutorial."""

    id: int
    tutorial_id: int
    tutorial_title: Optional[str] = None
    mentor_nickname: Optional[str] = None
    total_count: int
    remaining_count: int
    expired: bool = False


class Lesson(ApiModel):
    """A booked (or requested) lesson."""

    lesson_id: int = Field(validation_alias=AliasChoices("lessonId", "lesson_id", "id"))
    ticket_id: int
    tutorial_id: Optional[int] = None
    tutorial_title: Optional[str] = None
    status: LessonStatus
    scheduled_at: Optional[datetime] = None
    request_message: Optional[str] = None

    @property
    def is_outstanding(self) -> bool:
        return self.status in OUTSTANDING_STATUSES


class LessonBookingRequest(ApiModel):
    """Body of a lesson booking request."""

    lesson_date: date
    lesson_time: str
    request_message: Optional[str] = Field(
        default=None, max_length=settings.scheduling.max_message_length
    )

    @field_validator("lesson_time", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any) -> Any:
        if isinstance(value, str):
            return format_hhmm(parse_hhmm(value))
        return value

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BookingResult(ApiModel):
    """Outcome of a booking submission."""

    success: bool
    message: str = ""
    lesson: Optional[Lesson] = None
