"""Availability window and time-slot data models."""

from datetime import date, time
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from mentorbook.utils import format_hhmm, parse_hhmm

REASON_BOOKED = "already booked"
REASON_PAST = "past"


class DayOfWeek(str, Enum):
    """Weekday names as the API sends them."""

    SUNDAY = "SUNDAY"
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        return _BY_PYTHON_WEEKDAY[value.weekday()]


# date.weekday(): Monday == 0
_BY_PYTHON_WEEKDAY = [
    DayOfWeek.MONDAY,
    DayOfWeek.TUESDAY,
    DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY,
    DayOfWeek.FRIDAY,
    DayOfWeek.SATURDAY,
    DayOfWeek.SUNDAY,
]


class ApiModel(BaseModel):
    """Base model that reads and writes the API's camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _coerce_time(value: Any) -> Any:
    if isinstance(value, str):
        return parse_hhmm(value)
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    return value


class AvailabilityWindow(ApiModel):
    """One recurring weekly interval during which a mentor takes lessons."""

    id: Optional[int] = None
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    active: bool = True

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _minute_resolution(cls, value: Any) -> Any:
        return _coerce_time(value)

    @model_validator(mode="after")
    def _start_before_end(self) -> "AvailabilityWindow":
        if self.start_time >= self.end_time:
            raise ValueError(
                f"start_time {format_hhmm(self.start_time)} must be before "
                f"end_time {format_hhmm(self.end_time)}"
            )
        return self

    def matches(self, value: date) -> bool:
        """True if this window is active and recurs on the weekday of ``value``."""
        return self.active and self.day_of_week == DayOfWeek.from_date(value)


class MentorAvailability(ApiModel):
    """Availability listing for one mentor."""

    mentor_id: int
    mentor_nickname: Optional[str] = None
    availability: list[AvailabilityWindow] = Field(default_factory=list)


class CandidateSlot(ApiModel):
    """One potential lesson start-time on a specific date."""

    time: str
    available: bool
    reason: Optional[str] = None

    @field_validator("time", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any) -> Any:
        if isinstance(value, str):
            return format_hhmm(parse_hhmm(value))
        return value

    @property
    def start(self) -> time:
        return parse_hhmm(self.time)


class AvailableSlotsResponse(ApiModel):
    """Slot listing for one tutorial on one date, as served by the API."""

    tutorial_id: Optional[int] = None
    date: date
    day_of_week: Optional[DayOfWeek] = None
    duration: int
    slots: list[CandidateSlot] = Field(default_factory=list)
