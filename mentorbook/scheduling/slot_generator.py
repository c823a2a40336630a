"""
Slot generation from recurring weekly availability.

Turns a mentor's weekly windows into the exhaustive, ordered list of
lesson start-times for one calendar date, flagging each as available
or not:

    windows for the weekday
      -> partition by lesson duration (no partial trailing slot)
      -> mark "already booked" on exact start-time collisions
      -> mark "past" at or before now + lead time

Usage:
    generator = SlotGenerator(registry, lesson_service)
    slots = await generator.generate_slots(tutorial, date(2026, 11, 2))
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from typing import Optional, Protocol

from mentorbook.config import settings
from mentorbook.schemas.availability_schema import (
    REASON_BOOKED,
    REASON_PAST,
    AvailabilityWindow,
    CandidateSlot,
)
from mentorbook.schemas.booking_schema import Tutorial
from mentorbook.services.availability import AvailabilityRegistry
from mentorbook.services.client import ApiError
from mentorbook.services.slots import SlotGenerationError
from mentorbook.utils import Clock, format_hhmm, from_minutes, system_clock, to_minutes

logger = logging.getLogger(__name__)


class BookedTimesSource(Protocol):
    async def booked_start_times(self, mentor_id: int, on_date: date) -> set[time]:
        ...


def partition_window(window: AvailabilityWindow, duration_minutes: int) -> list[time]:
    """Start-times that fit entirely inside ``window``, stepping by the lesson duration."""
    if duration_minutes <= 0:
        raise ValueError(f"Lesson duration must be positive, got {duration_minutes}")
    start = to_minutes(window.start_time)
    end = to_minutes(window.end_time)
    starts = []
    while start + duration_minutes <= end:
        starts.append(from_minutes(start))
        start += duration_minutes
    return starts


def build_candidate_slots(
    windows: Iterable[AvailabilityWindow],
    on_date: date,
    duration_minutes: int,
    booked_times: Iterable[time],
    now: datetime,
    lead_time: timedelta = timedelta(0),
) -> list[CandidateSlot]:
    """
    Compute the candidate slots for ``on_date``.

    Only active windows recurring on the date's weekday contribute.
    Several windows on one weekday are merged; a start-time produced by
    overlapping windows appears once. ``now`` is naive local wall-clock
    time, the same frame as the window times.

    Returns:
        Slots in ascending start-time order. Empty when no window matches.
    """
    starts: set[time] = set()
    for window in windows:
        if window.matches(on_date):
            starts.update(partition_window(window, duration_minutes))

    booked = {t.replace(second=0, microsecond=0) for t in booked_times}
    cutoff = now + lead_time

    slots = []
    for start in sorted(starts):
        if datetime.combine(on_date, start) <= cutoff:
            reason: Optional[str] = REASON_PAST
        elif start in booked:
            reason = REASON_BOOKED
        else:
            reason = None
        slots.append(
            CandidateSlot(time=format_hhmm(start), available=reason is None, reason=reason)
        )
    return slots


class SlotGenerator:
    """
    Produces CandidateSlots for a tutorial on a date.

    A generator instance snapshots each mentor's windows on first use and
    reuses them for its lifetime (one page load). Each ``generate_slots``
    call then issues exactly one request, for the mentor's bookings.
    """

    def __init__(
        self,
        registry: AvailabilityRegistry,
        bookings: BookedTimesSource,
        *,
        lead_time: Optional[timedelta] = None,
        clock: Clock = system_clock,
    ) -> None:
        self._registry = registry
        self._bookings = bookings
        self._lead_time = (
            lead_time
            if lead_time is not None
            else timedelta(minutes=settings.scheduling.lead_time_minutes)
        )
        self._clock = clock
        self._windows: dict[int, list[AvailabilityWindow]] = {}
        self._lock = asyncio.Lock()

    @property
    def lead_time(self) -> timedelta:
        return self._lead_time

    async def windows_for(self, mentor_id: int) -> list[AvailabilityWindow]:
        async with self._lock:
            if mentor_id not in self._windows:
                self._windows[mentor_id] = await self._registry.list_active_windows(mentor_id)
            return self._windows[mentor_id]

    def invalidate(self, mentor_id: Optional[int] = None) -> None:
        """Drop the window snapshot so the next call re-reads availability."""
        if mentor_id is None:
            self._windows.clear()
        else:
            self._windows.pop(mentor_id, None)

    async def generate_slots(self, tutorial: Tutorial, on_date: date) -> list[CandidateSlot]:
        """
        Generate the slot grid for ``tutorial`` on ``on_date``.

        Raises:
            SlotGenerationError: If availability or existing bookings
                could not be read. The result is then unknown.
        """
        try:
            windows = await self.windows_for(tutorial.mentor_id)
        except ApiError as exc:
            raise SlotGenerationError(
                f"Could not read availability for mentor {tutorial.mentor_id}: {exc}"
            ) from exc

        matching = [w for w in windows if w.matches(on_date)]
        if not matching:
            logger.debug("No availability for mentor %s on %s", tutorial.mentor_id, on_date)
            return []

        try:
            booked = await self._bookings.booked_start_times(tutorial.mentor_id, on_date)
        except ApiError as exc:
            raise SlotGenerationError(
                f"Could not read bookings for mentor {tutorial.mentor_id} on {on_date}: {exc}"
            ) from exc

        slots = build_candidate_slots(
            matching, on_date, tutorial.duration, booked, self._clock(), self._lead_time
        )
        logger.debug(
            "Generated %d slots (%d available) for tutorial %s on %s",
            len(slots), sum(1 for s in slots if s.available), tutorial.id, on_date,
        )
        return slots
