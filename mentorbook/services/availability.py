"""
Mentor availability registry.

Read view over a mentor's recurring weekly windows, plus the thin
mentor-side wrappers that add and remove them.
"""

import logging
from collections.abc import Iterable
from datetime import time
from typing import Optional

from mentorbook.config import settings
from mentorbook.schemas.availability_schema import (
    AvailabilityWindow,
    DayOfWeek,
    MentorAvailability,
)
from mentorbook.services.client import ApiClient, ApiRequestError, parse_model
from mentorbook.utils import format_hhmm

logger = logging.getLogger(__name__)


def available_weekdays(windows: Iterable[AvailabilityWindow]) -> frozenset[DayOfWeek]:
    """Weekdays that carry at least one active window."""
    return frozenset(w.day_of_week for w in windows if w.active)


class AvailabilityRegistry:
    """Lookup of a mentor's active availability windows.

    Every call hits the API, so edits made by the mentor are visible on
    the next read. Callers that need a page-load snapshot keep the
    returned list themselves.
    """

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_availability(self, mentor_id: int) -> MentorAvailability:
        data = await self._client.get(f"/api/mentors/{mentor_id}/availability")
        return parse_model(MentorAvailability, data or {"mentorId": mentor_id}, "availability")

    async def list_active_windows(self, mentor_id: int) -> list[AvailabilityWindow]:
        """Return the mentor's windows with ``active == True``."""
        listing = await self.get_availability(mentor_id)
        windows = [w for w in listing.availability if w.active]
        logger.debug(
            "Mentor %s has %d active windows (%d total)",
            mentor_id, len(windows), len(listing.availability),
        )
        return windows

    async def list_my_windows(self) -> list[AvailabilityWindow]:
        """All windows of the signed-in mentor, active or not."""
        data = await self._client.get("/api/mentors/me/availability")
        if not data:
            return []
        return parse_model(MentorAvailability, data, "availability").availability

    async def add_window(
        self,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        existing: Optional[list[AvailabilityWindow]] = None,
    ) -> AvailabilityWindow:
        """Register a new weekly window for the signed-in mentor.

        With ``single_window_per_day`` enabled a second window on an
        already configured weekday is refused before any request is sent.

        Raises:
            ValueError: If the window is malformed or the weekday is taken.
        """
        window = AvailabilityWindow(
            day_of_week=day_of_week, start_time=start_time, end_time=end_time
        )
        if settings.scheduling.single_window_per_day:
            if existing is None:
                existing = await self.list_my_windows()
            if any(w.day_of_week == day_of_week for w in existing):
                raise ValueError(f"{day_of_week.value} already has an availability window.")

        data = await self._client.post(
            "/api/mentors/me/availability",
            json={
                "dayOfWeek": window.day_of_week.value,
                "startTime": format_hhmm(window.start_time),
                "endTime": format_hhmm(window.end_time),
            },
        )
        if not data:
            raise ApiRequestError("Availability window was not returned by the API.")
        created = parse_model(AvailabilityWindow, data, "availability window")
        logger.info(
            "Availability window added: %s %s-%s",
            created.day_of_week.value,
            format_hhmm(created.start_time),
            format_hhmm(created.end_time),
        )
        return created

    async def delete_window(self, window_id: int) -> None:
        await self._client.delete(f"/api/mentors/me/availability/{window_id}")
        logger.info("Availability window deleted: %s", window_id)
