"""
Month-level occupancy aggregation for the booking calendar.

For a visible month the aggregator queries the slot grid of every
bookable day (available weekday, not in the past) in fixed-size
concurrent batches, and buckets each day into an occupancy tier:

    available == 0      -> full
    ratio >= 0.5        -> smooth
    0.3 <= ratio < 0.5  -> slight
    ratio < 0.3         -> busy

A failing day is logged and left out of the map. It never aborts the
rest of the month.
"""

import asyncio
import logging
from datetime import date
from typing import Callable, Optional

from mentorbook.config import settings
from mentorbook.schemas.availability_schema import DayOfWeek
from mentorbook.schemas.booking_schema import Tutorial
from mentorbook.schemas.occupancy_schema import DayOccupancy, MonthOccupancy, OccupancyTier
from mentorbook.services.availability import AvailabilityRegistry, available_weekdays
from mentorbook.services.client import ApiError
from mentorbook.services.slots import SlotGenerationError, SlotSource
from mentorbook.utils import Clock, month_days, month_start, system_clock

logger = logging.getLogger(__name__)


def classify_day(
    available_count: int,
    total_count: int,
    smooth_threshold: Optional[float] = None,
    slight_threshold: Optional[float] = None,
) -> OccupancyTier:
    """Bucket a day's availability ratio into a tier."""
    if total_count <= 0:
        return OccupancyTier.UNAVAILABLE
    if available_count == 0:
        return OccupancyTier.FULL
    smooth = settings.occupancy.smooth_threshold if smooth_threshold is None else smooth_threshold
    slight = settings.occupancy.slight_threshold if slight_threshold is None else slight_threshold
    ratio = available_count / total_count
    if ratio >= smooth:
        return OccupancyTier.SMOOTH
    if ratio >= slight:
        return OccupancyTier.SLIGHT
    return OccupancyTier.BUSY


class MonthOccupancyAggregator:
    """Computes a sparse date -> DayOccupancy map for one month."""

    def __init__(
        self,
        slots: SlotSource,
        registry: AvailabilityRegistry,
        *,
        batch_size: Optional[int] = None,
        clock: Clock = system_clock,
    ) -> None:
        self._slots = slots
        self._registry = registry
        self._batch_size = (
            batch_size if batch_size is not None else settings.scheduling.occupancy_batch_size
        )
        self._clock = clock
        if self._batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self._batch_size}")

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def target_days(
        self, visible_month: date, weekdays: frozenset[DayOfWeek], today: date
    ) -> list[date]:
        """Dates of the month worth querying: available weekday and not before today."""
        return [
            day
            for day in month_days(visible_month)
            if day >= today and DayOfWeek.from_date(day) in weekdays
        ]

    async def compute_month_occupancy(
        self, tutorial: Tutorial, visible_month: date
    ) -> MonthOccupancy:
        today = self._clock().date()
        occupancy = MonthOccupancy(month=month_start(visible_month), today=today)

        try:
            windows = await self._registry.list_active_windows(tutorial.mentor_id)
        except ApiError as exc:
            logger.warning(
                "Availability unavailable for mentor %s, no occupancy for %s: %s",
                tutorial.mentor_id, occupancy.month.strftime("%Y-%m"), exc,
            )
            return occupancy

        occupancy.available_weekdays = available_weekdays(windows)
        targets = self.target_days(visible_month, occupancy.available_weekdays, today)

        for i in range(0, len(targets), self._batch_size):
            batch = targets[i:i + self._batch_size]
            results = await asyncio.gather(*(self._query_day(tutorial, day) for day in batch))
            for entry in results:
                if entry is not None:
                    occupancy.days[entry.date] = entry

        logger.debug(
            "Occupancy for tutorial %s in %s: %d of %d days with signal",
            tutorial.id, occupancy.month.strftime("%Y-%m"), len(occupancy.days), len(targets),
        )
        return occupancy

    async def _query_day(self, tutorial: Tutorial, day: date) -> Optional[DayOccupancy]:
        try:
            slots = await self._slots.generate_slots(tutorial, day)
        except (SlotGenerationError, ApiError) as exc:
            logger.warning("Skipping %s for tutorial %s: %s", day, tutorial.id, exc)
            return None

        total = len(slots)
        if total == 0:
            return None
        available = sum(1 for s in slots if s.available)
        return DayOccupancy(
            date=day,
            available_count=available,
            total_count=total,
            tier=classify_day(available, total),
        )


class OccupancyCalendar:
    """
    Occupancy state of one calendar widget.

    Only the result of the most recent ``show_month`` call is applied;
    an aggregation that finishes after the user has moved on is dropped.
    """

    def __init__(
        self,
        aggregator: MonthOccupancyAggregator,
        tutorial: Tutorial,
        on_date_select: Optional[Callable[[date], None]] = None,
        clock: Clock = system_clock,
    ) -> None:
        self._aggregator = aggregator
        self._tutorial = tutorial
        self._on_date_select = on_date_select
        self.visible_month = month_start(clock().date())
        self.occupancy: Optional[MonthOccupancy] = None
        self.is_loading = False
        self._request_seq = 0

    async def show_month(self, month: date) -> Optional[MonthOccupancy]:
        """Switch to ``month`` and aggregate it.

        Returns:
            The applied occupancy, or None if a newer request superseded it.
        """
        month = month_start(month)
        self.visible_month = month
        self._request_seq += 1
        seq = self._request_seq
        self.is_loading = True
        try:
            result = await self._aggregator.compute_month_occupancy(self._tutorial, month)
        finally:
            if seq == self._request_seq:
                self.is_loading = False

        if seq != self._request_seq:
            logger.debug("Discarding stale occupancy for %s", month.strftime("%Y-%m"))
            return None
        self.occupancy = result
        return result

    def select_day(self, value: date) -> bool:
        """Handle a calendar click. Returns True if the day was forwarded."""
        if self.occupancy is None or not self.occupancy.is_selectable(value):
            return False
        if self._on_date_select is not None:
            self._on_date_select(value)
        return True
