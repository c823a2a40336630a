"""Calendar occupancy models."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from mentorbook.schemas.availability_schema import DayOfWeek


class OccupancyTier(str, Enum):
    """Coarse bucket summarizing how booked a calendar day is."""

    SMOOTH = "smooth"
    SLIGHT = "slight"
    BUSY = "busy"
    FULL = "full"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class DayOccupancy:
    """Aggregate slot signal for one date."""

    date: date
    available_count: int
    total_count: int
    tier: OccupancyTier

    @property
    def ratio(self) -> float:
        return self.available_count / self.total_count if self.total_count else 0.0


@dataclass
class MonthOccupancy:
    """
    Sparse occupancy map for one visible calendar month.

    Only dates that were queried and returned at least one slot are
    present in ``days``. Everything else renders as ``UNAVAILABLE``.
    """

    month: date
    today: date
    available_weekdays: frozenset[DayOfWeek] = frozenset()
    days: dict[date, DayOccupancy] = field(default_factory=dict)

    def is_candidate(self, value: date) -> bool:
        """True for dates that are not past and fall on an available weekday."""
        return value >= self.today and DayOfWeek.from_date(value) in self.available_weekdays

    def tier_for(self, value: date) -> Optional[OccupancyTier]:
        """Tier to render for ``value``.

        Returns None for a candidate date without a signal (its query
        failed or returned no slots).
        """
        entry = self.days.get(value)
        if entry is not None:
            return entry.tier
        if self.is_candidate(value):
            return None
        return OccupancyTier.UNAVAILABLE

    def is_selectable(self, value: date) -> bool:
        """Whether a calendar click on ``value`` may open day-level slot selection.

        A day without a signal stays selectable so the user can retry it
        from the slot grid.
        """
        if not self.is_candidate(value):
            return False
        entry = self.days.get(value)
        return not (entry and entry.tier == OccupancyTier.FULL)

    def dates_by_tier(self) -> dict[OccupancyTier, list[date]]:
        grouped: dict[OccupancyTier, list[date]] = {}
        for day in sorted(self.days):
            grouped.setdefault(self.days[day].tier, []).append(day)
        return grouped
