from mentorbook.scheduling.booking_selector import (
    BookingSelector,
    BookingState,
    BookingStateMachine,
    BookingTrigger,
)
from mentorbook.scheduling.occupancy import MonthOccupancyAggregator, OccupancyCalendar
from mentorbook.scheduling.slot_generator import SlotGenerator, build_candidate_slots
from mentorbook.scheduling.ticket_gate import check_booking_access, find_bookable_ticket

__all__ = [
    "BookingSelector",
    "BookingState",
    "BookingStateMachine",
    "BookingTrigger",
    "MonthOccupancyAggregator",
    "OccupancyCalendar",
    "SlotGenerator",
    "build_candidate_slots",
    "check_booking_access",
    "find_bookable_ticket",
]
