"""
Booking selector: the state machine behind the lesson booking dialog.

    CLOSED -> DATE_UNSELECTED -> SLOTS_LOADING -> SLOTS_READY
           -> SUBMITTING -> SUCCESS | FAILED

Every transition is declared in ``BookingStateMachine.TRANSITIONS``;
anything else raises InvalidTransitionError. ``BookingSelector`` owns
the single live BookingDraft and drives the machine from user actions.

Usage:
    selector = BookingSelector(tutorial, slot_source, lesson_service)
    await selector.open(ticket, initial_date=date(2026, 11, 2))
    selector.select_time("15:00")
    result = await selector.submit()
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, Optional, Protocol
from uuid import uuid4

from mentorbook.config import settings
from mentorbook.logging_context import get_session_logger, set_session_id
from mentorbook.schemas.availability_schema import CandidateSlot
from mentorbook.schemas.booking_schema import (
    BookingResult,
    Lesson,
    LessonBookingRequest,
    Ticket,
    Tutorial,
)
from mentorbook.services.client import ApiError, ApiRequestError
from mentorbook.services.slots import SlotGenerationError, SlotSource
from mentorbook.utils import Clock, format_hhmm, parse_hhmm, system_clock

logger = get_session_logger(__name__)

MSG_SELECT_DATE_AND_TIME = "Please select a date and time."
MSG_PAST_DATE = "Past dates cannot be booked."
MSG_SLOTS_FAILED = "Could not load time slots. Please select the date again to retry."
MSG_SLOT_UNAVAILABLE = "That time is not available."
MSG_NETWORK = "A network error occurred. Please try again."
MSG_BOOKING_FAILED = "The lesson request failed."
MSG_SUBMIT_PENDING = "Your lesson request is still being sent."


class BookingState(str, Enum):
    """All states of the booking dialog."""
    CLOSED = "closed"
    DATE_UNSELECTED = "date_unselected"
    SLOTS_LOADING = "slots_loading"
    SLOTS_READY = "slots_ready"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class BookingTrigger(str, Enum):
    """Events that move the booking dialog between states."""
    OPEN = "open"
    DATE_SELECTED = "date_selected"
    SLOTS_LOADED = "slots_loaded"
    SUBMIT = "submit"
    BOOKING_ACCEPTED = "booking_accepted"
    BOOKING_REJECTED = "booking_rejected"
    ERROR_SHOWN = "error_shown"
    CLOSE = "close"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: BookingState
    to_state: BookingState
    trigger: BookingTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: BookingState
    entered_at: datetime
    trigger: Optional[BookingTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


class BookingPreconditionError(Exception):
    """Raised when the dialog is opened without a usable ticket."""


class BookingStateMachine:
    """Deterministic transition table for the booking dialog."""

    TRANSITIONS: list[Transition] = [
        Transition(BookingState.CLOSED, BookingState.DATE_UNSELECTED, BookingTrigger.OPEN),

        # --- Date and slot loading ---
        Transition(BookingState.DATE_UNSELECTED, BookingState.SLOTS_LOADING,
                   BookingTrigger.DATE_SELECTED),
        Transition(BookingState.SLOTS_LOADING, BookingState.SLOTS_LOADING,
                   BookingTrigger.DATE_SELECTED),
        Transition(BookingState.SLOTS_READY, BookingState.SLOTS_LOADING,
                   BookingTrigger.DATE_SELECTED),
        Transition(BookingState.SLOTS_LOADING, BookingState.SLOTS_READY,
                   BookingTrigger.SLOTS_LOADED),

        # --- Submission ---
        Transition(BookingState.SLOTS_READY, BookingState.SUBMITTING, BookingTrigger.SUBMIT),
        Transition(BookingState.SUBMITTING, BookingState.SUCCESS,
                   BookingTrigger.BOOKING_ACCEPTED),
        Transition(BookingState.SUBMITTING, BookingState.FAILED,
                   BookingTrigger.BOOKING_REJECTED),
        Transition(BookingState.FAILED, BookingState.SLOTS_READY, BookingTrigger.ERROR_SHOWN),

        # --- Cancel from anywhere ---
        *[
            Transition(state, BookingState.CLOSED, BookingTrigger.CLOSE)
            for state in BookingState
            if state != BookingState.CLOSED
        ],
    ]

    def __init__(self) -> None:
        self._current_state = BookingState.CLOSED
        self._history: list[StateEntry] = [
            StateEntry(state=BookingState.CLOSED, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> BookingState:
        return self._current_state

    def transition(self, trigger: BookingTrigger) -> BookingState:
        """
        Execute a state transition.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "Booking transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[BookingTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]


@dataclass
class BookingDraft:
    """In-progress selection held while the dialog is open."""
    ticket: Ticket
    selected_date: Optional[date] = None
    selected_time: Optional[str] = None
    message: str = ""
    slots: list[CandidateSlot] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.selected_date is not None and self.selected_time is not None


class BookingGateway(Protocol):
    async def create_lesson_booking(
        self, ticket_id: int, request: LessonBookingRequest
    ) -> Lesson:
        ...


class BookingSelector:
    """
    Drives one booking dialog for one tutorial.

    Validation problems never raise: they set ``draft.error`` and leave
    the state untouched, the way an inline form message would.
    """

    def __init__(
        self,
        tutorial: Tutorial,
        slots: SlotSource,
        gateway: BookingGateway,
        on_success: Optional[Callable[[Lesson], None]] = None,
        clock: Clock = system_clock,
        max_message_length: Optional[int] = None,
    ) -> None:
        self._tutorial = tutorial
        self._slots = slots
        self._gateway = gateway
        self._on_success = on_success
        self._clock = clock
        self._max_message_length = (
            max_message_length or settings.scheduling.max_message_length
        )
        self._machine = BookingStateMachine()
        self._draft: Optional[BookingDraft] = None
        self._load_seq = 0
        self._session_id: Optional[str] = None

    @property
    def state(self) -> BookingState:
        return self._machine.current_state

    @property
    def draft(self) -> Optional[BookingDraft]:
        return self._draft

    @property
    def machine(self) -> BookingStateMachine:
        return self._machine

    @property
    def session_id(self) -> Optional[str]:
        """Logging session id of the current dialog, set by ``open``."""
        return self._session_id

    def _require_draft(self) -> BookingDraft:
        if self._draft is None:
            raise InvalidTransitionError("The booking dialog is not open.")
        return self._draft

    async def open(self, ticket: Ticket, initial_date: Optional[date] = None) -> BookingState:
        """Open the dialog on ``ticket``, optionally pre-selecting a date.

        Raises:
            BookingPreconditionError: If the ticket cannot pay for a lesson
                of this tutorial.
        """
        if ticket.tutorial_id != self._tutorial.id:
            raise BookingPreconditionError(
                f"Ticket {ticket.id} is for tutorial {ticket.tutorial_id}, "
                f"not {self._tutorial.id}."
            )
        if ticket.remaining_count <= 0 or ticket.expired:
            raise BookingPreconditionError(f"Ticket {ticket.id} has no usable credits left.")

        self._machine.transition(BookingTrigger.OPEN)
        self._session_id = f"BOOK-{uuid4().hex[:6]}"
        set_session_id(self._session_id)
        self._draft = BookingDraft(ticket=ticket)
        logger.info(
            "Booking dialog opened for tutorial %s with ticket %s (%d/%d left)",
            self._tutorial.id, ticket.id, ticket.remaining_count, ticket.total_count,
        )
        if initial_date is not None:
            await self.select_date(initial_date)
        return self.state

    async def select_date(self, value: date) -> BookingState:
        """Pick a date, clear the chosen time and load that day's slots."""
        draft = self._require_draft()
        if value < self._clock().date():
            draft.error = MSG_PAST_DATE
            return self.state
        if self.state == BookingState.SUBMITTING:
            draft.error = MSG_SUBMIT_PENDING
            return self.state

        self._machine.transition(BookingTrigger.DATE_SELECTED)
        draft.selected_date = value
        draft.selected_time = None
        draft.slots = []
        draft.error = None
        self._load_seq += 1
        seq = self._load_seq

        error: Optional[str] = None
        try:
            slots = await self._slots.generate_slots(self._tutorial, value)
        except (SlotGenerationError, ApiError) as exc:
            logger.warning("Slot load failed for %s: %s", value, exc)
            slots = []
            error = MSG_SLOTS_FAILED

        if self._draft is not draft or seq != self._load_seq:
            logger.debug("Discarding stale slots for %s", value)
            return self.state

        draft.slots = slots
        draft.error = error
        self._machine.transition(BookingTrigger.SLOTS_LOADED)
        return self.state

    def select_time(self, value: str) -> bool:
        """Pick one of the loaded, available slots."""
        draft = self._require_draft()
        if self.state != BookingState.SLOTS_READY:
            draft.error = MSG_SELECT_DATE_AND_TIME
            return False
        try:
            wanted = format_hhmm(parse_hhmm(value))
        except ValueError:
            draft.error = MSG_SLOT_UNAVAILABLE
            return False

        slot = next((s for s in draft.slots if s.time == wanted), None)
        if slot is None or not slot.available:
            draft.error = MSG_SLOT_UNAVAILABLE
            return False
        draft.selected_time = wanted
        draft.error = None
        return True

    def set_message(self, text: str) -> bool:
        draft = self._require_draft()
        if len(text) > self._max_message_length:
            draft.error = f"The message can be at most {self._max_message_length} characters."
            return False
        draft.message = text
        return True

    async def submit(self) -> BookingResult:
        """
        Send the booking request for the selected date and time.

        A missing date or time is rejected locally without any request.
        A rejected or failed request returns the dialog to SLOTS_READY
        with the error shown. Nothing is retried automatically.
        """
        draft = self._require_draft()
        if not draft.is_complete:
            draft.error = MSG_SELECT_DATE_AND_TIME
            return BookingResult(success=False, message=MSG_SELECT_DATE_AND_TIME)
        if self.state != BookingState.SLOTS_READY:
            draft.error = MSG_SUBMIT_PENDING
            return BookingResult(success=False, message=MSG_SUBMIT_PENDING)

        self._machine.transition(BookingTrigger.SUBMIT)
        draft.error = None
        request = LessonBookingRequest(
            lesson_date=draft.selected_date,
            lesson_time=draft.selected_time,
            request_message=draft.message or None,
        )

        try:
            lesson = await self._gateway.create_lesson_booking(draft.ticket.id, request)
        except ApiError as exc:
            if isinstance(exc, ApiRequestError):
                message = exc.message or MSG_BOOKING_FAILED
            else:
                message = MSG_NETWORK
            logger.warning("Booking rejected for ticket %s: %s", draft.ticket.id, exc)
            if self._draft is draft:
                self._machine.transition(BookingTrigger.BOOKING_REJECTED)
                self._machine.transition(BookingTrigger.ERROR_SHOWN)
                draft.error = message
            return BookingResult(success=False, message=message)

        result = BookingResult(success=True, message="Lesson requested.", lesson=lesson)
        if self._draft is draft:
            self._machine.transition(BookingTrigger.BOOKING_ACCEPTED)
            self.close()
        if self._on_success is not None:
            self._on_success(lesson)
        return result

    def close(self) -> None:
        """Cancel the dialog and discard the draft. Safe to call when closed."""
        if self.state == BookingState.CLOSED:
            return
        self._machine.transition(BookingTrigger.CLOSE)
        self._draft = None
        self._load_seq += 1
        logger.debug("Booking dialog closed")
