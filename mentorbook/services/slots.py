"""
Slot source contract and the server-side slot endpoint.

Anything that can turn (tutorial, date) into an ordered list of
CandidateSlots satisfies ``SlotSource``: the local SlotGenerator and
the API's own available-slots endpoint both do.
"""

import logging
from datetime import date
from typing import Protocol

from mentorbook.schemas.availability_schema import AvailableSlotsResponse, CandidateSlot
from mentorbook.schemas.booking_schema import Tutorial
from mentorbook.services.client import ApiClient, ApiError, ApiRequestError, parse_model

logger = logging.getLogger(__name__)


class SlotGenerationError(Exception):
    """Raised when the slot set for a date cannot be determined.

    Callers must treat this as "unknown" and offer a retry. It never
    means "no slots".
    """


class SlotSource(Protocol):
    async def generate_slots(self, tutorial: Tutorial, on_date: date) -> list[CandidateSlot]:
        ...


class RemoteSlotSource:
    """Fetches the slot grid computed by the API."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def fetch(self, tutorial_id: int, on_date: date) -> AvailableSlotsResponse:
        try:
            data = await self._client.get(
                f"/api/tutorials/{tutorial_id}/available-slots",
                params={"date": on_date.isoformat()},
            )
            if data is None:
                raise ApiRequestError("Empty slot listing", code="empty_response")
            return parse_model(AvailableSlotsResponse, data, "slot listing")
        except ApiError as exc:
            raise SlotGenerationError(
                f"Could not load slots for tutorial {tutorial_id} on {on_date}: {exc}"
            ) from exc

    async def generate_slots(self, tutorial: Tutorial, on_date: date) -> list[CandidateSlot]:
        response = await self.fetch(tutorial.id, on_date)
        return sorted(response.slots, key=lambda s: s.start)
