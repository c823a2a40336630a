"""Tests for the REST-backed services, with the API mocked by respx."""

import json
from datetime import date, time

import pytest
import respx

from mentorbook.schemas.availability_schema import DayOfWeek
from mentorbook.schemas.booking_schema import LessonBookingRequest, LessonStatus
from mentorbook.services.availability import AvailabilityRegistry, available_weekdays
from mentorbook.scheduling.slot_generator import SlotGenerator
from mentorbook.scheduling.ticket_gate import AccessDecision, check_booking_access
from mentorbook.services.client import ApiClient, ApiNotFoundError, ApiRequestError, static_token
from mentorbook.services.lessons import LessonService
from mentorbook.services.slots import RemoteSlotSource, SlotGenerationError
from mentorbook.services.tutorials import TutorialService
from tests.conftest import API_BASE, NEXT_MONDAY, fixed_clock, make_window


def _ok(data):
    return {"success": True, "code": "OK", "message": "", "data": data}


def _client():
    return ApiClient(static_token("tok"), base_url=API_BASE)


AVAILABILITY = {
    "mentorId": 42,
    "mentorNickname": "kim",
    "availability": [
        {"id": 1, "dayOfWeek": "MONDAY", "startTime": "14:00:00", "endTime": "16:00:00",
         "active": True},
        {"id": 2, "dayOfWeek": "WEDNESDAY", "startTime": "09:00:00", "endTime": "12:00:00",
         "active": False},
    ],
}


class TestAvailabilityRegistry:
    @pytest.mark.asyncio
    @respx.mock
    async def test_list_active_windows_filters_inactive(self):
        respx.get(f"{API_BASE}/api/mentors/42/availability").respond(200, json=_ok(AVAILABILITY))

        async with _client() as client:
            windows = await AvailabilityRegistry(client).list_active_windows(42)

        assert len(windows) == 1
        assert windows[0].day_of_week == DayOfWeek.MONDAY
        assert windows[0].start_time == time(14, 0)
        assert available_weekdays(windows) == frozenset({DayOfWeek.MONDAY})

    @pytest.mark.asyncio
    @respx.mock
    async def test_each_call_reads_fresh(self):
        route = respx.get(f"{API_BASE}/api/mentors/42/availability").respond(
            200, json=_ok(AVAILABILITY)
        )

        async with _client() as client:
            registry = AvailabilityRegistry(client)
            await registry.list_active_windows(42)
            await registry.list_active_windows(42)
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_add_window_posts_hhmm(self):
        route = respx.post(f"{API_BASE}/api/mentors/me/availability").respond(
            200,
            json=_ok({"id": 9, "dayOfWeek": "TUESDAY", "startTime": "10:00:00",
                      "endTime": "12:00:00", "active": True}),
        )

        async with _client() as client:
            created = await AvailabilityRegistry(client).add_window(
                DayOfWeek.TUESDAY, time(10, 0), time(12, 0), existing=[make_window()]
            )

        assert created.id == 9
        assert json.loads(route.calls[0].request.content) == {
            "dayOfWeek": "TUESDAY", "startTime": "10:00", "endTime": "12:00",
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_add_window_refuses_second_window_on_weekday(self):
        async with _client() as client:
            with pytest.raises(ValueError):
                await AvailabilityRegistry(client).add_window(
                    DayOfWeek.MONDAY, time(9, 0), time(10, 0), existing=[make_window()]
                )

    @pytest.mark.asyncio
    async def test_add_window_rejects_inverted_interval(self):
        async with _client() as client:
            with pytest.raises(ValueError):
                await AvailabilityRegistry(client).add_window(
                    DayOfWeek.FRIDAY, time(12, 0), time(10, 0), existing=[]
                )

    @pytest.mark.asyncio
    @respx.mock
    async def test_delete_window(self):
        route = respx.delete(f"{API_BASE}/api/mentors/me/availability/3").respond(
            200, json=_ok(None)
        )

        async with _client() as client:
            await AvailabilityRegistry(client).delete_window(3)
        assert route.called


class TestLessonService:
    @pytest.mark.asyncio
    @respx.mock
    async def test_booked_start_times_keeps_outstanding_lessons(self):
        route = respx.get(f"{API_BASE}/api/lessons/requests").respond(200, json=_ok([
            {"lessonId": 1, "ticketId": 7, "status": "REQUESTED",
             "scheduledAt": "2026-11-09T14:00:00"},
            {"lessonId": 2, "ticketId": 8, "status": "CONFIRMED",
             "scheduledAt": "2026-11-09T16:00:00"},
            {"lessonId": 3, "ticketId": 9, "status": "REJECTED",
             "scheduledAt": "2026-11-09T15:00:00"},
            {"lessonId": 4, "ticketId": 9, "status": "REQUESTED",
             "scheduledAt": "2026-11-16T14:00:00"},
        ]))

        async with _client() as client:
            taken = await LessonService(client).booked_start_times(42, NEXT_MONDAY)

        assert taken == {time(14, 0), time(16, 0)}
        assert not route.calls[0].request.url.params

    @pytest.mark.asyncio
    @respx.mock
    async def test_lessons_accepts_wrapped_listing(self):
        respx.get(f"{API_BASE}/api/lessons/my").respond(200, json=_ok({"lessons": [
            {"id": 5, "ticketId": 7, "status": "COMPLETED"},
        ]}))

        async with _client() as client:
            lessons = await LessonService(client).get_my_lessons()
        assert lessons[0].lesson_id == 5
        assert lessons[0].status == LessonStatus.COMPLETED

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_my_tickets(self):
        respx.get(f"{API_BASE}/api/tickets/my").respond(200, json=_ok([
            {"id": 7, "tutorialId": 1, "tutorialTitle": "Python", "totalCount": 5,
             "remainingCount": 2},
        ]))

        async with _client() as client:
            tickets = await LessonService(client).get_my_tickets()
        assert tickets[0].remaining_count == 2
        assert tickets[0].expired is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_lesson_booking(self):
        route = respx.post(f"{API_BASE}/api/tickets/7/lessons").respond(200, json=_ok({
            "lessonId": 77, "ticketId": 7, "status": "REQUESTED",
            "scheduledAt": "2026-11-09T14:00:00",
        }))
        request = LessonBookingRequest(lesson_date=NEXT_MONDAY, lesson_time="14:00:00")

        async with _client() as client:
            lesson = await LessonService(client).create_lesson_booking(7, request)

        assert lesson.lesson_id == 77
        assert lesson.is_outstanding
        assert json.loads(route.calls[0].request.content) == {
            "lessonDate": "2026-11-09", "lessonTime": "14:00",
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_reject_lesson_sends_reason(self):
        route = respx.put(f"{API_BASE}/api/lessons/77/reject").respond(200, json=_ok({
            "lessonId": 77, "ticketId": 7, "status": "REJECTED",
        }))

        async with _client() as client:
            lesson = await LessonService(client).reject_lesson(77, "  Schedule conflict ")
        assert lesson.status == LessonStatus.REJECTED
        assert json.loads(route.calls[0].request.content) == {"rejectReason": "Schedule conflict"}

    @pytest.mark.asyncio
    async def test_reject_lesson_requires_reason(self):
        async with _client() as client:
            with pytest.raises(ValueError):
                await LessonService(client).reject_lesson(77, "   ")

    @pytest.mark.asyncio
    @respx.mock
    async def test_confirm_lesson(self):
        respx.put(f"{API_BASE}/api/lessons/77/confirm").respond(200, json=_ok({
            "lessonId": 77, "ticketId": 7, "status": "CONFIRMED",
        }))

        async with _client() as client:
            lesson = await LessonService(client).confirm_lesson(77)
        assert lesson.status == LessonStatus.CONFIRMED


class TestRemoteSlotSource:
    @pytest.mark.asyncio
    @respx.mock
    async def test_slots_sorted_and_normalized(self, tutorial):
        route = respx.get(f"{API_BASE}/api/tutorials/1/available-slots").respond(200, json=_ok({
            "tutorialId": 1, "date": "2026-11-09", "dayOfWeek": "MONDAY", "duration": 60,
            "slots": [
                {"time": "15:00:00", "available": False, "reason": "already booked"},
                {"time": "14:00:00", "available": True},
            ],
        }))

        async with _client() as client:
            slots = await RemoteSlotSource(client).generate_slots(tutorial, NEXT_MONDAY)

        assert [s.time for s in slots] == ["14:00", "15:00"]
        assert slots[1].reason == "already booked"
        assert route.calls[0].request.url.params["date"] == "2026-11-09"

    @pytest.mark.asyncio
    @respx.mock
    async def test_api_failure_becomes_slot_generation_error(self, tutorial):
        respx.get(f"{API_BASE}/api/tutorials/1/available-slots").respond(500)

        async with _client() as client:
            with pytest.raises(SlotGenerationError):
                await RemoteSlotSource(client).generate_slots(tutorial, NEXT_MONDAY)

    @pytest.mark.asyncio
    @respx.mock
    async def test_empty_payload_is_not_zero_slots(self, tutorial):
        respx.get(f"{API_BASE}/api/tutorials/1/available-slots").respond(200, json=_ok(None))

        async with _client() as client:
            with pytest.raises(SlotGenerationError):
                await RemoteSlotSource(client).generate_slots(tutorial, date(2026, 11, 9))


class TestTutorialService:
    @pytest.mark.asyncio
    @respx.mock
    async def test_get_tutorial(self):
        respx.get(f"{API_BASE}/api/tutorials/1").respond(200, json=_ok({
            "id": 1, "mentorId": 42, "title": "Python", "duration": 60, "price": 30000,
        }))

        async with _client() as client:
            tutorial = await TutorialService(client).get_tutorial(1)
        assert tutorial.mentor_id == 42
        assert tutorial.duration == 60

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_tutorial(self):
        respx.get(f"{API_BASE}/api/tutorials/2").respond(200, json=_ok(None))

        async with _client() as client:
            with pytest.raises(ApiNotFoundError):
                await TutorialService(client).get_tutorial(2)


class TestMalformedPayloads:
    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_slot_becomes_slot_generation_error(self, tutorial):
        respx.get(f"{API_BASE}/api/tutorials/1/available-slots").respond(200, json=_ok({
            "date": "2026-11-16", "duration": 60, "slots": [{"time": "bogus", "available": True}],
        }))

        async with _client() as client:
            with pytest.raises(SlotGenerationError):
                await RemoteSlotSource(client).generate_slots(tutorial, date(2026, 11, 16))

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_lesson_is_request_error(self):
        respx.get(f"{API_BASE}/api/lessons/requests").respond(200, json=_ok([
            {"lessonId": 1, "ticketId": 7, "status": "LOST"},
        ]))

        async with _client() as client:
            with pytest.raises(ApiRequestError) as exc_info:
                await LessonService(client).booked_start_times(42, NEXT_MONDAY)
        assert exc_info.value.code == "invalid_response"

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_list_lessons_is_request_error(self):
        respx.get(f"{API_BASE}/api/lessons/my").respond(200, json=_ok({"lessons": "none"}))

        async with _client() as client:
            with pytest.raises(ApiRequestError):
                await LessonService(client).get_my_lessons()

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_bookings_stop_local_generation(self, tutorial):
        respx.get(f"{API_BASE}/api/mentors/42/availability").respond(200, json=_ok(AVAILABILITY))
        respx.get(f"{API_BASE}/api/lessons/requests").respond(200, json=_ok([
            {"lessonId": 1, "status": "REQUESTED", "scheduledAt": "2026-11-09T14:00:00"},
        ]))

        async with _client() as client:
            generator = SlotGenerator(
                AvailabilityRegistry(client), LessonService(client), clock=fixed_clock()
            )
            with pytest.raises(SlotGenerationError):
                await generator.generate_slots(tutorial, NEXT_MONDAY)

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_availability_is_request_error(self):
        respx.get(f"{API_BASE}/api/mentors/42/availability").respond(200, json=_ok({
            "mentorId": 42,
            "availability": [{"dayOfWeek": "MONDAY", "startTime": "16:00", "endTime": "14:00"}],
        }))

        async with _client() as client:
            with pytest.raises(ApiRequestError):
                await AvailabilityRegistry(client).list_active_windows(42)

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_ticket_routes_to_purchase(self):
        respx.get(f"{API_BASE}/api/tickets/my").respond(200, json=_ok([{"id": 7}]))

        async with _client() as client:
            access = await check_booking_access(LessonService(client), tutorial_id=1)
        assert access.decision == AccessDecision.PURCHASE
        assert access.reason == "Could not verify your tickets."
