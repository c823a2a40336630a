"""Tests for shared date and time helpers."""

import io
import logging
from datetime import date, time

import pytest

from mentorbook.config import LOG_FORMAT
from mentorbook.logging_context import (
    SessionIdFilter,
    attach_session_filter,
    get_session_logger,
    set_session_id,
)
from mentorbook.utils import (
    format_hhmm,
    from_minutes,
    month_days,
    month_start,
    parse_hhmm,
    parse_month,
    to_minutes,
)


class TestParseHhmm:
    def test_hours_and_minutes(self):
        assert parse_hhmm("14:00") == time(14, 0)

    def test_seconds_dropped(self):
        assert parse_hhmm("09:30:45") == time(9, 30)

    def test_strips_whitespace(self):
        assert parse_hhmm("  08:15 ") == time(8, 15)

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_hhmm("25:00")

    def test_format_zero_pads(self):
        assert format_hhmm(time(9, 5)) == "09:05"


class TestMinutes:
    def test_to_minutes(self):
        assert to_minutes(time(14, 30)) == 870

    def test_from_minutes(self):
        assert from_minutes(870) == time(14, 30)


class TestMonths:
    def test_month_start(self):
        assert month_start(date(2026, 11, 17)) == date(2026, 11, 1)

    def test_thirty_day_month(self):
        days = month_days(date(2026, 11, 17))
        assert len(days) == 30
        assert days[0] == date(2026, 11, 1)
        assert days[-1] == date(2026, 11, 30)

    def test_leap_february(self):
        assert len(month_days(date(2028, 2, 1))) == 29

    def test_parse_month(self):
        assert parse_month("2026-11") == date(2026, 11, 1)

    def test_parse_month_invalid(self):
        with pytest.raises(ValueError, match="YYYY-MM"):
            parse_month("11/2026")


class TestSessionLogger:
    def test_filter_attached_once(self):
        logger = get_session_logger("mentorbook.tests.session")
        get_session_logger("mentorbook.tests.session")
        assert sum(isinstance(f, SessionIdFilter) for f in logger.filters) == 1

    def test_record_carries_session_id(self):
        set_session_id("BOOK-abc123")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        SessionIdFilter().filter(record)
        assert record.session_id == "BOOK-abc123"

    def test_plain_logger_prints_session_id(self):
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        attach_session_filter(handler)
        attach_session_filter(handler)
        logger = logging.getLogger("mentorbook.tests.plain")
        logger.propagate = False
        logger.addHandler(handler)
        try:
            set_session_id("BOOK-feed01")
            logger.warning("slot grid refreshed")
        finally:
            logger.removeHandler(handler)

        assert sum(isinstance(f, SessionIdFilter) for f in handler.filters) == 1
        assert "[BOOK-feed01] WARNING: slot grid refreshed" in stream.getvalue()
