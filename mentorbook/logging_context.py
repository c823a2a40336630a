"""Booking-session id carried through log output.

``BookingSelector.open`` starts a session (``BOOK-xxxxxx``) and every log
line written while that dialog is driven, from slot loading down to the
HTTP client, carries it as ``%(session_id)s``. Lines outside a dialog
show ``-``. ``load_config`` puts the filter on the root handlers, so the
default format prints it for every module logger.

    [mentorbook.scheduling.booking_selector] [BOOK-3f2a9c] INFO: Booking dialog opened ...
"""

import logging
from contextvars import ContextVar

NO_SESSION = "-"

_session_id: ContextVar[str] = ContextVar("booking_session_id", default=NO_SESSION)


def set_session_id(session_id: str) -> None:
    _session_id.set(session_id)


def get_session_id() -> str:
    return _session_id.get()


class SessionIdFilter(logging.Filter):
    """Copies the current booking session id onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def _has_session_filter(target: logging.Filterer) -> bool:
    return any(isinstance(f, SessionIdFilter) for f in target.filters)


def get_session_logger(name: str) -> logging.Logger:
    """Module logger whose records carry ``session_id`` even under a foreign handler."""
    logger = logging.getLogger(name)
    if not _has_session_filter(logger):
        logger.addFilter(SessionIdFilter())
    return logger


def attach_session_filter(handler: logging.Handler) -> None:
    """Stamp ``session_id`` on every record ``handler`` emits.

    Records from plain module loggers reach the handler without the
    attribute, which a ``%(session_id)s`` format would fail on.
    """
    if not _has_session_filter(handler):
        handler.addFilter(SessionIdFilter())
