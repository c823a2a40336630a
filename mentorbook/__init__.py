"""Slot scheduling and lesson booking core for the mentoring marketplace."""

__version__ = "0.1.0"
