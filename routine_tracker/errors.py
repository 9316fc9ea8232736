from __future__ import annotations


class RoutineTrackerError(Exception):
    pass


class ParseError(RoutineTrackerError, ValueError):
    """Import text could not be decoded into a JSON object. Live state is untouched."""


class ShapeMismatch(RoutineTrackerError, ValueError):
    """A snapshot field is present but not of the expected type; only that field is skipped."""

    def __init__(self, field_name: str, reason: str):
        super().__init__(f"{field_name}: {reason}")
        self.field_name = field_name
        self.reason = reason


class StoreError(RoutineTrackerError):
    """Reading from or writing to the persistent store failed."""
