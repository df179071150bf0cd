"""
Exceptions raised by the course calendar library.

All of them derive from ValueError so callers that only care about
"bad input" can keep catching that.
"""
from __future__ import annotations


class CourseCalendarError(ValueError):
    """Base class for course calendar errors."""


class CalendarValidationError(CourseCalendarError):
    """The calendar description has validation errors; nothing was generated."""

    def __init__(self, errors: list[str], warnings: list | None = None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__("; ".join(self.errors) or "invalid calendar")


class TooManyEventsError(CourseCalendarError):
    """Expansion walked past the maximum number of days."""

    def __init__(self, message: str = "too many events"):
        super().__init__(message)


class CalendarEncodeError(CourseCalendarError):
    """The description could not be encoded for embedding in a feed."""

    def __init__(self, cause: object):
        self.cause = cause
        super().__init__(f"Failed to encode calendar: {cause}")


class CalendarDecodeError(CourseCalendarError):
    """Embedded calendar data is corrupt or was not produced by this tool."""

    def __init__(self, cause: object):
        self.cause = cause
        super().__init__(f"Failed to decode calendar: {cause}")


class FeedFormatError(CourseCalendarError):
    """The .ics text is malformed or carries no calendar data."""


class TabularImportError(CourseCalendarError):
    """A spreadsheet export could not be turned into a calendar."""
