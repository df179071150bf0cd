"""
Generate course calendar feeds (.ics) from a term / course description,
and restore that description from a generated feed or a Workday export.
"""
from __future__ import annotations

__version__ = "0.1.0"

from .codec import decode_calendar, encode_calendar
from .expand import CalendarEvent, expand_calendar
from .export import generate_feed, read_feed
from .model import Calendar, Course, FollowDate, MeetingPattern, NoClassDate, Subsection, Term
from .validate import CalendarWarning, ValidationResult, validate
from .workday import import_tabular

__all__ = [
    "Calendar",
    "CalendarEvent",
    "CalendarWarning",
    "Course",
    "FollowDate",
    "MeetingPattern",
    "NoClassDate",
    "Subsection",
    "Term",
    "ValidationResult",
    "decode_calendar",
    "encode_calendar",
    "expand_calendar",
    "generate_feed",
    "import_tabular",
    "read_feed",
    "validate",
]
