"""
Calendar description model.

A Calendar is the sparse, hand-edited description the feed is generated
from: terms with start/end dates, courses with weekly meeting patterns,
and per-day overrides (no-class days, "follow a Monday schedule" days).

Dates are ISO 'YYYY-MM-DD' strings and times are 24-hour 'HH:MM' strings,
so plain string comparison orders them correctly. Weekdays are integers
with Sunday = 0 ... Saturday = 6.

The dict form (calendar_to_dict / calendar_from_dict) uses the camelCase
keys of the JSON embedded in generated feeds; its structure is checked by
the pydantic models in schema.py.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from .schema import (
    MeetingPatternSchema,
    NoClassDateSchema,
    TermSchema,
    parse_calendar,
    parse_term,
)


# ──────────────────────────────────────────────────────────────────
#  Weekdays
# ──────────────────────────────────────────────────────────────────

SUNDAY, MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY = range(7)

_WEEKDAY_NAMES = [
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
]
_WEEKDAY_SHORT = ["Su", "M", "T", "W", "R", "F", "Sa"]

_WEEKDAY_MAP = {
    "sunday": SUNDAY, "monday": MONDAY, "tuesday": TUESDAY,
    "wednesday": WEDNESDAY, "thursday": THURSDAY, "friday": FRIDAY,
    "saturday": SATURDAY,
    "su": SUNDAY, "m": MONDAY, "t": TUESDAY, "w": WEDNESDAY,
    "r": THURSDAY, "f": FRIDAY, "sa": SATURDAY,
}


def parse_weekday(text: str) -> int:
    """Parse 'Monday', 'm', ' SA ' etc. into a weekday number."""
    try:
        return _WEEKDAY_MAP[text.strip().lower()]
    except KeyError:
        raise ValueError(f"invalid weekday {text!r}") from None


def weekday_to_string(weekday: int, short: bool = False) -> str:
    return (_WEEKDAY_SHORT if short else _WEEKDAY_NAMES)[weekday]


def weekday_of(day: date) -> int:
    """Natural weekday of a date, Sunday = 0."""
    return day.isoweekday() % 7


def is_valid_weekday(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 6


# ──────────────────────────────────────────────────────────────────
#  Date / time text
# ──────────────────────────────────────────────────────────────────

def parse_iso_date(text: str) -> date | None:
    """Parse 'YYYY-MM-DD'; returns None when blank, malformed or not a string."""
    if not isinstance(text, str) or len(text) != 10:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def is_valid_time(text: str) -> bool:
    """True for a zero-padded 24-hour 'HH:MM' string."""
    if not isinstance(text, str) or len(text) != 5:
        return False
    try:
        datetime.strptime(text, "%H:%M")
    except ValueError:
        return False
    return True


def parse_time(text: str) -> str:
    """Parse a 12-hour time like '09:00 AM' into 24-hour 'HH:MM'."""
    try:
        return datetime.strptime(text.strip(), "%I:%M %p").strftime("%H:%M")
    except ValueError:
        raise ValueError(f"invalid time {text!r}, expected hh:mm AM/PM") from None


# ──────────────────────────────────────────────────────────────────
#  Entities
# ──────────────────────────────────────────────────────────────────

@dataclass
class MeetingPattern:
    """A weekly recurrence: weekdays plus a time-of-day range and a room."""

    start_time: str = ""
    end_time: str = ""
    weekdays: List[int] = field(default_factory=list)
    location: Optional[str] = None


@dataclass
class Subsection:
    """A secondary meeting stream of a course (discussion, lab, ...)."""

    name: str = ""
    meeting_patterns: List[MeetingPattern] = field(default_factory=list)
    except_dates: List[str] = field(default_factory=list)


@dataclass
class Course:
    number: str = ""
    name: str = ""
    meeting_patterns: List[MeetingPattern] = field(default_factory=list)
    except_dates: List[str] = field(default_factory=list)
    subsections: List[Subsection] = field(default_factory=list)


@dataclass
class NoClassDate:
    """No classes on this date; optionally shown as an all-day event."""

    date: str = ""
    reason: Optional[str] = None
    hidden: Optional[bool] = None

    type = "no-class"


@dataclass
class FollowDate:
    """On this date classes meet as if it were another weekday."""

    date: str = ""
    weekday: Optional[int] = None

    type = "follow"


OverrideDate = Union[NoClassDate, FollowDate]


@dataclass
class Term:
    id: str = ""
    start: str = ""
    end: str = ""
    courses: List[Course] = field(default_factory=list)
    dates: List[OverrideDate] = field(default_factory=list)


@dataclass
class Calendar:
    name: str = ""
    terms: List[Term] = field(default_factory=list)


# ──────────────────────────────────────────────────────────────────
#  Meeting pattern text
# ──────────────────────────────────────────────────────────────────

def empty_meeting_pattern() -> MeetingPattern:
    return MeetingPattern()


def parse_meeting_pattern(pattern: str) -> MeetingPattern:
    """
    Parse a Workday meeting pattern line such as
    'M-W-F | 10:00 AM - 10:50 AM | Salisbury Labs 104'.

    The location part is optional. Raises ValueError describing the
    first problem found.
    """
    parts = pattern.split("|")
    if len(parts) not in (2, 3):
        raise ValueError(
            f"scanning MeetingPattern: expected two parts separated by '|', got {len(parts)}"
        )

    weekdays: List[int] = []
    for w in parts[0].split("-"):
        try:
            weekday = parse_weekday(w)
        except ValueError:
            raise ValueError(f"scanning MeetingPattern: invalid weekday {w!r}") from None
        if weekday in weekdays:
            raise ValueError(f"scanning MeetingPattern: weekday {w.strip()} is duplicated")
        weekdays.append(weekday)

    times = parts[1].split("-")
    if len(times) != 2:
        raise ValueError(f"scanning MeetingPattern: expected two times, got {len(times)}")
    try:
        start_time = parse_time(times[0])
        end_time = parse_time(times[1])
    except ValueError as e:
        raise ValueError(f"scanning MeetingPattern: failed to parse time: {e}") from None
    if start_time > end_time:
        raise ValueError(
            f"scanning MeetingPattern: start time {times[0].strip()} after end time {times[1].strip()}"
        )

    location = parts[2].strip() if len(parts) == 3 else ""
    return MeetingPattern(
        start_time=start_time,
        end_time=end_time,
        weekdays=weekdays,
        location=location or None,
    )


# ──────────────────────────────────────────────────────────────────
#  Emptiness (placeholder rows left behind by editing)
# ──────────────────────────────────────────────────────────────────

def is_empty_meeting_pattern(mp: MeetingPattern) -> bool:
    return not mp.weekdays and not mp.start_time and not mp.end_time and not mp.location


def is_empty_subsection(subsection: Subsection) -> bool:
    return (
        not subsection.name
        and all(is_empty_meeting_pattern(mp) for mp in subsection.meeting_patterns)
        and not subsection.except_dates
    )


def is_empty_course(course: Course) -> bool:
    return (
        not course.number
        and not course.name
        and all(is_empty_meeting_pattern(mp) for mp in course.meeting_patterns)
        and not course.subsections
        and not course.except_dates
    )


def is_empty_date(override: OverrideDate) -> bool:
    if override.date:
        return False
    if isinstance(override, NoClassDate):
        return not override.reason
    return override.weekday is None


def is_empty_term(term: Term) -> bool:
    return (
        not term.id
        and not term.start
        and not term.end
        and all(is_empty_course(c) for c in term.courses)
    )


def prune_empty(calendar: Calendar) -> Calendar:
    """Drop empty placeholder terms, courses, patterns and dates in place."""
    calendar.terms = [t for t in calendar.terms if not is_empty_term(t)]
    for term in calendar.terms:
        term.dates = [d for d in term.dates if not is_empty_date(d)]
        term.courses = [c for c in term.courses if not is_empty_course(c)]
        for course in term.courses:
            course.meeting_patterns = [
                mp for mp in course.meeting_patterns if not is_empty_meeting_pattern(mp)
            ]
            course.except_dates = [d for d in course.except_dates if d]
            course.subsections = [s for s in course.subsections if not is_empty_subsection(s)]
            for subsection in course.subsections:
                subsection.meeting_patterns = [
                    mp for mp in subsection.meeting_patterns if not is_empty_meeting_pattern(mp)
                ]
                subsection.except_dates = [d for d in subsection.except_dates if d]
    return calendar


def normalize_calendar(calendar: Calendar) -> Calendar:
    """Sort terms by start date, override dates by date and except lists, in place."""
    calendar.terms.sort(key=lambda t: t.start)
    for term in calendar.terms:
        term.dates.sort(key=lambda d: d.date)
        for course in term.courses:
            course.except_dates.sort()
            for subsection in course.subsections:
                subsection.except_dates.sort()
    return calendar


# ──────────────────────────────────────────────────────────────────
#  Dict (JSON) conversion
# ──────────────────────────────────────────────────────────────────

def _meeting_pattern_to_dict(mp: MeetingPattern) -> Dict[str, Any]:
    return {
        "startTime": mp.start_time,
        "endTime": mp.end_time,
        "weekdays": list(mp.weekdays),
        "location": mp.location,
    }


def _date_to_dict(override: OverrideDate) -> Dict[str, Any]:
    out: Dict[str, Any] = {"date": override.date, "type": override.type}
    if isinstance(override, NoClassDate):
        if override.reason is not None:
            out["reason"] = override.reason
        if override.hidden is not None:
            out["hidden"] = override.hidden
    else:
        out["weekday"] = override.weekday
    return out


def calendar_to_dict(calendar: Calendar) -> Dict[str, Any]:
    """Convert a Calendar to plain JSON-compatible data."""
    return {
        "name": calendar.name,
        "terms": [
            {
                "id": term.id,
                "start": term.start,
                "end": term.end,
                "courses": [
                    {
                        "number": course.number,
                        "name": course.name,
                        "meetingPatterns": [_meeting_pattern_to_dict(mp) for mp in course.meeting_patterns],
                        "except": list(course.except_dates),
                        "subsections": [
                            {
                                "name": sub.name,
                                "meetingPatterns": [_meeting_pattern_to_dict(mp) for mp in sub.meeting_patterns],
                                "except": list(sub.except_dates),
                            }
                            for sub in course.subsections
                        ],
                    }
                    for course in term.courses
                ],
                "dates": [_date_to_dict(d) for d in term.dates],
            }
            for term in calendar.terms
        ],
    }




def _meeting_patterns(patterns: List[MeetingPatternSchema]) -> List[MeetingPattern]:
    return [
        MeetingPattern(
            start_time=mp.start_time,
            end_time=mp.end_time,
            weekdays=list(mp.weekdays),
            location=mp.location,
        )
        for mp in patterns
    ]


def _term_from_schema(term: TermSchema) -> Term:
    dates: List[OverrideDate] = []
    for d in term.dates:
        if isinstance(d, NoClassDateSchema):
            dates.append(NoClassDate(date=d.date, reason=d.reason, hidden=d.hidden))
        else:
            dates.append(FollowDate(date=d.date, weekday=d.weekday))
    return Term(
        id=term.id,
        start=term.start,
        end=term.end,
        courses=[
            Course(
                number=c.number,
                name=c.name,
                meeting_patterns=_meeting_patterns(c.meeting_patterns),
                except_dates=list(c.except_dates),
                subsections=[
                    Subsection(
                        name=s.name,
                        meeting_patterns=_meeting_patterns(s.meeting_patterns),
                        except_dates=list(s.except_dates),
                    )
                    for s in c.subsections
                ],
            )
            for c in term.courses
        ],
        dates=dates,
    )


def term_from_dict(data: Any) -> Term:
    return _term_from_schema(parse_term(data))


def calendar_from_dict(data: Any) -> Calendar:
    """Build a Calendar from JSON data. Raises ValueError on malformed structure."""
    parsed = parse_calendar(data)
    return Calendar(name=parsed.name, terms=[_term_from_schema(t) for t in parsed.terms])
