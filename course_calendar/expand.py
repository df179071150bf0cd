"""
Expand a validated calendar description into concrete events.

Every date of every term is walked once. Per date:
- a 'no-class' override emits an optional all-day marker and nothing else;
- a 'follow' override emits an all-day marker and swaps the weekday used
  to match meeting patterns;
- otherwise the date's own weekday is used.

UIDs only depend on the course / component and the date, so regenerating
a feed from the same description updates events instead of duplicating them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from .errors import TooManyEventsError
from .model import (
    Calendar,
    Course,
    FollowDate,
    MeetingPattern,
    NoClassDate,
    Term,
    weekday_of,
    weekday_to_string,
)

logger = logging.getLogger(__name__)

UID_NAMESPACE = "course-calendar"
UID_DOMAIN = "course-calendar-export"

# Days walked across all terms before giving up.
MAX_DAYS = 1000


@dataclass
class CalendarEvent:
    uid: str
    start: Union[date, datetime]
    end: Union[date, datetime]
    title: str
    location: Optional[str] = None

    @property
    def all_day(self) -> bool:
        return not isinstance(self.start, datetime)


def _uid(*parts: str) -> str:
    key = "-".join(p.replace(" ", "") for p in parts)
    return f"{UID_NAMESPACE}-{key}@{UID_DOMAIN}"


def _at(day: date, hhmm: str) -> datetime:
    return datetime.combine(day, datetime.strptime(hhmm, "%H:%M").time())


def _term_days(term: Term):
    day = date.fromisoformat(term.start)
    end = date.fromisoformat(term.end)
    while day <= end:
        yield day
        day += timedelta(days=1)


class _DayEvents:
    """Events of a single date, deduplicated by uid."""

    def __init__(self, out: List[CalendarEvent]):
        self.out = out
        self.seen: dict[str, CalendarEvent] = {}

    def add(self, event: CalendarEvent) -> None:
        prev = self.seen.get(event.uid)
        if prev is not None:
            if prev.start == event.start and prev.end == event.end:
                return
            # Second distinct meeting of the same stream on this day.
            event.uid = event.uid.replace("@", f"-{event.start:%H%M}-{event.end:%H%M}@", 1)
            if event.uid in self.seen:
                return
        self.seen[event.uid] = event
        self.out.append(event)


def _meetings(
    patterns: List[MeetingPattern],
    weekday: int,
    day: date,
    uid: str,
    title: str,
    events: _DayEvents,
) -> None:
    for mp in patterns:
        if weekday in mp.weekdays:
            events.add(CalendarEvent(
                uid=uid,
                start=_at(day, mp.start_time),
                end=_at(day, mp.end_time),
                title=title,
                location=mp.location or None,
            ))


def _course_events(course: Course, weekday: int, day: date, events: _DayEvents) -> None:
    iso = day.isoformat()
    title = f"{course.number} - {course.name}"
    if iso not in course.except_dates:
        _meetings(course.meeting_patterns, weekday, day, _uid(course.number, iso), title, events)
    for subsection in course.subsections:
        if iso in subsection.except_dates:
            continue
        _meetings(
            subsection.meeting_patterns,
            weekday,
            day,
            _uid(course.number, subsection.name, iso),
            f"{title} ({subsection.name})",
            events,
        )


def expand_calendar(calendar: Calendar, max_days: int = MAX_DAYS) -> List[CalendarEvent]:
    """
    Expand a calendar that passed validate() into a list of events.

    Raises TooManyEventsError once more than max_days dates (all terms
    combined) have been walked.
    """
    events: List[CalendarEvent] = []
    walked = 0
    for term in calendar.terms:
        for day in _term_days(term):
            walked += 1
            if walked > max_days:
                raise TooManyEventsError()

            iso = day.isoformat()
            weekday = weekday_of(day)
            day_events = _DayEvents(events)
            cancelled = False

            for special in term.dates:
                if special.date != iso:
                    continue
                if isinstance(special, NoClassDate):
                    if not special.hidden:
                        day_events.add(CalendarEvent(
                            uid=_uid(iso, "no-class"),
                            start=day,
                            end=day + timedelta(days=1),
                            title=f"No Classes ({special.reason})" if special.reason else "No Classes",
                        ))
                    cancelled = True
                    break
                if isinstance(special, FollowDate):
                    weekday = special.weekday
                    day_events.add(CalendarEvent(
                        uid=_uid(iso, "follow"),
                        start=day,
                        end=day + timedelta(days=1),
                        title=f"Follow {weekday_to_string(weekday)} Schedule",
                    ))
                    break

            if cancelled:
                continue
            for course in term.courses:
                _course_events(course, weekday, day, day_events)

    logger.debug("Expanded %d day(s) into %d event(s)", walked, len(events))
    return events
