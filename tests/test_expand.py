from datetime import date, datetime

import pytest

from course_calendar.errors import TooManyEventsError
from course_calendar.expand import CalendarEvent, expand_calendar
from course_calendar.model import (
    Calendar,
    Course,
    FollowDate,
    MeetingPattern,
    NoClassDate,
    Subsection,
    Term,
)


def _cal(start="2025-08-21", end="2025-08-22", courses=None, dates=None):
    if courses is None:
        courses = [Course(
            number="CS 101",
            name="Intro",
            meeting_patterns=[MeetingPattern("09:00", "09:50", [4], "SH104")],
        )]
    return Calendar(terms=[Term(id="A25", start=start, end=end, courses=courses, dates=dates or [])])


def test_single_meeting():
    events = expand_calendar(_cal())
    assert events == [CalendarEvent(
        uid="course-calendar-CS101-2025-08-21@course-calendar-export",
        start=datetime(2025, 8, 21, 9, 0),
        end=datetime(2025, 8, 21, 9, 50),
        title="CS 101 - Intro",
        location="SH104",
    )]
    assert not events[0].all_day


def test_no_class_day():
    events = expand_calendar(_cal(dates=[NoClassDate(date="2025-08-21", reason="Closure")]))
    assert len(events) == 1
    event = events[0]
    assert event.title == "No Classes (Closure)"
    assert event.start == date(2025, 8, 21)
    assert event.end == date(2025, 8, 22)
    assert event.all_day
    assert event.uid == "course-calendar-2025-08-21-no-class@course-calendar-export"


def test_no_class_without_reason():
    events = expand_calendar(_cal(dates=[NoClassDate(date="2025-08-21")]))
    assert [e.title for e in events] == ["No Classes"]


def test_hidden_no_class_day():
    assert expand_calendar(_cal(dates=[NoClassDate(date="2025-08-21", hidden=True)])) == []


def test_follow_day():
    course = Course(
        number="MA 1021",
        name="Calculus I",
        meeting_patterns=[MeetingPattern("10:00", "10:50", [1], "SL 104")],
    )
    cal = _cal(
        start="2025-08-18",
        end="2025-08-22",
        courses=[course],
        dates=[FollowDate(date="2025-08-21", weekday=1)],
    )
    events = expand_calendar(cal)
    assert [(e.title, e.start) for e in events] == [
        ("MA 1021 - Calculus I", datetime(2025, 8, 18, 10, 0)),
        ("Follow Monday Schedule", date(2025, 8, 21)),
        ("MA 1021 - Calculus I", datetime(2025, 8, 21, 10, 0)),
    ]
    assert events[1].uid == "course-calendar-2025-08-21-follow@course-calendar-export"
    assert events[1].end == date(2025, 8, 22)
    assert events[1].all_day

    # the Thursday meeting is the Monday meeting moved to another date
    monday, thursday = events[0], events[2]
    assert thursday.end == datetime(2025, 8, 21, 10, 50)
    assert (thursday.title, thursday.location) == (monday.title, monday.location)
    assert (thursday.start.time(), thursday.end.time()) == (monday.start.time(), monday.end.time())
    assert thursday.uid == monday.uid.replace("2025-08-18", "2025-08-21")
    assert thursday.uid == "course-calendar-MA1021-2025-08-21@course-calendar-export"


def test_follow_day_suppresses_natural_weekday():
    cal = _cal(dates=[FollowDate(date="2025-08-21", weekday=1)])
    assert [e.title for e in expand_calendar(cal)] == ["Follow Monday Schedule"]


def test_day_cap():
    with pytest.raises(TooManyEventsError, match="too many events"):
        expand_calendar(_cal(start="2020-01-01", end="2025-01-01"))


def test_day_cap_counts_all_terms():
    cal = Calendar(terms=[
        Term(id="A", start="2025-08-21", end="2025-08-25"),
        Term(id="B", start="2025-09-01", end="2025-09-05"),
    ])
    expand_calendar(cal, max_days=10)
    with pytest.raises(TooManyEventsError):
        expand_calendar(cal, max_days=9)


def test_subsections_and_except_dates():
    course = Course(
        number="CS 2011",
        name="Machine Organization",
        meeting_patterns=[MeetingPattern("10:00", "10:50", [4, 5], "FL 320")],
        except_dates=["2025-08-21"],
        subsections=[
            Subsection(
                name="Discussion",
                meeting_patterns=[MeetingPattern("14:00", "14:50", [4, 5], "FL 311")],
                except_dates=["2025-08-22"],
            ),
        ],
    )
    events = expand_calendar(_cal(courses=[course]))
    assert [(e.uid, e.title) for e in events] == [
        (
            "course-calendar-CS2011-Discussion-2025-08-21@course-calendar-export",
            "CS 2011 - Machine Organization (Discussion)",
        ),
        (
            "course-calendar-CS2011-2025-08-22@course-calendar-export",
            "CS 2011 - Machine Organization",
        ),
    ]


def test_two_meetings_same_day():
    course = Course(
        number="CS 101",
        name="Intro",
        meeting_patterns=[
            MeetingPattern("09:00", "09:50", [4], "SH104"),
            MeetingPattern("13:00", "13:50", [4], "SH104"),
            MeetingPattern("09:00", "09:50", [4], "SH104"),
        ],
    )
    events = expand_calendar(_cal(courses=[course]))
    assert [e.uid for e in events] == [
        "course-calendar-CS101-2025-08-21@course-calendar-export",
        "course-calendar-CS101-2025-08-21-1300-1350@course-calendar-export",
    ]


def test_no_location_is_none():
    course = Course(number="CS 101", name="Intro", meeting_patterns=[MeetingPattern("09:00", "09:50", [4], "")])
    assert expand_calendar(_cal(courses=[course]))[0].location is None


def test_expansion_is_deterministic():
    cal = _cal(
        start="2025-08-18",
        end="2025-09-05",
        dates=[NoClassDate(date="2025-09-01", reason="Labor Day"), FollowDate(date="2025-08-26", weekday=4)],
    )
    assert expand_calendar(cal) == expand_calendar(cal)
    uids = [e.uid for e in expand_calendar(cal)]
    assert len(uids) == len(set(uids))


def test_meetings_with_same_start_keep_distinct_uids():
    course = Course(
        number="CS 101",
        name="Intro",
        meeting_patterns=[
            MeetingPattern("09:00", "09:50", [4], "SH104"),
            MeetingPattern("09:00", "10:50", [4], "SH104"),
            MeetingPattern("09:00", "11:50", [4], "SH104"),
        ],
    )
    events = expand_calendar(_cal(courses=[course]))
    assert [(e.uid, e.end) for e in events] == [
        ("course-calendar-CS101-2025-08-21@course-calendar-export", datetime(2025, 8, 21, 9, 50)),
        ("course-calendar-CS101-2025-08-21-0900-1050@course-calendar-export", datetime(2025, 8, 21, 10, 50)),
        ("course-calendar-CS101-2025-08-21-0900-1150@course-calendar-export", datetime(2025, 8, 21, 11, 50)),
    ]
