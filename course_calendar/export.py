"""
Export a calendar description to ICS, CSV, and JSON, and read it back
from a previously exported ICS feed.
"""
from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List

import icalendar

from .codec import decode_calendar, encode_calendar, make_product_id, product_id_payload
from .errors import CalendarValidationError, FeedFormatError
from .expand import MAX_DAYS, CalendarEvent, expand_calendar
from .model import Calendar, calendar_from_dict, calendar_to_dict
from .validate import CalendarWarning, validate

DEFAULT_CALENDAR_NAME = "Course Calendar"


@dataclass
class FeedResult:
    ics: str
    events: List[CalendarEvent]
    warnings: List[CalendarWarning] = field(default_factory=list)


def build_ics(events: list[CalendarEvent], calendar_name: str, product_id: str) -> str:
    """Render events as iCalendar text for Apple/Google calendar."""
    cal = icalendar.Calendar()
    cal.add("prodid", product_id)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("x-wr-calname", calendar_name.strip() or DEFAULT_CALENDAR_NAME)

    stamp = datetime.now(timezone.utc)
    for ev in events:
        event = icalendar.Event()
        event.add("uid", ev.uid)
        event.add("summary", ev.title)
        # date -> VALUE=DATE, naive datetime -> floating local time
        event.add("dtstart", ev.start)
        event.add("dtend", ev.end)
        event.add("dtstamp", stamp)
        if ev.location:
            event.add("location", ev.location)
        cal.add_component(event)

    return cal.to_ical().decode("utf-8")


def generate_feed(calendar: Calendar, max_days: int = MAX_DAYS) -> FeedResult:
    """
    Validate, expand and render a calendar description.

    The full description is embedded in the PRODID so read_feed() can
    restore it. Raises CalendarValidationError if validation finds errors.
    """
    result = validate(calendar)
    if result.errors:
        raise CalendarValidationError(result.errors, result.warnings)

    events = expand_calendar(calendar, max_days=max_days)
    product_id = make_product_id(encode_calendar(calendar))
    ics = build_ics(events, calendar.name, product_id)
    return FeedResult(ics=ics, events=events, warnings=result.warnings)


def read_feed(text: str | bytes) -> Calendar:
    """Restore the calendar description embedded in a generated .ics feed."""
    try:
        cal = icalendar.Calendar.from_ical(text)
    except (ValueError, IndexError) as e:
        raise FeedFormatError("Invalid .ics file.") from e
    if getattr(cal, "name", None) != "VCALENDAR":
        raise FeedFormatError("Invalid .ics file.")

    payload = product_id_payload(str(cal.get("prodid", "")))
    if payload is None:
        raise FeedFormatError("Couldn't find calendar data in the .ics file.")
    return decode_calendar(payload)


def load_calendar_json(path: str | Path) -> Calendar:
    """Read a calendar description (as written by export_json)."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return calendar_from_dict(data)


def export_ics(calendar: Calendar, out_path: str | Path, max_days: int = MAX_DAYS) -> FeedResult:
    """Write the calendar feed to an .ics file."""
    feed = generate_feed(calendar, max_days=max_days)
    Path(out_path).write_bytes(feed.ics.encode("utf-8"))
    return feed


def export_csv(calendar: Calendar, out_path: str | Path, max_days: int = MAX_DAYS) -> FeedResult:
    """Write the expanded events to CSV, one row per event."""
    feed = generate_feed(calendar, max_days=max_days)
    keys = ["uid", "title", "start", "end", "all_day", "location"]
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=keys)
        w.writeheader()
        for ev in feed.events:
            w.writerow({
                "uid": ev.uid,
                "title": ev.title,
                "start": ev.start.isoformat(),
                "end": ev.end.isoformat(),
                "all_day": "yes" if ev.all_day else "no",
                "location": ev.location or "",
            })
    return feed


def export_json(calendar: Calendar, out_path: str | Path) -> None:
    """Write the calendar description itself to JSON."""
    Path(out_path).write_text(
        json.dumps(calendar_to_dict(calendar), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


def export(
    calendar: Calendar, out_path: str | Path, fmt: str, max_days: int = MAX_DAYS
) -> FeedResult | None:
    """Export to the given format: ics, csv, or json."""
    fmt = fmt.lower()
    if fmt == "ics":
        return export_ics(calendar, out_path, max_days=max_days)
    elif fmt == "csv":
        return export_csv(calendar, out_path, max_days=max_days)
    elif fmt == "json":
        export_json(calendar, out_path)
        return None
    else:
        raise ValueError(f"Unsupported format: {fmt}. Use ics, csv, or json.")
