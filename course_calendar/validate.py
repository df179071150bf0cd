"""
Consistency checks for a calendar description.

validate() never raises: every problem becomes either an error (blocks
feed generation) or a warning (feed is generated, but the user should
double-check something). All checks run, in term / course / component
declaration order, so one call reports everything.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .model import (
    Calendar,
    FollowDate,
    MeetingPattern,
    is_valid_time,
    is_valid_weekday,
    parse_iso_date,
    weekday_of,
    weekday_to_string,
)


@dataclass(frozen=True)
class CalendarWarning:
    title: str
    message: str


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[CalendarWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _check_meeting_patterns(
    patterns: List[MeetingPattern],
    prefix: str,
    what: str,
    where: str,
    result: ValidationResult,
) -> None:
    """
    prefix: error message prefix, e.g. 'Term A25, course CS 101'
    what/where: used in warning titles, e.g. 'course CS 101' / 'term A25'
    """
    if not patterns:
        kind = what.split(" ", 1)[0]
        result.warnings.append(CalendarWarning(
            title=f"No meeting patterns for {what} in {where}",
            message=f"Add a meeting pattern for this {kind}, if applicable. It will be ignored otherwise.",
        ))
    for mp in patterns:
        start_ok = is_valid_time(mp.start_time)
        end_ok = is_valid_time(mp.end_time)
        if not start_ok:
            result.errors.append(f"{prefix}: missing/invalid start time")
        if not end_ok:
            result.errors.append(f"{prefix}: missing/invalid end time")
        if start_ok and end_ok and mp.start_time > mp.end_time:
            result.errors.append(f"{prefix}: start > end")
        if not mp.weekdays:
            result.errors.append(f"{prefix}: no weekdays selected")
        elif not all(is_valid_weekday(w) for w in mp.weekdays):
            result.errors.append(f"{prefix}: invalid weekday")
        elif len(set(mp.weekdays)) != len(mp.weekdays):
            result.errors.append(f"{prefix}: duplicate weekday")
        if not mp.location:
            kind = what.split(" ", 1)[0]
            result.warnings.append(CalendarWarning(
                title=f"Missing location for {what} in {where}",
                message=f"Add a location for this {kind}, if applicable.",
            ))


def _check_except_dates(
    dates: List[str], start: str, end: str, prefix: str, result: ValidationResult
) -> None:
    for special in dates:
        if not parse_iso_date(special):
            result.errors.append(f"{prefix}: missing/invalid special date")
        elif start and special < start:
            result.errors.append(f"{prefix}: special date {special} before term start")
        elif end and special > end:
            result.errors.append(f"{prefix}: special date {special} after term end")


def validate(calendar: Calendar) -> ValidationResult:
    """Check a calendar description and collect every error and warning."""
    result = ValidationResult()

    if not calendar.terms:
        result.errors.append("No terms defined.")
    if not any(term.courses for term in calendar.terms):
        result.errors.append("No courses defined.")

    term_ids: set[str] = set()
    for t_idx, term in enumerate(calendar.terms, start=1):
        term_name = term.id or f"#{t_idx}"
        prefix = f"Term {term_name}"

        if not term.id:
            result.errors.append(f"{prefix}: missing/invalid name")
        elif term.id in term_ids:
            result.errors.append(f"{prefix}: duplicate name")
        term_ids.add(term.id)

        start_ok = parse_iso_date(term.start) is not None
        end_ok = parse_iso_date(term.end) is not None
        if not start_ok:
            result.errors.append(f"{prefix}: missing/invalid start date")
        if not end_ok:
            result.errors.append(f"{prefix}: missing/invalid end date")
        if start_ok and end_ok and term.start > term.end:
            result.errors.append(f"{prefix}: start > end")
        # except dates are only range-checked against well-formed bounds
        term_start = term.start if start_ok else ""
        term_end = term.end if end_ok else ""

        for special in term.dates:
            day = parse_iso_date(special.date)
            if day is None:
                result.errors.append(f"{prefix}: missing/invalid date")
                continue
            if start_ok and special.date < term.start:
                result.errors.append(f"{prefix}: special date {special.date} before term start")
            elif end_ok and special.date > term.end:
                result.errors.append(f"{prefix}: special date {special.date} after term end")
            if isinstance(special, FollowDate):
                if not is_valid_weekday(special.weekday):
                    result.errors.append(f"{prefix}: special date {special.date} has no valid weekday")
                elif weekday_of(day) == special.weekday:
                    result.errors.append(
                        f"{prefix}: special date {special.date} does nothing "
                        f"(already a {weekday_to_string(special.weekday)})"
                    )

        for c_idx, course in enumerate(term.courses, start=1):
            course_name = course.number or f"#{c_idx}"
            course_prefix = f"{prefix}, course {course_name}"
            if not course.number:
                result.errors.append(f"{course_prefix}: missing/invalid number")
            if not course.name:
                result.errors.append(f"{course_prefix}: missing/invalid name")
            _check_meeting_patterns(
                course.meeting_patterns,
                course_prefix,
                f"course {course_name}",
                f"term {term_name}",
                result,
            )

            for s_idx, subsection in enumerate(course.subsections, start=1):
                sub_name = subsection.name or f"#{s_idx}"
                sub_prefix = f"{course_prefix}, component {sub_name}"
                if not subsection.name:
                    result.errors.append(f"{sub_prefix}: missing/invalid name")
                _check_meeting_patterns(
                    subsection.meeting_patterns,
                    sub_prefix,
                    f"component {sub_name} of course {course_name}",
                    f"term {term_name}",
                    result,
                )
                _check_except_dates(subsection.except_dates, term_start, term_end, sub_prefix, result)

            _check_except_dates(course.except_dates, term_start, term_end, course_prefix, result)

    return result
