"""
Import a calendar description from a Workday "View My Courses" export.

Usage pattern:
- In Workday open "View My Courses" and export the grid to Excel
  (or save the page as HTML).
- read_xlsx_grid() / read_html_grid() turn the file into a 2-D grid of
  strings (None for empty cells).
- import_tabular() scans the grid row by row and rebuilds terms and
  courses. Only enrolled and completed courses are imported.

The export has one block per section:

    My Enrolled Courses
    <title row with 'Enrolled Sections' in column G>
    Course Listing | ... | Section | Instructional Format | ... | Meeting Patterns | ...
    <one row per registered section>
    Enrolled Credits ...

Lecture / Workshop rows become courses; every other instructional format
(discussion, lab, ...) becomes a subsection of the course with the same
number in the same term, resolved after the whole grid is scanned.
"""
from __future__ import annotations

import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Sequence, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from bs4 import BeautifulSoup

from .errors import TabularImportError
from .model import (
    Calendar,
    Course,
    MeetingPattern,
    Subsection,
    Term,
    parse_meeting_pattern,
)
from .templates import DEFAULT_TEMPLATES, AcademicCalendar, TemplateRegistry
from .validate import CalendarWarning

logger = logging.getLogger(__name__)

Grid = List[List[Optional[str]]]

EXPORT_SENTINELS = ("View My Courses", "My Enrolled Courses")


class Section(Enum):
    NONE = "none"
    ENROLLED = "enrolled"
    WAITLISTED = "waitlisted"
    COMPLETED = "completed"
    DROPPED = "dropped"


_SECTION_ROWS = {
    "My Enrolled Courses": Section.ENROLLED,
    "My Waitlisted Courses": Section.WAITLISTED,
    "My Completed Courses": Section.COMPLETED,
    "My Dropped/Withdrawn Courses": Section.DROPPED,
    "Enrolled Credits": Section.NONE,
}

# Section -> (column, text) of the title row that precedes the column labels.
_HEADER_SENTINELS = {
    Section.ENROLLED: (6, "Enrolled Sections"),
    Section.COMPLETED: (5, "Completed Sections"),
}

_COLUMN_LABELS = {
    "listing": "Course Listing",
    "status": "Registration Status",
    "section": "Section",
    "format": "Instructional Format",
    "meeting_patterns": "Meeting Patterns",
    "start_date": "Start Date",
    "end_date": "End Date",
}

_COURSE_FORMATS = ("Lecture", "Workshop")
_ACTIVE_STATUSES = ("Registered", "Completed")

_SUBSECTION_NAMES = {
    "L": "Lecture",
    "D": "Discussion",
    "X": "Laboratory",
    "R": "Recitation",
}

# e.g. 'AL01', 'BD02': term letter, component letter, two more characters.
_SECTION_CODE_RE = re.compile(r"^[A-D]([A-Z])\w{2}$")

CUSTOM_CALENDAR_NAME = "Custom Calendar"


# ──────────────────────────────────────────────────────────────────
#  Tabular readers
# ──────────────────────────────────────────────────────────────────

def _cell_text(value) -> Optional[str]:
    """Render a cell the way the export displays it; dates as M/D/YY."""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return f"{value.month}/{value.day}/{value.year % 100:02d}"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value)
    return text if text.strip() else None


def _pad(rows: List[List[Optional[str]]]) -> Grid:
    width = max((len(r) for r in rows), default=0)
    return [r + [None] * (width - len(r)) for r in rows]


def read_xlsx_grid(source: Union[str, Path, bytes, BinaryIO]) -> Grid:
    """
    Read the single sheet of an .xlsx export into a grid of strings.

    Workday exports may declare a smaller sheet dimension than the cells
    they actually contain, so the declared dimension is discarded and the
    grid is sized from the populated cells.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        wb = openpyxl.load_workbook(source, read_only=True, data_only=True)
    except (OSError, KeyError, ValueError, zipfile.BadZipFile, InvalidFileException) as e:
        raise TabularImportError(f"Could not read Excel file: {e}") from e
    try:
        if len(wb.sheetnames) != 1:
            raise TabularImportError(
                "Excel file must contain exactly one sheet. "
                "Please check that your export is from the correct page."
            )
        ws = wb[wb.sheetnames[0]]
        ws.reset_dimensions()
        rows = [[_cell_text(v) for v in row] for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()

    # Trim trailing empty rows / columns beyond the populated box.
    while rows and not any(rows[-1]):
        rows.pop()
    grid = _pad(rows)
    width = 0
    for row in grid:
        for i, v in enumerate(row):
            if v is not None:
                width = max(width, i + 1)
    return [row[:width] for row in grid]


def read_html_grid(source: Union[str, Path, bytes]) -> Grid:
    """
    Read an export saved from the browser as HTML: every table row in
    document order, <br> inside a cell kept as a newline.

    :param source: a Path to the saved file, or the HTML itself (str or bytes).
    """
    if isinstance(source, Path):
        html = Path(source).read_text(encoding="utf-8", errors="ignore")
    elif isinstance(source, bytes):
        html = source.decode("utf-8", errors="ignore")
    else:
        html = source
    soup = BeautifulSoup(html, "html.parser")

    rows: List[List[Optional[str]]] = []
    for tr in soup.find_all("tr"):
        row: List[Optional[str]] = []
        for cell in tr.find_all(["th", "td"]):
            row.append(cell.get_text("\n", strip=True) or None)
            try:
                span = int(cell.get("colspan", 1))
            except ValueError:
                span = 1
            row.extend([None] * (span - 1))
        if row:
            rows.append(row)
    if not rows:
        raise TabularImportError("Could not find any table in the HTML file.")
    return _pad(rows)


def read_grid(path: Union[str, Path]) -> Grid:
    """Pick a reader by file extension (.xlsx or .html/.htm)."""
    suffix = Path(path).suffix.lower()
    if suffix == ".xlsx":
        return read_xlsx_grid(path)
    if suffix in (".html", ".htm"):
        return read_html_grid(Path(path))
    raise TabularImportError(f"Unsupported export file type: {suffix or path}. Use .xlsx or .html.")


# ──────────────────────────────────────────────────────────────────
#  Scan state
# ──────────────────────────────────────────────────────────────────

@dataclass
class _PendingSubsection:
    row: int
    term: Term
    number: str
    name: str
    section: str
    meeting_patterns: List[MeetingPattern]


@dataclass
class ScanState:
    """Everything the row scanner carries from one row to the next."""

    section: Section = Section.NONE
    columns: Optional[Dict[str, int]] = None
    awaiting_header: bool = False
    calendar: Optional[Calendar] = None
    template: Optional[AcademicCalendar] = None
    pending: List[_PendingSubsection] = field(default_factory=list)
    warnings: List[CalendarWarning] = field(default_factory=list)

    @property
    def custom(self) -> bool:
        return self.calendar is not None and self.template is None

    def enter(self, section: Section) -> None:
        self.section = section
        self.columns = None
        self.awaiting_header = False

    def warn(self, title: str, message: str) -> None:
        logger.warning("%s: %s", title, message)
        self.warnings.append(CalendarWarning(title=title, message=message))


@dataclass
class ImportResult:
    calendar: Calendar
    warnings: List[CalendarWarning]
    template: Optional[AcademicCalendar] = None


# ──────────────────────────────────────────────────────────────────
#  Row helpers
# ──────────────────────────────────────────────────────────────────

def _cell(row: Sequence[Optional[str]], idx: int) -> str:
    if idx < 0 or idx >= len(row):
        return ""
    value = row[idx]
    return value.strip() if isinstance(value, str) else ""


def _parse_export_date(text: str) -> Optional[date]:
    """Parse the export's M/D/YY dates."""
    try:
        return datetime.strptime(text.strip(), "%m/%d/%y").date()
    except ValueError:
        return None


def _split_listing(listing: str) -> tuple[str, str]:
    """'CS 1101 - Introduction to Program Design' -> ('CS 1101', 'Introduction ...')."""
    number, _, name = listing.partition(" - ")
    return number.strip(), name.strip()


def subsection_name(section: str) -> str:
    """
    Name a subsection from its section code.

    'CS 2011-AD01 - Intro to Machine Organization' -> 'Discussion'.
    Codes that do not follow the letter-letter-digit-digit convention,
    or use an unknown component letter, are returned as they are.
    """
    code = section.split(" - ")[0].split("-")[-1].strip()
    m = _SECTION_CODE_RE.match(code)
    if not m:
        return code
    return _SUBSECTION_NAMES.get(m.group(1), code)


def _header_columns(row: Sequence[Optional[str]]) -> Dict[str, int]:
    labels = [_cell(row, i) for i in range(len(row))]
    return {
        key: labels.index(label) if label in labels else -1
        for key, label in _COLUMN_LABELS.items()
    }


def _columns_complete(columns: Optional[Dict[str, int]]) -> bool:
    return columns is not None and all(v >= 0 for v in columns.values())


# ──────────────────────────────────────────────────────────────────
#  Term / calendar matching
# ──────────────────────────────────────────────────────────────────

def _choose_calendar(
    state: ScanState, templates: TemplateRegistry, start: date, end: date
) -> Calendar:
    template = templates.match(start, end)
    if template is not None:
        logger.debug("Matched academic calendar %s", template.name)
        calendar = template.to_calendar()
    else:
        logger.debug("No academic calendar contains %s..%s, using a custom calendar", start, end)
        calendar = Calendar(
            name=CUSTOM_CALENDAR_NAME,
            terms=[Term(id="Term 1", start=start.isoformat(), end=end.isoformat())],
        )
    state.template = template
    state.calendar = calendar
    return calendar


def _find_term(calendar: Calendar, custom: bool, start: str, end: str) -> Optional[Term]:
    for term in calendar.terms:
        if term.start <= start and end <= term.end:
            return term
    if not custom:
        return None
    # Custom calendars grow: widen an overlapping term or start a new one.
    for term in calendar.terms:
        if term.start <= end and start <= term.end:
            term.start = min(term.start, start)
            term.end = max(term.end, end)
            return term
    term = Term(id=f"Term {len(calendar.terms) + 1}", start=start, end=end)
    calendar.terms.append(term)
    return term


# ──────────────────────────────────────────────────────────────────
#  Scanner
# ──────────────────────────────────────────────────────────────────

def _scan_row(
    state: ScanState, row_no: int, row: Sequence[Optional[str]], templates: TemplateRegistry
) -> None:
    first = _cell(row, 0)
    if first in _SECTION_ROWS:
        logger.debug("Found %s section at row %d", _SECTION_ROWS[first].value, row_no)
        state.enter(_SECTION_ROWS[first])
        return

    sentinel = _HEADER_SENTINELS.get(state.section)
    if sentinel and _cell(row, sentinel[0]) == sentinel[1]:
        state.awaiting_header = True
        return

    if state.section not in (Section.ENROLLED, Section.COMPLETED):
        logger.debug("Skipping row %d (section %s)", row_no, state.section.value)
        return

    if state.awaiting_header:
        state.awaiting_header = False
        state.columns = _header_columns(row)
        missing = [
            _COLUMN_LABELS[k] for k, v in state.columns.items() if v < 0
        ]
        if missing:
            state.warn(
                f"Missing columns in {state.section.value} courses",
                f"Row {row_no}: could not find column(s) {', '.join(missing)}. "
                "Courses in this section were not imported.",
            )
        return

    columns = state.columns
    if not _columns_complete(columns) or not any(_cell(row, i) for i in range(len(row))):
        logger.debug("Skipping row %d", row_no)
        return
    _import_row(state, row_no, row, columns, templates)


def _import_row(
    state: ScanState,
    row_no: int,
    row: Sequence[Optional[str]],
    columns: Dict[str, int],
    templates: TemplateRegistry,
) -> None:
    listing = _cell(row, columns["listing"])
    section = _cell(row, columns["section"])
    status = _cell(row, columns["status"])
    fmt = _cell(row, columns["format"])
    mp_idx = columns["meeting_patterns"]
    patterns_text = (row[mp_idx] if mp_idx < len(row) else None) or ""
    start = _parse_export_date(_cell(row, columns["start_date"]))
    end = _parse_export_date(_cell(row, columns["end_date"]))
    lines = [line for line in patterns_text.split("\n") if line.strip()]

    if not (listing and section and status and fmt and lines and start and end):
        state.warn(
            f"Skipped row {row_no}",
            f"{listing or section or 'Unknown course'}: missing values in the "
            f"{state.section.value} courses section. Add this course manually if needed.",
        )
        return

    meeting_patterns: List[MeetingPattern] = []
    for line in lines:
        try:
            meeting_patterns.append(parse_meeting_pattern(line))
        except ValueError as e:
            state.warn(
                f"Skipped {listing}",
                f"Row {row_no}: failed to parse meeting pattern {line.strip()!r} ({e}). "
                "Add this course manually.",
            )
            return

    calendar = state.calendar or _choose_calendar(state, templates, start, end)

    if status not in _ACTIVE_STATUSES:
        logger.debug("Course %s in %s section has status %s", listing, state.section.value, status)

    term = _find_term(calendar, state.custom, start.isoformat(), end.isoformat())
    if term is None:
        state.warn(
            f"No matching term for {listing}",
            f"{section} runs {start.isoformat()} to {end.isoformat()}, which does not fit any term "
            f"of {calendar.name}. Add this course manually.",
        )
        return
    logger.debug("Row %d: %s -> term %s", row_no, section, term.id)

    number, name = _split_listing(listing)
    if fmt in _COURSE_FORMATS:
        term.courses.append(Course(number=number, name=name, meeting_patterns=meeting_patterns))
        return

    state.pending.append(_PendingSubsection(
        row=row_no,
        term=term,
        number=number,
        name=name,
        section=section,
        meeting_patterns=meeting_patterns,
    ))


def _resolve_pending(state: ScanState) -> None:
    for pending in state.pending:
        candidates = [c for c in pending.term.courses if c.number == pending.number]
        if not candidates:
            state.warn(
                f"No course for {pending.section}",
                f"Row {pending.row}: course {pending.number} was not found in term "
                f"{pending.term.id}. Add this component manually.",
            )
            continue
        course = next((c for c in candidates if c.name == pending.name), candidates[0])
        logger.debug("Attached %s to course %s", pending.section, course.number)
        course.subsections.append(Subsection(
            name=subsection_name(pending.section),
            meeting_patterns=pending.meeting_patterns,
        ))


def _finish_custom(calendar: Calendar) -> None:
    calendar.terms.sort(key=lambda t: t.start)
    for i, term in enumerate(calendar.terms, start=1):
        term.id = f"Term {i}"
    start = min(t.start for t in calendar.terms)
    end = max(t.end for t in calendar.terms)
    calendar.name = f"{CUSTOM_CALENDAR_NAME} ({start} to {end})"


def import_tabular(grid: Grid, templates: TemplateRegistry = DEFAULT_TEMPLATES) -> ImportResult:
    """
    Rebuild a calendar description from a Workday export grid.

    Raises TabularImportError if the grid is not a supported export or no
    course could be imported. Everything else that goes wrong is reported
    in the returned warnings.
    """
    if not grid or not grid[0] or _cell(grid[0], 0) not in EXPORT_SENTINELS:
        raise TabularImportError(
            'Expected first cell to be "View My Courses" or "My Enrolled Courses". '
            "Please check that your export is from the correct page."
        )

    state = ScanState()
    for row_no, row in enumerate(grid, start=1):
        _scan_row(state, row_no, row, templates)
    _resolve_pending(state)

    calendar = state.calendar
    if calendar is not None:
        calendar.terms = [t for t in calendar.terms if t.courses]
    if calendar is None or not calendar.terms:
        raise TabularImportError(
            "No courses found in the export. Only enrolled and completed courses are imported."
        )

    if state.custom:
        _finish_custom(calendar)
        state.warn(
            "Custom calendar",
            "No built-in academic calendar matches these courses, so terms were created "
            "from the course dates. Holidays and other special dates are not included; "
            "check the term dates and add them manually.",
        )
    return ImportResult(calendar=calendar, warnings=state.warnings, template=state.template)


def import_file(path: Union[str, Path], templates: TemplateRegistry = DEFAULT_TEMPLATES) -> ImportResult:
    """read_grid() + import_tabular()."""
    return import_tabular(read_grid(path), templates=templates)
