"""
Built-in academic calendar templates.

A template is a named date range with its terms and holiday / follow days
already filled in; courses are added by the user or by the spreadsheet
importer. Templates are kept as plain data and materialised into fresh
Calendar objects on every use, so importing never mutates the registry.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from .model import MONDAY, FRIDAY, Calendar, Term, term_from_dict


@dataclass(frozen=True)
class AcademicCalendar:
    key: str
    name: str
    year: Tuple[int, int]
    range: Tuple[date, date]
    terms: Tuple[Mapping[str, Any], ...]

    def contains(self, start: date, end: date) -> bool:
        return self.range[0] <= start and end <= self.range[1]

    def build_terms(self) -> List[Term]:
        return [term_from_dict(_thaw(t)) for t in self.terms]

    def to_calendar(self) -> Calendar:
        return Calendar(name=self.name, terms=self.build_terms())


def _thaw(value: Any) -> Any:
    """Deep-copy frozen template data into plain dicts and lists."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class TemplateRegistry:
    """Read-only lookup of academic calendar templates, tagged with a version."""

    def __init__(self, version: str, templates: List[AcademicCalendar]):
        self.version = version
        self._templates: Mapping[str, AcademicCalendar] = MappingProxyType(
            {t.key: t for t in templates}
        )

    def __iter__(self) -> Iterator[AcademicCalendar]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, key: object) -> bool:
        return key in self._templates

    def keys(self) -> List[str]:
        return list(self._templates)

    def get(self, key: str) -> AcademicCalendar:
        try:
            return self._templates[key]
        except KeyError:
            raise KeyError(
                f"Unknown academic calendar {key!r}. Available: {', '.join(self._templates)}"
            ) from None

    def match(self, start: date, end: date) -> AcademicCalendar | None:
        """First template whose range fully contains [start, end]."""
        for template in self:
            if template.contains(start, end):
                return template
        return None


def _no_class(day: str, reason: str) -> Dict[str, Any]:
    return {"date": day, "type": "no-class", "reason": reason}


def _follow(day: str, weekday: int) -> Dict[str, Any]:
    return {"date": day, "type": "follow", "weekday": weekday}


def _term(term_id: str, start: str, end: str, *dates: Dict[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType({
        "id": term_id,
        "start": start,
        "end": end,
        "courses": (),
        "dates": tuple(MappingProxyType(d) for d in dates),
    })


WPI_2025_2026 = AcademicCalendar(
    key="2025-2026",
    name="WPI AY 2025-2026",
    year=(2025, 2026),
    range=(date(2025, 8, 21), date(2026, 5, 6)),
    terms=(
        _term(
            "A25", "2025-08-21", "2025-10-10",
            _no_class("2025-09-01", "Labor Day"),
            _follow("2025-09-04", MONDAY),
            _no_class("2025-09-19", "Wellness Day"),
        ),
        _term(
            "B25", "2025-10-20", "2025-12-12",
            _no_class("2025-11-04", "Wellness Day"),
            _no_class("2025-11-26", "Thanksgiving"),
            _no_class("2025-11-27", "Thanksgiving"),
            _no_class("2025-11-28", "Thanksgiving"),
            _no_class("2025-12-08", "Reading Day"),
        ),
        _term(
            "C26", "2026-01-14", "2026-03-06",
            _follow("2026-01-14", MONDAY),
            _no_class("2026-01-19", "MLK Jr. Day"),
            _no_class("2026-02-13", "Wellness Day"),
            _no_class("2026-02-26", "Academic Advising Day"),
        ),
        _term(
            "D26", "2026-03-16", "2026-05-06",
            _no_class("2026-03-30", "Wellness Day"),
            _follow("2026-04-01", MONDAY),
            _no_class("2026-04-20", "Patriot's Day"),
            _no_class("2026-04-24", "URP Showcase"),
            _follow("2026-05-06", FRIDAY),
        ),
    ),
)

WPI_2026_E = AcademicCalendar(
    key="2026-E",
    name="WPI E-Term 2026",
    year=(2026, 2026),
    range=(date(2026, 5, 21), date(2026, 8, 7)),
    terms=(
        _term(
            "E1", "2026-05-21", "2026-06-26",
            _no_class("2026-05-25", "Memorial Day"),
            _follow("2026-05-28", MONDAY),
            _no_class("2026-06-19", "Juneteenth"),
        ),
        _term("E2", "2026-07-06", "2026-08-07"),
    ),
)

DEFAULT_TEMPLATES = TemplateRegistry("2025.1", [WPI_2025_2026, WPI_2026_E])
