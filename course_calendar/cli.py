"""
Command-line interface: build a course calendar feed from a description,
a previously generated feed, or a Workday export.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .errors import CalendarValidationError, CourseCalendarError
from .export import export, load_calendar_json, read_feed
from .expand import MAX_DAYS
from .model import Calendar, normalize_calendar, prune_empty
from .templates import DEFAULT_TEMPLATES, TemplateRegistry
from .validate import validate
from .workday import import_file


def _print_warnings(warnings, file=sys.stderr) -> None:
    for w in warnings:
        print(f"Warning: {w.title}. {w.message}", file=file)


def _list_templates(templates: TemplateRegistry) -> None:
    print(f"Academic calendars (version {templates.version})")
    print("Key        | Range                    | Terms")
    print("-" * 60)
    for t in templates:
        terms = ", ".join(term["id"] for term in t.terms)
        print(f"{t.key:<10} | {t.range[0]} - {t.range[1]} | {terms}  ({t.name})")


def _load(args, templates: TemplateRegistry) -> Calendar:
    if args.description:
        try:
            return load_calendar_json(args.description)
        except json.JSONDecodeError as e:
            raise CourseCalendarError(f"{args.description} is not valid JSON: {e}") from e
        except ValueError as e:
            raise CourseCalendarError(f"{args.description} is not a valid calendar description: {e}") from e
    if args.restore:
        calendar = read_feed(Path(args.restore).read_bytes())
        print(f"Restored {args.restore}. Review and make any necessary changes.", file=sys.stderr)
        return calendar
    if args.workbook:
        result = import_file(args.workbook, templates=templates)
        if result.warnings:
            print("Import succeeded with warnings. Review the warnings below.", file=sys.stderr)
            _print_warnings(result.warnings)
        else:
            print("Import succeeded. Review and make any necessary changes.", file=sys.stderr)
        return result.calendar
    try:
        return templates.get(args.template).to_calendar()
    except KeyError as e:
        raise CourseCalendarError(e.args[0]) from None


def main(argv: list[str] | None = None, templates: TemplateRegistry = DEFAULT_TEMPLATES) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Export a course calendar to ICS / CSV / JSON.\n"
            "- Build the feed from a JSON calendar description (terms, courses, meeting patterns, holidays).\n"
            "- Restore the description from a feed this tool generated, or import it from a Workday export."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-o",
        "--output",
        default="course_calendar",
        help="Output path (without extension). Default: course_calendar",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["ics", "csv", "json"],
        default="ics",
        help="Export format: ics feed, csv list of events, or json description. Default: ics",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--description",
        metavar="JSON_PATH",
        help="Calendar description in JSON (as written by -f json).",
    )
    mode.add_argument(
        "--restore",
        metavar="ICS_PATH",
        help="Restore the description embedded in an .ics feed generated by this tool.",
    )
    mode.add_argument(
        "--workbook",
        metavar="EXPORT_PATH",
        help='Workday "View My Courses" export (.xlsx, or the page saved as .html). '
        "Only enrolled and completed courses are imported.",
    )
    mode.add_argument(
        "--template",
        metavar="KEY",
        help="Start from a built-in academic calendar (terms and holidays, no courses). See --list-templates.",
    )
    mode.add_argument(
        "--list-templates",
        action="store_true",
        help="List the built-in academic calendars then exit.",
    )
    parser.add_argument("--name", help="Calendar name shown by calendar apps.")
    parser.add_argument(
        "--prune-empty",
        action="store_true",
        help="Drop empty terms, courses, meeting patterns and dates before exporting.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only validate the description and print errors / warnings.",
    )
    parser.add_argument(
        "--max-days",
        type=int,
        default=MAX_DAYS,
        help=f"Give up after expanding this many days (all terms combined). Default: {MAX_DAYS}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list_templates:
        _list_templates(templates)
        return 0

    if not (args.description or args.restore or args.workbook or args.template):
        print(
            "No input specified. Use --description, --restore, --workbook or --template.",
            file=sys.stderr,
        )
        return 1

    try:
        calendar = _load(args, templates)
    except (CourseCalendarError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.name is not None:
        calendar.name = args.name
    if args.prune_empty:
        prune_empty(calendar)
    normalize_calendar(calendar)

    if args.check:
        result = validate(calendar)
        for err in result.errors:
            print(f"Error: {err}", file=sys.stderr)
        _print_warnings(result.warnings)
        if result.errors:
            return 1
        print("Calendar is valid.")
        return 0

    ext = {"ics": ".ics", "csv": ".csv", "json": ".json"}[args.format]
    out_path = Path(args.output).with_suffix(ext) if Path(args.output).suffix else Path(args.output + ext)
    try:
        feed = export(calendar, out_path, args.format, max_days=args.max_days)
    except CalendarValidationError as e:
        print("Calendar has errors, nothing was exported:", file=sys.stderr)
        for err in e.errors:
            print(f"Error: {err}", file=sys.stderr)
        _print_warnings(e.warnings)
        return 1
    except (CourseCalendarError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if feed is None:
        print(f"Wrote calendar description to {out_path}")
    else:
        _print_warnings(feed.warnings)
        print(f"Exported {len(feed.events)} event(s) to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
