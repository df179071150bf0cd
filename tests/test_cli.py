import json

import pytest

from course_calendar import __version__
from course_calendar.cli import main
from course_calendar.export import export_json, read_feed
from course_calendar.model import Calendar, Course, MeetingPattern, Term


def _write_description(path, location="SH104"):
    cal = Calendar(name="Fall 2025", terms=[Term(
        id="A25",
        start="2025-08-21",
        end="2025-08-29",
        courses=[Course(
            number="CS 101",
            name="Intro",
            meeting_patterns=[MeetingPattern("09:00", "09:50", [1, 4], location)],
        )],
    )])
    export_json(cal, path)
    return cal


def test_export_ics(tmp_path, capsys):
    desc = tmp_path / "calendar.json"
    cal = _write_description(desc)
    out = tmp_path / "feed"

    assert main(["--description", str(desc), "-o", str(out)]) == 0
    assert f"Exported 3 event(s) to {out}.ics" in capsys.readouterr().out
    assert read_feed((tmp_path / "feed.ics").read_bytes()) == cal


def test_restore_to_json(tmp_path, capsys):
    desc = tmp_path / "calendar.json"
    cal = _write_description(desc)
    assert main(["--description", str(desc), "-o", str(tmp_path / "feed")]) == 0

    assert main(["--restore", str(tmp_path / "feed.ics"), "-f", "json", "-o", str(tmp_path / "restored")]) == 0
    captured = capsys.readouterr()
    assert "Restored" in captured.err
    assert "Wrote calendar description to" in captured.out
    restored = json.loads((tmp_path / "restored.json").read_text(encoding="utf-8"))
    assert restored["name"] == cal.name
    assert restored["terms"][0]["courses"][0]["number"] == "CS 101"


def test_check(tmp_path, capsys):
    desc = tmp_path / "calendar.json"
    _write_description(desc, location=None)
    assert main(["--description", str(desc), "--check"]) == 0
    captured = capsys.readouterr()
    assert "Calendar is valid." in captured.out
    assert "Warning: Missing location for course CS 101 in term A25." in captured.err


def test_invalid_description(tmp_path, capsys):
    desc = tmp_path / "calendar.json"
    export_json(Calendar(), desc)
    out = tmp_path / "feed"

    assert main(["--description", str(desc), "-o", str(out)]) == 1
    err = capsys.readouterr().err
    assert "Error: No terms defined." in err
    assert not (tmp_path / "feed.ics").exists()


def test_prune_empty(tmp_path, capsys):
    desc = tmp_path / "calendar.json"
    cal = _write_description(desc)
    cal.terms[0].courses.append(Course())
    export_json(cal, desc)

    assert main(["--description", str(desc), "--check"]) == 1
    assert "Error: Term A25, course #2: missing/invalid number" in capsys.readouterr().err
    assert main(["--description", str(desc), "--check", "--prune-empty"]) == 0


def test_bad_json(tmp_path, capsys):
    desc = tmp_path / "calendar.json"
    desc.write_text("{", encoding="utf-8")
    assert main(["--description", str(desc)]) == 1
    assert "is not valid JSON" in capsys.readouterr().err


@pytest.mark.parametrize("content", [
    b'{"terms": [{"id": "A25", "dates": [{"date": "2025-09-01", "type": "holiday"}]}]}',
    b'{"terms": [{"id": "A25", "courses": [{"number": "CS 101", "except": [20250821]}]}]}',
    b'["not", "a", "calendar"]',
    b'{"name": "Cours d\xe9t\xe9"}',
])
def test_malformed_description(tmp_path, capsys, content):
    desc = tmp_path / "calendar.json"
    desc.write_bytes(content)
    assert main(["--description", str(desc), "--check"]) == 1
    err = capsys.readouterr().err
    assert f"Error: {desc} is not" in err


def test_missing_file(tmp_path, capsys):
    assert main(["--restore", str(tmp_path / "missing.ics")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_template_to_json(tmp_path, capsys):
    out = tmp_path / "year"
    assert main(["--template", "2025-2026", "-f", "json", "-o", str(out), "--name", "My Year"]) == 0
    data = json.loads((tmp_path / "year.json").read_text(encoding="utf-8"))
    assert data["name"] == "My Year"
    assert [t["id"] for t in data["terms"]] == ["A25", "B25", "C26", "D26"]


def test_unknown_template(capsys):
    assert main(["--template", "1999"]) == 1
    assert "Unknown academic calendar" in capsys.readouterr().err


def test_list_templates(capsys):
    assert main(["--list-templates"]) == 0
    out = capsys.readouterr().out
    assert "2025-2026" in out
    assert "A25, B25, C26, D26" in out


def test_no_input(capsys):
    assert main([]) == 1
    assert "No input specified" in capsys.readouterr().err


def test_inputs_are_exclusive(tmp_path):
    with pytest.raises(SystemExit):
        main(["--template", "2025-2026", "--description", str(tmp_path / "x.json")])


def test_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert __version__ in capsys.readouterr().out
