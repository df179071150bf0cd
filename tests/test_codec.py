import base64
import gzip
import re

import pytest

from course_calendar.codec import (
    decode_calendar,
    encode_calendar,
    make_product_id,
    product_id_payload,
)
from course_calendar.errors import CalendarDecodeError
from course_calendar.model import (
    Calendar,
    Course,
    FollowDate,
    MeetingPattern,
    NoClassDate,
    Subsection,
    Term,
)


def _calendar():
    return Calendar(name="Fall 2025", terms=[Term(
        id="A25",
        start="2025-08-21",
        end="2025-10-10",
        courses=[Course(
            number="CS 101",
            name="Introduction à la programmation",
            meeting_patterns=[MeetingPattern("09:00", "09:50", [1, 3, 5], None)],
            except_dates=["2025-09-03"],
            subsections=[Subsection(name="Lab", meeting_patterns=[MeetingPattern("14:00", "15:50", [2], "FL A21")])],
        )],
        dates=[
            NoClassDate(date="2025-09-01", reason="Labor Day"),
            NoClassDate(date="2025-09-19", reason="", hidden=True),
            FollowDate(date="2025-09-04", weekday=1),
        ],
    )])


def test_round_trip():
    cal = _calendar()
    assert decode_calendar(encode_calendar(cal)) == cal


def test_encoding_is_deterministic_and_url_safe():
    encoded = encode_calendar(_calendar())
    assert encoded == encode_calendar(_calendar())
    assert re.fullmatch(r"[A-Za-z0-9_-]+", encoded)


def test_payload_is_gzipped_json():
    encoded = encode_calendar(Calendar(name="x"))
    packed = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
    assert gzip.decompress(packed) == b'{"name":"x","terms":[]}'


@pytest.mark.parametrize("garbage", [
    "",
    "not base64!",
    base64.urlsafe_b64encode(b"plain text").decode(),
    base64.urlsafe_b64encode(gzip.compress(b"{not json")).decode(),
    base64.urlsafe_b64encode(gzip.compress(b"[1, 2]")).decode(),
])
def test_decode_garbage(garbage):
    with pytest.raises(CalendarDecodeError, match="Failed to decode calendar"):
        decode_calendar(garbage)


def test_product_id():
    assert make_product_id("abc") == "-//course-calendar-export//abc//EN"
    assert product_id_payload(make_product_id("abc")) == "abc"
    assert product_id_payload("-//Other Vendor//EN") is None
    assert product_id_payload("-//ns////EN") is None


def test_decode_rejects_characters_outside_the_alphabet():
    encoded = encode_calendar(_calendar())
    for damaged in (encoded[:10] + "!" + encoded[10:], encoded + "*", encoded[:5] + " " + encoded[5:]):
        with pytest.raises(CalendarDecodeError):
            decode_calendar(damaged)
