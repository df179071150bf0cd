"""
Compact encoding of a calendar description for embedding in a feed.

JSON -> gzip -> URL-safe base64 without padding. The gzip header timestamp
is fixed so encoding the same calendar always yields the same string.

The encoded string is stored in the feed's PRODID:
    -//<namespace>//<encoded>//EN
"""
from __future__ import annotations

import base64
import binascii
import gzip
import json
import zlib

from .errors import CalendarDecodeError, CalendarEncodeError
from .model import Calendar, calendar_from_dict, calendar_to_dict

PRODID_NAMESPACE = "course-calendar-export"


def encode_calendar(calendar: Calendar) -> str:
    try:
        text = json.dumps(calendar_to_dict(calendar), ensure_ascii=False, separators=(",", ":"))
        packed = gzip.compress(text.encode("utf-8"), mtime=0)
    except (TypeError, ValueError) as e:
        raise CalendarEncodeError(e) from e
    return base64.urlsafe_b64encode(packed).decode("ascii").rstrip("=")


def decode_calendar(encoded: str) -> Calendar:
    """Inverse of encode_calendar. Raises CalendarDecodeError on any failure."""
    try:
        raw = encoded.strip()
        packed = base64.b64decode(raw + "=" * (-len(raw) % 4), altchars=b"-_", validate=True)
        text = gzip.decompress(packed).decode("utf-8")
        return calendar_from_dict(json.loads(text))
    except (binascii.Error, OSError, EOFError, zlib.error, UnicodeError, ValueError) as e:
        raise CalendarDecodeError(e) from e


def make_product_id(encoded: str, namespace: str = PRODID_NAMESPACE) -> str:
    return f"-//{namespace}//{encoded}//EN"


def product_id_payload(prodid: str) -> str | None:
    """Return the encoded segment of a '-//ns//data//EN' PRODID, or None."""
    parts = prodid.split("//")
    if len(parts) < 4 or not parts[2]:
        return None
    return parts[2]
