"""
JSON schema of a calendar description.

These pydantic models describe the dict form embedded in generated feeds
and written by ``-f json`` (camelCase keys). They only check structure:
every key may be missing, and values that are well-typed but wrong (an
unparsable date, weekday 9) are left for validate() to report.
"""
from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class _Schema(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True)


class MeetingPatternSchema(_Schema):
    start_time: str = Field(default="", alias="startTime")
    end_time: str = Field(default="", alias="endTime")
    weekdays: List[int] = Field(default_factory=list)
    location: Optional[str] = None


class SubsectionSchema(_Schema):
    name: str = ""
    meeting_patterns: List[MeetingPatternSchema] = Field(default_factory=list, alias="meetingPatterns")
    except_dates: List[str] = Field(default_factory=list, alias="except")


class CourseSchema(_Schema):
    number: str = ""
    name: str = ""
    meeting_patterns: List[MeetingPatternSchema] = Field(default_factory=list, alias="meetingPatterns")
    except_dates: List[str] = Field(default_factory=list, alias="except")
    subsections: List[SubsectionSchema] = Field(default_factory=list)


class NoClassDateSchema(_Schema):
    type: Literal["no-class"]
    date: str = ""
    reason: Optional[str] = None
    hidden: Optional[bool] = None


class FollowDateSchema(_Schema):
    type: Literal["follow"]
    date: str = ""
    weekday: Optional[int] = None


OverrideDateSchema = Annotated[
    Union[NoClassDateSchema, FollowDateSchema], Field(discriminator="type")
]


class TermSchema(_Schema):
    id: str = ""
    start: str = ""
    end: str = ""
    courses: List[CourseSchema] = Field(default_factory=list)
    dates: List[OverrideDateSchema] = Field(default_factory=list)


class CalendarSchema(_Schema):
    name: str = ""
    terms: List[TermSchema] = Field(default_factory=list)


def _describe(error: ValidationError) -> str:
    problems = []
    for err in error.errors():
        where = ".".join(str(part) for part in err["loc"]) or "calendar"
        problems.append(f"{where}: {err['msg']}")
    return "; ".join(problems)


def parse_calendar(data: Any) -> CalendarSchema:
    """Check the structure of a description. Raises ValueError when malformed."""
    try:
        return CalendarSchema.model_validate(data)
    except ValidationError as e:
        raise ValueError(_describe(e)) from None


def parse_term(data: Any) -> TermSchema:
    try:
        return TermSchema.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"term: {_describe(e)}") from None
