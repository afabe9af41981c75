"""TimelineDate — a point (or fuzzy region) in story time or real time.

A date is a sum type discriminated by its ``precision`` tag. Each precision
has its own model class so that comparison and formatting code can branch on
the variant instead of guessing from which optional fields happen to be set.

Variants
--------
- :class:`ExactDate`    (``"exact"``)    date and time of day are known
- :class:`DayDate`      (``"day"``)      calendar day known, time unknown
- :class:`MonthDate`    (``"month"``)    month and year known
- :class:`YearDate`     (``"year"``)     year known
- :class:`DecadeDate`   (``"decade"``)   approximate decade
- :class:`CenturyDate`  (``"century"``)  approximate century
- :class:`RelativeDate` (``"relative"``) anchored to another event
- :class:`UnknownDate`  (``"unknown"``)  cannot be placed at all

Every variant may carry standard calendar fields and/or invented-calendar
fields (``custom_era``, ``custom_year``, ...). Calendar fields are stored as
given and are *not* range-checked here: an author may type "30 February",
and it is the conflict engine's ``impossible-date`` rule that reports it.

Serialization
-------------
Attributes are snake_case in Python and camelCase on the wire
(``customYear``, ``isApproximate``, ``displayText``), matching the maps the
host application persists. Both spellings are accepted on input.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

Confidence = Annotated[float, Field(ge=0.0, le=1.0)]


class DatePrecision(StrEnum):
    """Granularity at which a date is known."""

    EXACT = "exact"
    DAY = "day"
    MONTH = "month"
    YEAR = "year"
    DECADE = "decade"
    CENTURY = "century"
    RELATIVE = "relative"
    UNKNOWN = "unknown"


class _DateBase(BaseModel):
    """Fields shared by every precision variant."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    # Standard calendar
    year: int | None = None
    month: int | None = Field(default=None, description="1-12")
    day: int | None = Field(default=None, description="1-31")
    hour: int | None = Field(default=None, description="0-23")
    minute: int | None = Field(default=None, description="0-59")

    # Invented calendar, e.g. "Year 3 of the Third Age"
    custom_era: str | None = None
    custom_year: int | None = None
    custom_month: str | None = None
    custom_day: str | None = None

    is_approximate: bool = False
    confidence: Confidence | None = None
    display_text: str | None = Field(
        default=None, description="Author override for display, e.g. 'Spring 1920'."
    )


class ExactDate(_DateBase):
    """Date with a known time of day."""

    precision: Literal["exact"] = "exact"


class DayDate(_DateBase):
    """Calendar day, time of day unknown."""

    precision: Literal["day"] = "day"


class MonthDate(_DateBase):
    """Month of a year."""

    precision: Literal["month"] = "month"


class YearDate(_DateBase):
    """A year."""

    precision: Literal["year"] = "year"


class DecadeDate(_DateBase):
    """An approximate decade, stored as its representative year."""

    precision: Literal["decade"] = "decade"


class CenturyDate(_DateBase):
    """An approximate century, stored as its representative year."""

    precision: Literal["century"] = "century"


class RelativeDate(_DateBase):
    """Date expressed relative to another event ("3 days after the wedding").

    A relative date is only placeable on the timeline when it also carries an
    absolute ``year`` or ``custom_year``; otherwise it is incomparable.
    """

    precision: Literal["relative"] = "relative"

    relative_to_event_id: str | None = None
    relative_offset: float | None = Field(default=None, description="Offset in days.")
    relative_description: str | None = None


class UnknownDate(_DateBase):
    """Date that cannot be placed on the timeline."""

    precision: Literal["unknown"] = "unknown"


TimelineDate = Annotated[
    ExactDate
    | DayDate
    | MonthDate
    | YearDate
    | DecadeDate
    | CenturyDate
    | RelativeDate
    | UnknownDate,
    Field(discriminator="precision"),
]

_DATE_ADAPTER: TypeAdapter[TimelineDate] = TypeAdapter(TimelineDate)


def parse_date(data: Any) -> TimelineDate:
    """Validate a mapping (or an existing date model) into its variant class.

    Raises
    ------
    pydantic.ValidationError
        If the precision tag is missing/unknown or a field has the wrong type.
    """
    return _DATE_ADAPTER.validate_python(data)


def dump_date(date: TimelineDate) -> dict[str, Any]:
    """Return the JSON-ready, camelCase form of ``date`` (``None`` fields dropped)."""
    return date.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "CenturyDate",
    "Confidence",
    "DatePrecision",
    "DayDate",
    "DecadeDate",
    "ExactDate",
    "MonthDate",
    "RelativeDate",
    "TimelineDate",
    "UnknownDate",
    "YearDate",
    "dump_date",
    "parse_date",
]
