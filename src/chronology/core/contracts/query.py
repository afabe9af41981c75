"""Query contracts: filter criteria, search hits, and timeline statistics.

These are the shapes handed to (and returned from) the derived read views of
:class:`~chronology.core.store.manager.TimelineManager`. Dashboards and
exporters consume them directly.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .conflict import ConflictType
from .dates import TimelineDate
from .event import EventType, Importance, TimelineEvent

SortKey = Literal["chronological", "importance", "type", "recent"]


class _QueryModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DateRange(_QueryModel):
    """Closed range of dates, e.g. "First Act" or "1920s"."""

    start: TimelineDate
    end: TimelineDate
    label: str | None = None


class EventFilter(_QueryModel):
    """Conjunctive filter criteria.

    Fields
    ------
    types, importance:
        Applied when not ``None``; an empty list therefore matches nothing.
    character_ids, tags:
        Applied when non-empty; an event matches if it shares at least one id.
    date_range:
        The event's start date must be comparable with both bounds and lie
        within them (inclusive).
    has_conflicts:
        ``True`` keeps events carrying findings, ``False`` keeps clean ones.
    """

    types: list[EventType] | None = None
    importance: list[Importance] | None = None
    character_ids: list[str] | None = None
    tags: list[str] | None = None
    date_range: DateRange | None = None
    has_conflicts: bool | None = None


class SearchResult(_QueryModel):
    """A search hit with its summed relevance and the fields that matched."""

    event: TimelineEvent
    relevance: int
    matched_fields: list[str] = Field(default_factory=list)
    excerpt: str | None = None


class TimelineStats(_QueryModel):
    """Aggregate view of the whole timeline."""

    total_events: int = 0
    events_by_type: dict[EventType, int] = Field(default_factory=dict)
    events_by_importance: dict[Importance, int] = Field(default_factory=dict)

    earliest_event: TimelineEvent | None = None
    latest_event: TimelineEvent | None = None
    total_span_days: float | None = None

    total_conflicts: int = 0
    unresolved_conflicts: int = 0
    ignored_conflicts: int = 0
    conflicts_by_type: dict[ConflictType, int] = Field(default_factory=dict)

    characters_tracked: int = 0
    events_with_characters: int = 0


__all__ = ["DateRange", "EventFilter", "SearchResult", "SortKey", "TimelineStats"]
