"""TimelineEvent — a dated scene, life event, plot point or research fact.

Relationships
-------------
- ``character_ids``, ``scene_ids``, ``research_note_ids`` and
  ``linked_file_ids`` are weak references into collections owned elsewhere.
  They are ids only; dangling ids are tolerated and never validated.
- ``parent_event_id`` is the single stored side of the event hierarchy.
  Children are derived by the manager from the parent pointers, so there is
  no second list to keep in sync.

Mutation
--------
``validate_assignment`` is enabled: assigning a mapping to ``start_date`` or
``end_date`` converts it to the matching date variant, and a malformed value
raises instead of silently corrupting the store.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .conflict import TimelineConflict
from .dates import TimelineDate

EventType = Literal[
    "scene",  # story scene/chapter event
    "character-event",  # birth, death, marriage, ...
    "plot-point",  # major plot milestone
    "historical-fact",  # historical/research fact
    "world-event",  # world-building event
    "research",  # research milestone
    "other",
]
EVENT_TYPES: tuple[EventType, ...] = get_args(EventType)

Importance = Literal["critical", "major", "moderate", "minor"]
#: Most important first.
IMPORTANCE_LEVELS: tuple[Importance, ...] = get_args(Importance)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TimelineEvent(BaseModel):
    """A single event on the chronology."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    id: str
    title: str
    description: str | None = None
    type: EventType = "other"

    # Dating
    start_date: TimelineDate
    end_date: TimelineDate | None = None
    duration: float | None = Field(default=None, description="Days, calculated or manual.")

    # Weak references
    character_ids: list[str] = Field(default_factory=list)
    scene_ids: list[str] = Field(default_factory=list)
    research_note_ids: list[str] = Field(default_factory=list)
    linked_file_ids: list[str] = Field(default_factory=list)

    # Hierarchy
    parent_event_id: str | None = None

    # Metadata
    location: str | None = None
    tags: list[str] = Field(default_factory=list)
    importance: Importance = "moderate"
    color: str | None = None
    notes: str | None = None

    conflicts: list[TimelineConflict] = Field(default_factory=list)

    created: datetime = Field(default_factory=_utcnow)
    modified: datetime = Field(default_factory=_utcnow)

    @field_validator(
        "character_ids",
        "scene_ids",
        "research_note_ids",
        "linked_file_ids",
        "tags",
        "conflicts",
        mode="before",
    )
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        """Host data omits or nulls list fields; treat both as empty."""
        return [] if v is None else v

    @property
    def has_conflicts(self) -> bool:
        """Return True if the last scan attached any finding."""
        return bool(self.conflicts)

    def touch(self) -> None:
        """Refresh the ``modified`` timestamp."""
        self.modified = _utcnow()

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready, camelCase form used by persistence."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "EVENT_TYPES",
    "EventType",
    "IMPORTANCE_LEVELS",
    "Importance",
    "TimelineEvent",
]
