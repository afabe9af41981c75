"""TimelineConflict — an inconsistency found by the conflict engine.

A finding is produced only by the detector and attached to the event(s) it
concerns. Its identity is deterministic (derived from the rule kind and the
implicated event ids), so two scans of an unchanged timeline yield the same
ids. The resolution flags (``resolved``, ``resolution``, ``ignored_by_user``)
belong to the consumer: the detector never sets them, it only carries them
forward from the previous scan.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ConflictType = Literal[
    "overlapping-events",  # character in two places at once
    "age-inconsistency",  # character age does not match birth date
    "date-order",  # end before start
    "travel-time",  # impossible travel between locations
    "duration-mismatch",  # stated duration does not match dates
    "missing-dependency",  # referenced event does not exist
    "circular-reference",  # parent chain loops back on itself
    "impossible-date",  # e.g. 30 February
]
CONFLICT_TYPES: tuple[ConflictType, ...] = get_args(ConflictType)

Severity = Literal["error", "warning", "info"]


class ConflictDetails(BaseModel):
    """Structured payload explaining a finding."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    expected_value: Any = None
    actual_value: Any = None
    difference: float | None = None


class TimelineConflict(BaseModel):
    """A single detected inconsistency among timeline events."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str
    type: ConflictType
    severity: Severity
    message: str
    event_ids: list[str] = Field(default_factory=list)
    details: ConflictDetails | None = None

    resolved: bool = False
    resolution: str | None = None
    ignored_by_user: bool = False

    @property
    def is_open(self) -> bool:
        """Return True if the user has neither resolved nor ignored this finding."""
        return not (self.resolved or self.ignored_by_user)

    def carry_resolution(self, previous: TimelineConflict) -> TimelineConflict:
        """Return a copy of this finding with ``previous``'s resolution flags."""
        return self.model_copy(
            update={
                "resolved": previous.resolved,
                "resolution": previous.resolution,
                "ignored_by_user": previous.ignored_by_user,
            }
        )


def conflict_id(kind: ConflictType, event_ids: Iterable[str], qualifier: str | None = None) -> str:
    """Build the deterministic id of a finding.

    The implicated ids are sorted, so a pairwise finding gets the same id no
    matter which of the two events it was computed from.

    >>> conflict_id("overlapping-events", ["b", "a"])
    'conflict-overlapping-events-a-b'
    >>> conflict_id("impossible-date", ["x"], qualifier="end")
    'conflict-impossible-date-end-x'
    """
    parts = ["conflict", kind]
    if qualifier:
        parts.append(qualifier)
    parts.extend(sorted(event_ids))
    return "-".join(parts)


__all__ = [
    "CONFLICT_TYPES",
    "ConflictDetails",
    "ConflictType",
    "Severity",
    "TimelineConflict",
    "conflict_id",
]
