"""Independent conflict rules.

Each rule is a plain function ``(event, events) -> list[TimelineConflict]``
that inspects one event against the whole id-keyed map and returns its
findings. Rules never mutate events and never set resolution flags; the
:class:`~chronology.core.conflicts.detector.ConflictDetector` attaches what
they return.

Implemented
-----------
- ``overlapping-events``  a character is in two events at the same time
- ``impossible-date``     e.g. 30 February, month 13, hour 25
- ``date-order``          end date before start date
- ``missing-dependency``  parent or relative anchor event does not exist
- ``circular-reference``  parent chain loops back on itself

Placeholders
------------
``age-inconsistency`` needs a character birth-date registry, and
``travel-time`` / ``duration-mismatch`` need a location-distance model.
Neither source exists yet, so those rules return no findings.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from chronology.core.contracts.conflict import ConflictDetails, TimelineConflict, conflict_id
from chronology.core.contracts.dates import RelativeDate, TimelineDate
from chronology.core.contracts.event import TimelineEvent
from chronology.core.temporal import (
    Ordering,
    calculate_duration,
    compare_dates,
    find_calendar_violation,
)

EventMap = Mapping[str, TimelineEvent]
Rule = Callable[[TimelineEvent, EventMap], list[TimelineConflict]]


def _dated(event: TimelineEvent) -> list[tuple[str, TimelineDate]]:
    """Return ``(label, date)`` for the start date and, if set, the end date."""
    dates: list[tuple[str, TimelineDate]] = [("start", event.start_date)]
    if event.end_date is not None:
        dates.append(("end", event.end_date))
    return dates


# --------------------------------------------------------------------------- #
# overlapping-events
# --------------------------------------------------------------------------- #


def events_overlap(first: TimelineEvent, second: TimelineEvent) -> bool:
    """Return True if the two events' intervals intersect.

    An event without an end date is instantaneous (``[start, start]``). If
    either bound test is incomparable the events are treated as not
    overlapping: dates that cannot be placed never produce a finding.
    """
    end_first = first.end_date or first.start_date
    end_second = second.end_date or second.start_date

    return (
        compare_dates(first.start_date, end_second).at_most
        and compare_dates(second.start_date, end_first).at_most
    )


def check_overlapping_events(event: TimelineEvent, events: EventMap) -> list[TimelineConflict]:
    """Flag every other event that shares a character and overlaps in time."""
    if not event.character_ids:
        return []

    mine = set(event.character_ids)
    found: list[TimelineConflict] = []
    for other in events.values():
        if other.id == event.id:
            continue
        shared = sorted(mine.intersection(other.character_ids))
        if not shared or not events_overlap(event, other):
            continue

        first, second = sorted((event, other), key=lambda e: e.id)
        found.append(
            TimelineConflict(
                id=conflict_id("overlapping-events", [event.id, other.id]),
                type="overlapping-events",
                severity="warning",
                message=(
                    f"Character(s) {', '.join(shared)} appear in overlapping events: "
                    f'"{first.title}" and "{second.title}"'
                ),
                event_ids=[first.id, second.id],
                details=ConflictDetails(actual_value=shared),
            )
        )
    return found


# --------------------------------------------------------------------------- #
# impossible-date / date-order
# --------------------------------------------------------------------------- #


def check_impossible_dates(event: TimelineEvent, events: EventMap) -> list[TimelineConflict]:
    """Flag start/end dates whose standard calendar fields cannot exist."""
    found: list[TimelineConflict] = []
    for label, date in _dated(event):
        violation = find_calendar_violation(date)
        if violation is None:
            continue
        found.append(
            TimelineConflict(
                id=conflict_id("impossible-date", [event.id], qualifier=label),
                type="impossible-date",
                severity="error",
                message=(
                    f'Invalid {label} date in "{event.title}": '
                    f"{violation.field} {violation.value} is outside {violation.allowed}"
                ),
                event_ids=[event.id],
                details=ConflictDetails(
                    expected_value=violation.allowed,
                    actual_value={violation.field: violation.value},
                ),
            )
        )
    return found


def check_date_order(event: TimelineEvent, events: EventMap) -> list[TimelineConflict]:
    """Flag an end date that falls before the start date."""
    if event.end_date is None:
        return []
    if compare_dates(event.start_date, event.end_date) is not Ordering.GREATER:
        return []
    return [
        TimelineConflict(
            id=conflict_id("date-order", [event.id]),
            type="date-order",
            severity="error",
            message=f'End date before start date in "{event.title}"',
            event_ids=[event.id],
            details=ConflictDetails(
                difference=calculate_duration(event.start_date, event.end_date),
            ),
        )
    ]


# --------------------------------------------------------------------------- #
# missing-dependency / circular-reference
# --------------------------------------------------------------------------- #


def check_missing_dependencies(event: TimelineEvent, events: EventMap) -> list[TimelineConflict]:
    """Flag a parent or relative-date anchor that is not in the store.

    Only references between timeline events are checked. Character, scene,
    note and file ids point at collections owned elsewhere and are left alone.
    """
    found: list[TimelineConflict] = []

    if event.parent_event_id is not None and event.parent_event_id not in events:
        found.append(
            TimelineConflict(
                id=conflict_id("missing-dependency", [event.id], qualifier="parent"),
                type="missing-dependency",
                severity="warning",
                message=f'Parent event of "{event.title}" does not exist',
                event_ids=[event.id],
                details=ConflictDetails(actual_value=event.parent_event_id),
            )
        )

    for label, date in _dated(event):
        if not isinstance(date, RelativeDate) or date.relative_to_event_id is None:
            continue
        if date.relative_to_event_id in events:
            continue
        found.append(
            TimelineConflict(
                id=conflict_id("missing-dependency", [event.id], qualifier=f"{label}-anchor"),
                type="missing-dependency",
                severity="warning",
                message=f'The {label} date of "{event.title}" is relative to a missing event',
                event_ids=[event.id],
                details=ConflictDetails(actual_value=date.relative_to_event_id),
            )
        )
    return found


def find_parent_cycle(event: TimelineEvent, events: EventMap) -> list[str] | None:
    """Walk parent pointers from ``event`` and return the cycle it runs into.

    The returned ids are in walk order, starting at the first node that was
    revisited. ``None`` means the chain ends (root or dangling parent). The
    walk visits each id at most once, so it terminates on any map.
    """
    path: list[str] = []
    position: dict[str, int] = {}
    current: TimelineEvent | None = event

    while current is not None:
        if current.id in position:
            return path[position[current.id] :]
        position[current.id] = len(path)
        path.append(current.id)
        if current.parent_event_id is None:
            return None
        current = events.get(current.parent_event_id)
    return None


def check_circular_reference(event: TimelineEvent, events: EventMap) -> list[TimelineConflict]:
    """Report each parent cycle once, on its member with the smallest id.

    Events that merely lead into a cycle are not cycle members and get no
    finding of their own.
    """
    cycle = find_parent_cycle(event, events)
    if not cycle or event.id != min(cycle):
        return []

    titles = [events[eid].title if eid in events else eid for eid in cycle]
    loop = " → ".join(f'"{t}"' for t in [*titles, titles[0]])
    return [
        TimelineConflict(
            id=conflict_id("circular-reference", cycle),
            type="circular-reference",
            severity="error",
            message=f"Circular parent reference: {loop}",
            event_ids=sorted(cycle),
            details=ConflictDetails(actual_value=cycle),
        )
    ]


# --------------------------------------------------------------------------- #
# Placeholders awaiting external data sources
# --------------------------------------------------------------------------- #


def check_age_inconsistency(event: TimelineEvent, events: EventMap) -> list[TimelineConflict]:
    """Needs character birth dates; always empty for now."""
    return []


def check_travel_time(event: TimelineEvent, events: EventMap) -> list[TimelineConflict]:
    """Needs a location-distance model; always empty for now."""
    return []


def check_duration_mismatch(event: TimelineEvent, events: EventMap) -> list[TimelineConflict]:
    """Needs a location-distance model; always empty for now."""
    return []


DEFAULT_RULES: tuple[Rule, ...] = (
    check_overlapping_events,
    check_age_inconsistency,
    check_impossible_dates,
    check_date_order,
    check_missing_dependencies,
    check_circular_reference,
    check_travel_time,
    check_duration_mismatch,
)


__all__ = [
    "DEFAULT_RULES",
    "EventMap",
    "Rule",
    "check_age_inconsistency",
    "check_circular_reference",
    "check_date_order",
    "check_duration_mismatch",
    "check_impossible_dates",
    "check_missing_dependencies",
    "check_overlapping_events",
    "check_travel_time",
    "events_overlap",
    "find_parent_cycle",
]
