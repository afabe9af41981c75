"""Unit tests for the individual conflict rules.

Rules are plain functions over ``(event, events)``, so these tests build
small id-keyed maps by hand instead of going through the manager.
"""

from __future__ import annotations

from typing import Any

from chronology.core.conflicts.rules import (
    check_age_inconsistency,
    check_circular_reference,
    check_date_order,
    check_duration_mismatch,
    check_impossible_dates,
    check_missing_dependencies,
    check_overlapping_events,
    check_travel_time,
    events_overlap,
    find_parent_cycle,
)
from chronology.core.contracts.conflict import conflict_id
from chronology.core.contracts.dates import DayDate, RelativeDate, UnknownDate, YearDate
from chronology.core.contracts.event import TimelineEvent


def _event(eid: str, start: Any, **fields: Any) -> TimelineEvent:
    return TimelineEvent(id=eid, title=eid.upper(), type="scene", start_date=start, **fields)


def _map(*events: TimelineEvent) -> dict[str, TimelineEvent]:
    return {e.id: e for e in events}


JAN_1 = DayDate(year=2024, month=1, day=1)
JAN_5 = DayDate(year=2024, month=1, day=5)
FEB_1 = DayDate(year=2024, month=2, day=1)


# ------------------------------ overlapping-events ---------------------------


def test_overlap_instant_inside_interval() -> None:
    """X (instant on Jan 1) and Y (Jan 1-5) share c1 and overlap."""
    x = _event("x", JAN_1, character_ids=["c1"])
    y = _event("y", JAN_1, end_date=JAN_5, character_ids=["c1", "c2"])
    found = check_overlapping_events(x, _map(x, y))

    assert len(found) == 1
    conflict = found[0]
    assert conflict.type == "overlapping-events"
    assert conflict.severity == "warning"
    assert conflict.event_ids == ["x", "y"]
    assert conflict.details is not None and conflict.details.actual_value == ["c1"]


def test_overlap_disjoint_events() -> None:
    """Z on Feb 1 does not overlap X on Jan 1."""
    x = _event("x", JAN_1, character_ids=["c1"])
    z = _event("z", FEB_1, character_ids=["c1"])
    assert check_overlapping_events(x, _map(x, z)) == []


def test_overlap_same_id_from_both_sides() -> None:
    """A pairwise finding has one identity regardless of which side found it."""
    x = _event("x", JAN_1, character_ids=["c1"])
    y = _event("y", JAN_1, end_date=JAN_5, character_ids=["c1"])
    events = _map(x, y)
    assert check_overlapping_events(x, events)[0].id == check_overlapping_events(y, events)[0].id


def test_overlap_requires_shared_character() -> None:
    """Simultaneous events with different characters are fine."""
    x = _event("x", JAN_1, character_ids=["c1"])
    y = _event("y", JAN_1, character_ids=["c2"])
    assert check_overlapping_events(x, _map(x, y)) == []
    assert check_overlapping_events(_event("n", JAN_1), _map(x, y)) == []


def test_overlap_suppressed_when_incomparable() -> None:
    """Unplaceable dates never produce an overlap."""
    x = _event("x", JAN_1, character_ids=["c1"])
    u = _event("u", UnknownDate(), character_ids=["c1"])
    assert not events_overlap(x, u)
    assert check_overlapping_events(x, _map(x, u)) == []


# --------------------------- impossible-date / order -------------------------


def test_impossible_february_dates() -> None:
    """30 Feb 2024 and 29 Feb 2023 are impossible; 29 Feb 2024 is not."""
    leap = _event("a", DayDate(year=2024, month=2, day=30))
    common = _event("b", DayDate(year=2023, month=2, day=29))
    fine = _event("c", DayDate(year=2024, month=2, day=29))

    found = check_impossible_dates(leap, _map(leap))
    assert [c.type for c in found] == ["impossible-date"]
    assert found[0].severity == "error"
    assert found[0].details is not None and found[0].details.expected_value == "1-29"

    assert [c.type for c in check_impossible_dates(common, _map(common))] == ["impossible-date"]
    assert check_impossible_dates(fine, _map(fine)) == []


def test_impossible_end_date_has_own_identity() -> None:
    """Start and end dates are checked separately."""
    e = _event(
        "a",
        DayDate(year=2024, month=13),
        end_date=DayDate(year=2024, month=4, day=31),
    )
    ids = {c.id for c in check_impossible_dates(e, _map(e))}
    assert ids == {
        conflict_id("impossible-date", ["a"], qualifier="start"),
        conflict_id("impossible-date", ["a"], qualifier="end"),
    }


def test_date_order() -> None:
    """An end date before the start date is an error carrying the gap."""
    backwards = _event("a", JAN_5, end_date=JAN_1)
    found = check_date_order(backwards, _map(backwards))
    assert [c.type for c in found] == ["date-order"]
    assert found[0].details is not None and found[0].details.difference == 4.0

    forwards = _event("b", JAN_1, end_date=JAN_5)
    same_day = _event("c", JAN_1, end_date=JAN_1)
    fuzzy = _event("d", JAN_5, end_date=UnknownDate())
    for e in (forwards, same_day, fuzzy):
        assert check_date_order(e, _map(e)) == []


# ----------------------- missing-dependency / circular -----------------------


def test_missing_parent_and_anchor() -> None:
    """Dangling parent and relative-date anchors are reported."""
    e = _event(
        "a",
        RelativeDate(relative_to_event_id="ghost", relative_offset=3),
        parent_event_id="nobody",
    )
    found = check_missing_dependencies(e, _map(e))
    assert {c.type for c in found} == {"missing-dependency"}
    assert {c.details.actual_value for c in found if c.details} == {"nobody", "ghost"}


def test_external_weak_references_not_checked() -> None:
    """Character/scene/file ids are never validated."""
    e = _event("a", JAN_1, character_ids=["nobody"], scene_ids=["s404"], linked_file_ids=["f"])
    assert check_missing_dependencies(e, _map(e)) == []


def test_find_parent_cycle() -> None:
    """The walk returns cycle members in walk order and terminates."""
    a = _event("a", JAN_1, parent_event_id="b")
    b = _event("b", JAN_1, parent_event_id="c")
    c = _event("c", JAN_1, parent_event_id="a")
    d = _event("d", JAN_1, parent_event_id="a")
    events = _map(a, b, c, d)

    assert find_parent_cycle(a, events) == ["a", "b", "c"]
    assert find_parent_cycle(d, events) == ["a", "b", "c"]
    assert find_parent_cycle(_event("root", JAN_1), events) is None


def test_circular_reference_reported_once() -> None:
    """Only the smallest-id member of a cycle carries the finding."""
    a = _event("a", JAN_1, parent_event_id="b")
    b = _event("b", JAN_1, parent_event_id="c")
    c = _event("c", JAN_1, parent_event_id="a")
    d = _event("d", JAN_1, parent_event_id="a")
    events = _map(a, b, c, d)

    found = [f for e in events.values() for f in check_circular_reference(e, events)]
    assert len(found) == 1
    assert found[0].type == "circular-reference"
    assert found[0].event_ids == ["a", "b", "c"]


def test_self_parent_is_a_cycle() -> None:
    """An event that is its own parent is a one-node cycle."""
    a = _event("a", JAN_1, parent_event_id="a")
    assert len(check_circular_reference(a, _map(a))) == 1


# ------------------------------- placeholders --------------------------------


def test_placeholder_rules_report_nothing() -> None:
    """Rules waiting on external data sources never produce findings."""
    x = _event("x", YearDate(year=1900), character_ids=["c1"], location="Paris", duration=-5)
    y = _event("y", YearDate(year=1900), character_ids=["c1"], location="Tokyo")
    events = _map(x, y)
    for rule in (check_age_inconsistency, check_travel_time, check_duration_mismatch):
        assert rule(x, events) == []
