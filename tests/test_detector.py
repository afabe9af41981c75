"""Tests for the full-rescan conflict detector, driven through the manager."""

from __future__ import annotations

from chronology.core.conflicts.detector import ConflictDetector, merge_findings
from chronology.core.conflicts.rules import check_date_order
from chronology.core.contracts.conflict import TimelineConflict
from chronology.core.contracts.dates import DayDate
from chronology.core.store.manager import TimelineManager

JAN_1 = DayDate(year=2024, month=1, day=1)
JAN_5 = DayDate(year=2024, month=1, day=5)
FEB_1 = DayDate(year=2024, month=2, day=1)


def _overlap_fixture() -> tuple[TimelineManager, str, str, str]:
    tm = TimelineManager()
    x = tm.create_event("X", "scene", JAN_1, character_ids=["c1"])
    y = tm.create_event("Y", "scene", JAN_1, end_date=JAN_5, character_ids=["c1"])
    z = tm.create_event("Z", "scene", FEB_1, character_ids=["c1"])
    return tm, x.id, y.id, z.id


def test_overlap_example() -> None:
    """X/Y overlap on c1; Z is clear of both."""
    tm, x, y, z = _overlap_fixture()
    tm.detect_all_conflicts()

    ex, ey, ez = tm.get_event(x), tm.get_event(y), tm.get_event(z)
    assert ex is not None and ey is not None and ez is not None

    assert [c.type for c in ex.conflicts] == ["overlapping-events"]
    assert sorted(ex.conflicts[0].event_ids) == sorted([x, y])
    assert [c.id for c in ey.conflicts] == [c.id for c in ex.conflicts]
    assert ez.conflicts == []


def test_cycle_terminates_with_single_finding() -> None:
    """A → B → C → A yields exactly one circular-reference finding."""
    tm = TimelineManager()
    a = tm.create_event("A", "scene", JAN_1)
    b = tm.create_event("B", "scene", JAN_1)
    c = tm.create_event("C", "scene", JAN_1)
    tm.update_event(a.id, {"parent_event_id": b.id})
    tm.update_event(b.id, {"parent_event_id": c.id})
    tm.update_event(c.id, {"parent_event_id": a.id})

    tm.detect_all_conflicts()

    findings = [f for e in tm.get_all_events() for f in e.conflicts]
    assert [f.type for f in findings] == ["circular-reference"]
    assert sorted(findings[0].event_ids) == sorted([a.id, b.id, c.id])
    assert tm.get_statistics().conflicts_by_type["circular-reference"] == 1


def test_invalid_dates_detected() -> None:
    """30 Feb 2024 and 29 Feb 2023 are both impossible."""
    tm = TimelineManager()
    leap = tm.create_event("Leap", "scene", DayDate(year=2024, month=2, day=30))
    common = tm.create_event("Common", "scene", DayDate(year=2023, month=2, day=29))

    tm.detect_all_conflicts()

    for eid in (leap.id, common.id):
        event = tm.get_event(eid)
        assert event is not None
        assert [c.type for c in event.conflicts] == ["impossible-date"]


def test_rescan_keeps_resolution_flags() -> None:
    """User resolution state survives a rescan when the finding persists."""
    tm, x, y, _ = _overlap_fixture()
    tm.detect_all_conflicts()
    ex = tm.get_event(x)
    assert ex is not None
    finding_id = ex.conflicts[0].id

    assert tm.resolve_conflict(finding_id, "Y is a flashback") == 2
    tm.detect_all_conflicts()

    for eid in (x, y):
        event = tm.get_event(eid)
        assert event is not None
        assert event.conflicts[0].resolved is True
        assert event.conflicts[0].resolution == "Y is a flashback"
    assert tm.get_statistics().unresolved_conflicts == 0


def test_rescan_drops_fixed_findings() -> None:
    """Findings that no longer occur disappear; new ones start unresolved."""
    tm, x, y, _ = _overlap_fixture()
    tm.detect_all_conflicts()
    ex = tm.get_event(x)
    assert ex is not None
    assert tm.ignore_conflict(ex.conflicts[0].id) == 2

    # Y now runs backwards from 1 Feb to 20 Jan: no overlap, but bad order.
    tm.update_event(y, {"start_date": FEB_1, "end_date": DayDate(year=2024, month=1, day=20)})
    tm.detect_all_conflicts()

    ey = tm.get_event(y)
    assert ey is not None
    assert [c.type for c in ey.conflicts] == ["date-order"]
    assert not ey.conflicts[0].ignored_by_user and not ey.conflicts[0].resolved
    assert ex.conflicts == []
    assert tm.get_statistics().ignored_conflicts == 0


def test_detector_with_custom_rules() -> None:
    """The detector runs exactly the rules it is given."""
    tm = TimelineManager(detector=ConflictDetector(rules=[check_date_order]))
    e = tm.create_event("Bad", "scene", DayDate(year=2024, month=2, day=30), end_date=JAN_1)

    assert tm.detect_all_conflicts() == 1
    assert [c.type for c in e.conflicts] == ["date-order"]


def test_merge_findings_only_carries_flags() -> None:
    """Message and details come from the fresh finding; flags from the old one."""
    old = TimelineConflict(
        id="k", type="date-order", severity="error", message="old", resolved=True,
        resolution="intended", ignored_by_user=True,
    )
    new = TimelineConflict(id="k", type="date-order", severity="error", message="new")
    other = TimelineConflict(id="j", type="date-order", severity="error", message="other")

    merged = merge_findings([old], [new, other])

    assert [c.message for c in merged] == ["new", "other"]
    assert merged[0].resolved and merged[0].ignored_by_user
    assert merged[0].resolution == "intended"
    assert not merged[1].resolved
