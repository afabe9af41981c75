# scripts/smoke.py
"""
Smoke Test Script for the Chronology engine.

Builds a small demo timeline in memory (one overlap, one impossible date,
one parent cycle), runs a conflict scan, prints the findings and statistics,
and optionally saves the result.

Usage
-----
1. Run against the built-in demo timeline:
    $ uv run python scripts/smoke.py

2. Also write the demo (with findings) to disk:
    $ uv run python scripts/smoke.py --out artifacts/demo_timeline.json
"""

import argparse
import logging
import sys
from pathlib import Path

from chronology.core.contracts.dates import DayDate, UnknownDate, YearDate
from chronology.core.store.manager import TimelineManager
from chronology.core.store.storage import TimelineFile
from chronology.core.temporal import format_date

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)


def build_demo() -> TimelineManager:
    """Populate a manager with a handful of deliberately inconsistent events."""
    tm = TimelineManager()

    ball = tm.create_event(
        "The Midsummer Ball", "scene", DayDate(year=1812, month=6, day=21), "major",
        character_ids=["elizabeth", "darcy"], location="Netherfield",
    )
    tm.create_event(
        "Journey to Pemberley", "scene", DayDate(year=1812, month=6, day=20),
        end_date=DayDate(year=1812, month=6, day=23), character_ids=["elizabeth"],
    )
    tm.create_event(
        "Letter dated 30 February", "plot-point", DayDate(year=1812, month=2, day=30),
        parent_event_id=ball.id,
    )
    tm.create_event("The old prophecy", "world-event", UnknownDate(display_text="Long ago"))

    first = tm.create_event("Chapter I", "scene", YearDate(year=1811))
    second = tm.create_event("Chapter II", "scene", YearDate(year=1811), parent_event_id=first.id)
    tm.update_event(first.id, {"parent_event_id": second.id})
    return tm


def main() -> None:
    """Execute the smoke test workflow."""
    parser = argparse.ArgumentParser(description="Run Chronology Smoke Test")
    parser.add_argument("--out", "-o", type=str, help="Optional path to save the demo timeline")
    args = parser.parse_args()

    tm = build_demo()
    count = tm.detect_all_conflicts()

    print("\n" + "=" * 60)
    print(f"✅ Scan finished: {count} finding(s) attached")
    print("=" * 60)

    for event in tm.sort_events(tm.get_all_events()):
        print(f"\n📅 {format_date(event.start_date):<22} {event.title}")
        for c in event.conflicts:
            print(f"   ⚠️  [{c.severity}] {c.type}: {c.message}")

    s = tm.get_statistics()
    print("\n📊 Statistics:")
    print(f"  - Events: {s.total_events}")
    print(f"  - Distinct conflicts: {s.total_conflicts} ({s.unresolved_conflicts} unresolved)")
    print(f"  - Characters tracked: {s.characters_tracked}")

    if args.out:
        path = TimelineFile(Path(args.out)).write(tm)
        print(f"\n💾 Timeline saved to: {path}")


if __name__ == "__main__":
    main()
