"""Full-rescan conflict detector.

``detect_all`` recomputes every event's findings from scratch and then
merges them with the event's previous ``conflicts`` list by finding id:

- a finding that still occurs keeps the user's ``resolved``,
  ``resolution`` and ``ignored_by_user`` flags;
- a finding that no longer occurs is dropped;
- a new finding starts unresolved.

The scan is O(n²) in the number of events (overlap checks every pair), so
callers trigger it explicitly, e.g. after a batch of edits, rather than on
every mutation.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from chronology.core.contracts.conflict import TimelineConflict
from chronology.core.contracts.event import TimelineEvent
from chronology.core.settings import get_logger

from .rules import DEFAULT_RULES, Rule

logger = get_logger(__name__)


def merge_findings(
    previous: Sequence[TimelineConflict], fresh: Sequence[TimelineConflict]
) -> list[TimelineConflict]:
    """Return ``fresh`` with resolution state carried over from ``previous``."""
    prior = {c.id: c for c in previous}
    merged: list[TimelineConflict] = []
    for finding in fresh:
        old = prior.get(finding.id)
        merged.append(finding.carry_resolution(old) if old is not None else finding)
    return merged


class ConflictDetector:
    """Runs a fixed set of rules over an id-keyed event map."""

    def __init__(self, rules: Sequence[Rule] = DEFAULT_RULES) -> None:
        self.rules: tuple[Rule, ...] = tuple(rules)

    def scan_event(
        self, event: TimelineEvent, events: Mapping[str, TimelineEvent]
    ) -> list[TimelineConflict]:
        """Run every rule for ``event`` and return the de-duplicated findings."""
        seen: dict[str, TimelineConflict] = {}
        for rule in self.rules:
            for finding in rule(event, events):
                seen.setdefault(finding.id, finding)
        return list(seen.values())

    def detect_all(self, events: Mapping[str, TimelineEvent]) -> int:
        """Rescan all events in place and return the number of attached findings."""
        total = 0
        for event in events.values():
            fresh = self.scan_event(event, events)
            event.conflicts = merge_findings(event.conflicts, fresh)
            total += len(event.conflicts)
        logger.debug("Conflict scan: %d event(s), %d finding(s)", len(events), total)
        return total


__all__ = ["ConflictDetector", "merge_findings"]
