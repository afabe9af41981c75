"""
In-memory timeline store with hierarchy, queries and conflict scanning.

The manager owns an id-keyed map of :class:`TimelineEvent` (the "arena").
Parent/child structure is an index relation on top of that map:

- ``parent_event_id`` is the only stored side of the hierarchy;
- children are derived on demand by scanning parent pointers, so the two
  sides can never disagree;
- cascade delete and ancestor walks are bounded index walks with a visited
  set, which keeps them finite even on malformed (cyclic) data.

Error model
-----------
Operations on unknown ids are silent no-ops (``None`` / ``False``). Update
keys that are unknown, immutable, or fail validation are skipped with a
warning instead of raising. Semantic problems such as impossible calendar
dates are not rejected at write time; they surface as findings on the next
:meth:`TimelineManager.detect_all_conflicts` pass.

Concurrency
-----------
Single owner, single thread, no locks. Nothing here performs I/O; loading and
saving go through :mod:`chronology.core.store.storage` or the host.
"""

from __future__ import annotations

import functools
import time
import uuid
from collections import deque
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from chronology.core.conflicts.detector import ConflictDetector
from chronology.core.contracts.conflict import CONFLICT_TYPES, TimelineConflict
from chronology.core.contracts.dates import TimelineDate
from chronology.core.contracts.event import (
    EVENT_TYPES,
    IMPORTANCE_LEVELS,
    EventType,
    Importance,
    TimelineEvent,
)
from chronology.core.contracts.query import (
    EventFilter,
    SearchResult,
    SortKey,
    TimelineStats,
)
from chronology.core.settings import get_logger
from chronology.core.temporal import (
    Ordering,
    calculate_duration,
    compare_dates,
    date_to_days,
    format_date,
)

logger = get_logger(__name__)

#: Relevance weight per searchable field, in match-reporting order.
SEARCH_WEIGHTS: tuple[tuple[str, int], ...] = (
    ("title", 10),
    ("description", 7),
    ("location", 5),
    ("tags", 4),
    ("notes", 3),
)

_EXCERPT_RADIUS = 40
_IMMUTABLE_FIELDS = frozenset({"id", "created", "modified"})
_CHILDREN_KEYS = frozenset({"child_event_ids", "childEventIds"})


def _field_names() -> dict[str, str]:
    """Map both snake_case names and camelCase aliases to attribute names."""
    names: dict[str, str] = {}
    for name, info in TimelineEvent.model_fields.items():
        names[name] = name
        if info.alias:
            names[info.alias] = name
    return names


_FIELD_NAMES = _field_names()


def _chronological(first: TimelineEvent, second: TimelineEvent) -> int:
    """``cmp``-style ordering of start dates; EQUAL (within a day) keeps input order."""
    order = compare_dates(first.start_date, second.start_date)
    if order is Ordering.LESS:
        return -1
    if order is Ordering.GREATER:
        return 1
    return 0


def _excerpt(text: str, needle: str) -> str:
    """Return a short window of ``text`` around the first match of ``needle``."""
    at = text.lower().find(needle)
    start = max(at - _EXCERPT_RADIUS, 0)
    end = min(at + len(needle) + _EXCERPT_RADIUS, len(text))
    snippet = text[start:end].strip()
    if start > 0:
        snippet = "…" + snippet
    if end < len(text):
        snippet += "…"
    return snippet


class TimelineManager:
    """
    Owner of the timeline's events.

    Attributes
    ----------
    _events : dict[str, TimelineEvent]
        The arena, keyed by event id.
    _detector : ConflictDetector
        Rule runner used by :meth:`detect_all_conflicts`.
    """

    __slots__ = ("_events", "_detector")

    # Pure temporal utilities, re-exposed for consumers that only hold a manager.
    compare_dates = staticmethod(compare_dates)
    calculate_duration = staticmethod(calculate_duration)
    format_date = staticmethod(format_date)

    def __init__(self, detector: ConflictDetector | None = None) -> None:
        self._events: dict[str, TimelineEvent] = {}
        self._detector = detector if detector is not None else ConflictDetector()

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    # ------------------------------ Persistence -----------------------------

    def load_events(self, data: Mapping[str, TimelineEvent | Mapping[str, Any]]) -> None:
        """
        Replace the whole store with ``data``.

        Raw mappings are parsed into :class:`TimelineEvent` (structural
        validation only). Legacy payloads that list ``childEventIds`` on the
        parent are folded into the children's ``parent_event_id`` when the
        child does not already name a parent.

        Raises
        ------
        pydantic.ValidationError
            If a raw payload is structurally malformed.
        """
        events: dict[str, TimelineEvent] = {}
        legacy_children: dict[str, list[str]] = {}

        for key, raw in data.items():
            if isinstance(raw, TimelineEvent):
                events[key] = raw
                continue
            payload = dict(raw)
            payload.setdefault("id", key)
            listed = payload.get("childEventIds") or payload.get("child_event_ids")
            if listed:
                legacy_children[key] = [str(cid) for cid in listed]
            events[key] = TimelineEvent.model_validate(payload)

        for parent_id, child_ids in legacy_children.items():
            for child_id in child_ids:
                child = events.get(child_id)
                if child is not None and child.parent_event_id is None:
                    child.parent_event_id = parent_id

        self._events = events
        logger.debug("Loaded %d event(s)", len(events))

    def get_events_for_save(self) -> dict[str, TimelineEvent]:
        """Return a deep-copied snapshot of the store for serialization."""
        return {eid: event.model_copy(deep=True) for eid, event in self._events.items()}

    def dump_events(self) -> dict[str, dict[str, Any]]:
        """Return the store as JSON-ready camelCase payloads keyed by id."""
        return {eid: event.to_payload() for eid, event in self._events.items()}

    # --------------------------------- CRUD ---------------------------------

    def get_all_events(self) -> list[TimelineEvent]:
        """Return every event in insertion order."""
        return list(self._events.values())

    def get_event(self, event_id: str) -> TimelineEvent | None:
        """Return the event with ``event_id``, or ``None``."""
        return self._events.get(event_id)

    def _new_id(self) -> str:
        while True:
            candidate = f"event-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
            if candidate not in self._events:
                return candidate

    def create_event(
        self,
        title: str,
        type: EventType,
        start_date: TimelineDate | Mapping[str, Any],
        importance: Importance = "moderate",
        **fields: Any,
    ) -> TimelineEvent:
        """
        Create, store and return a new event.

        Parameters
        ----------
        title, type, start_date, importance:
            Required classification and dating. ``start_date`` may be a date
            model or a mapping carrying a ``precision`` tag.
        **fields:
            Any other :class:`TimelineEvent` field (snake_case or camelCase).
        """
        for key in _IMMUTABLE_FIELDS:
            fields.pop(key, None)
        now = datetime.now(UTC)
        event = TimelineEvent(
            id=self._new_id(),
            title=title,
            type=type,
            start_date=start_date,
            importance=importance,
            created=now,
            modified=now,
            **fields,
        )
        self._events[event.id] = event
        logger.debug("Created event %s (%s)", event.id, title)
        return event

    def update_event(self, event_id: str, fields: Mapping[str, Any]) -> TimelineEvent | None:
        """
        Shallow-merge ``fields`` into an event and bump ``modified``.

        Dates are replaced wholesale, never deep-merged: to change one
        component of ``start_date`` send the whole date again.

        ``child_event_ids`` is accepted as a convenience and applied to the
        children's parent pointers (listed events are re-parented here,
        current children that are not listed are detached).

        Returns the updated event, or ``None`` if ``event_id`` is unknown.
        """
        event = self._events.get(event_id)
        if event is None:
            return None

        for key, value in fields.items():
            if key in _CHILDREN_KEYS:
                self._set_children(event_id, value or [])
                continue
            name = _FIELD_NAMES.get(key)
            if name is None or name in _IMMUTABLE_FIELDS:
                logger.warning("Ignoring update of %r on event %s", key, event_id)
                continue
            try:
                setattr(event, name, value)
            except ValidationError as e:
                logger.warning("Rejected %r for event %s: %s", key, event_id, e)

        event.touch()
        return event

    def delete_event(self, event_id: str) -> bool:
        """
        Delete an event together with its whole descendant subtree.

        Returns ``True`` if the event existed.
        """
        if event_id not in self._events:
            return False

        doomed = self._subtree_ids(event_id)
        for eid in doomed:
            self._events.pop(eid, None)
        logger.debug("Deleted event %s and %d descendant(s)", event_id, len(doomed) - 1)
        return True

    # ------------------------------- Hierarchy ------------------------------

    def _children_index(self) -> dict[str, list[str]]:
        index: dict[str, list[str]] = {}
        for eid, event in self._events.items():
            if event.parent_event_id is not None:
                index.setdefault(event.parent_event_id, []).append(eid)
        return index

    def _subtree_ids(self, root_id: str) -> list[str]:
        index = self._children_index()
        seen: set[str] = {root_id}
        order: list[str] = [root_id]
        queue: deque[str] = deque([root_id])
        while queue:
            for child_id in index.get(queue.popleft(), []):
                if child_id not in seen:
                    seen.add(child_id)
                    order.append(child_id)
                    queue.append(child_id)
        return order

    def _set_children(self, parent_id: str, child_ids: Iterable[str]) -> None:
        wanted = [cid for cid in child_ids if cid in self._events and cid != parent_id]
        for current in self.get_child_ids(parent_id):
            if current not in wanted:
                self._events[current].parent_event_id = None
                self._events[current].touch()
        for cid in wanted:
            child = self._events[cid]
            if child.parent_event_id != parent_id:
                child.parent_event_id = parent_id
                child.touch()

    def get_child_ids(self, event_id: str) -> list[str]:
        """Return the ids of events whose parent is ``event_id``."""
        return [eid for eid, e in self._events.items() if e.parent_event_id == event_id]

    def get_children(self, event_id: str) -> list[TimelineEvent]:
        """Return the direct children of ``event_id``."""
        return [self._events[eid] for eid in self.get_child_ids(event_id)]

    def get_ancestors(self, event_id: str) -> list[TimelineEvent]:
        """Return parent, grandparent, ... of ``event_id``; stops at a cycle or gap."""
        out: list[TimelineEvent] = []
        seen: set[str] = {event_id}
        current = self._events.get(event_id)
        while current is not None and current.parent_event_id is not None:
            parent_id = current.parent_event_id
            if parent_id in seen:
                break
            seen.add(parent_id)
            current = self._events.get(parent_id)
            if current is not None:
                out.append(current)
        return out

    # -------------------------------- Conflicts -----------------------------

    def detect_all_conflicts(self) -> int:
        """Rescan every event; see :class:`ConflictDetector`. Returns the finding count."""
        return self._detector.detect_all(self._events)

    def _conflict_copies(self, conflict_id: str) -> list[TimelineConflict]:
        return [c for e in self._events.values() for c in e.conflicts if c.id == conflict_id]

    def resolve_conflict(self, conflict_id: str, resolution: str | None = None) -> int:
        """Mark every copy of a finding resolved; return how many were updated."""
        copies = self._conflict_copies(conflict_id)
        for c in copies:
            c.resolved = True
            c.resolution = resolution
        return len(copies)

    def ignore_conflict(self, conflict_id: str, ignored: bool = True) -> int:
        """Set ``ignored_by_user`` on every copy of a finding; return how many."""
        copies = self._conflict_copies(conflict_id)
        for c in copies:
            c.ignored_by_user = ignored
        return len(copies)

    # ------------------------------ Read views ------------------------------

    def sort_events(
        self,
        events: Iterable[TimelineEvent],
        by: SortKey = "chronological",
        descending: bool = False,
    ) -> list[TimelineEvent]:
        """
        Return ``events`` as a new, stably sorted list.

        Chronological order is a partial order. Events whose start date can
        be placed are sorted among the positions such events occupy; events
        that cannot be placed (unknown precision, unanchored relative dates)
        keep their exact input position, so incomparable means "keep
        relative order". Placeable events are ordered with
        :func:`compare_dates`, so two starts less than a day apart are EQUAL
        and keep their input order.

        Other keys: ``importance`` (critical first), ``type`` (taxonomy
        order), ``recent`` (most recently modified first).
        """
        items = list(events)

        if by == "chronological":
            slots = [i for i, e in enumerate(items) if date_to_days(e.start_date) is not None]
            placed = sorted(
                (items[i] for i in slots),
                key=functools.cmp_to_key(_chronological),
                reverse=descending,
            )
            for i, event in zip(slots, placed, strict=True):
                items[i] = event
            return items

        if by == "importance":
            return sorted(
                items, key=lambda e: IMPORTANCE_LEVELS.index(e.importance), reverse=descending
            )
        if by == "type":
            return sorted(items, key=lambda e: EVENT_TYPES.index(e.type), reverse=descending)
        return sorted(items, key=lambda e: e.modified, reverse=not descending)

    def filter_events(
        self, criteria: EventFilter | None = None, **options: Any
    ) -> list[TimelineEvent]:
        """Return events matching every given criterion (see :class:`EventFilter`)."""
        crit = criteria if criteria is not None else EventFilter(**options)
        events = self.get_all_events()

        if crit.types is not None:
            events = [e for e in events if e.type in crit.types]

        if crit.importance is not None:
            events = [e for e in events if e.importance in crit.importance]

        if crit.character_ids:
            wanted_chars = set(crit.character_ids)
            events = [e for e in events if wanted_chars.intersection(e.character_ids)]

        if crit.tags:
            wanted_tags = set(crit.tags)
            events = [e for e in events if wanted_tags.intersection(e.tags)]

        if crit.date_range is not None:
            rng = crit.date_range
            events = [
                e
                for e in events
                if compare_dates(e.start_date, rng.start).at_least
                and compare_dates(e.start_date, rng.end).at_most
            ]

        if crit.has_conflicts is not None:
            events = [e for e in events if e.has_conflicts is crit.has_conflicts]

        return events

    def search_events(self, query: str) -> list[SearchResult]:
        """Case-insensitive weighted substring search, best match first."""
        if not query.strip():
            return []
        needle = query.lower()

        results: list[SearchResult] = []
        for event in self._events.values():
            relevance = 0
            matched: list[str] = []
            for field, weight in SEARCH_WEIGHTS:
                if field == "tags":
                    hit = any(needle in tag.lower() for tag in event.tags)
                else:
                    text = getattr(event, field)
                    hit = bool(text) and needle in text.lower()
                if hit:
                    relevance += weight
                    matched.append(field)

            if relevance == 0:
                continue

            excerpt = None
            for field in ("description", "notes"):
                if field in matched:
                    excerpt = _excerpt(getattr(event, field), needle)
                    break
            results.append(
                SearchResult(
                    event=event, relevance=relevance, matched_fields=matched, excerpt=excerpt
                )
            )

        results.sort(key=lambda r: r.relevance, reverse=True)
        return results

    def get_statistics(self) -> TimelineStats:
        """Aggregate counts, date span, conflicts and character coverage."""
        events = self.get_all_events()

        by_type: dict[EventType, int] = dict.fromkeys(EVENT_TYPES, 0)
        by_importance: dict[Importance, int] = dict.fromkeys(IMPORTANCE_LEVELS, 0)
        characters: set[str] = set()
        with_characters = 0
        findings: dict[str, list[TimelineConflict]] = {}

        for event in events:
            by_type[event.type] += 1
            by_importance[event.importance] += 1
            if event.character_ids:
                characters.update(event.character_ids)
                with_characters += 1
            for conflict in event.conflicts:
                findings.setdefault(conflict.id, []).append(conflict)

        # A finding attached to several events (e.g. an overlap) counts once.
        by_conflict_type = dict.fromkeys(CONFLICT_TYPES, 0)
        unresolved = 0
        ignored = 0
        for copies in findings.values():
            by_conflict_type[copies[0].type] += 1
            if not all(c.resolved for c in copies):
                unresolved += 1
            if all(c.ignored_by_user for c in copies):
                ignored += 1

        ordered = self.sort_events(events)
        placed = [e for e in ordered if date_to_days(e.start_date) is not None] or ordered
        earliest = placed[0] if placed else None
        latest = placed[-1] if placed else None

        span: float | None = None
        if earliest is not None and latest is not None:
            span = calculate_duration(earliest.start_date, latest.start_date)

        return TimelineStats(
            total_events=len(events),
            events_by_type=by_type,
            events_by_importance=by_importance,
            earliest_event=earliest,
            latest_event=latest,
            total_span_days=span,
            total_conflicts=len(findings),
            unresolved_conflicts=unresolved,
            ignored_conflicts=ignored,
            conflicts_by_type=by_conflict_type,
            characters_tracked=len(characters),
            events_with_characters=with_characters,
        )

    def get_all_tags(self) -> list[str]:
        """Return every tag in use, sorted."""
        return sorted({tag for e in self._events.values() for tag in e.tags})

    def get_character_events(self, character_id: str) -> list[TimelineEvent]:
        """Return the events that reference ``character_id``."""
        return [e for e in self._events.values() if character_id in e.character_ids]


__all__ = ["SEARCH_WEIGHTS", "TimelineManager"]
