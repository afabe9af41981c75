"""JSON file adapter for timeline event maps.

The engine owns no file format. This adapter is the thin loader/saver the
CLI uses to round-trip the id-keyed event map through disk:

- Default path:  `CHRONOLOGY_TIMELINE_PATH` env var or `timeline.json`
- Content:       `{"<event id>": {<camelCase TimelineEvent>}, ...}`
- Host blobs:    a settings object holding the map under `timelineEvents`
                 (configurable) is accepted on read and preserved on write.

Usage
-----
>>> store = TimelineFile(Path("novel/timeline.json"))
>>> store.load_into(manager)
>>> store.write(manager)
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from chronology.core.contracts.event import TimelineEvent
from chronology.core.settings import get_logger, load_settings

from .manager import TimelineManager

logger = get_logger(__name__)


class TimelineFileError(Exception):
    """Raised when a timeline file cannot be read or parsed."""


class TimelineFile:
    """Read and write an id-keyed event map as a UTF-8 JSON file."""

    def __init__(self, path: Path | None = None, *, settings_key: str | None = None) -> None:
        cfg = load_settings()
        self.path: Path = path if path is not None else cfg.timeline_path
        self.settings_key: str = settings_key if settings_key is not None else cfg.settings_key

    def _load_json(self) -> Any:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise TimelineFileError(f"{self.path}: invalid JSON ({e})") from e
        except OSError as e:
            raise TimelineFileError(f"{self.path}: {e.strerror or e}") from e

    def _event_map(self, payload: Any) -> Mapping[str, Any]:
        if isinstance(payload, dict) and isinstance(payload.get(self.settings_key), dict):
            return payload[self.settings_key]
        if isinstance(payload, dict):
            return payload
        raise TimelineFileError(f"{self.path}: expected a JSON object of events")

    def read(self) -> dict[str, TimelineEvent]:
        """Return the events stored in the file; a missing file is an empty timeline.

        Raises
        ------
        TimelineFileError
            If the file is not JSON or an entry is not a valid event.
        """
        events: dict[str, TimelineEvent] = {}
        for key, entry in self.read_raw().items():
            entry.setdefault("id", key)
            try:
                events[key] = TimelineEvent.model_validate(entry)
            except ValidationError as e:
                raise TimelineFileError(f"{self.path}: event {key!r} is invalid: {e}") from e
        return events

    def read_raw(self) -> dict[str, dict[str, Any]]:
        """Return the unparsed entries, for callers that feed ``load_events`` directly.

        Legacy ``childEventIds`` survive here, so the manager can fold them
        into parent pointers.

        Raises
        ------
        TimelineFileError
            If the file is not JSON or an entry is not a JSON object.
        """
        if not self.path.exists():
            logger.debug("No timeline at %s; starting empty", self.path)
            return {}

        entries: dict[str, dict[str, Any]] = {}
        for key, entry in self._event_map(self._load_json()).items():
            if not isinstance(entry, dict):
                raise TimelineFileError(f"{self.path}: event {key!r} is not an object")
            entries[key] = dict(entry)
        return entries

    def load_into(self, manager: TimelineManager) -> int:
        """Load the file into ``manager`` and return the event count.

        Raises
        ------
        TimelineFileError
            If the file is unreadable or holds a malformed event.
        """
        try:
            manager.load_events(self.read_raw())
        except ValidationError as e:
            raise TimelineFileError(f"{self.path}: invalid event data: {e}") from e
        return len(manager)

    def write(self, source: TimelineManager | Mapping[str, TimelineEvent]) -> Path:
        """Write ``source`` to disk and return the file path.

        When the existing file is a host settings blob, only its event map is
        replaced and the other keys are kept.
        """
        if isinstance(source, TimelineManager):
            events = source.dump_events()
        else:
            events = {eid: e.to_payload() for eid, e in source.items()}

        payload: dict[str, Any] = events
        if self.path.exists():
            existing = self._load_json()
            if isinstance(existing, dict) and isinstance(existing.get(self.settings_key), dict):
                payload = {**existing, self.settings_key: events}

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
            f.write("\n")
        logger.debug("Wrote %d event(s) to %s", len(events), self.path)
        return self.path


__all__ = ["TimelineFile", "TimelineFileError"]
