"""Tests for the JSON timeline file adapter."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from chronology.core.contracts.dates import DayDate, YearDate
from chronology.core.store.manager import TimelineManager
from chronology.core.store.storage import TimelineFile, TimelineFileError


def test_missing_file_is_empty_timeline(tmp_path: Path) -> None:
    """Reading a file that does not exist yields no events."""
    store = TimelineFile(tmp_path / "nope.json")
    assert store.read() == {}
    assert store.load_into(TimelineManager()) == 0


def test_write_then_read_round_trip(tmp_path: Path) -> None:
    """Events survive a save/load cycle, conflicts included."""
    tm = TimelineManager()
    e = tm.create_event(
        "Bad day", "scene", DayDate(year=2023, month=2, day=29), character_ids=["c1"]
    )
    tm.detect_all_conflicts()

    path = TimelineFile(tmp_path / "nested" / "timeline.json").write(tm)
    assert path.exists()

    loaded = TimelineManager()
    assert TimelineFile(path).load_into(loaded) == 1
    again = loaded.get_event(e.id)
    assert again is not None
    assert again.title == "Bad day"
    assert again.start_date == e.start_date
    assert [c.id for c in again.conflicts] == [c.id for c in e.conflicts]
    assert again.created == e.created


def test_file_uses_camel_case_keys(tmp_path: Path) -> None:
    """The on-disk form is the host's camelCase event map."""
    tm = TimelineManager()
    e = tm.create_event("Ball", "scene", YearDate(year=1920), parent_event_id="p")
    path = TimelineFile(tmp_path / "t.json").write(tm)

    data = json.loads(path.read_text(encoding="utf-8"))
    entry = data[e.id]
    assert entry["parentEventId"] == "p"
    assert entry["startDate"]["precision"] == "year"
    assert "parent_event_id" not in entry
    assert path.read_text(encoding="utf-8").endswith("\n")


def test_invalid_json_raises(tmp_path: Path) -> None:
    """A corrupt file is reported, not silently replaced."""
    path = tmp_path / "t.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(TimelineFileError, match="invalid JSON"):
        TimelineFile(path).read()


def test_invalid_event_raises(tmp_path: Path) -> None:
    """A structurally malformed event fails the whole load."""
    path = tmp_path / "t.json"
    path.write_text(
        json.dumps({"e1": {"title": "No date", "type": "scene"}}), encoding="utf-8"
    )
    with pytest.raises(TimelineFileError, match="e1"):
        TimelineFile(path).read()
    with pytest.raises(TimelineFileError):
        TimelineFile(path).load_into(TimelineManager())


def test_host_settings_blob_is_preserved(tmp_path: Path) -> None:
    """Events nested under the settings key are read; other keys survive a write."""
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            {
                "theme": "dark",
                "timelineEvents": {
                    "e1": {
                        "title": "Arrival",
                        "type": "scene",
                        "startDate": {"precision": "year", "year": 1920},
                    }
                },
            }
        ),
        encoding="utf-8",
    )
    store = TimelineFile(path)
    tm = TimelineManager()
    store.load_into(tm)
    tm.update_event("e1", {"title": "Arrival in Paris"})

    store.write(tm)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["theme"] == "dark"
    assert data["timelineEvents"]["e1"]["title"] == "Arrival in Paris"


def test_custom_settings_key(tmp_path: Path) -> None:
    """The host key can be changed per store."""
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            {"events": {"e1": {"title": "A", "startDate": {"precision": "unknown"}}}}
        ),
        encoding="utf-8",
    )
    assert list(TimelineFile(path, settings_key="events").read()) == ["e1"]


def test_legacy_children_adopted_on_load(tmp_path: Path) -> None:
    """Parent-side childEventIds lists become parent pointers."""
    path = tmp_path / "t.json"
    path.write_text(
        json.dumps(
            {
                "p": {
                    "title": "Book One",
                    "startDate": {"precision": "unknown"},
                    "childEventIds": ["c"],
                },
                "c": {"title": "Chapter 1", "startDate": {"precision": "unknown"}},
            }
        ),
        encoding="utf-8",
    )
    tm = TimelineManager()
    TimelineFile(path).load_into(tm)
    assert tm.get_child_ids("p") == ["c"]


def test_default_path_from_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Without an explicit path the store uses CHRONOLOGY_TIMELINE_PATH."""
    from chronology.core import settings as settings_mod

    target = tmp_path / "from-env.json"
    monkeypatch.setenv("CHRONOLOGY_TIMELINE_PATH", str(target))
    settings_mod.load_settings.cache_clear()
    try:
        assert TimelineFile().path == target
    finally:
        settings_mod.load_settings.cache_clear()


def test_non_object_entry_is_rejected(tmp_path: Path) -> None:
    """A hand-edited non-object entry fails the load instead of being dropped."""
    path = tmp_path / "t.json"
    original = json.dumps(
        {
            "e1": {"title": "A", "startDate": {"precision": "unknown"}},
            "e2": "hand-edited note",
        }
    )
    path.write_text(original, encoding="utf-8")
    store = TimelineFile(path)

    with pytest.raises(TimelineFileError, match="e2"):
        store.read_raw()
    with pytest.raises(TimelineFileError, match="not an object"):
        store.load_into(TimelineManager())
    assert path.read_text(encoding="utf-8") == original
