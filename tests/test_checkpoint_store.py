import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from feedrelay.errors import CheckpointLoadError, CheckpointSaveError
from feedrelay.schemas.state import FeedState, RunState
from feedrelay.services.checkpoint_store import JsonFileCheckpointStore, MemoryCheckpointStore

CHECKED = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)


def _state() -> RunState:
    return RunState(
        last_checked_at=CHECKED,
        feeds={"https://example.com/rss": FeedState(last_checked_at=CHECKED, last_item_id="guid-9")},
    )


def test_missing_file_loads_default_state(tmp_path: Path) -> None:
    state = asyncio.run(JsonFileCheckpointStore(tmp_path / "state.json").load())
    assert state.feeds == {}


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        json.dumps({"feeds": {}}),
        json.dumps({"lastCheckedAt": 5, "feeds": {}}),
        json.dumps({"lastCheckedAt": "2024-01-01T00:00:00Z", "feeds": []}),
        json.dumps({"lastCheckedAt": "not a date", "feeds": {}}),
    ],
)
def test_unusable_document_loads_default_state(tmp_path: Path, content: str) -> None:
    path = tmp_path / "state.json"
    path.write_text(content, encoding="utf-8")

    state = asyncio.run(JsonFileCheckpointStore(path).load())
    assert state.feeds == {}


def test_save_writes_pretty_json_with_camel_case_keys(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "state.json"
    asyncio.run(JsonFileCheckpointStore(path).save(_state()))

    raw = path.read_text(encoding="utf-8")
    assert raw.startswith('{\n  "lastCheckedAt": ')
    document = json.loads(raw)
    assert document == {
        "lastCheckedAt": "2024-03-01T12:30:00Z",
        "feeds": {
            "https://example.com/rss": {"lastCheckedAt": "2024-03-01T12:30:00Z", "lastItemId": "guid-9"},
        },
    }


def test_round_trip_preserves_extra_fields(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps(
            {
                "lastCheckedAt": "2024-03-01T12:30:00.000Z",
                "feeds": {"a": {"lastCheckedAt": "2024-03-01T12:00:00.000Z", "lastItemGuid": "legacy"}},
                "schemaVersion": 2,
            }
        ),
        encoding="utf-8",
    )
    store = JsonFileCheckpointStore(path)

    state = asyncio.run(store.load())
    assert state.feeds["a"].last_item_id is None
    asyncio.run(store.save(state))

    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["schemaVersion"] == 2
    assert document["feeds"]["a"]["lastItemGuid"] == "legacy"


def test_unreadable_location_raises_load_error(tmp_path: Path) -> None:
    with pytest.raises(CheckpointLoadError):
        asyncio.run(JsonFileCheckpointStore(tmp_path).load())


def test_unwritable_location_raises_save_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(CheckpointSaveError):
        asyncio.run(JsonFileCheckpointStore(blocker / "state.json").save(_state()))


def test_memory_store_round_trip() -> None:
    store = MemoryCheckpointStore()
    assert asyncio.run(store.load()).feeds == {}

    asyncio.run(store.save(_state()))
    loaded = asyncio.run(store.load())
    assert loaded.feeds["https://example.com/rss"].last_item_id == "guid-9"
    assert store.save_count == 1
