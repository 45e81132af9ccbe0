"""Panel storage backends and fire-and-forget persistence."""

import json
from datetime import datetime, timezone

import pytest

from app.models.enums import PanelScreen
from app.panel.state import AppointmentDraft, PanelState
from app.panel.storage import (
    PANEL_OPEN_STORAGE_KEY,
    PANEL_STATE_STORAGE_KEY,
    JsonFileStorage,
    MemoryStorage,
    PanelPersistence,
    SupabaseStorage,
    get_panel_storage,
)


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeTable:
    """Chainable query builder over a dict of rows keyed by `key`"""

    def __init__(self, rows):
        self.rows = rows
        self.op = None
        self.filters = {}
        self.row = None
        self.on_conflict = None

    def select(self, columns):
        self.op = "select"
        return self

    def upsert(self, row, on_conflict=None):
        self.op = "upsert"
        self.row = row
        self.on_conflict = on_conflict
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def limit(self, count):
        return self

    def execute(self):
        if self.op == "select":
            return FakeResult([row for row in self.rows.values() if row["key"] == self.filters.get("key")])
        if self.op == "upsert":
            assert self.on_conflict == "key"
            self.rows[self.row["key"]] = self.row
            return FakeResult([self.row])
        if self.op == "delete":
            removed = self.rows.pop(self.filters.get("key"), None)
            return FakeResult([removed] if removed else [])
        raise AssertionError(f"unexpected op {self.op}")


class FakeSupabase:
    def __init__(self):
        self.rows = {}
        self.tables = []

    def table(self, name):
        self.tables.append(name)
        return FakeTable(self.rows)


class BrokenStorage(MemoryStorage):
    def get_item(self, key):
        raise OSError("disk unavailable")

    def set_item(self, key, value):
        raise OSError("disk unavailable")

    def remove_item(self, key):
        raise OSError("disk unavailable")


def exercise(storage):
    assert storage.get_item("k") is None
    storage.set_item("k", "v1")
    storage.set_item("k", "v2")
    storage.set_item("other", "x")
    assert storage.get_item("k") == "v2"
    storage.remove_item("k")
    storage.remove_item("k")
    assert storage.get_item("k") is None
    assert storage.get_item("other") == "x"


def test_memory_storage():
    exercise(MemoryStorage())


def test_json_file_storage(tmp_path):
    path = tmp_path / "nested" / "panel.json"
    exercise(JsonFileStorage(path))
    assert json.loads(path.read_text()) == {"other": "x"}


def test_json_file_storage_shared_between_instances(tmp_path):
    path = tmp_path / "panel.json"
    JsonFileStorage(path).set_item("aaPanelOpen", "1")
    assert JsonFileStorage(path).get_item("aaPanelOpen") == "1"


def test_supabase_storage():
    client = FakeSupabase()
    storage = SupabaseStorage(client=client, table_name="panel_storage")

    exercise(storage)

    assert set(client.tables) == {"panel_storage"}
    assert "updated_at" in client.rows["other"]


def test_supabase_storage_requires_credentials(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    with pytest.raises(ValueError):
        SupabaseStorage()


def test_storage_selection(monkeypatch, tmp_path):
    monkeypatch.setenv("PANEL_STORAGE", "memory")
    assert isinstance(get_panel_storage(), MemoryStorage)

    monkeypatch.setenv("PANEL_STORAGE", "file")
    monkeypatch.setenv("PANEL_STORAGE_PATH", str(tmp_path / "state.json"))
    storage = get_panel_storage()
    assert isinstance(storage, JsonFileStorage)
    assert storage.path == tmp_path / "state.json"


def test_persistence_round_trip():
    storage = MemoryStorage()
    persistence = PanelPersistence(storage)
    state = PanelState(
        screen=PanelScreen.CONFIRM,
        source_ro_id="555",
        appointment=AppointmentDraft(date=datetime(2026, 7, 13, 4, tzinfo=timezone.utc)),
        customer_notes="hi",
    )

    persistence.save_state(state)
    persistence.set_panel_open(True)

    assert PANEL_STATE_STORAGE_KEY in storage.items
    assert storage.items[PANEL_OPEN_STORAGE_KEY] == "1"
    restored = persistence.restore_state()
    assert restored.screen == PanelScreen.CONFIRM
    assert restored.source_ro_id == "555"
    assert restored.customer_notes == "hi"
    assert persistence.is_panel_open()

    persistence.clear_state()
    persistence.clear_panel_open()
    assert storage.items == {}
    assert not persistence.is_panel_open()
    assert persistence.restore_state().source_ro_id is None


def test_corrupt_blob_restores_defaults():
    persistence = PanelPersistence(MemoryStorage({PANEL_STATE_STORAGE_KEY: "{not json"}))
    state = persistence.restore_state()
    assert state.screen == PanelScreen.SCHEDULE
    assert state.ro_data is None


def test_storage_failures_are_swallowed():
    persistence = PanelPersistence(BrokenStorage())

    persistence.save_state(PanelState())
    persistence.set_panel_open(True)
    persistence.clear_state()
    persistence.clear_panel_open()

    assert persistence.restore_state().screen == PanelScreen.SCHEDULE
    assert persistence.is_panel_open() is False
