"""
Panel Storage

Key/value backends for the persisted panel state, plus the persistence
wrapper the controller writes through after every mutation.
"""

import os
import json
import logging
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Dict, Optional

from supabase import create_client, Client

from app.panel.state import PanelState

logger = logging.getLogger(__name__)

PANEL_STATE_STORAGE_KEY = "aaPanelState"
PANEL_OPEN_STORAGE_KEY = "aaPanelOpen"


class PanelStorage:
    """Minimal localStorage-style interface"""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(PanelStorage):
    """Process-local storage (tests, single-run tools)"""

    def __init__(self, items: Optional[Dict[str, str]] = None):
        self.items: Dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class JsonFileStorage(PanelStorage):
    """All keys in one JSON document on disk"""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f)
        tmp_path.replace(self.path)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class SupabaseStorage(PanelStorage):
    """Rows of (key, value, updated_at) in a Supabase table"""

    def __init__(self, client: Optional[Client] = None, table_name: Optional[str] = None):
        if client is None:
            supabase_url = os.getenv("SUPABASE_URL")
            supabase_key = os.getenv("SUPABASE_KEY")

            if not supabase_url or not supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")

            client = create_client(supabase_url, supabase_key)

        self.supabase = client
        self.table_name = table_name or os.getenv("SUPABASE_PANEL_TABLE", "panel_storage")

    def get_item(self, key: str) -> Optional[str]:
        result = self.supabase.table(self.table_name) \
            .select("value") \
            .eq("key", key) \
            .limit(1) \
            .execute()

        if result.data:
            return result.data[0].get("value")
        return None

    def set_item(self, key: str, value: str) -> None:
        self.supabase.table(self.table_name) \
            .upsert({
                "key": key,
                "value": value,
                "updated_at": datetime.now(timezone.utc).isoformat()
            }, on_conflict="key") \
            .execute()

    def remove_item(self, key: str) -> None:
        self.supabase.table(self.table_name) \
            .delete() \
            .eq("key", key) \
            .execute()


class PanelPersistence:
    """
    Fire-and-forget persistence of one panel session.

    Storage failures are logged and swallowed; the panel keeps working
    from memory.
    """

    def __init__(
        self,
        storage: PanelStorage,
        state_key: str = PANEL_STATE_STORAGE_KEY,
        open_key: str = PANEL_OPEN_STORAGE_KEY
    ):
        self.storage = storage
        self.state_key = state_key
        self.open_key = open_key

    def save_state(self, state: PanelState) -> None:
        try:
            self.storage.set_item(self.state_key, json.dumps(state.to_dict()))
        except Exception as e:
            logger.warning(f"[Storage] Could not persist panel state: {e}")

    def restore_state(self, tz: Optional[tzinfo] = None) -> PanelState:
        try:
            raw = self.storage.get_item(self.state_key)
            if not raw:
                return PanelState()
            return PanelState.from_dict(json.loads(raw), tz=tz)
        except Exception as e:
            logger.warning(f"[Storage] Could not restore panel state: {e}")
            return PanelState()

    def clear_state(self) -> None:
        try:
            self.storage.remove_item(self.state_key)
        except Exception as e:
            logger.warning(f"[Storage] Could not clear panel state: {e}")

    def set_panel_open(self, is_open: bool) -> None:
        try:
            self.storage.set_item(self.open_key, "1" if is_open else "0")
        except Exception as e:
            logger.warning(f"[Storage] Could not persist panel open flag: {e}")

    def is_panel_open(self) -> bool:
        try:
            return self.storage.get_item(self.open_key) == "1"
        except Exception as e:
            logger.warning(f"[Storage] Could not read panel open flag: {e}")
            return False

    def clear_panel_open(self) -> None:
        try:
            self.storage.remove_item(self.open_key)
        except Exception as e:
            logger.warning(f"[Storage] Could not clear panel open flag: {e}")


def get_panel_storage() -> PanelStorage:
    """Storage backend selected by PANEL_STORAGE (memory, file, supabase)"""
    backend = os.getenv("PANEL_STORAGE", "file").lower()
    if backend == "supabase":
        return SupabaseStorage()
    if backend == "memory":
        return MemoryStorage()
    return JsonFileStorage(os.getenv("PANEL_STORAGE_PATH", ".panel_storage.json"))
