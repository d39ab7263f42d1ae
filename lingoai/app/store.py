from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from lingoai.app.config import _load_json_dict, _write_json_dict, app_paths


def default_store_path() -> Path:
    return app_paths().config_dir / "state.json"


class KeyValueStore:
    """Small JSON-backed key/value store living next to the user config."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or default_store_path()
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        return _load_json_dict(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            payload = self._read()
            payload[key] = value
            _write_json_dict(self.path, payload)

    def remove(self, key: str) -> None:
        with self._lock:
            payload = self._read()
            if key not in payload:
                return
            del payload[key]
            _write_json_dict(self.path, payload)


class MemoryStore:
    """Non-persistent store; used when persistence is disabled and in tests."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)
