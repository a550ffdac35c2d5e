from __future__ import annotations

import threading


class MemoryKVStore:
    def __init__(self, namespace: str = "default") -> None:
        self.namespace = namespace
        self._data: dict[str, tuple[int, str]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        return self.get_versioned(key)[0]

    def get_versioned(self, key: str) -> tuple[str | None, int | None]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None, None
            version, value = entry
            return value, version

    def put(self, key: str, value: str) -> int:
        with self._lock:
            current = self._data.get(key)
            version = (current[0] if current else 0) + 1
            self._data[key] = (version, value)
            return version

    def put_if_version(self, key: str, value: str, expected_version: int | None) -> bool:
        with self._lock:
            current = self._data.get(key)
            current_version = current[0] if current else None
            if current_version != expected_version:
                return False
            self._data[key] = ((current_version or 0) + 1, value)
            return True

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)
