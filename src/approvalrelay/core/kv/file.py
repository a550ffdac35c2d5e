from __future__ import annotations

import json
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from approvalrelay.core.errors import StorageError


class FileKVStore:
    """Namespace stored as one JSON document of ``{key: {"version", "value"}}``.

    Every mutation holds an exclusive lock file for the namespace and replaces
    the document atomically, so ``put_if_version`` is safe across processes
    sharing the same state directory.
    """

    def __init__(self, state_dir: str | Path, namespace: str, lock_timeout_s: float = 2.0) -> None:
        self.namespace = namespace
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.state_dir / f"{namespace}.kv.json"
        self.lock_path = self.state_dir / f"{namespace}.kv.lock"
        self.lock_timeout_s = lock_timeout_s
        self._thread_lock = threading.Lock()

    def get(self, key: str) -> str | None:
        return self.get_versioned(key)[0]

    def get_versioned(self, key: str) -> tuple[str | None, int | None]:
        entry = self._load().get(key)
        if entry is None:
            return None, None
        return entry["value"], int(entry["version"])

    def put(self, key: str, value: str) -> int:
        with self._locked():
            data = self._load()
            version = int(data.get(key, {}).get("version", 0)) + 1
            data[key] = {"version": version, "value": value}
            self._write(data)
            return version

    def put_if_version(self, key: str, value: str, expected_version: int | None) -> bool:
        with self._locked():
            data = self._load()
            entry = data.get(key)
            current_version = int(entry["version"]) if entry is not None else None
            if current_version != expected_version:
                return False
            data[key] = {"version": (current_version or 0) + 1, "value": value}
            self._write(data)
            return True

    def keys(self) -> list[str]:
        return sorted(self._load())

    def _load(self) -> dict[str, dict]:
        if not self.path.exists() or self.path.stat().st_size == 0:
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"cannot read {self.namespace} store: {exc.__class__.__name__}") from exc
        if not isinstance(payload, dict):
            raise StorageError(f"{self.namespace} store is corrupt")
        return payload

    def _write(self, data: dict[str, dict]) -> None:
        tmp_path = self.path.with_suffix(".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise StorageError(f"cannot write {self.namespace} store: {exc.__class__.__name__}") from exc

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._thread_lock:
            deadline = time.monotonic() + self.lock_timeout_s
            while True:
                try:
                    fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                    os.close(fd)
                    break
                except FileExistsError:
                    if time.monotonic() >= deadline:
                        raise StorageError(f"{self.namespace} store is locked")
                    time.sleep(0.01)
                except OSError as exc:
                    raise StorageError(f"cannot lock {self.namespace} store: {exc.__class__.__name__}") from exc

            try:
                yield
            finally:
                try:
                    self.lock_path.unlink()
                except FileNotFoundError:
                    pass
