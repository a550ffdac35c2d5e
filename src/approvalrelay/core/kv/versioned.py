from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from approvalrelay.core.errors import StorageConflict, StorageError

from .base import KeyValueStore

logger = logging.getLogger("approvalrelay.kv")


class VersionedList:
    """A JSON list held under a single key, mutated by versioned read/conditional write.

    ``update`` re-reads and re-applies the mutation whenever another writer got in
    between the read and the write, so concurrent mutations are never lost.
    """

    def __init__(self, store: KeyValueStore, key: str, max_attempts: int = 5) -> None:
        self.store = store
        self.key = key
        self.max_attempts = max(1, max_attempts)

    def read(self) -> list[Any]:
        raw, _ = self.store.get_versioned(self.key)
        return self._decode(raw)

    def exists(self) -> bool:
        _, version = self.store.get_versioned(self.key)
        return version is not None

    def initialize(self, items: list[Any]) -> bool:
        """Write ``items`` only if the key has never been written. Returns whether it was."""
        return self.store.put_if_version(self.key, self._encode(items), None)

    def update(self, mutate: Callable[[list[Any]], list[Any]], create: bool = True) -> list[Any]:
        """Apply ``mutate`` and write the result back.

        With ``create=False`` a key that has never been written is left absent
        and ``[]`` is returned without calling ``mutate``.
        """
        for attempt in range(self.max_attempts):
            raw, version = self.store.get_versioned(self.key)
            if version is None and not create:
                return []
            updated = mutate(self._decode(raw))
            if self.store.put_if_version(self.key, self._encode(updated), version):
                return updated
            logger.info(
                "kv_write_conflict",
                extra={"extra_fields": {"namespace": self.store.namespace, "key": self.key, "attempt": attempt + 1}},
            )
        raise StorageConflict(f"could not update {self.key} after {self.max_attempts} attempts")

    def _decode(self, raw: str | None) -> list[Any]:
        if raw is None:
            return []
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageError(f"{self.key} holds invalid JSON") from exc
        if not isinstance(value, list):
            raise StorageError(f"{self.key} is not a list")
        return value

    @staticmethod
    def _encode(items: list[Any]) -> str:
        return json.dumps(items, ensure_ascii=False)
