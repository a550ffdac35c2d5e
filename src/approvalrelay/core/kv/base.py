from __future__ import annotations

from typing import Protocol


class KeyValueStore(Protocol):
    """String key/value store with per-key versions and no multi-key transactions.

    ``version`` is ``None`` for a key that has never been written and a
    monotonically increasing integer afterwards. ``put_if_version`` writes only
    when the current version still equals ``expected_version`` and reports
    whether it did.
    """

    namespace: str

    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str) -> int: ...

    def get_versioned(self, key: str) -> tuple[str | None, int | None]: ...

    def put_if_version(self, key: str, value: str, expected_version: int | None) -> bool: ...
