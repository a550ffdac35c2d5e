from __future__ import annotations

import os
from pathlib import Path

STORE_MODES = {"file", "memory", "off"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def state_dir() -> Path:
    configured = os.getenv("RELAY_STATE_DIR")
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".approvalrelay"


def store_mode() -> str:
    mode = os.getenv("RELAY_STORE_MODE", "file").strip().casefold()
    if mode not in STORE_MODES:
        raise RuntimeError(f"RELAY_STORE_MODE must be one of {sorted(STORE_MODES)}, got {mode!r}")
    return mode


def approvers() -> list[str]:
    raw = os.getenv("RELAY_APPROVERS", "")
    return [email.strip().casefold() for email in raw.split(",") if email.strip()]


def history_max() -> int:
    return max(1, _get_int_env("RELAY_HISTORY_MAX", 100))


def write_attempts() -> int:
    return max(1, _get_int_env("RELAY_WRITE_ATTEMPTS", 5))


def identity_mode() -> str:
    return os.getenv("RELAY_IDENTITY_MODE", "access").strip().casefold()


def identity_header() -> str:
    return os.getenv("RELAY_IDENTITY_HEADER", "X-Relay-User")
