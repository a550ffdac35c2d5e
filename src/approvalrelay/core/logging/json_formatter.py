from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from .context import get_log_context
from .redact import redact_string


class JSONFormatter(logging.Formatter):
    """One JSON object per line; bound context and ``extra_fields`` are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, object] = {
            "ts_iso_utc": stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": redact_string(record.getMessage()),
            **get_log_context(),
        }
        payload.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            payload["error"] = {
                "type": type(error).__name__,
                "message": redact_string(str(error)),
                "stack": self.formatException(record.exc_info),
            }
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)
