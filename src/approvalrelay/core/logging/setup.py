from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .json_formatter import JSONFormatter

_LOGGER_NAME = "approvalrelay"
_OWNED = "_approvalrelay_handler"


def _owned(logger: logging.Logger, kind: type[logging.Handler]) -> bool:
    return any(isinstance(handler, kind) and getattr(handler, _OWNED, False) for handler in logger.handlers)


def _attach(logger: logging.Logger, handler: logging.Handler) -> None:
    handler.setFormatter(JSONFormatter())
    setattr(handler, _OWNED, True)
    logger.addHandler(handler)


def configure_logging(state_dir: Path) -> logging.Logger:
    """Route the ``approvalrelay`` logger tree to stdout and, when enabled, a rotating file.

    Safe to call repeatedly; handlers are only added once.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    level_name = os.getenv("RELAY_LOG_LEVEL", "INFO").strip().upper()
    logger.setLevel(logging.getLevelNamesMapping().get(level_name, logging.INFO))
    logger.propagate = False

    # RotatingFileHandler is itself a StreamHandler, so check the exact type.
    if not any(type(handler) is logging.StreamHandler and getattr(handler, _OWNED, False) for handler in logger.handlers):
        _attach(logger, logging.StreamHandler(stream=sys.stdout))

    if os.getenv("RELAY_LOG_TO_FILE", "off").strip().casefold() == "on" and not _owned(logger, RotatingFileHandler):
        log_dir = Path(os.getenv("RELAY_LOG_DIR") or (state_dir / "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        _attach(
            logger,
            RotatingFileHandler(
                filename=log_dir / "approvalrelay.log",
                maxBytes=int(os.getenv("RELAY_LOG_MAX_BYTES", "5000000")),
                backupCount=int(os.getenv("RELAY_LOG_BACKUP_COUNT", "5")),
                encoding="utf-8",
            ),
        )

    return logger
