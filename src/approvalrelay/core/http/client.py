from __future__ import annotations

import logging
import os
import random
import threading
import time
from functools import partial
from typing import Any

import httpx

# Transient failures worth another attempt; auth and validation errors are final.
_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_RETRYABLE_EXCEPTIONS = (httpx.ConnectError, httpx.ReadTimeout, httpx.RemoteProtocolError)

logger = logging.getLogger("approvalrelay.http")

_client: httpx.Client | None = None
_client_lock = threading.Lock()


class PushError(RuntimeError):
    """A status push that did not reach the relay or was refused by it.

    ``status_code`` is ``None`` when no HTTP response was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _env_number(name: str, default: float, cast=float):
    try:
        return cast(os.getenv(name, default))
    except ValueError:
        return default


def get_http_client() -> httpx.Client:
    global _client
    with _client_lock:
        if _client is None:
            total = max(0.1, _env_number("RELAY_HTTP_TIMEOUT_S", 15.0))
            connect = min(total, max(0.1, _env_number("RELAY_HTTP_CONNECT_TIMEOUT_S", 5.0)))
            _client = httpx.Client(
                timeout=httpx.Timeout(total, connect=connect),
                headers={"User-Agent": os.getenv("RELAY_HTTP_USER_AGENT", "approvalrelay-agent/1.0")},
            )
        return _client


def _backoff(attempt: int) -> None:
    base = max(0.01, _env_number("RELAY_HTTP_BACKOFF_BASE_S", 0.25))
    ceiling = max(0.01, _env_number("RELAY_HTTP_BACKOFF_MAX_S", 2.0))
    time.sleep(min(ceiling, base * (2**attempt)) * (0.5 + random.random()))


def push_status(base_url: str, secret: str, snapshot: dict[str, Any], retries: int | None = None) -> dict[str, Any]:
    """POST one snapshot to ``<base_url>/api/sync`` and return the relay's receipt.

    Retries connection errors and 429/5xx responses with jittered exponential
    backoff; any other non-2xx response raises ``PushError`` immediately.
    """
    url = f"{base_url.rstrip('/')}/api/sync"
    max_retries = _env_number("RELAY_HTTP_RETRIES", 2, cast=int) if retries is None else max(0, retries)
    send = partial(get_http_client().post, url, headers={"Authorization": f"Bearer {secret}"}, json=snapshot)

    for attempt in range(max_retries + 1):
        final = attempt == max_retries
        try:
            response = send()
        except _RETRYABLE_EXCEPTIONS as exc:
            if final:
                raise PushError(f"push to {url} failed after {attempt + 1} attempts: {exc.__class__.__name__}") from exc
            _backoff(attempt)
            continue
        except httpx.HTTPError as exc:
            raise PushError(f"push to {url} failed: {exc.__class__.__name__}") from exc

        if response.is_success:
            return response.json()
        if response.status_code in _RETRYABLE_STATUS_CODES and not final:
            logger.info("push_retry", extra={"extra_fields": {"status": response.status_code, "attempt": attempt + 1}})
            _backoff(attempt)
            continue
        raise PushError(f"relay answered {response.status_code} for {url}", status_code=response.status_code)

    raise PushError(f"push to {url} was not attempted")
