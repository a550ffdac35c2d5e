#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from approvalrelay.core.http import PushError, push_status


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Push a status.json snapshot to the approval relay")
    parser.add_argument("status_file", help="Path to the status JSON document")
    parser.add_argument("--url", default=os.getenv("RELAY_URL", "http://127.0.0.1:8000"), help="Relay base URL (defaults to RELAY_URL)")
    parser.add_argument("--retries", type=int, default=None, help="Retries on transient failures (defaults to RELAY_HTTP_RETRIES)")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    secret = os.getenv("RELAY_SYNC_SECRET", "")
    if not secret:
        print("RELAY_SYNC_SECRET must be set", file=sys.stderr)
        return 2

    try:
        snapshot = json.loads(Path(args.status_file).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"cannot read {args.status_file}: {exc}", file=sys.stderr)
        return 2

    try:
        receipt = push_status(args.url, secret, snapshot, retries=args.retries)
    except PushError as exc:
        print(f"push failed: {exc}", file=sys.stderr)
        return 1

    print(f"pushed at {receipt.get('received_at')} ({receipt.get('agents')})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
