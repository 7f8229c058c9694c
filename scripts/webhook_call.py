"""webhook_call.py

Send a worklog webhook to a running bridge, the way the automation platform
would.

Key features
------------
* Reads the shared secret from ``--secret`` or ``BRIDGE_SHARED_SECRET``
  and sends it as ``x-zapier-secret``
* Payload from ``--payload-file`` or inline ``--payload-json``
* Optional ``--event`` posts to the combined ``/webhooks/worklog`` route
* Logs **header names only**; the secret value is never printed

Example
-------
    python scripts/webhook_call.py --action create \\
        --payload-json '{"userId": "...", "issueKey": "PROJ-1", "started": "...", "timeSpentSeconds": 3600}'
"""
from __future__ import annotations

import argparse
import json
import os
import sys
import uuid
from pathlib import Path
from typing import Any, Dict

import requests

# --------------------------------------------------------------------------- #
# Constants
# --------------------------------------------------------------------------- #
DEFAULT_BRIDGE_URL = os.getenv("BRIDGE_URL", "http://localhost:8080")
DEFAULT_ENV_FILE = Path("scripts/.env.script-helpers")
SECRET_HEADER = "x-zapier-secret"
ACTIONS = ("create", "update", "delete")


# --------------------------------------------------------------------------- #
# Environment helpers
# --------------------------------------------------------------------------- #
def _load_env_file(env_path: Path | None) -> None:
    """Load KEY=VALUE pairs from a .env style file into *os.environ*."""
    if env_path is None or not env_path.exists():
        return

    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        if key and key not in os.environ:
            os.environ[key] = val.strip()


def _webhook_url(base_url: str, action: str | None) -> str:
    base = base_url.rstrip("/") + "/webhooks/worklog"
    return f"{base}/{action}" if action else base


# --------------------------------------------------------------------------- #
# Main
# --------------------------------------------------------------------------- #
def main() -> None:
    parser = argparse.ArgumentParser(description="Send a worklog webhook.")
    parser.add_argument("--bridge-url", default=DEFAULT_BRIDGE_URL, help="Bridge base URL")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--action", choices=ACTIONS, help="Per-action webhook route")
    target.add_argument(
        "--event",
        choices=("hours:created", "hours:updated", "hours:deleted"),
        help="Send to the combined route with this event type",
    )
    body = parser.add_mutually_exclusive_group(required=True)
    body.add_argument("--payload-file", type=Path, help="Path to JSON payload file")
    body.add_argument("--payload-json", help="Inline JSON payload string")
    parser.add_argument("--secret", help="Shared secret (default: BRIDGE_SHARED_SECRET)")
    parser.add_argument(
        "--env-file",
        type=Path,
        help=f"Helper env file (default: {DEFAULT_ENV_FILE})",
    )
    args = parser.parse_args()

    env_file = (
        args.env_file
        if args.env_file
        else (DEFAULT_ENV_FILE if DEFAULT_ENV_FILE.exists() else None)
    )
    _load_env_file(env_file)

    secret = args.secret or os.getenv("BRIDGE_SHARED_SECRET")
    if not secret:
        parser.error("--secret or BRIDGE_SHARED_SECRET is required")

    if args.payload_file:
        try:
            raw = args.payload_file.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            sys.exit(f"Payload file not found: {exc.filename}")
    else:
        raw = args.payload_json or "{}"

    try:
        payload: Dict[str, Any] = json.loads(raw)
    except json.JSONDecodeError as exc:
        sys.exit(f"Invalid JSON payload: {exc}")
    if not isinstance(payload, dict):
        sys.exit("Payload must be a JSON object.")
    if args.event:
        payload["event"] = args.event

    headers: Dict[str, str] = {
        SECRET_HEADER: secret,
        "Accept": "application/json",
        "X-Correlation-ID": uuid.uuid4().hex,
    }
    # Safe debug: names only
    print(f"Using headers: {', '.join(sorted(headers.keys()))}", file=sys.stderr)

    url = _webhook_url(args.bridge_url, args.action)
    try:
        resp = requests.post(url, json=payload, headers=headers, timeout=60)
    except requests.RequestException as exc:
        sys.exit(f"HTTP error communicating with bridge: {exc}")

    try:
        result: Any = resp.json()
    except ValueError:
        result = resp.text.strip()
    print(f"HTTP {resp.status_code} (correlation {resp.headers.get('X-Correlation-ID', '-')})")
    print(json.dumps(result, indent=2, ensure_ascii=False))
    if not resp.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
