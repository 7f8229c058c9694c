"""Durable key-value storage behind the credential lifecycle.

This module introduces a *narrow* persistence interface
(:class:`KeyValueStore`), two implementations, and the typed
:class:`CredentialStore` façade the rest of the bridge talks to.

* **Flat namespace** – every entry lives under a prefixed string key
  (``oauth_token:<id>``, ``oauth_state:<id>``, ``actionLog``).
* **Atomicity** – per-key writes use *temp-file + os.replace*.  There is no
  cross-operation locking; a read-modify-write spanning two calls is
  last-write-wins.
* **Filename safety** – keys are hashed before hitting the filesystem.
* **Secrets** – secret entries are kept apart from plain values and written
  with owner-only permissions.
"""

from __future__ import annotations

import json
import os
from hashlib import sha256
from pathlib import Path
from typing import Any, Final, Protocol, runtime_checkable

import anyio

from worklog_bridge.oauth.models import CredentialRecord, PendingAuthorization

TOKEN_KEY_PREFIX: Final[str] = "oauth_token:"
STATE_KEY_PREFIX: Final[str] = "oauth_state:"
ACTION_LOG_KEY: Final[str] = "actionLog"
SHARED_SECRET_KEY: Final[str] = "zapierSharedSecret"

# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #


def token_key(account_id: str) -> str:
    return f"{TOKEN_KEY_PREFIX}{account_id}"


def state_key(account_id: str) -> str:
    return f"{STATE_KEY_PREFIX}{account_id}"


def _hash(text: str, length: int = 32) -> str:
    return sha256(text.encode()).hexdigest()[:length]


def _atomic_write(path: Path, data: Any, *, mode: int | None = None) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, separators=(",", ":"), sort_keys=True)
    if mode is not None:
        os.chmod(tmp, mode)
    os.replace(tmp, path)  # atomic on POSIX


def _read_json(path: Path) -> Any:
    try:
        with path.open(encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        return None


# --------------------------------------------------------------------------- #
# public interface                                                            #
# --------------------------------------------------------------------------- #


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal async persistence contract; some entries are secret."""

    async def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, value: Any) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def get_secret(self, key: str) -> str | None: ...
    async def set_secret(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for tests and throw-away runs.

    Values are round-tripped through JSON so callers never share mutable
    state with the store.
    """

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._secrets: dict[str, str] = {}

    async def get(self, key: str) -> Any | None:
        raw = self._values.get(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        self._values[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)

    async def get_secret(self, key: str) -> str | None:
        return self._secrets.get(key)

    async def set_secret(self, key: str, value: str) -> None:
        self._secrets[key] = value


class DiskKeyValueStore(KeyValueStore):
    """JSON-file implementation of :class:`KeyValueStore`.

    Blocking file I/O runs in a worker thread so the event loop never stalls.
    """

    def __init__(self, base_dir: str | os.PathLike) -> None:
        self.base_dir = Path(base_dir).expanduser()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _value_path(self, key: str) -> Path:
        return self.base_dir / "values" / f"{_hash(key)}.json"

    def _secret_path(self, key: str) -> Path:
        return self.base_dir / "secrets" / f"{_hash(key)}.json"

    def _load(self, path: Path) -> Any | None:
        data = _read_json(path)
        if data is None:
            return None
        return data.get("value")

    def _store(self, path: Path, key: str, value: Any, mode: int | None = None) -> None:
        _atomic_write(path, {"key": key, "value": value}, mode=mode)

    async def get(self, key: str) -> Any | None:
        return await anyio.to_thread.run_sync(self._load, self._value_path(key))

    async def set(self, key: str, value: Any) -> None:
        await anyio.to_thread.run_sync(self._store, self._value_path(key), key, value)

    async def delete(self, key: str) -> None:
        path = self._value_path(key)
        await anyio.to_thread.run_sync(lambda: path.unlink(missing_ok=True))

    async def get_secret(self, key: str) -> str | None:
        value = await anyio.to_thread.run_sync(self._load, self._secret_path(key))
        return None if value is None else str(value)

    async def set_secret(self, key: str, value: str) -> None:
        await anyio.to_thread.run_sync(
            self._store, self._secret_path(key), key, value, 0o600
        )


# --------------------------------------------------------------------------- #
# Typed façade                                                                #
# --------------------------------------------------------------------------- #


class CredentialStore:
    """Typed access to credential, pending-state, secret and log entries."""

    def __init__(self, backend: KeyValueStore) -> None:
        self.backend = backend

    # ----- credential records --------------------------------------------- #
    async def load_raw_credentials(self, account_id: str) -> dict[str, Any] | None:
        data = await self.backend.get(token_key(account_id))
        return data if isinstance(data, dict) else None

    async def load_credentials(self, account_id: str) -> CredentialRecord | None:
        data = await self.load_raw_credentials(account_id)
        if data is None:
            return None
        return CredentialRecord.from_mapping(account_id, data)

    async def save_raw_credentials(self, account_id: str, data: dict[str, Any]) -> None:
        await self.backend.set(token_key(account_id), data)

    async def save_credentials(self, record: CredentialRecord) -> None:
        await self.save_raw_credentials(record.account_id, record.to_mapping())

    async def delete_credentials(self, account_id: str) -> None:
        await self.backend.delete(token_key(account_id))

    # ----- pending authorizations ----------------------------------------- #
    async def load_pending(self, account_id: str) -> PendingAuthorization | None:
        data = await self.backend.get(state_key(account_id))
        if not isinstance(data, dict):
            return None
        return PendingAuthorization.from_mapping(data)

    async def save_pending(self, account_id: str, pending: PendingAuthorization) -> None:
        await self.backend.set(state_key(account_id), pending.to_mapping())

    async def delete_pending(self, account_id: str) -> None:
        await self.backend.delete(state_key(account_id))

    # ----- shared secret --------------------------------------------------- #
    async def get_shared_secret(self) -> str | None:
        return await self.backend.get_secret(SHARED_SECRET_KEY)

    async def set_shared_secret(self, value: str) -> None:
        await self.backend.set_secret(SHARED_SECRET_KEY, value)

    # ----- action log ------------------------------------------------------ #
    async def load_action_log(self) -> list[dict[str, Any]] | None:
        data = await self.backend.get(ACTION_LOG_KEY)
        return data if isinstance(data, list) else None

    async def save_action_log(self, entries: list[dict[str, Any]]) -> None:
        await self.backend.set(ACTION_LOG_KEY, entries)
