"""Persistent key/value storage for the OAuth handshake.

The login flow leaves the process (or the browser tab) between
:meth:`begin_login` and the callback, so its ephemeral values must survive in
durable storage.  This module introduces a *narrow* persistence interface
(:class:`SessionStore`, ``get/set/delete`` of string values) and two
implementations:

* :class:`DiskSessionStore` – one JSON file per key, written atomically with
  *temp-file + os.replace*.
* :class:`MemorySessionStore` – dict-backed, for tests and fixtures.

There is no locking discipline: concurrent writers sharing a directory race
and the last writer wins.

The typed helpers at the bottom map :class:`AuthorizationSession` and
:class:`Credential` onto the fixed key names.

Environment variables
---------------------
OSM_SUBMIT_STORAGE_DIR
    Base directory for all persisted data.
    Defaults to ``~/.osm-submit/session`` when unset.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Final, Protocol, runtime_checkable

from osm_submit.auth.models import AuthorizationSession, Credential
from osm_submit.utils.environment import ensure_environment

_LOG = logging.getLogger("osm-submit.auth.store")

# Ephemeral keys of an in-flight login
KEY_CODE_VERIFIER: Final[str] = "oauth_code_verifier"
KEY_STATE: Final[str] = "oauth_state"
KEY_ENV: Final[str] = "oauth_env"
KEY_RESTORE_CONTEXT: Final[str] = "oauth_app_state"
# Durable credential keys
KEY_TOKEN: Final[str] = "osm_oauth_token"
KEY_TOKEN_ENV: Final[str] = "osm_oauth_env"

_SESSION_KEYS: Final[tuple[str, ...]] = (
    KEY_CODE_VERIFIER,
    KEY_STATE,
    KEY_ENV,
    KEY_RESTORE_CONTEXT,
)

# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #


def _slug(text: str, max_len: int = 80) -> str:
    """Filesystem-safe slug."""
    text = (text or "").strip().lower()
    text = re.sub(r"[^a-z0-9._-]+", "-", text)
    text = re.sub(r"-{2,}", "-", text).strip("-")
    return text[:max_len] or "unknown"


def _atomic_write(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, separators=(",", ":"), sort_keys=True)
    os.replace(tmp, path)  # atomic on POSIX


# --------------------------------------------------------------------------- #
# public interface                                                            #
# --------------------------------------------------------------------------- #


@runtime_checkable
class SessionStore(Protocol):
    """Minimal persistence contract: string values under string keys."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


class MemorySessionStore(SessionStore):
    """In-process implementation of :class:`SessionStore`."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class DiskSessionStore(SessionStore):
    """JSON-file implementation of :class:`SessionStore`."""

    def __init__(self, base_dir: str | os.PathLike | None = None) -> None:
        self.base_dir = Path(
            base_dir
            or os.getenv("OSM_SUBMIT_STORAGE_DIR")
            or Path.home() / ".osm-submit" / "session"
        ).expanduser()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{_slug(key)}.json"

    def get(self, key: str) -> str | None:
        p = self._path(key)
        if not p.exists():
            return None
        with p.open(encoding="utf-8") as fh:
            data = json.load(fh)
        return data.get("value")

    def set(self, key: str, value: str) -> None:
        _atomic_write(self._path(key), {"key": key, "value": value})

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# --------------------------------------------------------------------------- #
# typed accessors                                                             #
# --------------------------------------------------------------------------- #


def save_session(store: SessionStore, session: AuthorizationSession) -> None:
    """Persist every field of an in-flight login."""
    store.set(KEY_CODE_VERIFIER, session.code_verifier or "")
    store.set(KEY_STATE, session.state)
    store.set(KEY_ENV, session.environment)
    if session.restore_context is not None:
        store.set(KEY_RESTORE_CONTEXT, json.dumps(dict(session.restore_context)))
    else:
        store.delete(KEY_RESTORE_CONTEXT)


def load_session(store: SessionStore) -> AuthorizationSession | None:
    """Return the in-flight login, or None when no ``state`` is stored."""
    state = store.get(KEY_STATE)
    if not state:
        return None
    restore_raw = store.get(KEY_RESTORE_CONTEXT)
    restore_context = None
    if restore_raw:
        try:
            restore_context = json.loads(restore_raw)
        except ValueError:
            _LOG.warning("Discarding unreadable restore context")
    return AuthorizationSession(
        state=state,
        code_verifier=store.get(KEY_CODE_VERIFIER) or None,
        environment=ensure_environment(store.get(KEY_ENV) or "dev"),
        restore_context=restore_context,
    )


def clear_session(store: SessionStore) -> None:
    for key in _SESSION_KEYS:
        store.delete(key)


def save_credential(store: SessionStore, credential: Credential) -> None:
    store.set(KEY_TOKEN, credential.access_token)
    store.set(KEY_TOKEN_ENV, credential.environment)


def load_credential(store: SessionStore) -> Credential | None:
    token = store.get(KEY_TOKEN)
    if not token:
        return None
    return Credential(
        access_token=token,
        environment=ensure_environment(store.get(KEY_TOKEN_ENV) or "dev"),
    )


def clear_credential(store: SessionStore) -> None:
    store.delete(KEY_TOKEN)
    store.delete(KEY_TOKEN_ENV)


# --------------------------------------------------------------------------- #
# Convenience – default singleton                                            #
# --------------------------------------------------------------------------- #

_default_store: DiskSessionStore | None = None


def default_store() -> DiskSessionStore:
    """Return a process-wide singleton :class:`DiskSessionStore`."""
    global _default_store  # noqa: PLW0603
    if _default_store is None:
        _default_store = DiskSessionStore()
    return _default_store
