"""
Session context for the taskflow client.

The session holds the bearer token and the signed-in user's profile.  It is
an explicit object handed to the remote gateway rather than ambient global
state, so several clients (or tests) can coexist in one process.

Persistence is delegated to a small key/value storage back-end, mirroring
browser local storage: the caller controls the key names, and the stored
values are read back at startup to decide whether to open the task view or
the login view.

Key Concepts Demonstrated:
- Explicit session context injected into the HTTP layer
- Forced invalidation with listener notification (401 handling)
- Unverified JWT claim inspection to drop already-expired tokens
- Atomic JSON file writes for persisted state
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import jwt

logger = logging.getLogger(__name__)

ROUTE_TASKS = "tasks"
ROUTE_LOGIN = "login"

SessionListener = Callable[[str], None]


class MemoryStorage:
    """In-process key/value storage; nothing survives the process."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def get(self, key: str) -> Any:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStorage:
    """
    Key/value storage persisted as a single JSON object file.

    Writes go through a temporary file in the same directory followed by
    ``os.replace`` so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring corrupt session file at %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".session-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


def token_is_expired(token: str) -> bool:
    """
    Return True when *token* is a JWT whose ``exp`` claim has passed.

    The signature is not verified; the client never holds the signing
    key and only wants to skip a pointless round-trip.  Tokens that are not
    JWTs at all are treated as opaque and never considered expired.
    """
    try:
        jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True},
            algorithms=["HS256", "RS256"],
        )
    except jwt.ExpiredSignatureError:
        return True
    except jwt.InvalidTokenError:
        return False
    return False


class SessionProvider:
    """
    Holds the authentication token and current user identity.

    Args:
        storage: Key/value back-end used to persist the session.  Defaults
            to :class:`MemoryStorage`.
        token_key: Storage key for the bearer token.
        user_key: Storage key for the user profile object.
    """

    def __init__(
        self,
        storage: MemoryStorage | JsonFileStorage | None = None,
        *,
        token_key: str = "token",
        user_key: str = "user",
    ):
        self._storage = storage if storage is not None else MemoryStorage()
        self._token_key = token_key
        self._user_key = user_key
        self._token: str | None = None
        self._user: dict[str, Any] | None = None
        self._listeners: list[SessionListener] = []

    @property
    def user(self) -> dict[str, Any] | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def get_token(self) -> str | None:
        return self._token

    def set(self, token: str, user: dict[str, Any]) -> None:
        """Store a freshly issued token and profile, persisting both."""
        if not token:
            raise ValueError("token must be a non-empty string")
        self._token = token
        self._user = dict(user)
        self._storage.set(self._token_key, token)
        self._storage.set(self._user_key, self._user)
        logger.info("Session started for user %s", self._user.get("email") or self._user.get("name"))

    def clear(self) -> None:
        """Explicit logout: forget the token and profile everywhere."""
        self._token = None
        self._user = None
        self._storage.remove(self._token_key)
        self._storage.remove(self._user_key)

    def invalidate(self, reason: str = "expired") -> None:
        """
        Forced invalidation after the remote API rejected the token.

        Clears the session like :meth:`clear` and then notifies every
        listener with *reason* so the caller can redirect to the login view.
        """
        logger.warning("Session invalidated: %s", reason)
        self.clear()
        for listener in list(self._listeners):
            listener(reason)

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        self._listeners.remove(listener)

    def restore(self) -> bool:
        """
        Load a persisted session at startup.

        A half-persisted session (token without profile or the reverse) and
        a JWT that has already expired are both discarded.

        Returns:
            True when a usable session was restored.
        """
        token = self._storage.get(self._token_key)
        user = self._storage.get(self._user_key)
        if not isinstance(token, str) or not token or not isinstance(user, dict):
            if token is not None or user is not None:
                logger.info("Discarding incomplete persisted session")
                self.clear()
            return False
        if token_is_expired(token):
            logger.info("Discarding expired persisted session")
            self.clear()
            return False
        self._token = token
        self._user = user
        return True

    def initial_route(self) -> str:
        """Return ``"tasks"`` when signed in, ``"login"`` otherwise."""
        return ROUTE_TASKS if self.is_authenticated else ROUTE_LOGIN
