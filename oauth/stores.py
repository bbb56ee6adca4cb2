"""In-memory session store for OAuth login flows.

Sessions are keyed by (endpoint name, requester key). The requester key is
currently the client's network address; anything that can produce a stable
per-requester string (a signed cookie, a session id) can replace it by
implementing SessionStore.

Sessions are not persisted and are lost on restart.
"""

import secrets
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Optional


SessionKey = tuple[str, str]

LOCK_STRIPES = 64


@dataclass
class Session:
    state: str
    access_token: Optional[str] = None
    user: Optional[Any] = None
    extras: dict = field(default_factory=dict)


def new_nonce() -> str:
    return secrets.token_urlsafe(16)


class SessionStore:
    """Interface for session storage used by the Authenticator."""

    def get(self, provider_name: str, requester_key: str) -> Optional[Session]:
        raise NotImplementedError

    def get_or_create_nonce(self, provider_name: str, requester_key: str) -> str:
        raise NotImplementedError

    def set_token(self, provider_name: str, requester_key: str, token: str) -> None:
        raise NotImplementedError

    def clear_token(self, provider_name: str, requester_key: str) -> None:
        raise NotImplementedError

    def set_user(self, provider_name: str, requester_key: str, user: Any) -> None:
        raise NotImplementedError

    def set_extra(self, provider_name: str, requester_key: str, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, provider_name: str, requester_key: str) -> None:
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    """Process-wide dict of sessions guarded by a fixed pool of striped locks.

    A key always maps to the same lock, so the pool never grows with the
    number of requesters.
    """

    def __init__(self, lock_stripes: int = LOCK_STRIPES):
        self._sessions: dict[SessionKey, Session] = {}
        self._locks = tuple(threading.Lock() for _ in range(max(1, lock_stripes)))

    def _lock(self, key: SessionKey) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, provider_name: str, requester_key: str) -> Optional[Session]:
        key = (provider_name, requester_key)
        with self._lock(key):
            session = self._sessions.get(key)
            # Callers get a snapshot; mutations go through the store
            return replace(session, extras=dict(session.extras)) if session else None

    def get_or_create_nonce(self, provider_name: str, requester_key: str) -> str:
        key = (provider_name, requester_key)
        with self._lock(key):
            session = self._sessions.get(key)
            if session is None:
                session = self._sessions[key] = Session(state=new_nonce())
            return session.state

    def _update(self, key: SessionKey, **changes) -> None:
        with self._lock(key):
            session = self._sessions.get(key)
            if session is None:
                session = self._sessions[key] = Session(state=new_nonce())
            for name, value in changes.items():
                setattr(session, name, value)

    def set_token(self, provider_name: str, requester_key: str, token: str) -> None:
        self._update((provider_name, requester_key), access_token=token)

    def clear_token(self, provider_name: str, requester_key: str) -> None:
        # A cached profile is only valid alongside a token
        key = (provider_name, requester_key)
        with self._lock(key):
            session = self._sessions.get(key)
            if session is not None:
                session.access_token = None
                session.user = None

    def set_user(self, provider_name: str, requester_key: str, user: Any) -> None:
        self._update((provider_name, requester_key), user=user)

    def set_extra(self, provider_name: str, requester_key: str, key: str, value: Any) -> None:
        session_key = (provider_name, requester_key)
        with self._lock(session_key):
            session = self._sessions.get(session_key)
            if session is None:
                session = self._sessions[session_key] = Session(state=new_nonce())
            session.extras[key] = value

    def delete(self, provider_name: str, requester_key: str) -> None:
        key = (provider_name, requester_key)
        with self._lock(key):
            self._sessions.pop(key, None)
