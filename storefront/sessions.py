"""In-memory session handling for the admin panel."""

from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

SESSION_TTL_MS = 24 * 60 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Session:
    """An issued admin token and the access code it was granted for.

    ``is_master`` and ``label`` are copied from the access code at login time.
    """

    token: str
    code: str
    is_master: bool
    label: str
    created_at: int

    def expired(self, now: int) -> bool:
        return now - self.created_at > SESSION_TTL_MS


class SessionRegistry:
    """Issue, resolve, and revoke admin session tokens.

    Sessions live only in process memory; a restart logs every admin out.
    Expiry is evaluated lazily when a token is resolved.

    Tokens revoked because their access code was deleted are remembered until
    they would have expired, so callers can tell a revoked token apart from an
    expired one.
    """

    def __init__(self, *, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock or _now_ms
        self._sessions: Dict[str, Session] = {}
        self._revoked: Dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def issue(self, code: str, *, is_master: bool, label: str) -> str:
        created_at = self._clock()
        with self._lock:
            token = secrets.token_hex(32)
            while token in self._sessions or token in self._revoked:
                token = secrets.token_hex(32)
            self._sessions[token] = Session(
                token=token,
                code=code,
                is_master=bool(is_master),
                label=label,
                created_at=created_at,
            )
        return token

    def resolve(self, token: str) -> Optional[Session]:
        now = self._clock()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.expired(now):
                self._sessions.pop(token, None)
                return None
            return session

    def revoke(self, token: str, *, revoked: bool = False) -> None:
        """Forget ``token``; with ``revoked`` it is also reported by :meth:`is_revoked`."""

        with self._lock:
            session = self._sessions.pop(token, None)
            if revoked and session is not None:
                self._revoked[token] = session.created_at

    def revoke_all_for_code(self, code: str) -> int:
        """Revoke every session issued for ``code`` and return how many there were."""

        with self._lock:
            tokens = [token for token, session in self._sessions.items() if session.code == code]
            for token in tokens:
                self._revoked[token] = self._sessions.pop(token).created_at
        return len(tokens)

    def is_revoked(self, token: str) -> bool:
        now = self._clock()
        with self._lock:
            created_at = self._revoked.get(token)
            if created_at is None:
                return False
            if now - created_at > SESSION_TTL_MS:
                del self._revoked[token]
                return False
            return True

    def purge_expired(self) -> int:
        """Drop expired sessions and stale revocation markers; return the sessions dropped."""

        now = self._clock()
        with self._lock:
            expired = [token for token, session in self._sessions.items() if session.expired(now)]
            for token in expired:
                del self._sessions[token]
            stale = [token for token, created_at in self._revoked.items() if now - created_at > SESSION_TTL_MS]
            for token in stale:
                del self._revoked[token]
        return len(expired)


__all__ = ["SESSION_TTL_MS", "Session", "SessionRegistry"]
