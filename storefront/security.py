"""Request guards for the admin API."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import Depends, Header, Request

from .errors import Forbidden, Unauthorized
from .sessions import Session, SessionRegistry
from .storage import Storage

logger = logging.getLogger("storefront.admin")

ADMIN_TOKEN_HEADER = "X-Admin-Token"

NO_CREDENTIALS = "غير مصرح"
SESSION_EXPIRED = "انتهت صلاحية الجلسة"
SESSION_REVOKED = "تم إلغاء صلاحيتك من قبل المدير الرئيسي"
MASTER_REQUIRED = "صلاحية المدير الرئيسي فقط"


class AdminAuth:
    """Resolve ``X-Admin-Token`` to a live session.

    The access code behind the session is looked up again on every request so
    that deleting a code locks its holders out immediately, even when the
    session sweep was missed.
    """

    def __init__(self, storage: Storage, sessions: SessionRegistry) -> None:
        self._storage = storage
        self._sessions = sessions

    def authenticate(self, token: Optional[str]) -> Session:
        if not token:
            raise Unauthorized(NO_CREDENTIALS)

        session = self._sessions.resolve(token)
        if session is None:
            self._sessions.revoke(token)
            if self._sessions.is_revoked(token):
                raise Unauthorized(SESSION_REVOKED, revoked=True)
            raise Unauthorized(SESSION_EXPIRED)

        if self._storage.find_access_code(session.code) is None:
            self._sessions.revoke(token, revoked=True)
            logger.warning("Rejected request from %r: access code was revoked", session.label)
            raise Unauthorized(SESSION_REVOKED, revoked=True)

        return session


def build_admin_dependency(auth: AdminAuth) -> Callable[..., Session]:
    def dependency(
        request: Request,
        token: Optional[str] = Header(default=None, alias=ADMIN_TOKEN_HEADER),
    ) -> Session:
        session = auth.authenticate(token)
        request.state.admin_session = session
        return session

    return dependency


def require_master(session: Session) -> Session:
    if not session.is_master:
        raise Forbidden(MASTER_REQUIRED)
    return session


def build_master_dependency(admin_dependency: Callable[..., Session]) -> Callable[..., Session]:
    def dependency(session: Session = Depends(admin_dependency)) -> Session:
        return require_master(session)

    return dependency


__all__ = [
    "ADMIN_TOKEN_HEADER",
    "AdminAuth",
    "build_admin_dependency",
    "build_master_dependency",
    "require_master",
]
