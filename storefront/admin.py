"""Admin login, access-code management and session revocation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from .errors import BadRequest, Conflict, Forbidden, NotFound, Unauthorized
from .models import AccessCode
from .sessions import SessionRegistry
from .storage import DuplicateCodeError, Storage

logger = logging.getLogger("storefront.admin")

DEFAULT_MASTER_CODE = "ZXCVBNMLL22"
MASTER_LABEL = "المدير الرئيسي"

MISSING_LOGIN_CODE = "الرجاء إدخال رمز الدخول"
INVALID_LOGIN_CODE = "رمز الدخول غير صحيح"
MISSING_CODE_FIELDS = "الرجاء إدخال الرمز والاسم"
DUPLICATE_CODE = "هذا الرمز مستخدم بالفعل"
CODE_NOT_FOUND = "الرمز غير موجود"
MASTER_CODE_PROTECTED = "لا يمكن حذف الرمز الرئيسي"


@dataclass(frozen=True)
class LoginResult:
    token: str
    is_master: bool
    label: str


def ensure_master_code(storage: Storage, code: str = DEFAULT_MASTER_CODE) -> AccessCode:
    """Make sure exactly one master access code exists and return it."""

    existing = storage.find_master_code()
    if existing is not None:
        return existing

    try:
        created = storage.create_access_code(code, MASTER_LABEL, is_master=True)
    except DuplicateCodeError:
        # Another worker may have created the master code first.
        existing = storage.find_master_code()
        if existing is not None:
            return existing
        raise RuntimeError(
            "Cannot create the master access code: the configured value is already used by another code"
        )

    logger.info("Created master access code #%s", created.id)
    return created


class AdminService:
    """Operations behind the admin panel endpoints."""

    def __init__(self, storage: Storage, sessions: SessionRegistry) -> None:
        self._storage = storage
        self._sessions = sessions

    def login(self, presented_code: str | None) -> LoginResult:
        code = (presented_code or "").strip()
        if not code:
            raise BadRequest(MISSING_LOGIN_CODE)

        access_code = self._storage.find_access_code(code)
        if access_code is None:
            logger.warning("Rejected admin login with an unknown access code")
            raise Unauthorized(INVALID_LOGIN_CODE)

        self._sessions.purge_expired()
        token = self._sessions.issue(
            access_code.code,
            is_master=access_code.is_master,
            label=access_code.label,
        )
        logger.info("Admin %r signed in with access code #%s", access_code.label, access_code.id)
        return LoginResult(token=token, is_master=access_code.is_master, label=access_code.label)

    def logout(self, token: str) -> None:
        self._sessions.revoke(token)

    def list_codes(self) -> List[AccessCode]:
        return self._storage.list_access_codes()

    def create_code(self, code: str | None, label: str | None) -> AccessCode:
        cleaned_code = (code or "").strip()
        cleaned_label = (label or "").strip()
        if not cleaned_code or not cleaned_label:
            raise BadRequest(MISSING_CODE_FIELDS)

        try:
            created = self._storage.create_access_code(cleaned_code, cleaned_label, is_master=False)
        except DuplicateCodeError as exc:
            raise Conflict(DUPLICATE_CODE) from exc

        logger.info("Created access code #%s for %r", created.id, created.label)
        return created

    def delete_code(self, code_id: str) -> int:
        """Delete a non-master access code and revoke every session issued for it.

        Returns the number of sessions that were revoked.
        """

        access_code = self._storage.get_access_code(code_id)
        if access_code is None:
            raise NotFound(CODE_NOT_FOUND)
        if access_code.is_master:
            raise Forbidden(MASTER_CODE_PROTECTED)

        self._storage.delete_access_code(access_code.id)
        revoked = self._sessions.revoke_all_for_code(access_code.code)
        logger.info(
            "Deleted access code #%s (%r) and revoked %s session(s)",
            access_code.id,
            access_code.label,
            revoked,
        )
        return revoked


__all__ = [
    "AdminService",
    "DEFAULT_MASTER_CODE",
    "LoginResult",
    "MASTER_LABEL",
    "ensure_master_code",
]
