"""End-to-end tests for the admin authentication and access-code endpoints."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storefront.api import create_app
from storefront.database import Database
from storefront.errors import register_exception_handlers
from storefront.security import AdminAuth, build_admin_dependency, build_master_dependency
from storefront.sessions import SESSION_TTL_MS, SessionRegistry
from storefront.storage import StorageError

MASTER_CODE = "ZXCVBNMLL22"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_700_000_000_000

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def storefront(tmp_path):
    database = Database(tmp_path / "storefront.sqlite3")
    database.initialize()
    clock = FakeClock()
    sessions = SessionRegistry(clock=clock)
    app = create_app(storage=database, sessions=sessions)
    with TestClient(app) as client:
        yield client, database, sessions, clock


def _login(client: TestClient, code: str) -> str:
    response = client.post("/api/admin/login", json={"code": code})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def _headers(token: str) -> dict:
    return {"X-Admin-Token": token}


def test_master_login_and_list_codes(storefront) -> None:
    client, _, _, _ = storefront

    response = client.post("/api/admin/login", json={"code": MASTER_CODE})
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["isMaster"] is True
    assert payload["label"] == "المدير الرئيسي"

    codes = client.get("/api/admin/codes", headers=_headers(payload["token"]))
    assert codes.status_code == 200
    listed = codes.json()
    assert any(item["code"] == MASTER_CODE and item["isMaster"] for item in listed)
    assert {"id", "code", "label", "isMaster", "createdAt"} <= set(listed[0])


def test_login_with_unknown_code(storefront) -> None:
    client, _, _, _ = storefront

    response = client.post("/api/admin/login", json={"code": "WRONG"})

    assert response.status_code == 401
    assert response.json() == {"error": "رمز الدخول غير صحيح"}


@pytest.mark.parametrize("body", [{}, {"code": ""}, None])
def test_login_without_code(storefront, body) -> None:
    client, _, _, _ = storefront

    response = client.post("/api/admin/login", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "الرجاء إدخال رمز الدخول"}


def test_created_code_is_revoked_when_deleted(storefront) -> None:
    client, _, _, _ = storefront
    master = _login(client, MASTER_CODE)

    created = client.post("/api/admin/codes", headers=_headers(master), json={"code": "NEW1", "label": "Ahmed"})
    assert created.status_code == 201
    code = created.json()
    assert code["isMaster"] is False
    assert code["label"] == "Ahmed"

    holder = _login(client, "NEW1")
    assert client.get("/api/admin/session", headers=_headers(holder)).status_code == 200

    deleted = client.delete(f"/api/admin/codes/{code['id']}", headers=_headers(master))
    assert deleted.status_code == 204

    denied = client.get("/api/admin/session", headers=_headers(holder))
    assert denied.status_code == 401
    assert denied.json() == {"error": "تم إلغاء صلاحيتك من قبل المدير الرئيسي", "revoked": True}

    relogin = client.post("/api/admin/login", json={"code": "NEW1"})
    assert relogin.status_code == 401


def test_orphaned_session_is_revoked_on_next_request(storefront) -> None:
    client, database, sessions, _ = storefront
    master = _login(client, MASTER_CODE)
    client.post("/api/admin/codes", headers=_headers(master), json={"code": "NEW1", "label": "Ahmed"})
    holder = _login(client, "NEW1")

    # Remove the code behind the registry's back so no sweep happens.
    code = database.find_access_code("NEW1")
    assert database.delete_access_code(code.id)
    assert sessions.resolve(holder) is not None

    response = client.post(
        "/api/products",
        headers=_headers(holder),
        json={"name": "Runner", "category": "men", "price": 100, "image": "x.jpg", "description": "d"},
    )
    assert response.status_code == 401
    assert response.json()["revoked"] is True
    assert sessions.resolve(holder) is None
    assert database.list_products() == []

    again = client.get("/api/admin/session", headers=_headers(holder))
    assert again.status_code == 401
    assert again.json()["revoked"] is True


def test_master_code_cannot_be_deleted(storefront) -> None:
    client, database, _, _ = storefront
    master = _login(client, MASTER_CODE)
    master_id = database.find_master_code().id

    response = client.delete(f"/api/admin/codes/{master_id}", headers=_headers(master))

    assert response.status_code == 403
    assert response.json() == {"error": "لا يمكن حذف الرمز الرئيسي"}
    assert database.find_master_code() is not None
    listed = client.get("/api/admin/codes", headers=_headers(master)).json()
    assert [item["id"] for item in listed] == [master_id]


def test_delete_unknown_code(storefront) -> None:
    client, _, _, _ = storefront
    master = _login(client, MASTER_CODE)

    response = client.delete("/api/admin/codes/9999", headers=_headers(master))

    assert response.status_code == 404
    assert response.json() == {"error": "الرمز غير موجود"}


def test_non_master_session_cannot_manage_codes(storefront) -> None:
    client, database, _, _ = storefront
    master = _login(client, MASTER_CODE)
    client.post("/api/admin/codes", headers=_headers(master), json={"code": "NEW1", "label": "Ahmed"})
    holder = _login(client, "NEW1")
    master_id = database.find_master_code().id

    session = client.get("/api/admin/session", headers=_headers(holder))
    assert session.status_code == 200
    assert session.json() == {"label": "Ahmed", "isMaster": False}

    forbidden = [
        client.get("/api/admin/codes", headers=_headers(holder)),
        client.post("/api/admin/codes", headers=_headers(holder), json={"code": "X", "label": "Y"}),
        client.delete(f"/api/admin/codes/{master_id}", headers=_headers(holder)),
    ]
    for response in forbidden:
        assert response.status_code == 403
        assert response.json() == {"error": "صلاحية المدير الرئيسي فقط"}
    assert database.find_access_code("X") is None

    created = client.post(
        "/api/products",
        headers=_headers(holder),
        json={"name": "Runner", "category": "men", "price": 100, "image": "x.jpg", "description": "d"},
    )
    assert created.status_code == 201


def test_duplicate_code_returns_conflict(storefront) -> None:
    client, database, _, _ = storefront
    master = _login(client, MASTER_CODE)

    first = client.post("/api/admin/codes", headers=_headers(master), json={"code": "NEW1", "label": "Ahmed"})
    second = client.post("/api/admin/codes", headers=_headers(master), json={"code": "NEW1", "label": "Sara"})
    clash = client.post("/api/admin/codes", headers=_headers(master), json={"code": MASTER_CODE, "label": "Sara"})

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json() == {"error": "هذا الرمز مستخدم بالفعل"}
    assert clash.status_code == 409
    assert [code.code for code in database.list_access_codes()].count("NEW1") == 1


def test_create_code_requires_code_and_label(storefront) -> None:
    client, _, _, _ = storefront
    master = _login(client, MASTER_CODE)

    response = client.post("/api/admin/codes", headers=_headers(master), json={"code": "NEW1"})

    assert response.status_code == 400
    assert response.json() == {"error": "الرجاء إدخال الرمز والاسم"}


def test_missing_and_unknown_tokens(storefront) -> None:
    client, _, _, _ = storefront

    missing = client.get("/api/admin/codes")
    assert missing.status_code == 401
    assert missing.json() == {"error": "غير مصرح"}

    unknown = client.get("/api/admin/codes", headers=_headers("not-a-token"))
    assert unknown.status_code == 401
    assert unknown.json() == {"error": "انتهت صلاحية الجلسة"}


def test_session_expires_after_ttl(storefront) -> None:
    client, _, sessions, clock = storefront
    token = _login(client, MASTER_CODE)
    issued = clock.now

    clock.now = issued + SESSION_TTL_MS - 1
    assert client.get("/api/admin/codes", headers=_headers(token)).status_code == 200

    clock.now = issued + SESSION_TTL_MS + 1
    expired = client.get("/api/admin/codes", headers=_headers(token))
    assert expired.status_code == 401
    assert expired.json() == {"error": "انتهت صلاحية الجلسة"}
    assert len(sessions) == 0


def test_logout_invalidates_token(storefront) -> None:
    client, _, _, _ = storefront
    token = _login(client, MASTER_CODE)

    assert client.post("/api/admin/logout", headers=_headers(token)).status_code == 204

    response = client.get("/api/admin/session", headers=_headers(token))
    assert response.status_code == 401
    assert "revoked" not in response.json()


def test_multiple_sessions_per_code(storefront) -> None:
    client, _, sessions, _ = storefront
    first = _login(client, MASTER_CODE)
    second = _login(client, MASTER_CODE)

    assert first != second
    assert len(sessions) == 2
    assert client.get("/api/admin/codes", headers=_headers(first)).status_code == 200
    assert client.get("/api/admin/codes", headers=_headers(second)).status_code == 200


def test_storage_failure_during_revalidation_is_not_fail_open(tmp_path) -> None:
    database = Database(tmp_path / "storefront.sqlite3")
    database.initialize()
    app = create_app(storage=database)

    with TestClient(app) as client:
        token = _login(client, MASTER_CODE)

        def broken(_code: str):
            raise StorageError("connection lost")

        database.find_access_code = broken  # type: ignore[method-assign]
        response = client.get("/api/admin/codes", headers=_headers(token))

    assert response.status_code == 500
    assert "error" in response.json()


def test_cors_preflight_allows_admin_token_header(storefront) -> None:
    client, _, _, _ = storefront

    response = client.options(
        "/api/admin/codes",
        headers={
            "Origin": "https://shop.example.com",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "X-Admin-Token",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "x-admin-token" in response.headers["access-control-allow-headers"].lower()


def test_admin_dependencies_on_a_standalone_app(tmp_path) -> None:
    database = Database(tmp_path / "guards.sqlite3")
    database.initialize()
    database.create_access_code(MASTER_CODE, "Master", is_master=True)
    database.create_access_code("HELPER", "Helper")
    sessions = SessionRegistry()
    current_admin = build_admin_dependency(AdminAuth(database, sessions))
    master_admin = build_master_dependency(current_admin)

    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/whoami")
    def whoami(request: Request, session=Depends(current_admin)) -> dict:
        assert request.state.admin_session is session
        return {"label": session.label}

    @app.get("/master-only")
    def master_only(session=Depends(master_admin)) -> dict:
        return {"label": session.label}

    master_token = sessions.issue(MASTER_CODE, is_master=True, label="Master")
    helper_token = sessions.issue("HELPER", is_master=False, label="Helper")

    with TestClient(app) as client:
        assert client.get("/whoami").status_code == 401
        assert client.get("/whoami", headers=_headers(helper_token)).json() == {"label": "Helper"}
        assert client.get("/master-only", headers=_headers(master_token)).json() == {"label": "Master"}

        forbidden = client.get("/master-only", headers=_headers(helper_token))
        assert forbidden.status_code == 403
        assert forbidden.json() == {"error": "صلاحية المدير الرئيسي فقط"}
