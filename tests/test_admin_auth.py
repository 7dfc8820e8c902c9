"""
Dashboard login, admin-user management and ops endpoint authentication.
"""

from unittest.mock import patch

import pytest

from app.db.models import Admin, SystemEvent
from app.services.auth_service import (
    AdminConflictError,
    authenticate,
    create_access_token,
    create_admin,
    decode_access_token,
    hash_password,
    verify_password,
)
from tests.helpers.factories import auth_headers, make_admin


# ---- service ----


def test_password_hashing():
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret-pass", "not-a-bcrypt-hash")


def test_access_token_round_trip_and_expiry(db):
    admin = make_admin(db)
    claims = decode_access_token(create_access_token(admin))
    assert claims["sub"] == str(admin.id)
    assert claims["role"] == "admin"

    assert decode_access_token(create_access_token(admin, expires_minutes=-1)) is None
    assert decode_access_token("garbage") is None


def test_authenticate_sets_last_login(db):
    make_admin(db, username="asha")
    assert authenticate(db, "asha", "wrong") is None
    assert authenticate(db, "nobody", "s3cret-pass") is None
    admin = authenticate(db, "asha", "s3cret-pass")
    assert admin is not None
    assert admin.last_login is not None


def test_create_admin_validation(db):
    create_admin(db, "field_team", "password1", role="onground")
    with pytest.raises(AdminConflictError):
        create_admin(db, "field_team", "password2")
    with pytest.raises(ValueError):
        create_admin(db, "someone", "password1", role="owner")


# ---- login ----


def test_login_and_me(client, db):
    make_admin(db, username="asha")
    response = client.post("/api/auth/login", json={"username": "asha", "password": "s3cret-pass"})
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["admin"]["username"] == "asha"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["role"] == "admin"


def test_login_failure_is_logged(client, db):
    make_admin(db, username="asha")
    response = client.post("/api/auth/login", json={"username": "asha", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid username or password"

    event = db.query(SystemEvent).filter(SystemEvent.event_type == "admin.login_failure").one()
    assert event.level == "WARN"
    assert event.payload["username"] == "asha"
    assert event.payload["correlation_id"]


def test_me_requires_valid_token(client):
    assert client.get("/api/auth/me").status_code == 401
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


# ---- admin users ----


def test_admin_users_requires_super_admin(client, admin_headers):
    response = client.get("/api/admin/users", headers=admin_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Super admin access required"


def test_admin_users_crud(client, db, super_admin_headers):
    response = client.post(
        "/api/admin/users",
        json={"username": "field1", "password": "field-pass", "role": "onground"},
        headers=super_admin_headers,
    )
    assert response.status_code == 201
    new_id = response.json()["id"]

    duplicate = client.post(
        "/api/admin/users", json={"username": "field1", "password": "field-pass"}, headers=super_admin_headers
    )
    assert duplicate.status_code == 409

    bad_role = client.post(
        "/api/admin/users", json={"username": "field2", "password": "field-pass", "role": "owner"},
        headers=super_admin_headers,
    )
    assert bad_role.status_code == 400

    too_short = client.post(
        "/api/admin/users", json={"username": "ab", "password": "123"}, headers=super_admin_headers
    )
    assert too_short.status_code == 422

    usernames = [a["username"] for a in client.get("/api/admin/users", headers=super_admin_headers).json()]
    assert set(usernames) == {"root_admin", "field1"}

    updated = client.put(
        f"/api/admin/users/{new_id}", json={"role": "admin", "email": "f@example.com"}, headers=super_admin_headers
    )
    assert updated.status_code == 200
    assert updated.json()["role"] == "admin"
    assert updated.json()["email"] == "f@example.com"

    deleted = client.delete(f"/api/admin/users/{new_id}", headers=super_admin_headers)
    assert deleted.json() == {"success": True, "id": new_id}
    assert db.get(Admin, new_id) is None
    assert client.delete(f"/api/admin/users/{new_id}", headers=super_admin_headers).status_code == 404


@pytest.mark.parametrize("password", ["x" * 73, "é" * 40])
def test_admin_password_over_bcrypt_limit_rejected(client, admin_user, super_admin_headers, password):
    created = client.post(
        "/api/admin/users", json={"username": "field3", "password": password}, headers=super_admin_headers
    )
    assert created.status_code == 422

    updated = client.put(
        f"/api/admin/users/{admin_user.id}", json={"password": password}, headers=super_admin_headers
    )
    assert updated.status_code == 422

    ok = client.put(
        f"/api/admin/users/{admin_user.id}", json={"password": "y" * 72}, headers=super_admin_headers
    )
    assert ok.status_code == 200


def test_super_admin_cannot_demote_or_delete_self(client, super_admin_user, super_admin_headers):
    response = client.put(
        f"/api/admin/users/{super_admin_user.id}", json={"role": "admin"}, headers=super_admin_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot change your own role"

    response = client.delete(f"/api/admin/users/{super_admin_user.id}", headers=super_admin_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot delete your own account"


def test_update_unknown_admin_or_role(client, admin_user, super_admin_headers):
    assert client.put("/api/admin/users/9999", json={}, headers=super_admin_headers).status_code == 404
    response = client.put(
        f"/api/admin/users/{admin_user.id}", json={"role": "owner"}, headers=super_admin_headers
    )
    assert response.status_code == 400


# ---- ops auth ----


def test_ops_open_without_api_key_in_dev(client):
    assert client.get("/admin/scheduler/health").status_code == 200


def test_ops_api_key(client):
    with patch("app.api.auth.settings.admin_api_key", "ops-key"):
        missing = client.get("/admin/scheduler/health")
        wrong = client.get("/admin/scheduler/health", headers={"X-Admin-API-Key": "nope"})
        ok = client.get("/admin/scheduler/health", headers={"X-Admin-API-Key": "ops-key"})
    assert missing.status_code == 401
    assert wrong.status_code == 403
    assert ok.status_code == 200


def test_ops_accepts_admin_jwt(client, db):
    admin = make_admin(db, username="ops")
    with patch("app.api.auth.settings.admin_api_key", "ops-key"):
        ok = client.get("/admin/scheduler/health", headers=auth_headers(admin))
        bad = client.get("/admin/scheduler/health", headers={"Authorization": "Bearer bogus"})
    assert ok.status_code == 200
    assert bad.status_code == 401


def test_ops_fails_closed_in_production_without_key(client):
    with patch("app.api.auth.settings.app_env", "production"):
        with pytest.raises(RuntimeError, match="ADMIN_API_KEY must be set"):
            client.get("/admin/scheduler/health")
