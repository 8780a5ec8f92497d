"""
Authentication tests: login, session tokens, logout and password policy.
"""

import pytest

from conftest import PASSWORD, auth_headers, get_auth_token
from painperdu.errors import ValidationError
from painperdu.services.auth_service import (
    PasswordValidationError,
    authenticate,
    create_user,
    validate_password_strength,
    verify_password,
)


class TestPasswordPolicy:
    @pytest.mark.parametrize("weak", ["short1!", "alllowercase1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_passwords_rejected(self, weak):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(weak)

    def test_strong_password_accepted(self):
        validate_password_strength(PASSWORD)


class TestAuthService:
    def test_create_and_authenticate_by_username_or_email(self, db_session):
        user = create_user(username="claire", email="Claire@Painperdu.test", password=PASSWORD)
        db_session.commit()

        assert user.email == "claire@painperdu.test"
        assert user.role == "seller"
        assert verify_password(PASSWORD, user.password_hash)
        assert authenticate("claire", PASSWORD).id == user.id
        assert authenticate("claire@painperdu.test", PASSWORD).id == user.id
        assert authenticate("claire", "Wrong123!") is None

    def test_inactive_user_cannot_authenticate(self, db_session):
        create_user(username="dora", email="dora@painperdu.test", password=PASSWORD, is_active=False)
        db_session.commit()
        assert authenticate("dora", PASSWORD) is None

    def test_invalid_role(self, db_session):
        with pytest.raises(ValidationError):
            create_user(username="eve", email="eve@painperdu.test", password=PASSWORD, role="owner")


class TestLoginFlow:
    def test_login_me_logout(self, client, seller_user):
        token = get_auth_token(client, "alice")
        assert token

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json["user"]["username"] == "alice"
        assert "password_hash" not in me.json["user"]

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_login_with_email(self, client, seller_user):
        resp = client.post("/api/auth/login", json={"email": "alice@painperdu.test", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json["user"]["id"] == seller_user.id

    def test_bad_credentials(self, client, seller_user):
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "Nope123!"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={"username": "alice"}).status_code == 400

    def test_garbage_token(self, client, db_session):
        assert client.get("/api/auth/me", headers=auth_headers("not-a-token")).status_code == 401

    def test_self_registration_disabled(self, client, db_session):
        resp = client.post("/api/auth/register", json={"username": "x", "password": PASSWORD})
        assert resp.status_code == 403

    def test_deactivated_user_token_rejected(self, client, db_session, seller_user, seller_headers):
        seller_user.is_active = False
        db_session.commit()
        assert client.get("/api/auth/me", headers=seller_headers).status_code == 401


class TestAppWiring:
    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"

    def test_unknown_route_is_json_404(self, client, db_session):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json["message"]

    def test_cors_allowed_origin(self, client, db_session):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    def test_cors_unknown_origin(self, client, db_session):
        resp = client.get("/api/health", headers={"Origin": "http://evil.test"})
        assert "Access-Control-Allow-Origin" not in resp.headers
