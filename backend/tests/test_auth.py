"""
Authentication tests.

Verifies:
- Login issues a token for valid credentials and 401s otherwise
- Protected endpoints return 401 without, or with a bad, token
- Token verification rejects tampering and expiry
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from stockroom.errors import Unauthenticated
from stockroom.extensions import db
from stockroom.models import User
from stockroom.services.auth_service import (
    PasswordValidationError,
    validate_password_strength,
    verify_password,
)
from stockroom.services.session_service import TokenService

from conftest import TEST_PASSWORD, auth_headers, get_auth_token


SECRET = "unit-test-secret-key-that-is-long-enough"


# =============================================================================
# LOGIN
# =============================================================================


class TestLogin:

    def test_login_returns_token_and_user(self, client, staff_user):
        resp = client.post("/login", json={"email": staff_user.email, "password": TEST_PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["token"]
        assert body["user"]["email"] == staff_user.email
        assert body["user"]["role_id"] == 1
        assert "password_hash" not in body["user"]

    def test_login_is_case_insensitive_on_email(self, client, staff_user):
        resp = client.post("/login", json={"email": "STAFF@Stockroom.test", "password": TEST_PASSWORD})
        assert resp.status_code == 200

    def test_login_stamps_last_login(self, client, staff_user):
        assert staff_user.last_login_at is None
        client.post("/login", json={"email": staff_user.email, "password": TEST_PASSWORD})
        user = db.session.get(User, staff_user.user_id)
        assert user.last_login_at is not None

    def test_wrong_password_is_401(self, client, staff_user):
        resp = client.post("/login", json={"email": staff_user.email, "password": "Wrong123!"})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid credentials"}

    def test_unknown_email_is_401(self, client, db_session):
        resp = client.post("/login", json={"email": "nobody@stockroom.test", "password": TEST_PASSWORD})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid credentials"}

    @pytest.mark.parametrize("payload", [{}, {"email": "a@b.c"}, {"password": "x"}])
    def test_missing_fields_is_400(self, client, db_session, payload):
        resp = client.post("/login", json=payload)
        assert resp.status_code == 400


# =============================================================================
# TOKEN CHECKS ON PROTECTED ROUTES
# =============================================================================


class TestProtectedRoutes:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/me"),
            ("GET", "/products"),
            ("POST", "/products"),
            ("GET", "/vendors"),
            ("GET", "/categories"),
            ("GET", "/inventory"),
            ("POST", "/inventory/order"),
            ("GET", "/restock/orders"),
            ("POST", "/restock/orders/1/deliver"),
            ("GET", "/users"),
            ("GET", "/sales"),
            ("GET", "/revenue/monthly"),
            ("POST", "/ask"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_is_401(self, client, db_session):
        resp = client.get("/me", headers=auth_headers("not-a-jwt"))
        assert resp.status_code == 401

    def test_token_signed_with_other_key_is_401(self, client, staff_user):
        forged = TokenService("some-other-secret-key-long-enough-for-hs256").issue(
            subject_id=staff_user.user_id, email=staff_user.email, role=3
        )
        resp = client.get("/me", headers=auth_headers(forged))
        assert resp.status_code == 401

    def test_me_returns_caller(self, client, manager_user, manager_headers):
        resp = client.get("/me", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["user_id"] == manager_user.user_id

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok", "database": "ok"}

    def test_unknown_route_is_json_404(self, client, db_session):
        resp = client.get("/nope")
        assert resp.status_code == 404
        assert "error" in resp.get_json()


# =============================================================================
# TOKEN SERVICE
# =============================================================================


class TestTokenService:

    def test_round_trip_claims(self):
        tokens = TokenService(SECRET, ttl_minutes=60)
        claims = tokens.verify(tokens.issue(subject_id=7, email="a@b.c", role=2))
        assert claims.subject_id == 7
        assert claims.email == "a@b.c"
        assert claims.role == 2

    def test_expired_token_rejected(self):
        tokens = TokenService(SECRET, ttl_minutes=60)
        issued = datetime.now(timezone.utc) - timedelta(hours=2)
        token = tokens.issue(subject_id=1, email="a@b.c", role=1, now=issued)
        with pytest.raises(Unauthenticated, match="expired"):
            tokens.verify(token)

    def test_missing_token_rejected(self):
        with pytest.raises(Unauthenticated):
            TokenService(SECRET).verify(None)

    def test_wrong_claim_types_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "1", "email": "a@b.c", "role": "admin", "iat": now, "exp": now + timedelta(minutes=5)},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(Unauthenticated):
            TokenService(SECRET).verify(token)

    def test_missing_exp_rejected(self):
        token = jwt.encode({"sub": "1", "email": "a@b.c", "role": 1}, SECRET, algorithm="HS256")
        with pytest.raises(Unauthenticated):
            TokenService(SECRET).verify(token)

    def test_empty_secret_refused(self):
        with pytest.raises(ValueError):
            TokenService("")


# =============================================================================
# PASSWORDS
# =============================================================================


class TestPasswords:

    @pytest.mark.parametrize(
        "password",
        ["Sh0rt!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSpecial123"],
    )
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_strong_password_accepted(self):
        validate_password_strength("Password123!")

    def test_verify_password_handles_malformed_hash(self):
        assert verify_password("Password123!", "not-a-bcrypt-hash") is False

    def test_token_from_login_verifies(self, app, client, admin_user):
        token = get_auth_token(client, admin_user.email)
        claims = app.extensions["stockroom.tokens"].verify(token)
        assert claims.subject_id == admin_user.user_id
        assert claims.role == 3
