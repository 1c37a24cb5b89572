# Overview: Service-layer operations for session tokens; issues and verifies signed bearer tokens.

"""
Session Token Service

WHY: Every request after login carries a bearer token. The token itself is
the session: an HS256-signed JWT holding the user id, email and role ordinal,
valid for TOKEN_TTL_MINUTES. Nothing is stored server-side.

SECURITY NOTES:
- Verification is pure: signature, expiry and claim types only
- There is no revocation list; expiry is the only way a token dies
- The acting role always comes from the token, never from the request body
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from ..errors import Unauthenticated


ALGORITHM = "HS256"
EXTENSION_KEY = "stockroom.tokens"


@dataclass(frozen=True)
class SessionClaims:
    """Identity extracted from a verified token."""
    subject_id: int
    email: str
    role: int


class TokenService:
    """Signs and verifies session tokens with the app's SECRET_KEY."""

    def __init__(self, secret_key: str, ttl_minutes: int = 60):
        if not secret_key:
            raise ValueError("SECRET_KEY is required to sign session tokens")
        self.secret_key = secret_key
        self.ttl = timedelta(minutes=ttl_minutes)

    def issue(self, *, subject_id: int, email: str, role: int, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            "email": email,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self.secret_key, algorithm=ALGORITHM)

    def verify(self, token: str | None) -> SessionClaims:
        if not token:
            raise Unauthenticated("Authentication required")

        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token expired")
        except jwt.InvalidTokenError:
            raise Unauthenticated("Invalid token")

        sub = claims.get("sub")
        email = claims.get("email")
        role = claims.get("role")
        if not isinstance(sub, str) or not sub.isdigit():
            raise Unauthenticated("Invalid token")
        if not isinstance(email, str):
            raise Unauthenticated("Invalid token")
        if not isinstance(role, int) or isinstance(role, bool):
            raise Unauthenticated("Invalid token")

        return SessionClaims(subject_id=int(sub), email=email, role=role)


def get_token_service() -> TokenService:
    return current_app.extensions[EXTENSION_KEY]


def issue_token(user) -> str:
    """Issue a token for a User row."""
    return get_token_service().issue(subject_id=user.user_id, email=user.email, role=user.role_id)


def verify_token(token: str | None) -> SessionClaims:
    """Raises Unauthenticated when the token is missing, malformed, tampered with or expired."""
    return get_token_service().verify(token)
