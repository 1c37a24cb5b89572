# Overview: Service-layer operations for auth and user accounts; encapsulates business logic and database work.

"""
Authentication and User Account Service

WHY: Every action must be attributable. Uses bcrypt for password hashing and
validates password strength on every password write.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, with uppercase, lowercase, digit and special char
- Emails are stored lower-cased and are globally unique
- Role changes go through the policy gate (see permission_service.authorize)
- Tokens are issued separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, Role, RestockOrder, RestockDelivery
from ..models.auth import ROLE_NAMES, ROLE_STAFF
from ..errors import NotFound
from ..validation import ValidationError, ConflictError, enforce_rules_user
from . import permission_service
from stockroom.time_utils import utcnow


DEFAULT_BCRYPT_ROUNDS = 12


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


class UserNotFoundError(NotFound):
    def __init__(self, user_id: int):
        super().__init__("User not found")
        self.user_id = user_id


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password must be a string")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing. The cost factor comes
    from BCRYPT_ROUNDS so the test suite can run with a cheap one.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() compares in constant time.
    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate by email and password.

    Returns the User on success (and stamps last_login_at), None on an
    unknown email or a wrong password. Callers must not reveal which.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def create_default_roles() -> int:
    """Insert the three role rows if missing. Returns how many were created."""
    created = 0
    for role_id, role_name in ROLE_NAMES.items():
        if db.session.get(Role, role_id) is None:
            db.session.add(Role(role_id=role_id, role_name=role_name))
            created += 1
    db.session.commit()
    return created


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.user_id.asc()).all()


def _ensure_email_available(email: str, *, exclude_user_id: int | None = None) -> None:
    query = db.session.query(User).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.user_id != exclude_user_id)
    if query.first():
        raise ConflictError("Email already in use")


def create_user(
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    designation: str | None = None,
    role_id: int = ROLE_STAFF,
) -> User:
    """
    Create a user with a bcrypt-hashed password.

    No policy check happens here; HTTP callers go through create_user_as.

    Raises:
        ValidationError: bad email, role or missing names
        PasswordValidationError: weak password
        ConflictError: email already in use
    """
    if not first_name or not last_name:
        raise ValidationError("first_name and last_name are required")

    patch = {"email": email, "role_id": role_id}
    enforce_rules_user(patch)
    email = patch["email"]

    _ensure_email_available(email)

    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        designation=designation,
        role_id=role_id,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.commit()
    return user


def create_user_as(actor, *, patch: dict, password: str | None) -> User:
    """Create a user on behalf of an authenticated actor."""
    role_id = patch.get("role_id") or ROLE_STAFF
    permission_service.authorize(actor.role, "CREATE_USER", assigned_role=role_id)

    if password is None:
        raise ValidationError("Missing required fields: password")

    return create_user(
        first_name=patch["first_name"],
        last_name=patch["last_name"],
        email=patch["email"],
        password=password,
        designation=patch.get("designation"),
        role_id=role_id,
    )


def update_user_as(actor, *, user_id: int, patch: dict, password: str | None = None) -> User:
    """
    Apply a partial update on behalf of an authenticated actor.

    The target's stored role is read before anything is written:
    - profile fields need EDIT_USER (always allowed on oneself)
    - a role change additionally needs ASSIGN_ROLE, even on oneself
    """
    if not patch and password is None:
        raise ValidationError("No fields to update")

    user = get_user(user_id)
    is_self = actor.subject_id == user.user_id

    permission_service.authorize(
        actor.role,
        "EDIT_USER",
        target_role=user.role_id,
        is_self=is_self,
    )

    if "role_id" in patch and patch["role_id"] != user.role_id:
        permission_service.authorize(
            actor.role,
            "ASSIGN_ROLE",
            target_role=user.role_id,
            assigned_role=patch["role_id"],
        )

    enforce_rules_user(patch)
    if "email" in patch and patch["email"] != user.email:
        _ensure_email_available(patch["email"], exclude_user_id=user.user_id)

    password_hash = hash_password(password) if password is not None else None

    for key, value in patch.items():
        setattr(user, key, value)
    if password_hash is not None:
        user.password_hash = password_hash

    db.session.commit()
    return user


def delete_user_as(actor, *, user_id: int) -> str | None:
    """
    Remove a user. Administrators only, and never oneself.

    Returns the removed user's avatar key so the caller can clean up the blob.
    """
    user = get_user(user_id)
    permission_service.authorize(actor.role, "DELETE_USER", target_role=user.role_id)

    if actor.subject_id == user.user_id:
        raise ValidationError("You cannot delete your own account")

    avatar_key = user.avatar_key

    # Keep restock history; only the attribution goes away
    db.session.query(RestockOrder).filter(RestockOrder.requested_by == user.user_id).update(
        {RestockOrder.requested_by: None}, synchronize_session=False
    )
    db.session.query(RestockDelivery).filter(RestockDelivery.received_by == user.user_id).update(
        {RestockDelivery.received_by: None}, synchronize_session=False
    )

    db.session.delete(user)
    db.session.commit()
    return avatar_key
