# Overview: Service-layer operations for user avatars; blob writes plus the user's reference.

"""
Avatar Service

ORDER OF OPERATIONS (upload):
1. Authorize (self, or Manager/Administrator; managers cannot touch admins)
2. Validate MIME type and size
3. Write the new blob under a fresh key
4. Point the user at the new key and commit
5. Delete the previous blob, best effort

A failed commit removes the new blob again. A failed cleanup of the old blob
is logged and otherwise ignored: the user already points at the new one.
"""

from __future__ import annotations

import uuid

from flask import current_app

from ..extensions import db
from ..models import User
from ..errors import StoreError
from ..validation import ValidationError
from . import auth_service, permission_service
from .storage import get_storage


ALLOWED_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

DEFAULT_MAX_BYTES = 5 * 1024 * 1024


def _authorize(actor, user: User) -> None:
    permission_service.authorize(
        actor.role,
        "MANAGE_AVATAR",
        target_role=user.role_id,
        is_self=actor.subject_id == user.user_id,
    )


def discard_blob(key: str | None) -> None:
    """Best-effort delete; failures are logged, never raised."""
    if not key:
        return
    try:
        get_storage().delete(key)
    except (OSError, ValueError):
        current_app.logger.warning("Failed to delete avatar blob %s", key, exc_info=True)


def upload_avatar(actor, *, user_id: int, data: bytes, mime_type: str | None) -> User:
    user = auth_service.get_user(user_id)
    _authorize(actor, user)

    mime_type = (mime_type or "").split(";", 1)[0].strip().lower()
    extension = ALLOWED_MIME_TYPES.get(mime_type)
    if extension is None:
        raise ValidationError("Avatar must be a PNG, JPEG or WebP image")

    if not data:
        raise ValidationError("Avatar file is empty")

    max_bytes = current_app.config.get("AVATAR_MAX_BYTES", DEFAULT_MAX_BYTES)
    if len(data) > max_bytes:
        raise ValidationError(f"Avatar exceeds the {max_bytes} byte limit")

    storage = get_storage()
    key = f"avatars/{user.user_id}/{uuid.uuid4().hex}.{extension}"
    try:
        url = storage.put(key, data)
    except OSError as e:
        current_app.logger.exception("Failed to store avatar for user %s", user.user_id)
        raise StoreError("Failed to store avatar", detail=str(e))

    previous_key = user.avatar_key
    user.avatar_key = key
    user.avatar_url = url
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        discard_blob(key)
        raise

    if previous_key and previous_key != key:
        discard_blob(previous_key)

    return user


def remove_avatar(actor, *, user_id: int) -> User:
    user = auth_service.get_user(user_id)
    _authorize(actor, user)

    previous_key = user.avatar_key
    user.avatar_key = None
    user.avatar_url = None
    db.session.commit()

    discard_blob(previous_key)
    return user
