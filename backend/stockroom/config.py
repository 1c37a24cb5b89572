# backend/stockroom/config.py
from __future__ import annotations
import os


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key. Also signs bearer tokens.
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockroom.sqlite3 by default;
    # production points DATABASE_URL at the PostgreSQL point-of-sale schema.
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockroom.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens are signed and time-bounded; expiry is the only way to end a session.
    TOKEN_TTL_MINUTES = int(os.environ.get("TOKEN_TTL_MINUTES", "60"))

    # bcrypt cost factor for password hashes
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Natural-language questions ("ask")
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_ASSISTANT_ID = os.environ.get("OPENAI_ASSISTANT_ID", "")
    ASK_BACKEND = os.environ.get("ASK_BACKEND", "chat")  # "chat" or "assistant"
    ASK_TIMEOUT_SECONDS = float(os.environ.get("ASK_TIMEOUT_SECONDS", "30"))
    ASK_SQL_PROCEDURE = os.environ.get("ASK_SQL_PROCEDURE", "execute_raw_sql")

    # Avatar blobs
    MEDIA_ROOT = os.environ.get("MEDIA_ROOT", "")  # empty -> <instance_path>/media
    MEDIA_URL_PREFIX = "/media"
    AVATAR_MAX_BYTES = 5 * 1024 * 1024
    MAX_CONTENT_LENGTH = 6 * 1024 * 1024

    CORS_ALLOWED_ORIGINS = _split_csv(
        os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        )
    )
