from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


# Role ordinals. Comparisons elsewhere rely on Staff < Manager < Administrator.
ROLE_STAFF = 1
ROLE_MANAGER = 2
ROLE_ADMINISTRATOR = 3

ROLE_NAMES = {
    ROLE_STAFF: "Staff",
    ROLE_MANAGER: "Manager",
    ROLE_ADMINISTRATOR: "Administrator",
}


class Role(db.Model):
    """
    Role ordinals for the role policy gate.

    The table exists so that users.role_id is a real foreign key and the
    front end can list role names; the ordinals themselves are fixed.
    """
    __tablename__ = "roles"

    role_id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    role_name = db.Column(db.String(32), nullable=False, unique=True)

    def to_dict(self) -> dict:
        return {"role_id": self.role_id, "role_name": self.role_name}


class User(db.Model):
    """
    Staff accounts for authentication and attribution.

    Email is globally unique and stored lower-cased. password_hash is never
    serialized.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    user_id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    designation = db.Column(db.String(120), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role_id = db.Column(db.Integer, db.ForeignKey("roles.role_id"), nullable=False, default=ROLE_STAFF)

    # Public URL and storage key of the current avatar blob
    avatar_url = db.Column(db.String(512), nullable=True)
    avatar_key = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    role = db.relationship("Role", lazy="joined")

    def __repr__(self) -> str:
        return f"<User user_id={self.user_id} email={self.email!r} role_id={self.role_id}>"

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "designation": self.designation,
            "role_id": self.role_id,
            "role_name": ROLE_NAMES.get(self.role_id),
            "avatar_url": self.avatar_url,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
