from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class User(db.Model):
    """
    Back-office dashboard accounts.

    WHY: Every report viewer is an individual login. Shared logins are what the
    single-session rule exists to discourage.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class UserSession(db.Model):
    """
    The one currently valid session per user.

    INVARIANT: user_id is unique, so "record a new session" is an upsert on
    user_id and the previous identifier is gone the moment the row is
    replaced. There is never a second row to evict.

    SECURITY NOTES:
    - Only the SHA-256 of the session identifier is stored
    - last_activity drives the idle window (SESSION_IDLE_TIMEOUT_MINUTES)
    - ip_address / user_agent are diagnostic only
    """
    __tablename__ = "user_sessions"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_user_sessions_user"),
        db.Index("ix_user_sessions_last_activity", "last_activity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Token hash (never store plaintext identifiers!)
    token_hash = db.Column(db.String(64), nullable=False, index=True)

    # Client information (for security monitoring)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length
    user_agent = db.Column(db.String(512), nullable=True)

    last_activity = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    user = db.relationship("User", backref=db.backref("active_session", uselist=False, lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "last_activity": to_utc_z(self.last_activity),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
