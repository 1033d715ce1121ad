# Overview: Service-layer operations for session; the durable one-row-per-user session store.

"""
Single Active Session Store

WHY: A dashboard login is personal. When the same account signs in somewhere
else, the older browser must lose access on its very next request.

The store keeps exactly one row per user in `user_sessions` (unique user_id).
Recording a session is one atomic upsert, so two concurrent logins for the
same user are serialized by the database and the later one wins.

SECURITY FEATURES:
- Cryptographically secure random identifiers (45 bytes, 60 URL-safe chars)
- Identifiers hashed with SHA-256 before storage (fast, one-way)
- Constant-time comparison of the stored and presented hashes
- Optional idle timeout (SESSION_IDLE_TIMEOUT_MINUTES, 0 disables)
- Every storage error surfaces as StorageFailure; callers fail closed
"""

import hashlib
import hmac
import secrets
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import UserSession
from .concurrency import upsert_statement
from backoffice.time_utils import utcnow


# Reads never go through the identity map, so bulk writes skip syncing it
_NO_SYNC = {"synchronize_session": False}


class StorageFailure(Exception):
    """The session table could not be read or written."""


@dataclass(frozen=True)
class SessionMetadata:
    """Client details captured at login (diagnostic only)."""
    ip_address: str | None = None
    user_agent: str | None = None


def generate_token() -> str:
    """
    Generate a cryptographically secure session identifier.

    Returns a 60-character URL-safe string (45 bytes = 360 bits of entropy).
    This is the plaintext value sent to the client (never stored).
    """
    return secrets.token_urlsafe(45)


def hash_token(token: str) -> str:
    """
    Hash an identifier for database storage using SHA-256.

    WHY SHA-256 not bcrypt: identifiers are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _naive_utc(value: datetime) -> datetime:
    # Postgres hands back aware datetimes, SQLite naive ones
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class SessionStore:
    """
    Durable record of the one currently valid session identifier per user.

    Reads select columns rather than ORM entities so a row replaced by
    another request is never served from the identity map.
    """

    def __init__(self, idle_timeout: timedelta | None = None):
        self.idle_timeout = idle_timeout

    @classmethod
    def from_config(cls, config) -> "SessionStore":
        minutes = int(config.get("SESSION_IDLE_TIMEOUT_MINUTES") or 0)
        return cls(idle_timeout=timedelta(minutes=minutes) if minutes > 0 else None)

    @contextmanager
    def transaction(self):
        """
        Group several store writes into one commit.

        Any storage error rolls the whole group back and raises StorageFailure.
        """
        try:
            yield self
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageFailure(str(exc)) from exc
        except Exception:
            db.session.rollback()
            raise

    @contextmanager
    def _storage(self, commit: bool):
        try:
            yield
            if commit:
                db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageFailure(str(exc)) from exc

    def record_session(self, user_id: int, identifier: str, metadata: SessionMetadata | None = None, *, commit: bool = True) -> None:
        """
        Make `identifier` the user's only valid session.

        Single INSERT ... ON CONFLICT (user_id) DO UPDATE; never a read-then-write.
        """
        metadata = metadata or SessionMetadata()
        now = utcnow()
        values = {
            "user_id": user_id,
            "token_hash": hash_token(identifier),
            "ip_address": metadata.ip_address,
            "user_agent": (metadata.user_agent or "")[:512] or None,
            "last_activity": now,
            "created_at": now,
            "updated_at": now,
        }
        with self._storage(commit):
            stmt = upsert_statement(
                UserSession,
                values,
                conflict_columns=["user_id"],
                update_columns=["token_hash", "ip_address", "user_agent", "last_activity", "updated_at"],
            )
            db.session.execute(stmt)

    def is_valid(self, user_id: int, identifier: str) -> bool:
        """
        True when the stored hash matches `identifier` and the idle window
        (if any) has not elapsed since the last validated request.
        """
        if not identifier:
            return False
        with self._storage(commit=False):
            row = db.session.execute(
                select(UserSession.token_hash, UserSession.last_activity)
                .where(UserSession.user_id == user_id)
            ).first()

        if row is None:
            return False
        if not hmac.compare_digest(row.token_hash, hash_token(identifier)):
            return False
        if self.idle_timeout is not None:
            if utcnow() - _naive_utc(row.last_activity) > self.idle_timeout:
                return False
        return True

    def touch(self, user_id: int) -> None:
        """Refresh last_activity for the user's current session."""
        now = utcnow()
        with self._storage(commit=True):
            db.session.execute(
                update(UserSession)
                .where(UserSession.user_id == user_id)
                .values(last_activity=now, updated_at=now),
                execution_options=_NO_SYNC,
            )

    def evict_others(self, user_id: int, keep_identifier: str, *, commit: bool = True) -> int:
        """Delete every session row for the user that does not carry `keep_identifier`."""
        with self._storage(commit):
            result = db.session.execute(
                delete(UserSession).where(
                    UserSession.user_id == user_id,
                    UserSession.token_hash != hash_token(keep_identifier),
                ),
                execution_options=_NO_SYNC,
            )
        return result.rowcount or 0

    def clear(self, user_id: int) -> int:
        """Delete the user's session row (logout)."""
        with self._storage(commit=True):
            result = db.session.execute(
                delete(UserSession).where(UserSession.user_id == user_id),
                execution_options=_NO_SYNC,
            )
        return result.rowcount or 0

    def owner_of(self, identifier: str) -> int | None:
        """Resolve a bearer identifier to its user id, or None when unknown."""
        if not identifier:
            return None
        with self._storage(commit=False):
            return db.session.execute(
                select(UserSession.user_id).where(UserSession.token_hash == hash_token(identifier))
            ).scalar()

    def clear_all(self) -> int:
        """Delete every session row; every user must log in again."""
        with self._storage(commit=True):
            result = db.session.execute(delete(UserSession), execution_options=_NO_SYNC)
        return result.rowcount or 0

    def prune_expired(self) -> int:
        """
        Delete rows idle for longer than the idle window.

        Returns 0 when idle expiry is disabled.
        """
        if self.idle_timeout is None:
            return 0
        cutoff = utcnow() - self.idle_timeout
        with self._storage(commit=True):
            result = db.session.execute(
                delete(UserSession).where(UserSession.last_activity < cutoff),
                execution_options=_NO_SYNC,
            )
        return result.rowcount or 0

    def list_sessions(self) -> list[UserSession]:
        with self._storage(commit=False):
            return (
                db.session.query(UserSession)
                .populate_existing()
                .order_by(UserSession.last_activity.desc())
                .all()
            )
