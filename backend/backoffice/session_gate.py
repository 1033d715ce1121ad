# Overview: before_request hook that enforces the single active session on every request.

"""
Session Enforcement Gate

Every request that asserts an identity (signed cookie session or bearer
token) is checked against the session store before the route runs:

- identifier is current: activity is refreshed, g.current_user is set
- identifier was replaced, expired or the store is unreachable: the cookie
  session is cleared and the caller is sent back to log in

SECURITY: fail closed. A StorageFailure never grants access. There is no
in-process cache of validity; the store is asked every time.
"""

from dataclasses import dataclass

from flask import current_app, flash, g, jsonify, redirect, request, session, url_for

from .extensions import db
from .models import User
from .services.session_service import SessionStore, StorageFailure


SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."

# Endpoints that manage sessions themselves or are called by terminals
EXEMPT_ENDPOINTS = {
    "auth.login_page",
    "auth.login",
    "auth.logout",
    "auth.session_check",
    "system.health",
    "static",
}
EXEMPT_BLUEPRINTS = {"ingest"}


@dataclass(frozen=True)
class Identity:
    user_id: int | None
    identifier: str | None
    via_bearer: bool = False


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def wants_json() -> bool:
    """API callers get 401 JSON; browsers get a redirect."""
    if request.headers.get("X-Requested-With") == "XMLHttpRequest":
        return True
    if bearer_token():
        return True
    best = request.accept_mimetypes.best or ""
    return "/json" in best or "+json" in best


def clear_local_auth() -> None:
    session.pop("user_id", None)
    session.pop("session_token", None)


class SessionGate:
    def __init__(self, store: SessionStore):
        self.store = store

    def resolve_identity(self) -> Identity | None:
        """
        The identity the caller asserts, or None when it asserts none.

        Bearer identifiers are resolved to their owner through the store, so
        resolution can raise StorageFailure.
        """
        token = bearer_token()
        if token:
            return Identity(user_id=self.store.owner_of(token), identifier=token, via_bearer=True)

        user_id = session.get("user_id")
        identifier = session.get("session_token")
        if user_id is None and identifier is None:
            return None
        return Identity(user_id=user_id, identifier=identifier)

    def check(self) -> tuple[User | None, Identity | None, str | None]:
        """
        Validate the current request's identity.

        Returns (user, identity, reason); reason is None when the request may
        proceed. "unauthenticated" means no identity was asserted at all.
        """
        try:
            identity = self.resolve_identity()
            if identity is None:
                return None, None, "unauthenticated"
            if identity.user_id is None or not identity.identifier:
                return None, identity, "session_invalidated"
            if not self.store.is_valid(identity.user_id, identity.identifier):
                return None, identity, "session_invalidated"

            user = db.session.get(User, identity.user_id)
            if user is None or not user.is_active:
                return None, identity, "session_invalidated"

            self.store.touch(identity.user_id)
        except StorageFailure:
            current_app.logger.exception("Session store unavailable; denying request to %s", request.path)
            return None, None, "session_invalidated"

        return user, identity, None

    def before_request(self):
        g.current_user = None
        g.session_identifier = None

        if request.endpoint in EXEMPT_ENDPOINTS or request.blueprint in EXEMPT_BLUEPRINTS:
            return None

        user, identity, reason = self.check()
        if reason is None:
            g.current_user = user
            g.session_identifier = identity.identifier
            return None
        if reason == "unauthenticated":
            # Routes decide with require_auth
            return None
        return self.reject(identity)

    def reject(self, identity: Identity | None):
        current_app.logger.warning(
            "Session invalidated for user %s on %s",
            identity.user_id if identity else None, request.path,
        )
        clear_local_auth()
        if wants_json():
            return jsonify({"message": SESSION_EXPIRED_MESSAGE, "reason": "session_invalidated"}), 401
        flash(SESSION_EXPIRED_MESSAGE, "warning")
        return redirect(url_for("auth.login_page"))
