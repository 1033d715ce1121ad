# Overview: Flask routes for login, logout, session checks and the dashboard landing route.

"""
Authentication routes

SECURITY FEATURES:
- Generic credential errors (never reveals whether an email exists)
- One active session per user; a new login evicts the previous one
- Session store failures fail closed (503, nothing issued)
- Logout from a stale tab cannot end a newer session
"""

from uuid import uuid4

from flask import (
    Blueprint,
    current_app,
    flash,
    g,
    get_flashed_messages,
    jsonify,
    redirect,
    request,
    session,
    url_for,
)

from ..decorators import require_auth
from ..services.login_service import InvalidCredentials
from ..services.session_service import SessionMetadata, StorageFailure
from ..session_gate import clear_local_auth, wants_json
from ..validation import ValidationError


auth_bp = Blueprint("auth", __name__)

LOGIN_UNAVAILABLE_MESSAGE = "Login is temporarily unavailable. Please try again."


def _json_caller() -> bool:
    return request.is_json or wants_json()


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "on", "yes")


def _login_payload() -> dict:
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


@auth_bp.get("/login")
def login_page():
    """
    Login page bridge for the front end.

    Returns any flashed messages (e.g. "Session expired") so the page can show
    why the user landed here.
    """
    messages = [
        {"category": category, "message": message}
        for category, message in get_flashed_messages(with_categories=True)
    ]
    return jsonify({"message": "Please log in.", "flashes": messages}), 200


@auth_bp.post("/login")
def login():
    """
    Authenticate and start the user's only session.

    JSON callers receive the identifier as a bearer token; browsers get a
    signed cookie session and a redirect to the dashboard.
    """
    data = _login_payload()
    orchestrator = current_app.extensions["login_orchestrator"]
    metadata = SessionMetadata(
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )

    try:
        result = orchestrator.login(
            data.get("email"),
            data.get("password"),
            remember=_truthy(data.get("remember")),
            metadata=metadata,
        )
    except ValidationError as exc:
        if not isinstance(exc, InvalidCredentials):
            current_app.logger.info("Rejected malformed login payload: %s", sorted(exc.errors))
        if _json_caller():
            return jsonify(exc.to_dict()), 422
        for messages in exc.errors.values():
            for message in messages:
                flash(message, "error")
        return redirect(url_for("auth.login_page"))
    except StorageFailure:
        correlation_id = uuid4().hex
        current_app.logger.exception("Session store failure during login (correlation_id=%s)", correlation_id)
        if _json_caller():
            return jsonify({"message": LOGIN_UNAVAILABLE_MESSAGE, "correlation_id": correlation_id}), 503
        flash(LOGIN_UNAVAILABLE_MESSAGE, "error")
        return redirect(url_for("auth.login_page"))

    # Regenerate the cookie session so nothing from before login survives
    session.clear()
    session["user_id"] = result.user.id
    session["session_token"] = result.identifier
    session.permanent = result.remember

    redirect_to = current_app.config.get("LOGIN_REDIRECT", "/dashboard")
    if _json_caller():
        return jsonify({
            "message": "Login successful",
            "token": result.identifier,
            "user": result.user.to_dict(),
            "redirect": redirect_to,
        }), 200
    return redirect(redirect_to)


@auth_bp.post("/logout")
def logout():
    """
    End the current session.

    The store row is cleared only when the presented identifier is still the
    current one. The cookie session is always cleared.
    """
    gate = current_app.extensions["session_gate"]
    orchestrator = current_app.extensions["login_orchestrator"]

    try:
        identity = gate.resolve_identity()
        if identity is not None:
            orchestrator.logout(identity.user_id, identity.identifier)
    except StorageFailure:
        current_app.logger.exception("Session store failure during logout")

    clear_local_auth()
    session.permanent = False

    if _json_caller():
        return jsonify({"message": "Logged out."}), 200
    return redirect(url_for("auth.login_page"))


@auth_bp.get("/api/session/check")
def session_check():
    """Same validity check as the gate, answered as JSON for polling front ends."""
    gate = current_app.extensions["session_gate"]
    user, _identity, reason = gate.check()

    if reason is None:
        return jsonify({"authenticated": True, "user": user.to_dict()}), 200

    if reason != "unauthenticated":
        clear_local_auth()
    return jsonify({"authenticated": False, "reason": reason}), 401


@auth_bp.get("/dashboard")
@require_auth
def dashboard():
    return jsonify({"message": "Welcome back.", "user": g.current_user.to_dict()}), 200
