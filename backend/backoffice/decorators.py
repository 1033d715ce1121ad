# Overview: Request decorators for dashboard and POS ingestion routes.

import hmac
from functools import wraps

from flask import current_app, flash, g, jsonify, redirect, request, url_for

from .session_gate import wants_json


def require_auth(f):
    """
    Require a validated session.

    The session gate has already checked the caller's identity against the
    session store and set g.current_user; this only turns "no identity" into
    401 / redirect.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if getattr(g, "current_user", None) is None:
            if wants_json():
                return jsonify({"message": "Unauthenticated."}), 401
            flash("Please log in to continue.", "info")
            return redirect(url_for("auth.login_page"))
        return f(*args, **kwargs)

    return decorated_function


def require_ingest_key(f):
    """
    Require the shared terminal key when INGEST_API_KEY is configured.

    Terminals send it as X-Api-Key. With no key configured ingestion is open.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("INGEST_API_KEY")
        if expected:
            presented = (request.headers.get("X-Api-Key") or "").strip()
            if not presented or not hmac.compare_digest(presented, expected):
                current_app.logger.warning("Rejected ingestion call to %s: bad API key", request.path)
                return jsonify({"message": "Invalid API key."}), 401
        return f(*args, **kwargs)

    return decorated_function
