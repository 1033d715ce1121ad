# backend/backoffice/routes/system.py
"""
System health endpoint.

Reports database connectivity and the state of the session table for
deployment monitoring.
"""

import time
from datetime import timedelta

from flask import Blueprint, current_app
from ..extensions import db
from ..models import Branch, Store, User, UserSession
from backoffice.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        branch_count = db.session.query(Branch).count()
        user_count = db.session.query(User).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stores": store_count,
                "branches": branch_count,
                "users": user_count,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_session_store_health() -> dict:
    """
    Check the session table is readable; count active and idle-expired rows.
    """
    start_time = time.time()
    try:
        active_sessions = db.session.query(UserSession).count()

        minutes = int(current_app.config.get("SESSION_IDLE_TIMEOUT_MINUTES") or 0)
        expired_sessions = 0
        if minutes > 0:
            cutoff = utcnow() - timedelta(minutes=minutes)
            expired_sessions = db.session.query(UserSession).filter(
                UserSession.last_activity < cutoff
            ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_sessions": active_sessions - expired_sessions,
                "expired_pending_cleanup": expired_sessions,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session store health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session store error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    session_health = check_session_store_health()

    all_checks = [database_health, session_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "session_store": session_health,
        }
    }

    return response, http_status
