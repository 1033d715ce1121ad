# backend/backoffice/config.py
from __future__ import annotations
import os
from datetime import timedelta


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///backoffice.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Idle window after which the single active session expires.
    # 0 disables idle expiry (sessions then end only on logout or a newer login).
    SESSION_IDLE_TIMEOUT_MINUTES = _env_int("SESSION_IDLE_TIMEOUT_MINUTES", 240)

    # "remember me" logins keep the cookie for this long
    PERMANENT_SESSION_LIFETIME = timedelta(days=_env_int("REMEMBER_ME_DAYS", 30))
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.environ.get("SESSION_COOKIE_SECURE", "false").lower() == "true"

    LOGIN_REDIRECT = os.environ.get("LOGIN_REDIRECT", "/dashboard")

    # Shared secret for POS terminals; ingestion is open when unset
    INGEST_API_KEY = os.environ.get("INGEST_API_KEY") or None

    # Dashboard front-end dev servers allowed to call the API with cookies
    CORS_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    )

    # Receipt / Z-read uploads
    MAX_DOCUMENT_KB = _env_int("MAX_DOCUMENT_KB", 2048)
    DOCUMENT_EXTENSIONS = ("txt", "log")
