# Overview: Service-layer operations for login; verify credentials, issue the single session, logout.

"""
Login Orchestrator

WHY: "Log in" and "evict every other session of this user" must happen as one
step. The orchestrator verifies credentials, then records the new identifier
and evicts the rest inside a single transaction.

POLICY: evict and proceed. A new login always wins; the previous browser is
rejected by the session gate on its next request.
"""

from dataclasses import dataclass

from flask import current_app

from ..models import User
from ..validation import ValidationError, validate_login_payload
from .auth_service import CredentialVerifier, record_login
from .session_service import SessionMetadata, SessionStore, StorageFailure, generate_token


GENERIC_CREDENTIALS_MESSAGE = "The provided credentials do not match our records."

# One retry for the record+evict transaction; a second failure fails the login
SESSION_WRITE_ATTEMPTS = 2


class InvalidCredentials(ValidationError):
    """Unknown email, wrong password or inactive account. Never says which."""

    def __init__(self):
        super().__init__(
            GENERIC_CREDENTIALS_MESSAGE,
            errors={"email": [GENERIC_CREDENTIALS_MESSAGE]},
        )


@dataclass
class LoginResult:
    user: User
    identifier: str
    remember: bool = False


class LoginOrchestrator:
    def __init__(self, verifier: CredentialVerifier, store: SessionStore):
        self.verifier = verifier
        self.store = store

    def login(self, email, password, remember: bool = False, metadata: SessionMetadata | None = None) -> LoginResult:
        """
        Authenticate and make the fresh identifier the user's only session.

        Raises:
            ValidationError: malformed email or missing password (no side effects)
            InvalidCredentials: credentials do not match an active user
            StorageFailure: the session could not be recorded (nothing issued)
        """
        email, password = validate_login_payload(email, password)

        user = self.verifier.verify(email, password)
        if user is None:
            current_app.logger.info("Failed login attempt for %s", email)
            raise InvalidCredentials()

        identifier = generate_token()
        self._issue(user, identifier, metadata)

        current_app.logger.info("User %s logged in; other sessions evicted", user.id)
        return LoginResult(user=user, identifier=identifier, remember=bool(remember))

    def _issue(self, user: User, identifier: str, metadata: SessionMetadata | None) -> None:
        user_id = user.id
        for attempt in range(SESSION_WRITE_ATTEMPTS):
            try:
                with self.store.transaction():
                    self.store.record_session(user_id, identifier, metadata, commit=False)
                    self.store.evict_others(user_id, identifier, commit=False)
                    record_login(user)
                return
            except StorageFailure:
                if attempt >= SESSION_WRITE_ATTEMPTS - 1:
                    raise
                current_app.logger.warning("Session write failed for user %s; retrying", user_id)

    def logout(self, user_id: int | None, identifier: str | None) -> bool:
        """
        End the session only if `identifier` is still the current one.

        A stale tab logging out must not destroy a newer session. Returns True
        when a row was cleared.
        """
        if not user_id or not identifier:
            return False
        if not self.store.is_valid(user_id, identifier):
            return False
        return self.store.clear(user_id) > 0
