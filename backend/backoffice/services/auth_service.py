# Overview: Service-layer operations for auth; password hashing, credential checks, user creation.

"""
Authentication Service

WHY: The dashboard is the only way into sales and tax reports. Uses bcrypt
for password hashing and validates password strength on account creation.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Unknown emails still pay for one bcrypt comparison, so response time does
  not reveal whether an account exists
- Session identifiers are managed separately (see session_service.py)
"""

import re
from functools import lru_cache

import bcrypt

from ..extensions import db
from ..models import User
from backoffice.time_utils import utcnow


BCRYPT_ROUNDS = 12


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash password using bcrypt (cost factor BCRYPT_ROUNDS unless overridden).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds or BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode('utf-8')


class CredentialVerifier:
    """
    Stateless email/password check.

    Returns the User on a match, None otherwise. It never says which half of
    the pair was wrong.
    """

    def verify(self, email: str, password: str) -> User | None:
        user = db.session.query(User).filter(
            db.func.lower(User.email) == email.lower(),
        ).first()

        if not user:
            verify_password(password, _dummy_hash())
            return None

        if not verify_password(password, user.password_hash):
            return None

        if not user.is_active:
            return None

        return user


def create_user(name: str, email: str, password: str, *, rounds: int | None = None) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValueError: If the email is already registered
        PasswordValidationError: If password doesn't meet requirements
    """
    existing = db.session.query(User).filter(
        db.func.lower(User.email) == email.strip().lower(),
    ).first()
    if existing:
        raise ValueError("Email already exists")

    user = User(
        name=name.strip(),
        email=email.strip(),
        password_hash=hash_password(password, rounds=rounds),
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def record_login(user: User) -> None:
    """Stamp last_login_at; part of the caller's transaction."""
    user.last_login_at = utcnow()
