from __future__ import annotations

import re
from datetime import date, time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from backoffice.time_utils import parse_business_date, parse_business_time


# Columns are Numeric(10, 2): 99,999,999.99 is the largest storable amount
MAX_AMOUNT = Decimal("99999999.99")
CENTS = Decimal("0.01")

# Count columns are 32-bit Integer
MAX_COUNT = 2**31 - 1
MIN_COUNT = -(2**31)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """
    422-level input problem.

    `errors` maps field names to every message collected for that field so a
    client can fix a whole payload in one round trip.
    """

    def __init__(self, message: str = "Validation error", errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}

    def to_dict(self) -> dict:
        return {"message": self.message, "errors": self.errors}


class FieldError(ValueError):
    """Single-field coercion failure; collected into a ValidationError."""


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def coerce_text(field: str, value: Any, *, max_length: int | None = 255) -> str | None:
    if _blank(value):
        return None
    if isinstance(value, (dict, list)):
        raise FieldError(f"The {field} field must be a string.")
    text = str(value).strip()
    if max_length and len(text) > max_length:
        raise FieldError(f"The {field} field must not be greater than {max_length} characters.")
    return text


def coerce_amount(field: str, value: Any) -> Decimal | None:
    """
    Money arrives as strings ("100.00"), sometimes as JSON numbers.

    Floats go through str() so 0.1 stays 0.1 rather than its binary expansion.
    """
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise FieldError(f"The {field} field must be a number.")
    text = str(value).strip().replace(",", "")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise FieldError(f"The {field} field must be a number.")
    if not amount.is_finite():
        raise FieldError(f"The {field} field must be a number.")
    # Checked before quantizing: huge exponents overflow the decimal context
    if abs(amount) > MAX_AMOUNT:
        raise FieldError(f"The {field} field must not exceed {MAX_AMOUNT}.")
    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if abs(amount) > MAX_AMOUNT:
        raise FieldError(f"The {field} field must not exceed {MAX_AMOUNT}.")
    return amount


def coerce_count(field: str, value: Any) -> int | None:
    # Integers - strict validation to reject floats and scientific notation
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise FieldError(f"The {field} field must be an integer.")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise FieldError(f"The {field} field must be an integer.")
        number = int(value)
    else:
        stripped = str(value).strip()
        if not re.fullmatch(r"-?\d+", stripped):
            raise FieldError(f"The {field} field must be an integer.")
        number = int(stripped)
    if not MIN_COUNT <= number <= MAX_COUNT:
        raise FieldError(f"The {field} field must be an integer.")
    return number


def coerce_date(field: str, value: Any) -> date | None:
    if _blank(value):
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_business_date(str(value))
    except ValueError:
        raise FieldError(f"The {field} field must be a valid date.")


def coerce_time(field: str, value: Any) -> time | None:
    if _blank(value):
        return None
    if isinstance(value, time):
        return value
    try:
        return parse_business_time(str(value))
    except ValueError:
        raise FieldError(f"The {field} field must be a valid time.")


def validate_login_payload(email: Any, password: Any) -> tuple[str, str]:
    """Shape check for the login form; raises ValidationError listing every problem."""
    errors: dict[str, list[str]] = {}
    email_text = email.strip() if isinstance(email, str) else ""
    if not email_text:
        errors.setdefault("email", []).append("The email field is required.")
    elif not EMAIL_RE.match(email_text) or len(email_text) > 255:
        errors.setdefault("email", []).append("The email field must be a valid email address.")

    if not isinstance(password, str) or password == "":
        errors.setdefault("password", []).append("The password field is required.")

    if errors:
        raise ValidationError("Validation error", errors=errors)
    return email_text, password
