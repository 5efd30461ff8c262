"""Field validators shared by request schemas."""

from __future__ import annotations

import re

from email_validator import EmailNotValidError, validate_email

PASSWORD_PATTERN = re.compile(r"^(?=\S*?[A-Z])(?=\S*?[a-z])(?=\S*?[0-9])\S{6,}$")
PASSWORD_MESSAGE = (
    "Password must be at least 6 characters long, contain numbers, "
    "uppercase and lowercase letters"
)


def ensure_not_empty(value: str, field_name: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field_name} should not be empty")
    return stripped


def normalize_email(value: str) -> str:
    """Validate an email address and return its normalized form."""

    try:
        result = validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError("Wrong email format") from exc
    return result.normalized


def check_password_strength(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(PASSWORD_MESSAGE)
    return value
