"""Email address helpers"""

from typing import Any

from email_validator import EmailNotValidError, validate_email


def is_valid_email(value: Any) -> bool:
    """Check address syntax only (no DNS / deliverability lookups)"""
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True
