"""Submission validation"""

from typing import Any, Iterable, Mapping, Optional

from school_intake.models.submission import SubmissionStatus
from school_intake.utils.email_address import is_valid_email

# Survey schemas name their contact fields inconsistently; candidates are
# consulted in this order and the first non-empty value wins.
EMAIL_FIELD_ALIASES = ("email", "email1", "Email", "E-mail", "E-Mail")
NAME_FIELD_ALIASES = ("name", "Name")

MAX_NAME_LENGTH = 255


def pick_first(data: Mapping[str, Any], keys: Iterable[str]) -> Optional[Any]:
    """Return the first non-empty value among the candidate keys"""
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


class SubmissionValidator:
    """Validates the core fields of a new submission.

    All rules run on every call; errors are collected per field.
    """

    def __init__(self):
        self.errors: dict[str, str] = {}

    def validate(self, data: Mapping[str, Any]) -> bool:
        self.errors = {}

        self._validate_required(data, "formular", "Form is required")
        self._validate_required(data, "name", "Name is required")
        self._validate_required(data, "email", "Email is required")

        email = pick_first(data, EMAIL_FIELD_ALIASES)
        if email is not None and not is_valid_email(email):
            self.errors["email"] = "Invalid email address"

        name = data.get("name")
        if name is not None and not isinstance(name, str):
            self.errors["name"] = "Name must be text"
        elif name is not None and len(name.strip()) > MAX_NAME_LENGTH:
            self.errors["name"] = (
                f"Name is too long (max. {MAX_NAME_LENGTH} characters)"
            )

        if "status" in data and data["status"] is not None:
            if data["status"] not in SubmissionStatus.values():
                self.errors["status"] = "Invalid status"

        return not self.errors

    def _validate_required(
        self, data: Mapping[str, Any], field: str, message: str
    ) -> None:
        value = data.get(field)
        if field == "email" and value is None:
            value = pick_first(data, EMAIL_FIELD_ALIASES)
        if value is None or str(value).strip() == "":
            self.errors[field] = message

    @property
    def first_error(self) -> Optional[str]:
        return next(iter(self.errors.values()), None)
