"""Error taxonomy for the submission and PDF download flows.

Every error carries the HTTP status it maps to at the request boundary.
Messages of ValidationError, AuthError, NotFoundError and ConfigError are
user-facing. StorageError and UnexpectedError messages are logged only; the
client receives a generic message.
"""

from typing import Optional


class IntakeError(Exception):
    """Base class for all domain errors"""

    status_code = 500
    expose_message = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(IntakeError):
    """Bad or missing input"""

    status_code = 400


class AuthError(IntakeError):
    """Missing/invalid CSRF token or invalid/expired download token"""

    status_code = 403


class NotFoundError(IntakeError):
    """Unknown submission or form key"""

    status_code = 404


class ConfigError(IntakeError):
    """Feature disabled or misconfigured (e.g. PDF not enabled for a form)"""

    status_code = 403


class StorageError(IntakeError):
    """Database unreachable or insert failure"""

    status_code = 500
    expose_message = False


class UnexpectedError(IntakeError):
    """Anything not covered above"""

    status_code = 500
    expose_message = False


class RateLimitError(IntakeError):
    """Too many submissions from one client within the window"""

    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after
