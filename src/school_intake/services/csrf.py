"""Session-bound CSRF tokens for the browser form flow"""

import hmac
import secrets
from typing import Any, MutableMapping

SESSION_KEY = "csrf_token"
TOKEN_BYTES = 32


def get_token(session: MutableMapping) -> str:
    """Return the session's token, creating one on first use"""
    token = session.get(SESSION_KEY)
    if not token:
        token = regenerate(session)
    return token


def validate(session: MutableMapping, token: Any) -> bool:
    """Exact, constant-time match against the token stored in the session.

    Anything that is not a string (e.g. a file part named csrf_token) fails.
    """
    expected = session.get(SESSION_KEY)
    if not expected or not isinstance(token, str) or not token:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), token.encode("utf-8"))


def regenerate(session: MutableMapping) -> str:
    """Replace the token (called after every successful submission)"""
    token = secrets.token_hex(TOKEN_BYTES)
    session[SESSION_KEY] = token
    return token
