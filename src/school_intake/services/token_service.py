"""Signed, time-limited download tokens for confirmation PDFs"""

import time
from typing import Callable, Optional

from authlib.jose import JoseError, JsonWebToken

from school_intake.errors import ConfigError
from school_intake.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_LIFETIME = 1800  # 30 minutes
MIN_SECRET_LENGTH = 32
TOKEN_PURPOSE = "pdf-download"


class PdfTokenService:
    """
    Issues and validates HS256-signed tokens bound to one submission id.

    The expiry lives inside the signed payload, so clients cannot extend it
    and no server-side storage is needed. A token may be used any number of
    times until it expires.
    """

    def __init__(
        self,
        secret: Optional[str],
        lifetime: int = DEFAULT_LIFETIME,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ConfigError(
                "PDF_TOKEN_SECRET is not configured. Generate one with: openssl rand -hex 32",
                500,
            )
        if len(secret) < MIN_SECRET_LENGTH:
            raise ConfigError(
                f"PDF_TOKEN_SECRET must be at least {MIN_SECRET_LENGTH} characters long",
                500,
            )
        self.jwt = JsonWebToken(["HS256"])
        self.secret = secret
        self.lifetime = lifetime
        self.clock = clock

    def issue(self, submission_id: int, lifetime: Optional[int] = None) -> str:
        """Sign a token for one submission, valid for `lifetime` seconds"""
        if lifetime is None:
            lifetime = self.lifetime
        now = int(self.clock())
        payload = {
            "sub": str(submission_id),
            "purpose": TOKEN_PURPOSE,
            "iat": now,
            "exp": now + lifetime,
        }
        token = self.jwt.encode({"alg": "HS256"}, payload, self.secret)
        return token.decode("ascii")

    def validate(self, token: str) -> Optional[int]:
        """
        Return the bound submission id, or None for any invalid token.

        Malformed, forged, expired and wrong-purpose tokens all yield None.
        """
        if not token:
            return None

        try:
            claims = self.jwt.decode(token, self.secret)
            exp = claims.get("exp")
            if not isinstance(exp, int) or int(self.clock()) >= exp:
                return None
            if claims.get("purpose") != TOKEN_PURPOSE:
                return None
            return int(claims["sub"])
        except (JoseError, KeyError, TypeError, ValueError) as e:
            logger.info(f"PDF token rejected: {type(e).__name__}")
            return None
