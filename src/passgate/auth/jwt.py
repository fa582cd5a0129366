"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication: there is
no session table. Every token carries the user's uid and, during a
password reset, the bcrypt hash of the emailed code. Integrity comes
from the HMAC signature and lifetime from the embedded "exp" claim.

Two token purposes, two lifetimes:
- Session token (login): long-lived, days
- Reset token (forgetPassword / submitCode): short-lived, minutes

Tokens are never revoked server-side; anyone holding one can reuse it
until it expires.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import jwt
import structlog

from passgate.config import settings

logger = structlog.get_logger()


class InvalidTokenError(Exception):
    """Raised when a token is malformed, badly signed, or expired.

    The message is deliberately the same for all three cases.
    """

    def __init__(self):
        super().__init__("Invalid or expired token")


@dataclass(frozen=True)
class TokenClaims:
    """The claims we put into (and get back out of) a token."""

    uid: str
    code: Optional[str] = None  # bcrypt hash of a reset code, never plaintext
    jti: Optional[str] = None  # single-use nonce for the final reset step
    exp: Optional[datetime] = None

    def to_payload(self) -> dict:
        payload: dict = {"uid": self.uid}
        if self.code is not None:
            payload["code"] = self.code
        if self.jti is not None:
            payload["jti"] = self.jti
        return payload


class TokenService:
    """Signs and verifies tokens with an injected, immutable secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", leeway: int = 0):
        self._secret = secret
        self.algorithm = algorithm
        self.leeway = leeway

    def issue(self, claims: TokenClaims, ttl: timedelta) -> str:
        """Create a signed token that expires ``ttl`` from now."""
        now = datetime.now(timezone.utc)
        payload = claims.to_payload()
        payload["iat"] = now
        payload["exp"] = now + ttl
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Verify and decode a token.

        Returns the claims on success.
        Raises InvalidTokenError on any failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                leeway=self.leeway,
                options={"require": ["exp", "uid"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("token.rejected", reason="expired")
            raise InvalidTokenError()
        except jwt.InvalidTokenError as e:
            logger.debug("token.rejected", reason=type(e).__name__)
            raise InvalidTokenError()

        uid = payload["uid"]
        code = payload.get("code")
        jti = payload.get("jti")
        if not isinstance(uid, str) or not uid:
            raise InvalidTokenError()
        if code is not None and not isinstance(code, str):
            raise InvalidTokenError()
        if jti is not None and not isinstance(jti, str):
            raise InvalidTokenError()

        return TokenClaims(
            uid=uid,
            code=code,
            jti=jti,
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


def session_token_ttl() -> timedelta:
    return timedelta(days=settings.session_token_expire_days)


def reset_token_ttl() -> timedelta:
    return timedelta(minutes=settings.reset_token_expire_minutes)


@lru_cache
def get_token_service() -> TokenService:
    """FastAPI dependency — one signer per process, built from settings."""
    return TokenService(settings.jwt_secret, algorithm=settings.jwt_algorithm)
