"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the caller's token from the request. Nothing is looked
up server-side; the signed token is the whole proof.

get_authorization_context is the gate: no Authorization header, an
empty one, or a token that fails verification all stop the request
with the same 401 before the handler runs. It doesn't care which
claims are present; the reset service checks for the "code" claim
itself.
"""

from datetime import datetime
from typing import Optional

from fastapi import Depends, Header

from passgate.auth.jwt import InvalidTokenError, TokenService, get_token_service
from passgate.errors import UnauthenticatedError


class AuthorizationContext:
    """Decoded token claims for the current request.

    Learn: Built fresh per request and thrown away afterwards,
    never shared between requests, never cached.
    """

    def __init__(
        self,
        uid: str,
        code: Optional[str] = None,
        jti: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ):
        self.uid = uid
        self.code = code
        self.jti = jti
        self.expires_at = expires_at

    @property
    def has_challenge(self) -> bool:
        """True for a CODE_ISSUED token (carries a hashed reset code)."""
        return self.code is not None


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of an Authorization header value.

    Accepts "Bearer <token>" (any case) and a bare token.
    """
    if not authorization:
        return None
    value = authorization.strip()
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == "bearer":
        # "Bearer" with nothing after it carries no token
        value = rest.strip()
    elif rest.strip():
        # Some other scheme (Basic, ...), not ours
        return None
    return value or None


async def get_authorization_context(
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> AuthorizationContext:
    """Verify the bearer token (required, 401 otherwise)."""
    token = extract_bearer_token(authorization)
    if token is None:
        raise UnauthenticatedError()

    try:
        claims = tokens.verify(token)
    except InvalidTokenError:
        raise UnauthenticatedError("Invalid or expired token")

    return AuthorizationContext(
        uid=claims.uid,
        code=claims.code,
        jti=claims.jti,
        expires_at=claims.exp,
    )
