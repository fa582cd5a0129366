"""Account service — registration and login.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the UserStore.
This makes the code testable (test services without HTTP).

Registration is a chain of hard gates. The first failure aborts and
nothing is written:
1. telephone matches "+374 XXXXXXXX"
2. email isn't taken
3. password is hashed
4. a uid is generated
5. the identity is persisted
No token is issued on success; the client logs in separately.
"""

import re
import uuid
from typing import Optional

import structlog

from passgate.auth.jwt import TokenClaims, TokenService, session_token_ttl
from passgate.auth.password import CredentialHasher
from passgate.db.user_store import Identity, UserStore
from passgate.errors import (
    EmailAlreadyInUseError,
    InvalidCredentialsError,
    InvalidPhoneNumberError,
)

logger = structlog.get_logger()

_PHONE_PATTERN = re.compile(r"\+374 [0-9]{8}")


def is_valid_phone_number(phone: str) -> bool:
    """Armenian numbers only: "+374", one space, eight digits."""
    return _PHONE_PATTERN.fullmatch(phone) is not None


class AccountService:
    """Business logic for creating accounts and logging in."""

    def __init__(
        self,
        users: UserStore,
        hasher: CredentialHasher,
        tokens: TokenService,
    ):
        self.users = users
        self.hasher = hasher
        self.tokens = tokens

    # ─── Registration ───────────────────────────────────

    async def register(
        self,
        *,
        name: str,
        surname: str,
        email: str,
        password: str,
        telephone: str,
        profile_image_ref: Optional[str] = None,
    ) -> Identity:
        if not is_valid_phone_number(telephone):
            raise InvalidPhoneNumberError()

        email = email.strip().lower()
        if await self.users.find_by_email(email) is not None:
            raise EmailAlreadyInUseError()

        password_hash = self.hasher.hash(password)
        uid = str(uuid.uuid4())

        identity = Identity(
            uid=uid,
            email=email,
            password_hash=password_hash,
            telephone=telephone,
            name=name,
            surname=surname,
            profile_image_ref=profile_image_ref,
        )
        await self.users.create(identity)

        logger.info("auth.registered", uid=identity.uid)
        return identity

    # ─── Login ──────────────────────────────────────────

    async def login(self, email: str, password: str) -> str:
        """Email + password → session token.

        Unknown email and wrong password raise the same error.
        """
        identity = await self.users.find_by_email(email.strip().lower())
        if identity is None:
            logger.info("auth.login_failed")
            raise InvalidCredentialsError()

        if not self.hasher.verify(password, identity.password_hash):
            logger.info("auth.login_failed")
            raise InvalidCredentialsError()

        logger.info("auth.login", uid=identity.uid)
        return self.tokens.issue(TokenClaims(uid=identity.uid), session_token_ttl())
