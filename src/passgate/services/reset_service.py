"""Password reset service — a state machine with no server-side state.

Learn: The whole reset "session" lives inside the tokens the client
carries between steps:

    REQUESTED ──forgetPassword──▶ CODE_ISSUED ──submitCode──▶ CODE_VERIFIED ──resetPassword──▶ COMPLETED

1. request_reset: emails a random numeric code and returns a token
   whose "code" claim is the bcrypt hash of that code. The plaintext
   code only ever exists in memory and in the email.
2. submit_code: checks the submitted code against the hash in the
   token and swaps it for a fresh token WITHOUT a code claim. That
   narrows the token from "may check a code" to "may set a password",
   so it can't be replayed against step 2.
3. reset_password: hashes the new password and stores it. This is the
   only durable write in the flow.

If any step fails partway (e.g. the email can't be sent) nothing is
stored; without the token the client has to start over from step 1.
"""

import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import structlog

from passgate.auth.dependencies import AuthorizationContext
from passgate.auth.jwt import TokenClaims, TokenService, reset_token_ttl
from passgate.auth.nonces import NonceRegistry
from passgate.auth.password import CredentialHasher
from passgate.db.user_store import UserStore
from passgate.errors import (
    MalformedChallengeError,
    ResetTokenConsumedError,
    StoreError,
    UserNotFoundError,
    WrongResetCodeError,
)
from passgate.notifications.email import NotificationGateway

logger = structlog.get_logger()

RESET_EMAIL_SUBJECT = "RESET CODE"


class ResetState(str, Enum):
    REQUESTED = "requested"
    CODE_ISSUED = "code_issued"
    CODE_VERIFIED = "code_verified"
    COMPLETED = "completed"


def generate_challenge_code(digits: int = 6) -> str:
    """Uniformly random, zero-padded numeric code from the OS CSPRNG."""
    return f"{secrets.randbelow(10 ** digits):0{digits}d}"


def _reset_email_body(code: str, ttl: timedelta) -> str:
    minutes = int(ttl.total_seconds() // 60)
    return (
        f"Your password reset code is {code}\n\n"
        f"It expires in {minutes} minutes. If you didn't ask to reset "
        "your password, you can ignore this email."
    )


class PasswordResetService:
    """Drives the forgetPassword → submitCode → resetPassword flow."""

    def __init__(
        self,
        users: UserStore,
        hasher: CredentialHasher,
        tokens: TokenService,
        notifier: NotificationGateway,
        *,
        nonces: Optional[NonceRegistry] = None,
        code_digits: int = 6,
        token_ttl: Optional[timedelta] = None,
    ):
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.notifier = notifier
        self.nonces = nonces  # set → resetPassword tokens are single-use
        self.code_digits = code_digits
        self.token_ttl = token_ttl or reset_token_ttl()

    @property
    def single_use(self) -> bool:
        return self.nonces is not None

    # ─── Step 1: REQUESTED → CODE_ISSUED ────────────────

    async def request_reset(self, email: str) -> str:
        identity = await self.users.find_by_email(email.strip().lower())
        if identity is None:
            raise UserNotFoundError()

        code = generate_challenge_code(self.code_digits)
        token = self.tokens.issue(
            TokenClaims(uid=identity.uid, code=self.hasher.hash(code)),
            self.token_ttl,
        )

        # No token leaves this method unless the email went out
        await self.notifier.send(
            identity.email,
            RESET_EMAIL_SUBJECT,
            _reset_email_body(code, self.token_ttl),
        )

        logger.info("reset.transition", uid=identity.uid, state=ResetState.CODE_ISSUED.value)
        return token

    # ─── Step 2: CODE_ISSUED → CODE_VERIFIED ────────────

    async def submit_code(self, context: AuthorizationContext, code: str) -> str:
        if not context.has_challenge:
            raise MalformedChallengeError()

        if not self.hasher.verify(code, context.code):
            logger.info("reset.wrong_code", uid=context.uid)
            raise WrongResetCodeError()

        identity = await self.users.find_by_uid(context.uid)
        if identity is None:
            raise UserNotFoundError()

        jti = secrets.token_urlsafe(16) if self.single_use else None
        token = self.tokens.issue(
            TokenClaims(uid=identity.uid, jti=jti), self.token_ttl
        )

        logger.info("reset.transition", uid=identity.uid, state=ResetState.CODE_VERIFIED.value)
        return token

    # ─── Step 3: CODE_VERIFIED → COMPLETED ──────────────

    async def reset_password(
        self, context: AuthorizationContext, new_password: str
    ) -> None:
        # A CODE_ISSUED token must go through submitCode first
        if context.has_challenge:
            raise MalformedChallengeError()

        password_hash = self.hasher.hash(new_password)

        if self.single_use:
            await self._consume(context)

        try:
            await self.users.update_password(context.uid, password_hash)
        except Exception:
            # The password wasn't changed, so the token stays usable
            if self.single_use:
                await self._release(context)
            raise
        logger.info("reset.transition", uid=context.uid, state=ResetState.COMPLETED.value)

    async def _release(self, context: AuthorizationContext) -> None:
        try:
            await self.nonces.release(context.jti)
        except StoreError as e:
            logger.warning("reset.release_failed", uid=context.uid, error=str(e))

    async def _consume(self, context: AuthorizationContext) -> None:
        if not context.jti:
            raise MalformedChallengeError()
        remaining = self.token_ttl
        if context.expires_at is not None:
            remaining = context.expires_at - datetime.now(timezone.utc)
        claimed = await self.nonces.claim(context.jti, int(remaining.total_seconds()) + 1)
        if not claimed:
            logger.warning("reset.token_replayed", uid=context.uid)
            raise ResetTokenConsumedError()
