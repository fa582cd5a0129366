"""Consumed-nonce registry for single-use reset tokens.

Learn: Reset tokens are stateless, so by default a CODE_VERIFIED token
can set the password again and again until it expires. With
PASSGATE_RESET_SINGLE_USE on, submitCode puts a random "jti" into the
token it hands back, and resetPassword claims that jti here before
touching the password. A claim only has to outlive the token itself,
so every entry expires with it. This is a small expiring set, not a
session store.
"""

import asyncio
import time
from typing import Optional, Protocol

from passgate.cache import get_redis
from passgate.config import settings
from passgate.errors import StoreError

_KEY_PREFIX = "passgate:reset:jti:"


class NonceRegistry(Protocol):
    async def claim(self, nonce: str, ttl_seconds: int) -> bool:
        """Mark a nonce as used. Returns False if it was already used."""
        ...

    async def release(self, nonce: str) -> None:
        """Forget a claim whose step did not complete."""
        ...


class RedisNonceRegistry:
    """SET NX EX: the first claim wins, Redis expires the key for us."""

    async def claim(self, nonce: str, ttl_seconds: int) -> bool:
        try:
            redis = get_redis()
            created = await redis.set(
                f"{_KEY_PREFIX}{nonce}", "1", nx=True, ex=max(1, ttl_seconds)
            )
        except Exception as e:
            raise StoreError(f"Nonce registry unavailable: {e}") from e
        return bool(created)

    async def release(self, nonce: str) -> None:
        try:
            await get_redis().delete(f"{_KEY_PREFIX}{nonce}")
        except Exception as e:
            raise StoreError(f"Nonce registry unavailable: {e}") from e


class InMemoryNonceRegistry:
    """Process-local registry. Fine for a single worker and for tests."""

    def __init__(self):
        self._expires_at: dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def claim(self, nonce: str, ttl_seconds: int) -> bool:
        now = time.monotonic()
        async with self._lock:
            self._purge(now)
            if nonce in self._expires_at:
                return False
            self._expires_at[nonce] = now + max(1, ttl_seconds)
            return True

    async def release(self, nonce: str) -> None:
        async with self._lock:
            self._expires_at.pop(nonce, None)

    def _purge(self, now: float) -> None:
        expired = [n for n, exp in self._expires_at.items() if exp <= now]
        for n in expired:
            del self._expires_at[n]

    def __len__(self) -> int:
        return len(self._expires_at)


def get_nonce_registry() -> Optional[NonceRegistry]:
    """FastAPI dependency — None unless single-use reset tokens are on."""
    if not settings.reset_single_use:
        return None
    return RedisNonceRegistry()
