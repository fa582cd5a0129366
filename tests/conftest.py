"""Test fixtures — the real app with its collaborators swapped out.

Learn: The auth core only talks to a UserStore and a NotificationGateway,
so tests override those FastAPI dependencies with in-memory fakes:

1. InMemoryUserStore keeps identities in a dict (no Postgres needed)
2. RecordingNotifier captures outgoing emails so tests can read the
   reset code, and can be told to fail
3. The hasher runs bcrypt at the minimum cost so tests stay fast

Token signing, the bearer gate, the services and the error envelopes
are all the production code.
"""

import dataclasses
import os
import re
from typing import Optional

# Must be set before passgate.config is imported
os.environ.setdefault("PASSGATE_JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from passgate.auth.jwt import TokenService, get_token_service
from passgate.auth.password import CredentialHasher, get_credential_hasher
from passgate.config import settings
from passgate.db.user_store import Identity, get_user_store
from passgate.errors import EmailAlreadyInUseError, NotificationError, UserNotFoundError
from passgate.main import app
from passgate.notifications.email import get_notification_gateway
from passgate.uploads import ProfileImageStorage, get_profile_storage

TEST_PASSWORD = "secret_pass1"
TEST_PHONE = "+374 91234567"


class InMemoryUserStore:
    """UserStore over a dict keyed by uid."""

    def __init__(self):
        self.users: dict[str, Identity] = {}

    async def find_by_email(self, email: str) -> Optional[Identity]:
        for identity in self.users.values():
            if identity.email.lower() == email.lower():
                return identity
        return None

    async def find_by_uid(self, uid: str) -> Optional[Identity]:
        return self.users.get(uid)

    async def create(self, identity: Identity) -> None:
        if await self.find_by_email(identity.email) is not None:
            raise EmailAlreadyInUseError()
        self.users[identity.uid] = identity

    async def update_password(self, uid: str, password_hash: str) -> None:
        identity = self.users.get(uid)
        if identity is None:
            raise UserNotFoundError()
        self.users[uid] = dataclasses.replace(identity, password_hash=password_hash)


class RecordingNotifier:
    """NotificationGateway that remembers what it was asked to send."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    async def send(self, recipient: str, subject: str, body: str) -> None:
        if self.fail:
            raise NotificationError()
        self.sent.append((recipient, subject, body))

    def last_code(self) -> str:
        _, _, body = self.sent[-1]
        match = re.search(r"\b(\d{%d})\b" % settings.reset_code_digits, body)
        assert match, f"no reset code in {body!r}"
        return match.group(1)


@pytest.fixture()
def hasher():
    return CredentialHasher(rounds=4)


@pytest.fixture()
def tokens():
    return TokenService(settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture()
def user_store():
    return InMemoryUserStore()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def profile_storage(tmp_path):
    return ProfileImageStorage(str(tmp_path / "uploads"), max_bytes=1024)


@pytest_asyncio.fixture()
async def client(user_store, notifier, hasher, tokens, profile_storage):
    """HTTP client against the app with in-memory collaborators."""
    app.dependency_overrides[get_user_store] = lambda: user_store
    app.dependency_overrides[get_notification_gateway] = lambda: notifier
    app.dependency_overrides[get_credential_hasher] = lambda: hasher
    app.dependency_overrides[get_token_service] = lambda: tokens
    app.dependency_overrides[get_profile_storage] = lambda: profile_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def registered_user(user_store, hasher):
    """An identity already in the store, password TEST_PASSWORD."""
    identity = Identity(
        uid="6f1c3f0e-2b7a-4c52-9a38-4d1d7e0c9b11",
        email="ann@example.com",
        password_hash=hasher.hash(TEST_PASSWORD),
        telephone=TEST_PHONE,
        name="Ann",
        surname="Hakobyan",
    )
    await user_store.create(identity)
    return identity
