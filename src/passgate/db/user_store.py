"""User store — where identities live.

Learn: The auth services only see the UserStore protocol and plain
Identity objects, never ORM rows or sessions. SqlAlchemyUserStore is the
production implementation; tests swap in an in-memory one through
FastAPI's dependency_overrides.

Backend failures are translated into StoreError here so services never
have to know about SQLAlchemy exceptions.
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

import structlog
from fastapi import Depends
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from passgate.db.engine import get_db
from passgate.db.models import User
from passgate.errors import EmailAlreadyInUseError, StoreError, UserNotFoundError

logger = structlog.get_logger()


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str
    password_hash: str
    telephone: str
    name: str = ""
    surname: str = ""
    profile_image_ref: Optional[str] = None


class UserStore(Protocol):
    async def find_by_email(self, email: str) -> Optional[Identity]: ...

    async def find_by_uid(self, uid: str) -> Optional[Identity]: ...

    async def create(self, identity: Identity) -> None:
        """Persist a new identity. Raises EmailAlreadyInUseError on conflict."""
        ...

    async def update_password(self, uid: str, password_hash: str) -> None:
        """Replace the password hash. Raises UserNotFoundError for unknown uids."""
        ...


def _to_identity(user: User) -> Identity:
    return Identity(
        uid=str(user.uid),
        email=user.email,
        password_hash=user.password_hash,
        telephone=user.telephone,
        name=user.name,
        surname=user.surname,
        profile_image_ref=user.profile_picture,
    )


def _parse_uid(uid: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(uid)
    except (ValueError, AttributeError, TypeError):
        return None


class SqlAlchemyUserStore:
    """UserStore backed by the ``users`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str) -> Optional[Identity]:
        try:
            result = await self.db.execute(
                select(User).where(func.lower(User.email) == email.lower())
            )
        except SQLAlchemyError as e:
            raise StoreError() from e
        user = result.scalars().first()
        return _to_identity(user) if user else None

    async def find_by_uid(self, uid: str) -> Optional[Identity]:
        key = _parse_uid(uid)
        if key is None:
            return None
        try:
            user = await self.db.get(User, key)
        except SQLAlchemyError as e:
            raise StoreError() from e
        return _to_identity(user) if user else None

    async def create(self, identity: Identity) -> None:
        user = User(
            uid=uuid.UUID(identity.uid),
            email=identity.email.lower(),
            name=identity.name,
            surname=identity.surname,
            telephone=identity.telephone,
            password_hash=identity.password_hash,
            profile_picture=identity.profile_image_ref,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise EmailAlreadyInUseError() from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("user_store.create_failed", error=str(e))
            raise StoreError() from e

    async def update_password(self, uid: str, password_hash: str) -> None:
        key = _parse_uid(uid)
        if key is None:
            raise UserNotFoundError()
        try:
            result = await self.db.execute(
                update(User)
                .where(User.uid == key)
                .values(password_hash=password_hash)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                raise UserNotFoundError()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("user_store.update_password_failed", error=str(e))
            raise StoreError() from e


def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    """FastAPI dependency — a store bound to the request's session."""
    return SqlAlchemyUserStore(db)
