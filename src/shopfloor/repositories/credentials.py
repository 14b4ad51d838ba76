"""Credential store — username → password hash records."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopfloor.db.models import User
from shopfloor.errors import AlreadyRegistered
from shopfloor.repositories.base import guarded


class CredentialStore:
    """Lookup and insert-if-absent over the users table.

    Learn: insert() is the atomic check-and-insert. Two concurrent
    registrations of the same username both pass the read in the auth
    service, but only one INSERT survives the unique constraint; the
    loser gets AlreadyRegistered.
    """

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        timeout: Optional[float] = None,
    ):
        self._sessions = sessions
        self._timeout = timeout

    async def find_by_username(self, username: str) -> list[User]:
        async def _find() -> list[User]:
            async with self._sessions() as db:
                result = await db.execute(
                    select(User).where(User.username == username).order_by(User.id)
                )
                return list(result.scalars().all())

        return await guarded("credentials", _find, self._timeout)

    async def insert(self, username: str, password_hash: str) -> User:
        async def _insert() -> User:
            async with self._sessions() as db:
                user = User(username=username, password_hash=password_hash)
                db.add(user)
                try:
                    await db.commit()
                except IntegrityError as e:
                    await db.rollback()
                    raise AlreadyRegistered(username) from e
                await db.refresh(user)
                return user

        return await guarded("credentials", _insert, self._timeout)
