"""Auth service — register and login against the credential store.

Learn: Service layer separates business logic from HTTP routing.
The same verifier backs the /register and /login routes and the
session gate's re-resolution of a username on every request.

bcrypt is CPU-bound, so hashing and verification run in a worker
thread; the event loop keeps serving sockets while a hash is computed.
"""

import asyncio
from typing import Optional

import structlog

from shopfloor.auth.password import hash_password, verify_password
from shopfloor.errors import AlreadyRegistered, BadCredential, NotFound
from shopfloor.repositories.credentials import CredentialStore
from shopfloor.schemas.user import Identity

logger = structlog.get_logger()


class AuthService:
    """Credential verification. Holds no state of its own."""

    def __init__(self, credentials: CredentialStore):
        self.credentials = credentials

    async def register(self, username: str, password: str) -> Identity:
        """Create a credential record, or raise AlreadyRegistered.

        The read below only short-circuits the common case (and skips a
        pointless bcrypt round). Concurrent registrations are settled by
        the unique constraint inside CredentialStore.insert().
        """
        existing = await self.credentials.find_by_username(username)
        if existing:
            logger.info("auth.register_rejected", username=username)
            raise AlreadyRegistered(username)

        password_hash = await asyncio.to_thread(hash_password, password)
        try:
            user = await self.credentials.insert(username, password_hash)
        except AlreadyRegistered:
            logger.info("auth.register_race_lost", username=username)
            raise

        logger.info("auth.registered", username=username)
        return Identity(username=user.username)

    async def login(self, username: str, password: str) -> Identity:
        """Verify a username/password pair. Never writes."""
        records = await self.credentials.find_by_username(username)
        if not records:
            logger.info("auth.login_failed", username=username, reason="not_found")
            raise NotFound(username)
        if len(records) > 1:
            logger.error(
                "auth.duplicate_credentials", username=username, count=len(records)
            )
            raise BadCredential(username)

        ok = await asyncio.to_thread(verify_password, password, records[0].password_hash)
        if not ok:
            logger.info("auth.login_failed", username=username, reason="bad_credential")
            raise BadCredential(username)

        logger.info("auth.logged_in", username=username)
        return Identity(username=records[0].username)

    async def resolve(self, username: str) -> Optional[Identity]:
        """Turn a session's username back into an identity.

        Re-queries the store every time. None means the record is gone
        and the session should be treated as logged out.
        """
        records = await self.credentials.find_by_username(username)
        if not records:
            return None
        return Identity(username=records[0].username)
