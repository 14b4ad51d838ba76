"""Shared repository plumbing — the contract and storage error translation.

Learn: The broadcast coordinator never touches SQLAlchemy. It only sees
`get_all()` / `save()` and two exception types. Everything a driver can
raise is folded into StorageUnavailable (can't reach the store, or it
took longer than storage_timeout_seconds) or StorageRejected (the store
answered and said no).
"""

import asyncio
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

import structlog
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, SQLAlchemyError

from shopfloor.config import settings
from shopfloor.errors import StorageRejected, StorageUnavailable

logger = structlog.get_logger()

T = TypeVar("T")
CreateT = TypeVar("CreateT", contravariant=True)
ReadT = TypeVar("ReadT", covariant=True)


class Repository(Protocol[CreateT, ReadT]):
    """Full-snapshot collection: read everything, save one record."""

    async def get_all(self) -> list[ReadT]: ...

    async def save(self, record: CreateT) -> ReadT: ...


async def guarded(
    store: str,
    operation: Callable[[], Awaitable[T]],
    timeout: Optional[float] = None,
) -> T:
    """Run one store round-trip with a deadline and typed failures."""
    deadline = timeout if timeout is not None else settings.storage_timeout_seconds
    try:
        return await asyncio.wait_for(operation(), timeout=deadline)
    except asyncio.TimeoutError as e:
        logger.warning("storage.timeout", store=store, timeout=deadline)
        raise StorageUnavailable(f"{store} store timed out after {deadline}s") from e
    except (IntegrityError, DataError) as e:
        logger.warning("storage.rejected", store=store, error=str(e.orig))
        raise StorageRejected(f"{store} store rejected the write") from e
    except (DBAPIError, OSError) as e:
        logger.error("storage.unavailable", store=store, error=str(e))
        raise StorageUnavailable(f"{store} store is unavailable") from e
    except SQLAlchemyError as e:
        logger.error("storage.error", store=store, error=str(e))
        raise StorageUnavailable(f"{store} store failed: {e}") from e
