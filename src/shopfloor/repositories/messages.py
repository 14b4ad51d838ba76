"""Message log repository — append-only, oldest first."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopfloor.db.models import Message
from shopfloor.repositories.base import guarded
from shopfloor.schemas.message import MessageCreate, MessageRead


def _to_read(row: Message) -> MessageRead:
    return MessageRead(id=row.id, created_at=row.created_at, **row.document)


class MessageRepository:
    """Chat messages stored as JSON documents.

    Learn: Insertion order is display order. The autoincrement id is
    monotonic per store, so ORDER BY id reproduces append order.
    """

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        timeout: Optional[float] = None,
    ):
        self._sessions = sessions
        self._timeout = timeout

    async def get_all(self) -> list[MessageRead]:
        async def _get_all() -> list[MessageRead]:
            async with self._sessions() as db:
                result = await db.execute(select(Message).order_by(Message.id))
                return [_to_read(row) for row in result.scalars().all()]

        return await guarded("messages", _get_all, self._timeout)

    async def save(self, record: MessageCreate) -> MessageRead:
        async def _append() -> MessageRead:
            async with self._sessions() as db:
                row = Message(document=record.model_dump(mode="json"))
                db.add(row)
                await db.commit()
                await db.refresh(row)
                return _to_read(row)

        return await guarded("messages", _append, self._timeout)
