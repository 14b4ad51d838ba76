"""Async SQLAlchemy engines and session factories.

Learn: SQLAlchemy 2.0 async mode: one engine per store with its own
connection pool. Credentials, the message log and the catalog may live
in three different databases; when two URLs are identical the engine
is shared so we don't open two pools against the same server.
"""

from sqlalchemy import Table
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shopfloor.config import settings
from shopfloor.db.models import Base, Message, Product, User


def build_engine(url: str) -> AsyncEngine:
    """Create an engine. SQLite (tests, demos) gets no pool sizing."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.debug)
    # Connection pool: min 5, max 20 connections.
    return create_async_engine(
        url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=15,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Databases:
    """The three stores, each with an engine and a session factory."""

    def __init__(self, credentials_url: str, messages_url: str, catalog_url: str):
        self._engines: dict[str, AsyncEngine] = {}
        self.credentials_engine = self._engine_for(credentials_url)
        self.messages_engine = self._engine_for(messages_url)
        self.catalog_engine = self._engine_for(catalog_url)

        self.credentials = build_session_factory(self.credentials_engine)
        self.messages = build_session_factory(self.messages_engine)
        self.catalog = build_session_factory(self.catalog_engine)

    @classmethod
    def from_settings(cls) -> "Databases":
        return cls(settings.database_url, settings.messages_url, settings.catalog_url)

    def _engine_for(self, url: str) -> AsyncEngine:
        if url not in self._engines:
            self._engines[url] = build_engine(url)
        return self._engines[url]

    @property
    def engines(self) -> list[AsyncEngine]:
        return list(self._engines.values())

    async def create_all(self) -> None:
        """Create each store's tables on its own engine (no migrations)."""
        layout: list[tuple[AsyncEngine, Table]] = [
            (self.credentials_engine, User.__table__),
            (self.messages_engine, Message.__table__),
            (self.catalog_engine, Product.__table__),
        ]
        for engine, table in layout:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all, tables=[table])

    async def dispose(self) -> None:
        for engine in self.engines:
            await engine.dispose()
