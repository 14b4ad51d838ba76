"""Server-side session stores.

Learn: The cookie carries only an opaque id (secrets.token_urlsafe).
Session data lives in Redis under shopfloor:session:{sid} with a TTL
that is refreshed on every load: a rolling expiry, so an active user
stays logged in and an idle one is dropped after session_ttl_seconds.

MemorySessionStore keeps the same contract in a dict. It is for local
development and tests only (the settings validator refuses it elsewhere).
"""

import json
import secrets
import time
from typing import Any, Callable, Optional, Protocol

import redis.asyncio as aioredis

from shopfloor.config import settings

USERNAME_KEY = "username"


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(Protocol):
    async def create(self, data: dict[str, Any]) -> str: ...

    async def load(self, sid: str) -> Optional[dict[str, Any]]: ...

    async def save(self, sid: str, data: dict[str, Any]) -> None: ...

    async def destroy(self, sid: str) -> None: ...

    async def close(self) -> None: ...


class RedisSessionStore:
    """Sessions as JSON strings in Redis with a rolling TTL."""

    prefix = "shopfloor:session:"

    def __init__(self, client: aioredis.Redis, ttl: Optional[int] = None):
        self._redis = client
        self._ttl = ttl or settings.session_ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl: Optional[int] = None) -> "RedisSessionStore":
        client = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, ttl)

    def _key(self, sid: str) -> str:
        return f"{self.prefix}{sid}"

    async def ping(self) -> None:
        await self._redis.ping()

    async def create(self, data: dict[str, Any]) -> str:
        sid = new_session_id()
        await self.save(sid, data)
        return sid

    async def load(self, sid: str) -> Optional[dict[str, Any]]:
        key = self._key(sid)
        raw = await self._redis.get(key)
        if raw is None:
            return None
        await self._redis.expire(key, self._ttl)
        return json.loads(raw)

    async def save(self, sid: str, data: dict[str, Any]) -> None:
        await self._redis.set(self._key(sid), json.dumps(data), ex=self._ttl)

    async def destroy(self, sid: str) -> None:
        await self._redis.delete(self._key(sid))

    async def close(self) -> None:
        await self._redis.aclose()


class MemorySessionStore:
    """Process-local sessions with the same rolling expiry."""

    def __init__(
        self,
        ttl: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl or settings.session_ttl_seconds
        self._clock = clock
        self._data: dict[str, tuple[float, dict[str, Any]]] = {}

    async def create(self, data: dict[str, Any]) -> str:
        sid = new_session_id()
        await self.save(sid, data)
        return sid

    async def load(self, sid: str) -> Optional[dict[str, Any]]:
        entry = self._data.get(sid)
        if entry is None:
            return None
        expires_at, data = entry
        if expires_at <= self._clock():
            del self._data[sid]
            return None
        self._data[sid] = (self._clock() + self._ttl, data)
        return dict(data)

    async def save(self, sid: str, data: dict[str, Any]) -> None:
        now = self._clock()
        self._purge(now)
        self._data[sid] = (now + self._ttl, dict(data))

    async def destroy(self, sid: str) -> None:
        self._data.pop(sid, None)

    def _purge(self, now: float) -> None:
        # Sessions nobody comes back for are dropped on the next write.
        expired = [sid for sid, (expires_at, _) in self._data.items() if expires_at <= now]
        for sid in expired:
            del self._data[sid]

    async def close(self) -> None:
        self._data.clear()


def build_session_store() -> SessionStore:
    if settings.session_backend == "memory":
        return MemorySessionStore()
    return RedisSessionStore.from_url(settings.redis_url)
