"""Live connection registry.

Learn: The registry is the single owner of "who is connected". The
coordinator iterates over a copy taken under the lock, so connections
joining or leaving mid-broadcast never invalidate the iteration.
"""

import asyncio
import uuid
from typing import Any, Optional, Protocol

import structlog

from shopfloor.realtime.events import encode_frame

logger = structlog.get_logger()


class Transport(Protocol):
    """What a Connection needs from the socket (WebSocket satisfies it)."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None: ...


class Connection:
    """One live client.

    Learn: Until activate() is called, broadcast sends are buffered.
    The handshake writes its two snapshots with send_direct(), then
    activate() flushes whatever arrived meanwhile. That makes the
    snapshots the first two frames on every new connection, without
    registering late and missing an update.

    A per-connection lock serializes writes to the socket.
    """

    def __init__(
        self,
        transport: Transport,
        username: Optional[str] = None,
        session_id: Optional[str] = None,
        read_only: bool = False,
    ):
        self.id = uuid.uuid4().hex
        self.transport = transport
        self.username = username
        self.session_id = session_id
        self.read_only = read_only
        self.closed = False
        self._active = False
        self._pending: list[tuple[str, Any]] = []
        self._lock = asyncio.Lock()

    @property
    def active(self) -> bool:
        return self._active

    async def send(self, event: str, data: Any) -> None:
        async with self._lock:
            if self.closed:
                return
            if not self._active:
                self._pending.append((event, data))
                return
            await self.transport.send_text(encode_frame(event, data))

    async def send_direct(self, event: str, data: Any) -> None:
        """Write immediately, bypassing the pre-activation buffer."""
        async with self._lock:
            if self.closed:
                return
            await self.transport.send_text(encode_frame(event, data))

    async def activate(self) -> None:
        async with self._lock:
            pending, self._pending = self._pending, []
            for event, data in pending:
                if self.closed:
                    break
                await self.transport.send_text(encode_frame(event, data))
            self._active = True

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        if self.closed:
            return
        self.closed = True
        await self.transport.close(code=code, reason=reason)


class ConnectionRegistry:
    """Lock-guarded set of live connections, keyed by connection id."""

    def __init__(self):
        self._connections: dict[str, Connection] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    async def add(self, conn: Connection) -> None:
        async with self._lock:
            self._connections[conn.id] = conn

    async def remove(self, conn: Connection) -> bool:
        async with self._lock:
            return self._connections.pop(conn.id, None) is not None

    async def snapshot(self) -> list[Connection]:
        async with self._lock:
            return list(self._connections.values())

    async def for_session(self, session_id: str) -> list[Connection]:
        async with self._lock:
            return [
                c for c in self._connections.values() if c.session_id == session_id
            ]
