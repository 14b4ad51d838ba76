"""Broadcast coordinator — snapshots on connect, persist-then-broadcast on submit.

Learn: The coordinator is the only code that knows both the connection
registry and the repositories. Per inbound event:

1. validate the payload (pydantic)
2. persist it through the repository
3. read back the full collection
4. send that snapshot to every live connection, sender included

If step 1 or 2 fails nothing is broadcast and only the sender hears
about it. If step 3 fails the record is already stored: the sender is
told so (saved_not_broadcast) and nobody else hears anything until the
next successful submit. A peer that doesn't take a frame within
settings.realtime_send_timeout_seconds is dropped, so one stalled
client can't hold up the sender. Concurrent submits may each broadcast their own snapshot in
either order; clients keep whichever arrives last.
"""

import asyncio
import json
from typing import Any, Callable, Optional, Type

import structlog
from pydantic import BaseModel, ValidationError

from shopfloor.config import settings
from shopfloor.errors import SavedNotBroadcast, StorageError
from shopfloor.realtime.events import (
    ERROR,
    MESSAGES,
    NEW_MESSAGE,
    NEW_PRODUCT,
    PING,
    PONG,
    PRODUCTS,
)
from shopfloor.realtime.registry import Connection, ConnectionRegistry
from shopfloor.repositories.base import Repository
from shopfloor.schemas.message import MessageCreate, MessageRead
from shopfloor.schemas.product import ProductCreate, ProductRead

logger = structlog.get_logger()

# WebSocket close code for "session is gone" (4000-4999 is app-defined).
CLOSE_LOGIN_REQUIRED = 4401


def _jsonable(items: list[BaseModel]) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json") for item in items]


class BroadcastCoordinator:
    """Owns the live connections and relays mutations to all of them."""

    def __init__(
        self,
        messages: Repository[MessageCreate, MessageRead],
        products: Repository[ProductCreate, ProductRead],
        registry: Optional[ConnectionRegistry] = None,
        send_timeout: Optional[float] = None,
    ):
        self.messages = messages
        self.products = products
        self.registry = registry or ConnectionRegistry()
        self.send_timeout = send_timeout or settings.realtime_send_timeout_seconds
        self._handlers: dict[str, Callable[[Any], Any]] = {
            NEW_MESSAGE: self.submit_message,
            NEW_PRODUCT: self.submit_product,
        }

    # ─── Connection lifecycle ───────────────────────────

    async def connect(self, conn: Connection) -> None:
        """Register a connection and send it both snapshots.

        The two snapshots go out concurrently; their relative order is
        not guaranteed.
        """
        await self.registry.add(conn)
        logger.info(
            "realtime.connected",
            connection_id=conn.id,
            username=conn.username,
            read_only=conn.read_only,
            connections=len(self.registry),
        )
        await asyncio.gather(
            self._send_snapshot(conn, MESSAGES, self.messages),
            self._send_snapshot(conn, PRODUCTS, self.products),
        )
        await conn.activate()

    async def _send_snapshot(
        self, conn: Connection, channel: str, repo: Repository
    ) -> None:
        try:
            snapshot = await repo.get_all()
        except StorageError as e:
            logger.warning(
                "realtime.snapshot_failed", connection_id=conn.id, channel=channel,
                error=str(e),
            )
            await conn.send_direct(ERROR, _error_payload(channel, e.code, str(e)))
            return
        await conn.send_direct(channel, _jsonable(snapshot))

    async def disconnect(self, conn: Connection) -> None:
        conn.closed = True
        if await self.registry.remove(conn):
            logger.info(
                "realtime.disconnected",
                connection_id=conn.id,
                username=conn.username,
                connections=len(self.registry),
            )

    async def revoke_session(self, session_id: str) -> int:
        """Close every live connection opened from `session_id`."""
        connections = await self.registry.for_session(session_id)
        for conn in connections:
            try:
                await conn.close(CLOSE_LOGIN_REQUIRED, "Session ended")
            except RuntimeError as e:
                # Socket already torn down by the client side.
                logger.debug("realtime.close_failed", connection_id=conn.id, error=str(e))
            await self.disconnect(conn)
        return len(connections)

    # ─── Mutations ──────────────────────────────────────

    async def submit_message(self, payload: Any) -> MessageRead:
        return await self._submit(self.messages, MessageCreate, MESSAGES, payload)

    async def submit_product(self, payload: Any) -> ProductRead:
        return await self._submit(self.products, ProductCreate, PRODUCTS, payload)

    async def _submit(
        self,
        repo: Repository,
        schema: Type[BaseModel],
        channel: str,
        payload: Any,
    ) -> BaseModel:
        """Validate, persist, then broadcast the full collection.

        Raises ValidationError or StorageError before anything is sent,
        SavedNotBroadcast if only the read-back failed. Returns the saved
        record.
        """
        record = payload if isinstance(payload, schema) else schema.model_validate(payload)
        saved = await repo.save(record)
        try:
            snapshot = await repo.get_all()
        except StorageError as e:
            logger.warning(
                "realtime.snapshot_after_save_failed", channel=channel, error=str(e)
            )
            raise SavedNotBroadcast(
                f"Saved, but the {channel} snapshot could not be read: {e}", saved
            ) from e
        await self.broadcast(channel, _jsonable(snapshot))
        return saved

    # ─── Fan-out ────────────────────────────────────────

    async def broadcast(self, channel: str, data: Any) -> None:
        """Send one frame to every live connection.

        A connection whose send fails or times out is dropped; the others
        still get the frame.
        """
        connections = await self.registry.snapshot()
        results = await asyncio.gather(
            *(self._send(conn, channel, data) for conn in connections),
            return_exceptions=True,
        )
        for conn, result in zip(connections, results):
            if isinstance(result, Exception):
                logger.warning(
                    "realtime.broadcast_failed",
                    connection_id=conn.id,
                    channel=channel,
                    error=repr(result),
                )
                await self.disconnect(conn)
        logger.info("realtime.broadcast", channel=channel, recipients=len(connections))

    # ─── Inbound dispatch ───────────────────────────────

    async def handle_event(self, conn: Connection, event_name: str, payload: Any) -> None:
        """Process one inbound frame from `conn`.

        Failures are reported to `conn` only. Nothing raised here takes
        the connection down.
        """
        if event_name == PING:
            await self._notify(conn, PONG, None)
            return

        handler = self._handlers.get(event_name)
        if handler is None:
            await self._notify(
                conn, ERROR, _error_payload(event_name, "unknown_event", "Unknown event")
            )
            return

        if conn.read_only:
            await self._notify(
                conn, ERROR, _error_payload(event_name, "login_required", "Login required")
            )
            return

        try:
            await handler(payload)
        except ValidationError as e:
            await self._notify(
                conn,
                ERROR,
                _error_payload(
                    event_name, "invalid_payload", json.loads(e.json(include_url=False))
                ),
            )
        except StorageError as e:
            logger.warning(
                "realtime.persist_failed",
                connection_id=conn.id,
                channel=event_name,
                error=str(e),
            )
            await self._notify(conn, ERROR, _error_payload(event_name, e.code, str(e)))
        except Exception:
            logger.exception(
                "realtime.event_failed", connection_id=conn.id, channel=event_name
            )
            await self._notify(
                conn, ERROR, _error_payload(event_name, "internal_error", "Internal error")
            )

    async def _send(self, conn: Connection, event_name: str, data: Any) -> None:
        try:
            await asyncio.wait_for(conn.send(event_name, data), self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "realtime.send_timeout",
                connection_id=conn.id,
                channel=event_name,
                timeout=self.send_timeout,
            )
            raise

    async def _notify(self, conn: Connection, event_name: str, data: Any) -> None:
        try:
            await self._send(conn, event_name, data)
        except Exception as e:
            logger.warning(
                "realtime.notify_failed", connection_id=conn.id, error=repr(e)
            )
            await self.disconnect(conn)


def _error_payload(source: str, code: str, detail: Any) -> dict[str, Any]:
    return {"source": source, "code": code, "detail": detail}
