"""WebSocket endpoint — the real-time channel for catalog and chat.

Learn: Each browser tab connects to /ws with its session cookie. The
handler:
1. Applies the session gate to the handshake
2. Registers the connection and streams both snapshots
3. Feeds inbound frames to the coordinator, one at a time, in order
4. Unregisters on disconnect

Anonymous handshakes follow settings.realtime_anonymous_policy:
"reject" closes with 4401, "readonly" receives snapshots and
broadcasts but can't submit anything.
"""

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from shopfloor.auth.dependencies import authenticate_websocket, get_app_state
from shopfloor.config import settings
from shopfloor.errors import StorageError
from shopfloor.realtime.coordinator import CLOSE_LOGIN_REQUIRED
from shopfloor.realtime.events import ERROR, decode_frame
from shopfloor.realtime.registry import Connection

logger = structlog.get_logger()
router = APIRouter()

# Server-side failure, the client may reconnect later.
CLOSE_TRY_AGAIN_LATER = 1013


@router.websocket("/ws")
async def realtime_websocket(websocket: WebSocket):
    # ── Session gate ────────────────────────────────────────
    try:
        session, identity = await authenticate_websocket(websocket)
    except StorageError as e:
        logger.error("realtime.gate_failed", error=str(e))
        await websocket.close(code=CLOSE_TRY_AGAIN_LATER, reason="Store unavailable")
        return

    read_only = False
    if identity is None:
        if settings.realtime_anonymous_policy != "readonly":
            logger.info("realtime.rejected", reason="login_required")
            await websocket.close(code=CLOSE_LOGIN_REQUIRED, reason="Login required")
            return
        read_only = True

    # ── Connection accepted ─────────────────────────────────
    await websocket.accept()

    coordinator = get_app_state(websocket).coordinator
    conn = Connection(
        websocket,
        username=identity.username if identity else None,
        session_id=session.sid,
        read_only=read_only,
    )

    try:
        await coordinator.connect(conn)
        while not conn.closed:
            raw = await websocket.receive_text()
            event_name, payload = decode_frame(raw)
            if event_name is None:
                await conn.send(
                    ERROR,
                    {"source": None, "code": "malformed_frame", "detail": "Expected JSON {event, data}"},
                )
                continue
            await coordinator.handle_event(conn, event_name, payload)
    except WebSocketDisconnect:
        pass
    finally:
        await coordinator.disconnect(conn)
        if (
            websocket.application_state == WebSocketState.CONNECTED
            and websocket.client_state == WebSocketState.CONNECTED
        ):
            await websocket.close()
