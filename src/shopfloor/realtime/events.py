"""Event names on the WebSocket channel.

Learn: Centralizing event names as constants prevents typos and keeps
the browser-facing protocol discoverable in one place. Frames are JSON
text: {"event": <name>, "data": <payload>}.
"""

import json
from typing import Any, Optional

# ─── Inbound (client → server) ───────────────────────────

NEW_MESSAGE = "newMessage"
NEW_PRODUCT = "newProduct"
PING = "ping"

# ─── Outbound (server → client) ──────────────────────────

MESSAGES = "messages"
PRODUCTS = "products"
ERROR = "error"
PONG = "pong"


def encode_frame(event: str, data: Any) -> str:
    return json.dumps({"event": event, "data": data})


def decode_frame(raw: str) -> tuple[Optional[str], Any]:
    """Parse an inbound frame. Returns (None, None) when malformed."""
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        return None, None
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        return None, None
    return frame["event"], frame.get("data")
