"""FastAPI session dependencies and the session gate.

Learn: These are used as Depends() in route handlers to load the
cookie session and resolve it to an identity.

- get_session: "soft": always returns a SessionIdentity, possibly empty.
- get_current_user: "hard": raises LoginRequired, which main.py turns
  into a redirect to /login (navigation, not an error page).

The WebSocket handshake uses authenticate_websocket with the same rule.
"""

from typing import Any, Optional

import structlog
from fastapi import Depends, Request
from starlette.requests import HTTPConnection
from starlette.responses import Response

from shopfloor.auth.sessions import USERNAME_KEY, SessionStore
from shopfloor.config import settings
from shopfloor.errors import LoginRequired
from shopfloor.schemas.user import Identity

logger = structlog.get_logger()


class SessionIdentity:
    """A loaded session: the opaque id and the data stored under it.

    Learn: A session without a username is anonymous. The username is
    written once, at login, into a brand-new session id (the previous
    id, if any, is destroyed), so a session id seen before login can
    never become an authenticated one.
    """

    def __init__(
        self,
        store: SessionStore,
        sid: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ):
        self.store = store
        self.sid = sid
        self.data = data

    @property
    def username(self) -> Optional[str]:
        if not self.data:
            return None
        return self.data.get(USERNAME_KEY)

    @property
    def is_authenticated(self) -> bool:
        return self.username is not None

    async def bind_username(self, username: str) -> str:
        """Start a fresh session carrying `username`. Returns the new id."""
        if self.sid:
            await self.store.destroy(self.sid)
        self.data = {USERNAME_KEY: username}
        self.sid = await self.store.create(self.data)
        return self.sid

    async def clear(self) -> None:
        if self.sid:
            await self.store.destroy(self.sid)
        self.sid = None
        self.data = None


def get_app_state(conn: HTTPConnection):
    """The AppState built in main.lifespan (or injected by tests)."""
    return conn.app.state.shop


async def load_session(store: SessionStore, sid: Optional[str]) -> SessionIdentity:
    if not sid:
        return SessionIdentity(store)
    data = await store.load(sid)
    if data is None:
        return SessionIdentity(store)
    return SessionIdentity(store, sid, data)


async def resolve_identity(state, session: SessionIdentity) -> Optional[Identity]:
    """Gate check: session must carry a username that still exists."""
    username = session.username
    if username is None:
        return None
    identity = await state.auth.resolve(username)
    if identity is None:
        logger.info("auth.session_invalidated", username=username)
        await session.clear()
    return identity


def set_session_cookie(response: Response, sid: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        sid,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.session_cookie_name)


async def get_session(request: Request) -> SessionIdentity:
    state = get_app_state(request)
    sid = request.cookies.get(settings.session_cookie_name)
    return await load_session(state.sessions, sid)


async def get_current_user(
    request: Request,
    response: Response,
    session: SessionIdentity = Depends(get_session),
) -> Identity:
    """Hard gate. Re-issues the cookie so its expiry rolls with the store's TTL."""
    identity = await resolve_identity(get_app_state(request), session)
    if identity is None:
        raise LoginRequired()
    set_session_cookie(response, session.sid)
    return identity


async def authenticate_websocket(
    websocket: HTTPConnection,
) -> tuple[SessionIdentity, Optional[Identity]]:
    """Apply the session gate to a WebSocket handshake.

    Browsers send cookies on the upgrade request, so the socket
    inherits whatever session the page was loaded with.
    """
    state = get_app_state(websocket)
    sid = websocket.cookies.get(settings.session_cookie_name)
    session = await load_session(state.sessions, sid)
    identity = await resolve_identity(state, session)
    return session, identity
