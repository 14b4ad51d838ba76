"""Test fixtures — an isolated app state per test.

Learn: Each test gets three throw-away SQLite files (credentials,
messages, catalog: the same split as production) through aiosqlite,
plus an in-memory session store. bcrypt runs at its minimum cost so
registrations don't dominate the test run.

FakeSocket stands in for a WebSocket when the coordinator is tested
without a transport.
"""

import asyncio
import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shopfloor.auth.sessions import MemorySessionStore
from shopfloor.config import settings
from shopfloor.db.engine import Databases
from shopfloor.main import create_app
from shopfloor.realtime.registry import Connection
from shopfloor.state import AppState


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest_asyncio.fixture()
async def app_state(tmp_path):
    databases = Databases(
        f"sqlite+aiosqlite:///{tmp_path / 'credentials.db'}",
        f"sqlite+aiosqlite:///{tmp_path / 'messages.db'}",
        f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
    )
    state = AppState(databases, MemorySessionStore())
    await state.start()
    try:
        yield state
    finally:
        await state.close()


@pytest_asyncio.fixture()
async def client(app_state):
    """HTTP client against an app wired to the per-test state."""
    app = create_app(state=app_state)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def alice_client(client):
    """Client whose cookie jar holds a logged-in session for alice."""
    r = await client.post("/register", json={"username": "alice", "password": "pw1"})
    assert r.status_code == 201
    r = await client.post("/login", json={"username": "alice", "password": "pw1"})
    assert r.status_code == 200
    return client


class FakeSocket:
    """Records frames sent to it; optionally fails or hangs on every send."""

    def __init__(self, fail: bool = False):
        self.frames: list[dict] = []
        self.fail = fail
        self.stall = False
        self.closed_with = None

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket is gone")
        if self.stall:
            await asyncio.Event().wait()
        self.frames.append(json.loads(data))

    async def close(self, code: int = 1000, reason=None) -> None:
        self.closed_with = (code, reason)

    @property
    def events(self) -> list[str]:
        return [frame["event"] for frame in self.frames]

    def last(self, event: str) -> dict:
        return [f for f in self.frames if f["event"] == event][-1]["data"]


@pytest.fixture()
def make_connection():
    """Build a Connection over a FakeSocket."""

    def _make(username="alice", session_id=None, read_only=False, fail=False):
        socket = FakeSocket(fail=fail)
        conn = Connection(
            socket, username=username, session_id=session_id, read_only=read_only
        )
        return conn, socket

    return _make
