"""Session stores and the SessionIdentity helper."""

import pytest

from shopfloor.auth.dependencies import SessionIdentity, load_session
from shopfloor.auth.sessions import USERNAME_KEY, MemorySessionStore


@pytest.mark.asyncio
async def test_memory_store_lifecycle():
    store = MemorySessionStore(ttl=60)
    sid = await store.create({USERNAME_KEY: "alice"})

    assert await store.load(sid) == {USERNAME_KEY: "alice"}
    await store.destroy(sid)
    assert await store.load(sid) is None


@pytest.mark.asyncio
async def test_session_ids_are_opaque_and_unique():
    store = MemorySessionStore()
    a = await store.create({})
    b = await store.create({})
    assert a != b
    assert len(a) >= 32
    assert "alice" not in a


@pytest.mark.asyncio
async def test_memory_store_rolling_expiry():
    now = [1000.0]
    store = MemorySessionStore(ttl=10, clock=lambda: now[0])
    sid = await store.create({USERNAME_KEY: "alice"})

    now[0] += 8
    assert await store.load(sid) is not None  # refreshes the ttl
    now[0] += 8
    assert await store.load(sid) is not None
    now[0] += 11
    assert await store.load(sid) is None


@pytest.mark.asyncio
async def test_memory_store_drops_abandoned_sessions():
    now = [1000.0]
    store = MemorySessionStore(ttl=10, clock=lambda: now[0])
    abandoned = await store.create({USERNAME_KEY: "alice"})

    now[0] += 11
    fresh = await store.create({USERNAME_KEY: "bob"})

    assert abandoned not in store._data
    assert fresh in store._data


@pytest.mark.asyncio
async def test_load_session_unknown_id_is_anonymous():
    store = MemorySessionStore()
    session = await load_session(store, "does-not-exist")
    assert session.sid is None
    assert not session.is_authenticated

    session = await load_session(store, None)
    assert session.username is None


@pytest.mark.asyncio
async def test_bind_username_rotates_session_id():
    store = MemorySessionStore()
    old_sid = await store.create({})
    session = await load_session(store, old_sid)

    new_sid = await session.bind_username("alice")

    assert new_sid != old_sid
    assert await store.load(old_sid) is None
    assert (await store.load(new_sid))[USERNAME_KEY] == "alice"
    assert session.username == "alice"


@pytest.mark.asyncio
async def test_clear_destroys_session():
    store = MemorySessionStore()
    session = SessionIdentity(store)
    sid = await session.bind_username("alice")

    await session.clear()

    assert session.sid is None
    assert not session.is_authenticated
    assert await store.load(sid) is None
