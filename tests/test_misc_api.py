"""Health, info, randoms, unknown routes and request IDs."""

import os

import pytest

from shopfloor.api.randoms import HIGH, LOW, count_randoms
from shopfloor.config import settings


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["database"] == "ok"
    assert "redis" not in body  # memory session store in tests


@pytest.mark.asyncio
async def test_info(client):
    r = await client.get("/info")
    assert r.status_code == 200
    info = r.json()
    assert info["pid"] == os.getpid()
    assert info["cpu_count"] == os.cpu_count()
    assert info["max_rss_bytes"] > 0
    assert {"arguments", "platform", "python_version", "executable", "cwd"} <= set(info)


def test_count_randoms():
    counts = count_randoms(5000)
    assert sum(counts.values()) == 5000
    assert all(LOW <= n <= HIGH for n in counts)
    assert list(counts) == sorted(counts)


@pytest.mark.asyncio
async def test_randoms_endpoint(alice_client):
    r = await alice_client.get("/api/randoms", params={"cant": 200})
    assert r.status_code == 200
    body = r.json()
    assert body["quantity"] == 200
    assert sum(body["counts"].values()) == 200


@pytest.mark.asyncio
async def test_randoms_quantity_is_capped(alice_client, monkeypatch):
    monkeypatch.setattr(settings, "randoms_max_quantity", 100)

    r = await alice_client.get("/api/randoms", params={"cant": 101})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_randoms_is_gated(client):
    r = await client.get("/api/randoms", params={"cant": 10})
    assert r.status_code == 303


@pytest.mark.asyncio
async def test_unknown_route(client):
    r = await client.get("/no/such/route")
    assert r.status_code == 404
    assert r.text == "route not implemented"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r1 = await client.get("/health")
    r2 = await client.get("/health")
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/health", headers={"X-Request-ID": "trace-12345"})
    assert r.headers["X-Request-ID"] == "trace-12345"
