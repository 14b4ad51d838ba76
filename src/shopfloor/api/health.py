"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and its stores (databases, Redis sessions) are reachable.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from shopfloor import __version__
from shopfloor.auth.dependencies import get_app_state
from shopfloor.auth.sessions import RedisSessionStore

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    state = get_app_state(request)
    checks = {"server": "ok", "version": __version__}

    # Check each distinct database
    for index, engine in enumerate(state.databases.engines):
        name = f"database_{index}" if index else "database"
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks[name] = "ok"
        except Exception as e:
            checks[name] = f"error: {e}"

    # Check Redis (only when sessions live there)
    if isinstance(state.sessions, RedisSessionStore):
        try:
            await state.sessions.ping()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
