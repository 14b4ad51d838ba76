"""FastAPI application factory.

Learn: App factory pattern: create_app() returns a configured FastAPI
instance. Lifespan builds the AppState (stores, session store,
coordinator) at startup and tears it down at shutdown. Middleware,
exception handlers and routers are all registered here.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shopfloor import __version__
from shopfloor.api import api_router
from shopfloor.config import settings
from shopfloor.errors import LoginRequired, StorageRejected, StorageUnavailable
from shopfloor.state import AppState

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    A state injected through create_app(state=...) is started but not
    closed here; whoever built it owns it.
    """
    logger.info(
        "shopfloor.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        session_backend=settings.session_backend,
    )

    owned = getattr(app.state, "shop", None) is None
    if owned:
        app.state.shop = AppState.from_settings()
    await app.state.shop.start()

    yield

    # Shutdown
    logger.info("shopfloor.shutdown")
    if owned:
        await app.state.shop.close()


# ─── Exception handlers ──────────────────────────────────


async def login_required_handler(request: Request, exc: LoginRequired):
    """Anonymous access to a gated route is sent to the login page."""
    return RedirectResponse("/login", status_code=303)


async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


async def storage_rejected_handler(request: Request, exc: StorageRejected):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def not_found_handler(request: Request, exc: StarletteHTTPException):
    """Log requests that matched no route; other HTTP errors pass through."""
    if exc.status_code == 404 and exc.detail == "Not Found":
        logger.warning(
            "http.route_not_implemented",
            path=request.url.path,
            method=request.method,
        )
        return PlainTextResponse("route not implemented", status_code=404)
    return await http_exception_handler(request, exc)


def create_app(state: Optional[AppState] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Shopfloor",
        description="E-commerce demo: session auth, catalog and chat with real-time updates",
        version=__version__,
        lifespan=lifespan,
    )
    if state is not None:
        app.state.shop = state

    # ── Middleware stack ──────────────────────────────────────
    from shopfloor.middleware.request_log import RequestLogMiddleware

    app.add_middleware(RequestLogMiddleware)

    app.add_exception_handler(LoginRequired, login_required_handler)
    app.add_exception_handler(StorageUnavailable, storage_unavailable_handler)
    app.add_exception_handler(StorageRejected, storage_rejected_handler)
    app.add_exception_handler(StarletteHTTPException, not_found_handler)

    # Mount API routes
    app.include_router(api_router)

    # Mount WebSocket route
    from shopfloor.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: shopfloor.main:app)
app = create_app()
