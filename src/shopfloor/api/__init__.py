"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: The session gate is applied at the include_router level using
FastAPI's dependencies parameter. Auth, info and health routes are
open; the catalog, chat and randoms routes require a logged-in session.
"""

from fastapi import APIRouter, Depends

from shopfloor.api.auth import router as auth_router
from shopfloor.api.health import router as health_router
from shopfloor.api.info import router as info_router
from shopfloor.api.messages import router as messages_router
from shopfloor.api.products import router as products_router
from shopfloor.api.randoms import router as randoms_router
from shopfloor.auth.dependencies import get_current_user

# All protected routers require a logged-in session
_gate = [Depends(get_current_user)]

api_router = APIRouter()

# Open routes: no session required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(info_router, tags=["info"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: require a session carrying a username
api_router.include_router(products_router, tags=["products"], dependencies=_gate)
api_router.include_router(messages_router, tags=["messages"], dependencies=_gate)
api_router.include_router(randoms_router, tags=["randoms"], dependencies=_gate)
