"""Catalog API.

Learn: POST goes through the broadcast coordinator, not straight to
the repository, so a product added over HTTP shows up on every open
socket exactly like one submitted with a newProduct event.
"""

from fastapi import APIRouter, Request

from shopfloor.auth.dependencies import get_app_state
from shopfloor.errors import SavedNotBroadcast
from shopfloor.schemas.product import ProductCreate, ProductRead

router = APIRouter(prefix="/api/productos")


@router.get("", response_model=list[ProductRead])
async def list_products(request: Request):
    return await get_app_state(request).products.get_all()


@router.post("", response_model=ProductRead, status_code=201)
async def save_product(body: ProductCreate, request: Request):
    try:
        return await get_app_state(request).coordinator.submit_product(body)
    except SavedNotBroadcast as e:
        # Stored; open sockets catch up on the next broadcast.
        return e.saved
