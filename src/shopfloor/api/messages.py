"""Chat API — same persist-then-broadcast path as the newMessage event."""

from fastapi import APIRouter, Request

from shopfloor.auth.dependencies import get_app_state
from shopfloor.errors import SavedNotBroadcast
from shopfloor.schemas.message import MessageCreate, MessageRead

router = APIRouter(prefix="/api/mensajes")


@router.get("", response_model=list[MessageRead])
async def list_messages(request: Request):
    return await get_app_state(request).messages.get_all()


@router.post("", response_model=MessageRead, status_code=201)
async def post_message(body: MessageCreate, request: Request):
    try:
        return await get_app_state(request).coordinator.submit_message(body)
    except SavedNotBroadcast as e:
        return e.saved
