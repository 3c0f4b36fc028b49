"""
Buyer/owner chat endpoints and the per-user realtime socket.
"""

import logging
from typing import Any, Dict
from fastapi import APIRouter, Depends, Query, Response, WebSocket, WebSocketDisconnect, status

from app.models.user import User
from app.services.auth import AuthService
from app.services.chat import ChatService
from app.schemas.chat import ChatCreate, MessageCreate
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_auth_service, get_chat_service, get_current_user
from app.utils.exceptions import APIException
from app.utils.realtime import manager
from app.schemas.error import get_common_error_responses

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/chat",
    tags=["Chat"],
    dependencies=[Depends(rate_limit("mutation"))],
    responses=get_common_error_responses()
)

# Rate limiting is keyed on HTTP requests, so the socket lives on its own router
ws_router = APIRouter(prefix="/chat", tags=["Chat"])


@router.get("/user-chats", summary="Caller's chats, most recent first")
async def user_chats(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
) -> Dict[str, Any]:
    chats = await service.user_chats(current_user)
    return {"chats": [c.to_dict() for c in chats]}


@router.post(
    "",
    status_code=status.HTTP_200_OK,
    summary="Open or fetch the chat about a property",
    description="Returns 201 with isNew=true when the chat was created, 200 otherwise"
)
async def get_or_create_chat(
    data: ChatCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
) -> Dict[str, Any]:
    chat, created = await service.get_or_create(current_user, data)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return {"success": True, "chat": chat.to_dict(), "isNew": created}


@router.post("/{chat_id}/message", summary="Send a message")
async def send_message(
    chat_id: str,
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
) -> Dict[str, Any]:
    message, chat = await service.send_message(current_user, chat_id, data.message)
    return {"success": True, "message": message, "chat": chat.to_dict()}


@router.get("/{chat_id}/messages", summary="Messages of a chat")
async def get_messages(
    chat_id: str,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
) -> Dict[str, Any]:
    return {"messages": await service.get_messages(current_user, chat_id)}


@router.patch("/{chat_id}/read", summary="Reset the caller's unread counter")
async def mark_read(
    chat_id: str,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
) -> Dict[str, Any]:
    found = await service.mark_read(current_user, chat_id)
    message = "Messages marked as read" if found else "Chat not found yet"
    return {"success": True, "message": message}


@ws_router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    token: str = Query(...),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Authenticated notification channel. Events arrive as
    {"event": ..., "data": ...}; anything the client sends is ignored.
    """
    try:
        user = await auth_service.get_current_user(token)
    except APIException as e:
        logger.info(f"Rejected realtime connection: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = str(user.id)
    await manager.connect(user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(user_id, websocket)
