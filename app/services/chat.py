"""
Buyer/owner chat about a property.
"""

import logging
from typing import Any, Dict, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.chat import Chat
from app.models.user import User
from app.repositories.chat import ChatRepository
from app.repositories.property import PropertyRepository
from app.repositories.user import UserRepository
from app.schemas.chat import ChatCreate
from app.services.property import parse_uuid
from app.utils.exceptions import APIException, BadRequestError, ForbiddenError, NotFoundError
from app.utils.realtime import manager
from app.utils.timeutils import utc_now

logger = logging.getLogger(__name__)

NEW_MESSAGE_EVENT = "new_message"


def build_chat_id(property_id: Any, buyer_id: Any, owner_id: Any) -> str:
    return f"{property_id}_{buyer_id}_{owner_id}"


class ChatService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.repo = ChatRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.user_repo = UserRepository(db_session)

    async def user_chats(self, user: User) -> List[Chat]:
        return await self.repo.get_user_chats(user.id)

    async def get_or_create(self, user: User, data: ChatCreate) -> Tuple[Chat, bool]:
        """
        Find the chat between the caller (as buyer) and the owner about a
        property, creating it when it does not exist.

        Returns:
            Tuple of (chat, created)
        """
        property_id = parse_uuid(data.property_id, "Property")
        owner_id = parse_uuid(data.owner_id, "User")
        if owner_id == user.id:
            raise BadRequestError("You cannot chat with yourself")

        existing = await self.repo.find(property_id, user.id, owner_id)
        if existing:
            return existing, False

        owner = await self.user_repo.get_by_id(owner_id)
        if not owner:
            raise NotFoundError("User", data.owner_id)
        listing = await self.property_repo.get_by_id(property_id)

        try:
            chat = await self.repo.create({
                "chat_id": build_chat_id(property_id, user.id, owner_id),
                "property_id": property_id,
                "property_title": (listing.title if listing else None) or data.property_title or "Property",
                "property_image": (listing.image_url if listing else None) or data.property_image,
                "buyer_id": user.id,
                "buyer_name": user.name,
                "buyer_email": user.email,
                "owner_id": owner.id,
                "owner_name": owner.name,
                "owner_email": owner.email,
                "messages": [],
                "last_message_time": utc_now(),
            })
        except Exception as e:
            logger.error(f"Failed to create chat for {user.email} on {property_id}: {e}")
            raise BadRequestError(f"Failed to create chat: {str(e)}")

        logger.info(f"Chat {chat.chat_id} opened by {user.email}")
        return chat, True

    async def send_message(self, user: User, chat_id: str, text: str) -> Tuple[Dict[str, Any], Chat]:
        """
        Append a message and notify the other participant.

        Raises:
            NotFoundError: Unknown chat
            ForbiddenError: Caller is not a participant
        """
        try:
            chat = await self.repo.get_by_chat_id_for_update(chat_id)
            if not chat:
                raise NotFoundError("Chat", chat_id)
            if not chat.is_participant(user.id):
                raise ForbiddenError("You are not part of this chat")

            now = utc_now()
            message = {
                "sender_id": str(user.id),
                "sender_name": user.name,
                "text": text,
                "timestamp": now.isoformat(),
            }
            changes: Dict[str, Any] = {
                "messages": [*(chat.messages or []), message],
                "last_message": text,
                "last_message_time": now,
            }
            if user.id == chat.buyer_id:
                recipient_id = chat.owner_id
                changes["owner_unread_count"] = (chat.owner_unread_count or 0) + 1
            else:
                recipient_id = chat.buyer_id
                changes["buyer_unread_count"] = (chat.buyer_unread_count or 0) + 1

            chat = await self.repo.update(chat, changes)
        except APIException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to send message in chat {chat_id}: {e}")
            raise BadRequestError(f"Failed to send message: {str(e)}")

        delivered = await manager.send_to_user(
            str(recipient_id), NEW_MESSAGE_EVENT, {"chatId": chat.chat_id, "message": message}
        )
        logger.debug(f"Message in {chat.chat_id} pushed to {delivered} socket(s)")
        return message, chat

    async def get_messages(self, user: User, chat_id: str) -> List[Dict[str, Any]]:
        chat = await self.repo.get_by_chat_id(chat_id)
        if not chat:
            return []
        if not chat.is_participant(user.id):
            raise ForbiddenError("You are not part of this chat")
        return chat.messages or []

    async def mark_read(self, user: User, chat_id: str) -> bool:
        """Reset the caller's unread counter. Returns False when the chat does not exist yet."""
        chat = await self.repo.get_by_chat_id(chat_id)
        if not chat:
            return False
        if not chat.is_participant(user.id):
            raise ForbiddenError("You are not part of this chat")

        field = "buyer_unread_count" if user.id == chat.buyer_id else "owner_unread_count"
        await self.repo.update(chat, {field: 0})
        return True
