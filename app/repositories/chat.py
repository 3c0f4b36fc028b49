"""
Chat repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from app.repositories.base import BaseRepository
from app.models.chat import Chat
from typing import List, Optional
import uuid


class ChatRepository(BaseRepository[Chat]):

    def __init__(self, db: AsyncSession):
        super().__init__(Chat, db)

    async def get_by_chat_id(self, chat_id: str) -> Optional[Chat]:
        result = await self.db.execute(select(Chat).where(Chat.chat_id == chat_id))
        return result.scalar_one_or_none()

    async def get_by_chat_id_for_update(self, chat_id: str) -> Optional[Chat]:
        result = await self.db.execute(
            select(Chat)
            .where(Chat.chat_id == chat_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find(self, property_id: uuid.UUID, buyer_id: uuid.UUID, owner_id: uuid.UUID) -> Optional[Chat]:
        result = await self.db.execute(
            select(Chat).where(
                Chat.property_id == property_id,
                Chat.buyer_id == buyer_id,
                Chat.owner_id == owner_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_user_chats(self, user_id: uuid.UUID) -> List[Chat]:
        """Chats the user takes part in, most recently active first."""
        result = await self.db.execute(
            select(Chat)
            .where(or_(Chat.buyer_id == user_id, Chat.owner_id == user_id))
            .order_by(Chat.last_message_time.desc().nulls_last(), Chat.created_at.desc())
        )
        return list(result.scalars().all())
