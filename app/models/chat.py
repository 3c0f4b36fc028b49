"""
Buyer/owner conversations about a property.
Messages are kept inline as a JSON list on the chat row.
"""

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from app.database import Base
from app.utils.timeutils import isoformat
from datetime import datetime
import uuid
from typing import Any, Dict, List, Optional


class Chat(Base):
    __tablename__ = "chats"
    __table_args__ = (UniqueConstraint("property_id", "buyer_id", "owner_id", name="uq_chats_participants"),)

    chat_id: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)
    property_id: Mapped[uuid.UUID] = mapped_column(PostgresUUID(as_uuid=True), nullable=False)
    property_title: Mapped[str] = mapped_column(String(255), nullable=False, default="Property")
    property_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    buyer_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    buyer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    buyer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    owner_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    messages: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    last_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_message_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    buyer_unread_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    owner_unread_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def is_participant(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.buyer_id, self.owner_id)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "chat_id": self.chat_id,
            "property_id": str(self.property_id),
            "property_title": self.property_title,
            "property_image": self.property_image,
            "buyer_id": str(self.buyer_id),
            "buyer_name": self.buyer_name,
            "buyer_email": self.buyer_email,
            "owner_id": str(self.owner_id),
            "owner_name": self.owner_name,
            "owner_email": self.owner_email,
            "messages": self.messages or [],
            "last_message": self.last_message,
            "last_message_time": isoformat(self.last_message_time),
            "buyer_unread_count": self.buyer_unread_count,
            "owner_unread_count": self.owner_unread_count,
            "created_at": isoformat(self.created_at),
        }
