"""
Partner sign-ups captured by the marketing pages.
"""

from sqlalchemy import String, Text, Integer
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base
from app.utils.timeutils import isoformat
from typing import Optional


class RealEstateAgentSignup(Base):
    __tablename__ = "marketing_real_estate_agents"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    agency_name: Mapped[str] = mapped_column(String(255), nullable=False)
    experience: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    pdf_url: Mapped[str] = mapped_column(Text, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "agency_name": self.agency_name,
            "experience": self.experience,
            "pdf_url": self.pdf_url,
            "created_at": isoformat(self.created_at),
        }


class InfluencerSignup(Base):
    __tablename__ = "marketing_influencers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    meta_link: Mapped[str] = mapped_column(Text, nullable=False)
    followers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "meta_link": self.meta_link,
            "followers": self.followers,
            "created_at": isoformat(self.created_at),
        }
