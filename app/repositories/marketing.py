"""
Marketing partner sign-up repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from app.repositories.base import BaseRepository
from app.models.marketing import RealEstateAgentSignup, InfluencerSignup


class RealEstateAgentRepository(BaseRepository[RealEstateAgentSignup]):

    def __init__(self, db: AsyncSession):
        super().__init__(RealEstateAgentSignup, db)


class InfluencerRepository(BaseRepository[InfluencerSignup]):

    def __init__(self, db: AsyncSession):
        super().__init__(InfluencerSignup, db)
