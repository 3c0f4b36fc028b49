"""
Marketing package inquiries and partner (agent, influencer) sign-ups.
"""

import logging
from typing import Any, Dict, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import BaseRepository
from app.repositories.marketing import InfluencerRepository, RealEstateAgentRepository
from app.schemas.marketing import AgentSignup, InfluencerSignup, MarketingInquiry
from app.utils import email as mailer
from app.utils.email_templates import marketing_inquiry_email, partner_signup_email
from app.utils.exceptions import BadRequestError

logger = logging.getLogger(__name__)

REAL_ESTATE = "real-estate"
INFLUENCER = "influencer"


class MarketingService:

    def __init__(self, db_session: AsyncSession):
        self.agent_repo = RealEstateAgentRepository(db_session)
        self.influencer_repo = InfluencerRepository(db_session)

    @staticmethod
    async def submit_inquiry(data: MarketingInquiry) -> None:
        """
        Email a package inquiry to the admin.

        Raises:
            ExternalServiceError: The mail could not be sent
        """
        subject, html = marketing_inquiry_email(data.model_dump(by_alias=True))
        await mailer.send_admin_email(subject, html)
        logger.info(f"Marketing inquiry for '{data.package_title}' sent from {data.name}")

    async def signup_status(self, user: User) -> Dict[str, bool]:
        email = user.email.strip().lower()
        return {
            REAL_ESTATE: await self.agent_repo.get_by_field("email", email) is not None,
            INFLUENCER: await self.influencer_repo.get_by_field("email", email) is not None,
        }

    async def register_agent(self, data: AgentSignup) -> Tuple[Dict[str, Any], bool]:
        return await self._register(self.agent_repo, "Real Estate Agent", data.model_dump())

    async def register_influencer(self, data: InfluencerSignup) -> Tuple[Dict[str, Any], bool]:
        return await self._register(self.influencer_repo, "Influencer", data.model_dump())

    async def _register(self, repo: BaseRepository, kind: str, values: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """
        Store a partner sign-up once per email.

        Returns:
            Tuple of (sign-up record, created)
        """
        existing = await repo.get_by_field("email", values["email"])
        if existing:
            return existing.to_dict(), False

        try:
            signup = await repo.create(values)
        except Exception as e:
            logger.error(f"Failed to store {kind} sign-up for {values['email']}: {e}")
            raise BadRequestError(f"Failed to register: {str(e)}")

        record = signup.to_dict()
        logger.info(f"{kind} sign-up {signup.id} registered for {signup.email}")
        subject, html = partner_signup_email(kind, record)
        await mailer.send_best_effort(mailer.send_admin_email(subject, html), f"{kind} sign-up notification")
        return record, True
