"""
Marketing package inquiries and partner sign-ups.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, Response, status

from app.models.user import User
from app.services.marketing import MarketingService
from app.schemas.marketing import AgentSignup, InfluencerSignup, MarketingInquiry
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_current_user, get_marketing_service
from app.schemas.error import get_common_error_responses, get_error_responses


router = APIRouter(
    prefix="/marketing",
    tags=["Marketing"],
    dependencies=[Depends(rate_limit("mutation"))],
    responses=get_common_error_responses()
)

signup_router = APIRouter(
    prefix="/marketing-signup",
    tags=["Marketing"],
    dependencies=[Depends(rate_limit("mutation"))],
    responses=get_common_error_responses()
)


@router.post(
    "/inquiry",
    summary="Send a marketing package inquiry",
    responses=get_error_responses(502)
)
async def submit_inquiry(data: MarketingInquiry) -> Dict[str, Any]:
    await MarketingService.submit_inquiry(data)
    return {"success": True, "message": "Inquiry sent successfully"}


@signup_router.get("/status", summary="Partner programs the caller signed up for")
async def signup_status(
    current_user: User = Depends(get_current_user),
    service: MarketingService = Depends(get_marketing_service)
) -> Dict[str, bool]:
    return await service.signup_status(current_user)


def _signup_response(response: Response, record: Dict[str, Any], created: bool) -> Dict[str, Any]:
    if not created:
        return {"success": True, "alreadyRegistered": True, "message": "Already registered"}
    response.status_code = status.HTTP_201_CREATED
    return {"success": True, "alreadyRegistered": False, "id": record["id"], "message": "Registration successful"}


@signup_router.post("/real-estate-agent/register", summary="Register as a real-estate agent")
async def register_agent(
    data: AgentSignup,
    response: Response,
    service: MarketingService = Depends(get_marketing_service)
) -> Dict[str, Any]:
    record, created = await service.register_agent(data)
    return _signup_response(response, record, created)


@signup_router.post("/influencer/register", summary="Register as an influencer")
async def register_influencer(
    data: InfluencerSignup,
    response: Response,
    service: MarketingService = Depends(get_marketing_service)
) -> Dict[str, Any]:
    record, created = await service.register_influencer(data)
    return _signup_response(response, record, created)
