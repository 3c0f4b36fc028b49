"""
Subscription plan purchase endpoints.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends

from app.models.user import User
from app.services.subscription import SubscriptionService
from app.schemas.subscription import CreateOrderRequest, SubscriptionVerifyRequest
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_current_user, get_subscription_service
from app.schemas.error import get_common_error_responses, get_error_responses


router = APIRouter(
    prefix="/subscriptions",
    tags=["Subscriptions"],
    dependencies=[Depends(rate_limit("mutation"))],
    responses=get_common_error_responses()
)


@router.get("/plans", summary="Available plans")
async def get_plans() -> Dict[str, Any]:
    return {"plans": SubscriptionService.list_plans()}


@router.post("/create-order", summary="Create a payment order for a plan", responses=get_error_responses(502))
async def create_order(
    data: CreateOrderRequest,
    current_user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> Dict[str, Any]:
    return await subscription_service.create_order(current_user, data.plan_id)


@router.post("/verify-payment", summary="Activate a paid plan")
async def verify_payment(
    data: SubscriptionVerifyRequest,
    current_user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> Dict[str, Any]:
    result = await subscription_service.verify_payment(current_user, data)
    return {"success": True, "message": "Subscription activated", **result}


@router.get("/status", summary="Current subscription")
async def get_status(
    current_user: User = Depends(get_current_user),
    subscription_service: SubscriptionService = Depends(get_subscription_service)
) -> Dict[str, Any]:
    return await subscription_service.get_status(current_user)
