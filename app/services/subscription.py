"""
Subscription plans, payment orders and activation.

A verified purchase extends the user's subscription and grants posting
credits: the developer plan adds developer credits, every other plan adds
individual credits.
"""

import logging
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.subscription import SubscriptionRepository
from app.repositories.user import UserRepository
from app.schemas.subscription import SubscriptionVerifyRequest
from app.utils import email as mailer
from app.utils import payments
from app.utils.email_templates import subscription_confirmation_email
from app.utils.exceptions import APIException, BadRequestError, PaymentVerificationError
from app.utils.timeutils import add_months, as_utc, isoformat, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    price: int
    duration_months: int
    properties_allowed: int
    plan_type: str

    @property
    def duration(self) -> str:
        return f"{self.duration_months} month" + ("s" if self.duration_months > 1 else "")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["duration"] = self.duration
        return data


INDIVIDUAL_PLANS = {
    "1_month": Plan("1_month", "1 Month Plan", 100, 1, 1, "individual"),
    "6_months": Plan("6_months", "6 Months Plan", 400, 6, 1, "individual"),
    "12_months": Plan("12_months", "12 Months Plan", 700, 12, 1, "individual"),
}

DEVELOPER_PLAN = Plan("12_months", "Developer Annual Plan", 20000, 12, 20, "developer")


def resolve_plan(plan_id: str, user: User) -> Plan:
    """
    Map a requested plan id to a plan for this user. Developers and builders
    get the developer plan for `12_months` and may still buy the shorter plans.

    Raises:
        BadRequestError: Unknown plan id
    """
    if user.is_developer and plan_id == DEVELOPER_PLAN.id:
        return DEVELOPER_PLAN
    plan = INDIVIDUAL_PLANS.get(plan_id)
    if plan is None:
        raise BadRequestError(f"Invalid plan: {plan_id}")
    return plan


class SubscriptionService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.subscription_repo = SubscriptionRepository(db_session)
        self.user_repo = UserRepository(db_session)

    @staticmethod
    def list_plans() -> Dict[str, List[Dict[str, Any]]]:
        return {
            "individual": [plan.to_dict() for plan in INDIVIDUAL_PLANS.values()],
            "developer": [DEVELOPER_PLAN.to_dict()],
        }

    async def create_order(self, user: User, plan_id: str) -> Dict[str, Any]:
        plan = resolve_plan(plan_id, user)
        order = await payments.create_order(
            plan.price,
            receipt=f"sub_{str(user.id)[:8]}_{int(utc_now().timestamp())}",
            notes={"user_id": str(user.id), "plan_id": plan.id, "plan_type": plan.plan_type},
        )
        logger.info(f"Subscription order {order['id']} for {user.email}: {plan.name}")
        return {
            "orderId": order["id"],
            "amount": order.get("amount", plan.price * 100),
            "currency": order.get("currency", "INR"),
            "plan": plan.to_dict(),
            "duration": plan.duration,
        }

    async def verify_payment(self, user: User, data: SubscriptionVerifyRequest) -> Dict[str, Any]:
        """
        Activate a paid plan.

        Raises:
            PaymentVerificationError: Signature mismatch
            BadRequestError: Unknown plan id
        """
        if not payments.verify_signature(data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature):
            raise PaymentVerificationError()
        plan = resolve_plan(data.plan_id, user)

        try:
            locked = await self.user_repo.get_for_update(user.id)
            now = utc_now()
            current_expiry = as_utc(locked.subscription_expiry)
            start = current_expiry if current_expiry and current_expiry > now else now
            expiry = add_months(start, plan.duration_months)

            credit_field = "developer_credits" if plan.plan_type == "developer" else "individual_credits"
            setattr(locked, credit_field, (getattr(locked, credit_field) or 0) + plan.properties_allowed)
            locked.is_subscribed = True
            locked.subscription_expiry = expiry
            locked.subscription_plan = plan.id
            locked.subscription_price = Decimal(plan.price)
            locked.subscribed_at = now

            subscription = await self.subscription_repo.create(
                {
                    "user_id": locked.id,
                    "plan_id": plan.id,
                    "plan_name": plan.name,
                    "plan_price": Decimal(plan.price),
                    "plan_type": plan.plan_type,
                    "properties_allowed": plan.properties_allowed,
                    "expiry_date": expiry,
                    "razorpay_order_id": data.razorpay_order_id,
                    "razorpay_payment_id": data.razorpay_payment_id,
                    "razorpay_signature": data.razorpay_signature,
                },
                commit=False,
            )
            await self.db.commit()
            await self.db.refresh(locked)
        except APIException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Subscription activation failed for {user.email}: {e}")
            raise BadRequestError(f"Failed to activate subscription: {str(e)}")

        logger.info(f"Subscription {subscription.id} activated for {locked.email}: {plan.name} until {expiry}")

        subject, html = subscription_confirmation_email(
            locked.name, plan.name, plan.price, expiry, plan.properties_allowed
        )
        await mailer.send_best_effort(
            mailer.send_smtp_email(locked.email, subject, html), f"subscription confirmation {subscription.id}"
        )

        return {
            "subscription": subscription.to_dict(),
            "user": locked.to_dict(),
            "credits": {
                "individual": locked.individual_credits,
                "developer": locked.developer_credits,
            },
        }

    async def get_status(self, user: User) -> Dict[str, Any]:
        latest = await self.subscription_repo.get_latest_active(user.id)
        expiry = as_utc(user.subscription_expiry)
        allowed = latest.properties_allowed if latest else 0
        used = latest.properties_used if latest else 0
        return {
            "isSubscribed": bool(user.is_subscribed and expiry and expiry > utc_now()),
            "expiry": isoformat(expiry),
            "plan": user.subscription_plan,
            "price": float(user.subscription_price) if user.subscription_price is not None else None,
            "subscribedAt": isoformat(user.subscribed_at),
            "propertiesAllowed": allowed,
            "propertiesUsed": used,
            "postsLeft": max(allowed - used, 0),
        }
