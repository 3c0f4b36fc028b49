"""
Razorpay client: order creation and payment signature verification.
Amounts are passed in rupees and converted to paise for the gateway.
"""

import hashlib
import hmac
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Union

import httpx

from app.config import settings
from app.utils.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

RAZORPAY_ORDERS_URL = "https://api.razorpay.com/v1/orders"
RECEIPT_MAX_LENGTH = 40


async def create_order(amount: Union[int, float, Decimal], currency: str = "INR",
                       receipt: Optional[str] = None, notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Create a Razorpay order.

    Returns:
        The order as returned by Razorpay (id, amount in paise, currency, receipt, status)

    Raises:
        ExternalServiceError: If Razorpay is not configured or the request fails
    """
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        raise ExternalServiceError("Razorpay", "payment gateway is not configured")

    payload: Dict[str, Any] = {
        "amount": int(Decimal(str(amount)) * 100),
        "currency": currency,
    }
    if receipt:
        payload["receipt"] = receipt[:RECEIPT_MAX_LENGTH]
    if notes:
        payload["notes"] = notes

    try:
        async with httpx.AsyncClient(timeout=20) as client:
            response = await client.post(
                RAZORPAY_ORDERS_URL,
                json=payload,
                auth=(settings.razorpay_key_id, settings.razorpay_key_secret),
            )
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(f"Razorpay order rejected: {e.response.status_code} {e.response.text}")
        raise ExternalServiceError("Razorpay", f"status {e.response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"Razorpay order request failed: {e}")
        raise ExternalServiceError("Razorpay", str(e))

    order = response.json()
    logger.info(f"Razorpay order {order.get('id')} created for {payload['amount']} paise")
    return order


def compute_signature(order_id: str, payment_id: str, secret: Optional[str] = None) -> str:
    """HMAC-SHA256 of "order_id|payment_id" keyed with the Razorpay secret, hex encoded."""
    key = (secret if secret is not None else settings.razorpay_key_secret).encode()
    return hmac.new(key, f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def verify_signature(order_id: Optional[str], payment_id: Optional[str], signature: Optional[str]) -> bool:
    """True when the checkout signature matches; missing parts never verify."""
    if not order_id or not payment_id or not signature or not settings.razorpay_key_secret:
        return False
    return hmac.compare_digest(compute_signature(order_id, payment_id), signature)
