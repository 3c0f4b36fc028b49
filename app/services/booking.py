"""
Site visit bookings with optional prepaid visit fee.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.booking import Booking, BookingStatus, PaymentMethod
from app.models.user import User
from app.repositories.booking import BookingRepository
from app.repositories.property import PropertyRepository
from app.schemas.booking import BookingCreate, BookingPaymentVerify
from app.services.property import parse_uuid
from app.utils import email as mailer
from app.utils import payments
from app.utils.email_templates import admin_booking_notification_email, booking_confirmation_email
from app.utils.exceptions import (
    APIException,
    BadRequestError,
    ExternalServiceError,
    NotFoundError,
    PaymentVerificationError,
)
from app.utils.timeutils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "General Site Visit"
DEFAULT_LOCATION = "Not Specified"


class BookingService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.booking_repo = BookingRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def create_booking(self, user: User, data: BookingCreate) -> Tuple[Booking, Optional[Dict[str, Any]]]:
        """
        Book a site visit.

        Previsit bookings also get a payment order for the visit fee; if the
        gateway is unreachable the booking is still returned with no payment.

        Returns:
            Tuple of (booking, payment order details or None)
        """
        property_obj = None
        if data.property_id:
            property_obj = await self.property_repo.get_by_id(parse_uuid(data.property_id, "Property"))
            if not property_obj:
                raise NotFoundError("Property", data.property_id)

        title = (property_obj.title if property_obj else None) or data.property_title or DEFAULT_TITLE
        location = (property_obj.location if property_obj else None) or data.property_location or DEFAULT_LOCATION

        try:
            booking = await self.booking_repo.create({
                "user_id": user.id,
                "property_id": property_obj.id if property_obj else None,
                "property_title": title,
                "property_location": location,
                "visit_date": data.visit_date,
                "visit_time": data.visit_time,
                "visit_mode": data.visit_mode,
                "pickup_address": data.pickup_address,
                "number_of_people": data.number_of_people,
                "person1_name": data.person1_name,
                "person2_name": data.person2_name,
                "person3_name": data.person3_name,
                "payment_method": PaymentMethod(data.payment_method).value,
            })
        except Exception as e:
            logger.error(f"Failed to create booking for {user.email}: {e}")
            raise BadRequestError(f"Failed to create booking: {str(e)}")

        logger.info(f"Site visit booked by {user.email}: {booking.id} ({booking.payment_method})")

        if booking.payment_method == PaymentMethod.RAZORPAY_PREVISIT.value:
            return booking, await self._create_visit_order(booking)

        self._notify(booking, user)
        return booking, None

    async def _create_visit_order(self, booking: Booking) -> Optional[Dict[str, Any]]:
        try:
            order = await payments.create_order(
                settings.site_visit_fee_inr,
                receipt=f"booking_{booking.id}",
                notes={"booking_id": str(booking.id), "type": "site_visit"},
            )
        except ExternalServiceError as e:
            logger.warning(f"Payment order for booking {booking.id} not created: {e.detail}")
            return None

        await self.booking_repo.update(booking, {"razorpay_order_id": order["id"]})
        return {
            "order_id": order["id"],
            "amount": order.get("amount"),
            "currency": order.get("currency", "INR"),
            "key_id": settings.razorpay_key_id,
        }

    def _notify(self, booking: Booking, user: User) -> None:
        booking_dict = booking.to_dict()
        subject, html = booking_confirmation_email(booking_dict)
        mailer.send_in_background(
            mailer.send_smtp_email(user.email, subject, html), f"booking confirmation {booking.id}"
        )
        subject, html = admin_booking_notification_email(booking_dict, user.to_dict())
        mailer.send_in_background(
            mailer.send_admin_email(subject, html), f"admin booking notification {booking.id}"
        )

    async def verify_payment(self, user: User, data: BookingPaymentVerify) -> Booking:
        if not payments.verify_signature(data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature):
            raise PaymentVerificationError()

        booking = await self.booking_repo.get_owned(parse_uuid(data.booking_id, "Booking"), user.id)
        if not booking:
            raise NotFoundError("Booking", data.booking_id)

        try:
            booking = await self.booking_repo.update(booking, {
                "payment_status": "completed",
                "status": BookingStatus.CONFIRMED.value,
                "razorpay_order_id": data.razorpay_order_id,
                "razorpay_payment_id": data.razorpay_payment_id,
                "payment_amount": settings.site_visit_fee_inr,
                "payment_currency": "INR",
                "payment_timestamp": utc_now(),
            })
        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to confirm payment for booking {data.booking_id}: {e}")
            raise BadRequestError(f"Failed to verify payment: {str(e)}")

        logger.info(f"Booking {booking.id} paid ({data.razorpay_payment_id})")
        self._notify(booking, user)
        return booking

    async def get_user_bookings(self, user: User) -> List[Dict[str, Any]]:
        bookings = []
        for booking, image in await self.booking_repo.get_user_bookings(user.id):
            item = booking.to_dict()
            item["property_image"] = image
            bookings.append(item)
        return bookings

    async def get_booking(self, user: User, booking_id: str) -> Booking:
        booking = await self.booking_repo.get_owned(parse_uuid(booking_id, "Booking"), user.id)
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking
