"""
Short-stay rentals: listings, favorites, reservations, host calendar and
host analytics.

A reservation covers the nights from check-in up to (not including)
check-out. Reserving locks the listing row so two guests cannot book the
same night concurrently.
"""

import json
import logging
import secrets
import string
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.short_stay import (
    CalendarStatus,
    ReservationStatus,
    ShortStayProperty,
    ShortStayReservation,
)
from app.models.user import User
from app.repositories.short_stay import (
    CalendarRepository,
    ReservationRepository,
    ShortStayFavoriteRepository,
    ShortStayRepository,
    ShortStaySearchFilters,
)
from app.repositories.user import UserRepository
from app.schemas.short_stay import CalendarUpdate, ReserveRequest, ShortStayUpdate, VerifyBookingRequest
from app.services.property import parse_uuid
from app.utils import email as mailer
from app.utils.email_templates import reservation_host_email, reservation_traveler_email
from app.utils.exceptions import (
    APIException,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from app.utils.file_utils import file_storage
from app.utils.timeutils import utc_now

logger = logging.getLogger(__name__)

JSON_FIELDS = ("location", "pricing", "rules", "policies", "amenities", "specific_details")
BOOKING_CODE_PREFIX = "RES-"
BOOKING_CODE_ALPHABET = string.ascii_uppercase + string.digits
BOOKING_CODE_LENGTH = 6
OCCUPANCY_WINDOW_DAYS = 30
AVAILABILITY_HORIZON_DAYS = 365
CALENDAR_DEFAULT_DAYS = 90


def generate_booking_code() -> str:
    suffix = "".join(secrets.choice(BOOKING_CODE_ALPHABET) for _ in range(BOOKING_CODE_LENGTH))
    return BOOKING_CODE_PREFIX + suffix


def parse_json_field(name: str, raw: Any) -> Any:
    """Multipart forms carry structured fields as JSON strings."""
    if raw is None or raw == "":
        return None
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise BadRequestError(f"Field '{name}' must be valid JSON")


def _nights(check_in: date, check_out: date) -> List[date]:
    return [check_in + timedelta(days=i) for i in range((check_out - check_in).days)]


def _month_start(day: date, months_back: int = 0) -> date:
    index = day.year * 12 + day.month - 1 - months_back
    return date(index // 12, index % 12 + 1, 1)


class ShortStayService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.repo = ShortStayRepository(db_session)
        self.favorite_repo = ShortStayFavoriteRepository(db_session)
        self.reservation_repo = ReservationRepository(db_session)
        self.calendar_repo = CalendarRepository(db_session)
        self.user_repo = UserRepository(db_session)

    # Listings

    async def create_listing(self, user: User, form: Dict[str, Any], images: List[UploadFile]) -> ShortStayProperty:
        title = (form.get("title") or "").strip()
        if not title:
            raise BadRequestError("Title is required")

        values: Dict[str, Any] = {
            "user_id": user.id,
            "title": title,
            "description": form.get("description"),
            "category": form.get("category"),
        }
        for name in JSON_FIELDS:
            parsed = parse_json_field(name, form.get(name))
            if parsed is not None:
                values[name] = parsed

        urls = await file_storage.save_many([image for image in images if image.filename], "short_stay")
        values["images"] = urls
        values["cover_image"] = urls[0] if urls else None

        try:
            listing = await self.repo.create(values)
        except Exception as e:
            logger.error(f"Failed to create short-stay listing for {user.email}: {e}")
            raise BadRequestError(f"Failed to list property: {str(e)}")
        logger.info(f"Short-stay listing created by {user.email}: {listing.title} ({listing.id})")
        return listing

    async def search(self, filters: ShortStaySearchFilters, user: Optional[User] = None) -> List[Dict[str, Any]]:
        listings = await self.repo.search(filters)
        favorites = await self.favorite_repo.favorite_ids(user.id) if user else set()
        results = []
        for listing in listings:
            item = listing.to_dict()
            item["is_favorite"] = listing.id in favorites
            results.append(item)
        return results

    async def get_listing(self, property_id: Any) -> ShortStayProperty:
        listing = await self.repo.get_by_id(parse_uuid(property_id, "Property"))
        if not listing:
            raise NotFoundError("Property", str(property_id))
        return listing

    async def _get_owned(self, property_id: Any, user: User) -> ShortStayProperty:
        listing = await self.get_listing(property_id)
        if listing.user_id != user.id:
            raise ForbiddenError("You do not own this property")
        return listing

    async def update_listing(self, property_id: Any, user: User, data: ShortStayUpdate) -> ShortStayProperty:
        listing = await self._get_owned(property_id, user)
        changes = data.model_dump(exclude_unset=True)
        if "images" in changes and changes["images"] is not None:
            changes["cover_image"] = changes["images"][0] if changes["images"] else None
        try:
            listing = await self.repo.update(listing, changes)
        except Exception as e:
            logger.error(f"Failed to update short-stay listing {listing.id}: {e}")
            raise BadRequestError(f"Failed to update property: {str(e)}")
        logger.info(f"Short-stay listing {listing.id} updated: {sorted(changes)}")
        return listing

    async def delete_listing(self, property_id: Any, user: User) -> None:
        listing = await self._get_owned(property_id, user)
        await self.repo.delete(listing.id)
        logger.info(f"Short-stay listing {listing.id} deleted by {user.email}")

    async def my_listings(self, user: User) -> List[ShortStayProperty]:
        return await self.repo.get_by_host(user.id)

    # Favorites

    async def toggle_favorite(self, user: User, property_id: Optional[str]) -> bool:
        if not property_id:
            raise BadRequestError("propertyId is required")
        listing = await self.get_listing(property_id)
        if await self.favorite_repo.find(user.id, listing.id):
            await self.favorite_repo.remove(user.id, listing.id)
            return False
        await self.favorite_repo.create({"user_id": user.id, "property_id": listing.id})
        return True

    async def favorites(self, user: User) -> List[ShortStayProperty]:
        return await self.favorite_repo.get_properties(user.id)

    # Reservations

    async def reserve(self, user: User, data: ReserveRequest) -> ShortStayReservation:
        """
        Book a stay.

        Raises:
            BadRequestError: check-out not after check-in, or no nightly price
            ConflictError: Dates overlap a confirmed stay or a blocked night
        """
        if data.check_out <= data.check_in:
            raise BadRequestError("Check-out must be after check-in")

        try:
            listing = await self.repo.get_for_update(parse_uuid(data.property_id, "Property"))
            if not listing:
                raise NotFoundError("Property", data.property_id)

            if await self.reservation_repo.find_overlapping(listing.id, data.check_in, data.check_out):
                raise ConflictError("Selected dates are no longer available")

            overrides = {
                entry.night: entry
                for entry in await self.calendar_repo.get_range(listing.id, data.check_in, data.check_out)
            }
            if any(entry.status == CalendarStatus.BLOCKED.value for entry in overrides.values()):
                raise ConflictError("Some of the selected dates are blocked by the host")

            total = Decimal("0")
            for night in _nights(data.check_in, data.check_out):
                entry = overrides.get(night)
                price = entry.price if entry is not None and entry.price is not None else listing.nightly_price
                if price is None:
                    raise BadRequestError("This property has no nightly price")
                total += Decimal(str(price))

            reservation = await self.reservation_repo.create(
                {
                    "property_id": listing.id,
                    "user_id": user.id,
                    "host_id": listing.user_id,
                    "check_in": data.check_in,
                    "check_out": data.check_out,
                    "guests": data.guests,
                    "total_price": total,
                    "payment_id": data.payment_id,
                    "status": ReservationStatus.CONFIRMED.value,
                    "booking_code": await self._unique_booking_code(),
                },
                commit=False,
            )
            await self.db.commit()
            await self.db.refresh(reservation)
        except APIException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Reservation failed for {user.email}: {e}")
            raise BadRequestError(f"Failed to create reservation: {str(e)}")

        logger.info(
            f"Reservation {reservation.booking_code} for {listing.id} by {user.email}: "
            f"{data.check_in}..{data.check_out} total {total}"
        )
        await self._send_reservation_mails(reservation, listing, user)
        return reservation

    async def _unique_booking_code(self) -> str:
        for _ in range(10):
            code = generate_booking_code()
            if not await self.reservation_repo.code_exists(code):
                return code
        raise BadRequestError("Could not allocate a booking code, please retry")

    async def _send_reservation_mails(self, reservation: ShortStayReservation, listing: ShortStayProperty,
                                      guest: User) -> None:
        details = reservation.to_dict()
        subject, html = reservation_traveler_email(details, listing.title)
        await mailer.send_best_effort(
            mailer.send_smtp_email(guest.email, subject, html), f"reservation mail {reservation.booking_code}"
        )
        host = listing.host
        if host is not None:
            subject, html = reservation_host_email(details, listing.title, guest.name or guest.email)
            await mailer.send_best_effort(
                mailer.send_smtp_email(host.email, subject, html), f"host reservation mail {reservation.booking_code}"
            )

    async def host_reservations(self, user: User) -> List[Dict[str, Any]]:
        return [r.to_dict(include_property=True) for r in await self.reservation_repo.get_for_host(user.id)]

    async def traveler_reservations(self, user: User) -> List[Dict[str, Any]]:
        return [r.to_dict(include_property=True) for r in await self.reservation_repo.get_for_traveler(user.id)]

    async def verify_booking(self, user: User, data: VerifyBookingRequest) -> ShortStayReservation:
        reservation = await self.reservation_repo.get_by_id(parse_uuid(data.reservation_id, "Reservation"))
        if not reservation:
            raise NotFoundError("Reservation", data.reservation_id)
        if reservation.host_id != user.id:
            raise ForbiddenError("Only the host can verify this booking")
        if reservation.booking_code != data.booking_code:
            raise BadRequestError("Invalid booking code")

        reservation = await self.reservation_repo.update(reservation, {"is_host_verified": True})
        logger.info(f"Reservation {reservation.booking_code} verified by host {user.email}")
        return reservation

    # Availability and calendar

    async def availability(self, property_id: Any, check_in: Optional[date] = None,
                           check_out: Optional[date] = None) -> Dict[str, Any]:
        listing = await self.get_listing(property_id)
        start = check_in or utc_now().date()
        end = check_out if check_out and check_out > start else start + timedelta(days=AVAILABILITY_HORIZON_DAYS)

        booked = await self.reservation_repo.find_overlapping(listing.id, start, end)
        blocked = [
            entry.night for entry in await self.calendar_repo.get_range(listing.id, start, end)
            if entry.status == CalendarStatus.BLOCKED.value
        ]
        result: Dict[str, Any] = {
            "propertyId": str(listing.id),
            "bookedRanges": [
                {"checkIn": r.check_in.isoformat(), "checkOut": r.check_out.isoformat()}
                for r in sorted(booked, key=lambda r: r.check_in)
            ],
            "blockedDates": [night.isoformat() for night in blocked],
        }
        if check_in and check_out:
            result["available"] = check_out > check_in and not booked and not blocked
        return result

    async def get_calendar(self, property_id: Any, user: User, start: Optional[date] = None,
                           end: Optional[date] = None) -> Dict[str, Any]:
        listing = await self._get_owned(property_id, user)
        start = start or utc_now().date().replace(day=1)
        end = end if end and end > start else start + timedelta(days=CALENDAR_DEFAULT_DAYS)
        entries = await self.calendar_repo.get_range(listing.id, start, end)
        reservations = await self.reservation_repo.find_overlapping(listing.id, start, end)
        return {
            "propertyId": str(listing.id),
            "basePrice": float(listing.nightly_price) if listing.nightly_price is not None else None,
            "entries": [entry.to_dict() for entry in entries],
            "reservations": [r.to_dict() for r in reservations],
        }

    async def update_calendar(self, user: User, data: CalendarUpdate) -> Dict[str, Any]:
        listing = await self._get_owned(data.property_id, user)
        status = CalendarStatus(data.status).value
        entry = await self.calendar_repo.get_entry(listing.id, data.night)
        try:
            if entry:
                entry = await self.calendar_repo.update(entry, {"price": data.price, "status": status}, skip_none=False)
            else:
                entry = await self.calendar_repo.create({
                    "property_id": listing.id,
                    "night": data.night,
                    "price": data.price,
                    "status": status,
                })
        except Exception as e:
            logger.error(f"Calendar update failed for {listing.id} on {data.night}: {e}")
            raise BadRequestError(f"Failed to update calendar: {str(e)}")
        logger.info(f"Calendar {listing.id} {data.night} set to {status} ({data.price})")
        return entry.to_dict()

    # Host analytics

    async def _earning_reservations(self, user: User) -> List[ShortStayReservation]:
        return [
            r for r in await self.reservation_repo.get_for_host(user.id)
            if r.status != ReservationStatus.CANCELLED.value
        ]

    async def revenue_summary(self, user: User) -> Dict[str, Any]:
        reservations = await self._earning_reservations(user)
        today = utc_now().date()
        month_start = today.replace(day=1)

        total = sum(float(r.total_price) for r in reservations)
        this_month = sum(float(r.total_price) for r in reservations if r.check_in >= month_start
                         and r.check_in < _month_start(today, -1))
        count = len(reservations)
        return {
            "totalRevenue": round(total, 2),
            "thisMonthRevenue": round(this_month, 2),
            "totalBookings": count,
            "upcomingBookings": sum(1 for r in reservations if r.check_in >= today),
            "averageBookingValue": round(total / count, 2) if count else 0,
        }

    async def monthly_chart(self, user: User) -> List[Dict[str, Any]]:
        """Revenue and bookings by check-in month for the last 12 months, oldest first."""
        reservations = await self._earning_reservations(user)
        today = utc_now().date()
        revenue: Dict[date, float] = defaultdict(float)
        bookings: Dict[date, int] = defaultdict(int)
        for r in reservations:
            key = r.check_in.replace(day=1)
            revenue[key] += float(r.total_price)
            bookings[key] += 1

        chart = []
        for back in range(11, -1, -1):
            month = _month_start(today, back)
            chart.append({
                "month": month.strftime("%b %Y"),
                "revenue": round(revenue.get(month, 0.0), 2),
                "bookings": bookings.get(month, 0),
            })
        return chart

    async def property_performance(self, user: User) -> List[Dict[str, Any]]:
        listings = await self.repo.get_by_host(user.id)
        by_listing: Dict[Any, List[ShortStayReservation]] = defaultdict(list)
        for r in await self._earning_reservations(user):
            by_listing[r.property_id].append(r)

        today = utc_now().date()
        window_start = today - timedelta(days=OCCUPANCY_WINDOW_DAYS)
        performance = []
        for listing in listings:
            reservations = by_listing.get(listing.id, [])
            occupied = 0
            for r in reservations:
                first = max(r.check_in, window_start)
                last = min(r.check_out, today)
                occupied += max((last - first).days, 0)
            performance.append({
                "propertyId": str(listing.id),
                "title": listing.title,
                "coverImage": listing.cover_image,
                "bookings": len(reservations),
                "revenue": round(sum(float(r.total_price) for r in reservations), 2),
                "nightsBooked": sum(r.nights for r in reservations),
                "occupancyRate": round(occupied / OCCUPANCY_WINDOW_DAYS * 100, 1),
            })
        return performance
