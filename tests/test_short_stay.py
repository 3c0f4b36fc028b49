"""
Tests for short-stay listings, reservations, the host calendar, analytics and stay reviews.
"""

import json
import uuid
from datetime import timedelta

import pytest
from httpx import AsyncClient
from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.services.short_stay import generate_booking_code, parse_json_field
from app.utils.exceptions import BadRequestError
from app.utils.timeutils import utc_now
from tests.conftest import ShortStayFactory, auth_headers, png_bytes


def today():
    return utc_now().date()


def reserve_payload(listing, check_in, nights=2, **extra):
    payload = {
        "propertyId": str(listing.id),
        "checkIn": check_in.isoformat(),
        "checkOut": (check_in + timedelta(days=nights)).isoformat(),
        "guests": {"adults": 2},
    }
    payload.update(extra)
    return payload


def review_payload(booking_id, **overrides):
    payload = {
        "booking_id": str(booking_id),
        "ratings": {"cleanliness": 5, "accuracy": 4, "checkIn": 5, "communication": 5, "location": 4, "value": 4},
        "overall_rating": 4.5,
        "public_comment": "Lovely stay by the beach",
        "recommend": True,
    }
    payload.update(overrides)
    return payload


class TestListings:

    async def test_create_with_images(self, async_client: AsyncClient, test_owner: User):
        response = await async_client.post(
            "/api/short-stay",
            data={
                "title": "Cliff House",
                "category": "villa",
                "location": json.dumps({"city": "Goa", "address": "Vagator"}),
                "pricing": json.dumps({"perNight": 4000}),
                "amenities": json.dumps(["wifi", "pool"]),
            },
            files=[
                ("images", ("front.png", png_bytes("blue"), "image/png")),
                ("images", ("pool.png", png_bytes("green"), "image/png")),
            ],
            headers=auth_headers(test_owner)
        )

        assert response.status_code == status.HTTP_201_CREATED
        listing = response.json()["property"]
        assert listing["pricing"] == {"perNight": 4000}
        assert listing["amenities"] == ["wifi", "pool"]
        assert len(listing["images"]) == 2
        assert listing["cover_image"] == listing["images"][0]
        assert listing["cover_image"].startswith("/uploads/short_stay/")

    async def test_create_requires_title(self, async_client: AsyncClient, test_owner: User):
        response = await async_client.post(
            "/api/short-stay", data={"category": "villa"}, headers=auth_headers(test_owner)
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_create_rejects_bad_json(self, async_client: AsyncClient, test_owner: User):
        response = await async_client.post(
            "/api/short-stay", data={"title": "Broken", "pricing": "{perNight: 10"}, headers=auth_headers(test_owner)
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "pricing" in response.json()["error"]["message"]

    async def test_search_filters(self, async_client: AsyncClient, test_owner: User, db_session: AsyncSession):
        await ShortStayFactory.create_listing(db_session, test_owner, title="Goa villa", per_night=2500)
        await ShortStayFactory.create_listing(
            db_session, test_owner, title="Manali cabin", city="Manali", per_night=1500, category="cabin"
        )
        await ShortStayFactory.create_listing(
            db_session, test_owner, title="Goa mansion", per_night=9000, max_guests=12
        )

        by_city = await async_client.get("/api/short-stay", params={"location": "goa"})
        assert {p["title"] for p in by_city.json()["properties"]} == {"Goa villa", "Goa mansion"}

        by_price = await async_client.get("/api/short-stay", params={"minPrice": 2000, "maxPrice": 5000})
        assert [p["title"] for p in by_price.json()["properties"]] == ["Goa villa"]

        by_guests = await async_client.get("/api/short-stay", params={"guests": 8})
        assert [p["title"] for p in by_guests.json()["properties"]] == ["Goa mansion"]

        by_type = await async_client.get("/api/short-stay", params={"type": "cabin"})
        assert by_type.json()["count"] == 1

    async def test_get_listing_with_host(self, async_client: AsyncClient, test_owner: User,
                                         db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)

        response = await async_client.get(f"/api/short-stay/{listing.id}")

        assert response.json()["property"]["host"]["email"] == test_owner.email
        missing = await async_client.get(f"/api/short-stay/{uuid.uuid4()}")
        assert missing.status_code == status.HTTP_404_NOT_FOUND

    async def test_only_host_updates_and_deletes(self, async_client: AsyncClient, test_owner: User,
                                                 test_user: User, db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        url = f"/api/short-stay/{listing.id}"
        host, stranger = auth_headers(test_owner), auth_headers(test_user)

        forbidden = await async_client.put(url, json={"title": "Mine now"}, headers=stranger)
        assert forbidden.status_code == status.HTTP_403_FORBIDDEN

        updated = await async_client.put(
            url, json={"title": "Beach Villa Deluxe", "images": ["/uploads/x.jpg"]}, headers=host
        )
        assert updated.json()["property"]["title"] == "Beach Villa Deluxe"
        assert updated.json()["property"]["cover_image"] == "/uploads/x.jpg"

        deleted = await async_client.delete(url, headers=host)
        assert deleted.status_code == status.HTTP_200_OK
        mine = await async_client.get("/api/short-stay/user/my-listings", headers=host)
        assert mine.json()["properties"] == []

    async def test_favorites(self, async_client: AsyncClient, test_owner: User, test_user: User,
                             db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        headers = auth_headers(test_user)

        toggled = await async_client.post(
            "/api/short-stay/favorites/toggle", json={"propertyId": str(listing.id)}, headers=headers
        )
        assert toggled.json()["isFavorite"] is True

        favorites = await async_client.get("/api/short-stay/user/favorites", headers=headers)
        assert [p["id"] for p in favorites.json()["properties"]] == [str(listing.id)]

        search = await async_client.get("/api/short-stay", headers=headers)
        assert search.json()["properties"][0]["is_favorite"] is True


class TestReservations:

    async def test_reserve_prices_each_night(self, async_client: AsyncClient, test_owner: User,
                                             test_user: User, db_session: AsyncSession, mail_outbox):
        listing = await ShortStayFactory.create_listing(db_session, test_owner, per_night=2500)
        check_in = today() + timedelta(days=30)
        await async_client.post(
            "/api/short-stay/calendar/update",
            json={"propertyId": str(listing.id), "date": (check_in + timedelta(days=1)).isoformat(), "price": 4000},
            headers=auth_headers(test_owner)
        )

        response = await async_client.post(
            "/api/short-stay/reserve", json=reserve_payload(listing, check_in, nights=3),
            headers=auth_headers(test_user)
        )

        assert response.status_code == status.HTTP_201_CREATED
        reservation = response.json()["reservation"]
        assert reservation["total_price"] == 9000.0
        assert reservation["nights"] == 3
        assert reservation["status"] == "confirmed"
        assert reservation["booking_code"].startswith("RES-")
        assert reservation["property_title"] == "Beach Villa"

        recipients = {call.args[0] for call in mail_outbox["smtp"].await_args_list}
        assert recipients == {test_user.email, test_owner.email}

    async def test_overlap_is_conflict(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                       db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        check_in = today() + timedelta(days=10)
        await ShortStayFactory.create_reservation(db_session, listing, test_owner, check_in, nights=3)

        overlapping = await async_client.post(
            "/api/short-stay/reserve", json=reserve_payload(listing, check_in + timedelta(days=2)),
            headers=auth_headers(test_user)
        )
        assert overlapping.status_code == status.HTTP_409_CONFLICT

    async def test_back_to_back_stays_are_allowed(self, async_client: AsyncClient, test_owner: User,
                                                  test_user: User, db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        check_in = today() + timedelta(days=10)
        await ShortStayFactory.create_reservation(db_session, listing, test_owner, check_in, nights=3)

        response = await async_client.post(
            "/api/short-stay/reserve", json=reserve_payload(listing, check_in + timedelta(days=3)),
            headers=auth_headers(test_user)
        )
        assert response.status_code == status.HTTP_201_CREATED

    async def test_blocked_night_is_conflict(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                             db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        check_in = today() + timedelta(days=20)
        await async_client.post(
            "/api/short-stay/calendar/update",
            json={"propertyId": str(listing.id), "date": check_in.isoformat(), "status": "blocked"},
            headers=auth_headers(test_owner)
        )

        response = await async_client.post(
            "/api/short-stay/reserve", json=reserve_payload(listing, check_in), headers=auth_headers(test_user)
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert "blocked" in response.json()["error"]["message"]

    async def test_invalid_ranges_and_prices(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                             db_session: AsyncSession):
        priced = await ShortStayFactory.create_listing(db_session, test_owner)
        unpriced = await ShortStayFactory.create_listing(db_session, test_owner, title="No price", per_night=None)
        headers = auth_headers(test_user)
        check_in = today() + timedelta(days=5)
        backwards = reserve_payload(priced, check_in, nights=0)
        no_price = reserve_payload(unpriced, check_in)

        zero_nights = await async_client.post("/api/short-stay/reserve", json=backwards, headers=headers)
        assert zero_nights.status_code == status.HTTP_400_BAD_REQUEST

        missing_price = await async_client.post("/api/short-stay/reserve", json=no_price, headers=headers)
        assert missing_price.status_code == status.HTTP_400_BAD_REQUEST
        assert "nightly price" in missing_price.json()["error"]["message"]

    async def test_host_and_traveler_views(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                           db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        await ShortStayFactory.create_reservation(db_session, listing, test_user, today() + timedelta(days=3))

        host = await async_client.get("/api/short-stay/reservations/host", headers=auth_headers(test_owner))
        traveler = await async_client.get("/api/short-stay/reservations/traveler", headers=auth_headers(test_user))

        assert len(host.json()["reservations"]) == 1
        assert traveler.json()["reservations"][0]["property_title"] == "Beach Villa"

    async def test_host_verifies_booking_code(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                              db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        reservation = await ShortStayFactory.create_reservation(
            db_session, listing, test_user, today(), booking_code="RES-XYZ789"
        )
        reservation_id = str(reservation.id)
        host = auth_headers(test_owner)

        wrong_code = await async_client.post(
            "/api/short-stay/host/verify-booking",
            json={"reservationId": reservation_id, "bookingCode": "RES-000000"}, headers=host
        )
        assert wrong_code.status_code == status.HTTP_400_BAD_REQUEST

        not_host = await async_client.post(
            "/api/short-stay/host/verify-booking",
            json={"reservationId": reservation_id, "bookingCode": "RES-XYZ789"}, headers=auth_headers(test_user)
        )
        assert not_host.status_code == status.HTTP_403_FORBIDDEN

        verified = await async_client.post(
            "/api/short-stay/host/verify-booking",
            json={"reservationId": reservation_id, "bookingCode": "RES-XYZ789"}, headers=host
        )
        assert verified.json()["reservation"]["is_host_verified"] is True


class TestAvailabilityAndCalendar:

    async def test_availability(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        check_in = today() + timedelta(days=7)
        await ShortStayFactory.create_reservation(db_session, listing, test_user, check_in, nights=2)
        url = f"/api/short-stay/availability/{listing.id}"

        overview = await async_client.get(url)
        assert overview.json()["bookedRanges"] == [{
            "checkIn": check_in.isoformat(),
            "checkOut": (check_in + timedelta(days=2)).isoformat(),
        }]
        assert "available" not in overview.json()

        clash = await async_client.get(url, params={
            "checkIn": (check_in + timedelta(days=1)).isoformat(),
            "checkOut": (check_in + timedelta(days=4)).isoformat(),
        })
        assert clash.json()["available"] is False

        free = await async_client.get(url, params={
            "checkIn": (check_in + timedelta(days=2)).isoformat(),
            "checkOut": (check_in + timedelta(days=4)).isoformat(),
        })
        assert free.json()["available"] is True

    async def test_calendar_upsert(self, async_client: AsyncClient, test_owner: User, db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        night = today() + timedelta(days=3)
        headers = auth_headers(test_owner)
        body = {"propertyId": str(listing.id), "date": night.isoformat(), "price": 3000}

        first = await async_client.post("/api/short-stay/calendar/update", json=body, headers=headers)
        second = await async_client.post(
            "/api/short-stay/calendar/update", json={**body, "price": None, "status": "blocked"}, headers=headers
        )

        assert first.json()["entry"]["price"] == 3000.0
        assert second.json()["entry"]["status"] == "blocked"
        assert second.json()["entry"]["price"] is None

        calendar = await async_client.get(
            f"/api/short-stay/calendar/{listing.id}",
            params={"start": today().isoformat(), "end": (today() + timedelta(days=10)).isoformat()},
            headers=headers
        )
        assert calendar.json()["basePrice"] == 2500.0
        assert [e["date"] for e in calendar.json()["entries"]] == [night.isoformat()]

    async def test_calendar_is_host_only(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                         db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)

        response = await async_client.get(f"/api/short-stay/calendar/{listing.id}", headers=auth_headers(test_user))
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestHostAnalytics:

    async def test_revenue_chart_and_performance(self, async_client: AsyncClient, test_owner: User,
                                                 test_user: User, db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        await ShortStayFactory.create_reservation(
            db_session, listing, test_user, today() - timedelta(days=5), nights=2, booking_code="RES-PAST01"
        )
        await ShortStayFactory.create_reservation(
            db_session, listing, test_user, today() + timedelta(days=5), nights=2, booking_code="RES-NEXT01"
        )
        headers = auth_headers(test_owner)

        summary = await async_client.get("/api/short-stay/analytics/revenue-summary", headers=headers)
        assert summary.json()["totalRevenue"] == 10000.0
        assert summary.json()["totalBookings"] == 2
        assert summary.json()["upcomingBookings"] == 1
        assert summary.json()["averageBookingValue"] == 5000.0

        chart = (await async_client.get("/api/short-stay/analytics/monthly-chart", headers=headers)).json()["chart"]
        assert len(chart) == 12
        assert chart[-1]["month"] == today().strftime("%b %Y")
        assert sum(point["bookings"] for point in chart) >= 1

        performance = await async_client.get("/api/short-stay/analytics/property-performance", headers=headers)
        entry = performance.json()["properties"][0]
        assert entry["bookings"] == 2
        assert entry["nightsBooked"] == 4
        assert entry["occupancyRate"] == 6.7

    async def test_empty_analytics(self, async_client: AsyncClient, test_owner: User):
        summary = await async_client.get("/api/short-stay/analytics/revenue-summary", headers=auth_headers(test_owner))
        assert summary.json()["averageBookingValue"] == 0


class TestStayReviews:

    async def test_review_after_checkout(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                         db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        reservation = await ShortStayFactory.create_reservation(
            db_session, listing, test_user, today() - timedelta(days=3), nights=2
        )
        reservation_id = reservation.id
        headers = auth_headers(test_user)

        created = await async_client.post("/api/short-stay-reviews", json=review_payload(reservation_id),
                                          headers=headers)
        assert created.status_code == status.HTTP_201_CREATED
        assert created.json()["review"]["user_name"] == "Asha Buyer"

        duplicate = await async_client.post("/api/short-stay-reviews", json=review_payload(reservation_id),
                                            headers=headers)
        assert duplicate.status_code == status.HTTP_409_CONFLICT

        listed = await async_client.get(f"/api/short-stay-reviews/property/{listing.id}")
        assert listed.json()["count"] == 1

        check = await async_client.get(f"/api/short-stay-reviews/check/{reservation_id}", headers=headers)
        assert check.json()["hasReview"] is True

    async def test_review_window(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                 db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        upcoming = await ShortStayFactory.create_reservation(
            db_session, listing, test_user, today() + timedelta(days=3), booking_code="RES-FUTURE"
        )
        stale = await ShortStayFactory.create_reservation(
            db_session, listing, test_user, today() - timedelta(days=12), booking_code="RES-OLD001"
        )
        upcoming_id, stale_id = upcoming.id, stale.id
        headers = auth_headers(test_user)

        too_early = await async_client.post("/api/short-stay-reviews", json=review_payload(upcoming_id),
                                            headers=headers)
        too_late = await async_client.post("/api/short-stay-reviews", json=review_payload(stale_id),
                                           headers=headers)

        assert too_early.status_code == status.HTTP_400_BAD_REQUEST
        assert too_late.status_code == status.HTTP_400_BAD_REQUEST

    async def test_only_traveler_reviews(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                         db_session: AsyncSession):
        listing = await ShortStayFactory.create_listing(db_session, test_owner)
        reservation = await ShortStayFactory.create_reservation(
            db_session, listing, test_user, today() - timedelta(days=3)
        )

        response = await async_client.post(
            "/api/short-stay-reviews", json=review_payload(reservation.id), headers=auth_headers(test_owner)
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_rating_bounds(self, async_client: AsyncClient, test_user: User):
        payload = review_payload(uuid.uuid4(), overall_rating=6)

        response = await async_client.post("/api/short-stay-reviews", json=payload, headers=auth_headers(test_user))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_unknown_booking(self, async_client: AsyncClient, test_user: User):
        response = await async_client.post(
            "/api/short-stay-reviews", json=review_payload(uuid.uuid4()), headers=auth_headers(test_user)
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestHelpers:

    def test_booking_code_format(self):
        code = generate_booking_code()
        assert code.startswith("RES-")
        assert len(code) == 10
        assert code[4:].isalnum() and code[4:].upper() == code[4:]

    def test_parse_json_field(self):
        assert parse_json_field("pricing", '{"perNight": 10}') == {"perNight": 10}
        assert parse_json_field("pricing", "") is None
        assert parse_json_field("amenities", ["wifi"]) == ["wifi"]
        with pytest.raises(BadRequestError):
            parse_json_field("rules", "not json")
