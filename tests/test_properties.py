"""
Tests for marketplace listings, posting credits, favorites and admin listing management.
"""

import uuid
from datetime import timedelta

import pytest
from httpx import AsyncClient
from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.subscription import SubscriptionUsage
from app.models.user import User
from app.utils.timeutils import utc_now
from tests.conftest import PropertyFactory, UserFactory, auth_headers


class TestPropertyPosting:

    async def test_create_spends_individual_credit(self, async_client: AsyncClient, db_session: AsyncSession):
        user = await UserFactory.create_user(db_session, email="seller@example.com", individual_credits=2)

        response = await async_client.post(
            "/api/properties",
            json={"title": "2 BHK near Adajan", "type": "Flat", "price": "55 Lakh", "bhk": 2},
            headers=auth_headers(user)
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["credits"] == {"type": "individual", "remaining": 1}
        assert data["property"]["property_source"] == "Individual"
        assert data["property"]["status"] == "active"

        await db_session.refresh(user)
        assert user.individual_credits == 1

        usage = (await db_session.execute(select(SubscriptionUsage))).scalars().all()
        assert len(usage) == 1
        assert usage[0].action == "property_posted"

    async def test_create_with_developer_credit(self, async_client: AsyncClient, db_session: AsyncSession):
        developer = await UserFactory.create_user(db_session, email="builder@example.com", developer_credits=1)

        response = await async_client.post(
            "/api/properties",
            json={"title": "Green Acres", "credit_used": "developer", "rera_number": "GJ/RERA/1"},
            headers=auth_headers(developer)
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["property"]["property_source"] == "Developer"
        assert response.json()["credits"]["remaining"] == 0

    async def test_create_without_credits_is_forbidden(self, async_client: AsyncClient, test_user: User,
                                                       db_session: AsyncSession):
        response = await async_client.post(
            "/api/properties", json={"title": "No credits"}, headers=auth_headers(test_user)
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert "Insufficient individual credits" in response.json()["error"]["message"]
        listings = await async_client.get("/api/properties")
        assert listings.json()["count"] == 0

    async def test_create_requires_authentication(self, async_client: AsyncClient):
        response = await async_client.post("/api/properties", json={"title": "Anonymous"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestPropertyQueries:

    async def test_public_list_defaults_to_active(self, async_client: AsyncClient, test_owner: User,
                                                  db_session: AsyncSession):
        await PropertyFactory.create_property(db_session, test_owner, title="Active one")
        await PropertyFactory.create_property(db_session, test_owner, title="Pending one", status="pending")

        response = await async_client.get("/api/properties")

        assert response.status_code == status.HTTP_200_OK
        titles = [p["title"] for p in response.json()["properties"]]
        assert titles == ["Active one"]

    async def test_filter_by_location_is_case_insensitive(self, async_client: AsyncClient, test_owner: User,
                                                          db_session: AsyncSession):
        await PropertyFactory.create_property(db_session, test_owner, location="Surat, Gujarat")
        await PropertyFactory.create_property(db_session, test_owner, title="Mumbai flat", location="Mumbai")

        response = await async_client.get("/api/properties", params={"location": "surat"})

        assert response.json()["count"] == 1

    @pytest.mark.parametrize("param", ["userType", "user_type"])
    async def test_filter_by_poster_type(self, async_client: AsyncClient, test_owner: User,
                                         db_session: AsyncSession, param: str):
        await PropertyFactory.create_property(db_session, test_owner, title="Dev tower", user_type="developer")
        await PropertyFactory.create_property(db_session, test_owner, title="Indie flat")

        response = await async_client.get("/api/properties", params={param: "developer"})

        assert [p["title"] for p in response.json()["properties"]] == ["Dev tower"]

    async def test_get_property_includes_owner(self, async_client: AsyncClient, test_owner: User,
                                               db_session: AsyncSession):
        property_obj = await PropertyFactory.create_property(db_session, test_owner)

        response = await async_client.get(f"/api/properties/{property_obj.id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["property"]["owner"]["email"] == test_owner.email

    async def test_get_unknown_property(self, async_client: AsyncClient):
        missing = await async_client.get(f"/api/properties/{uuid.uuid4()}")
        malformed = await async_client.get("/api/properties/not-a-uuid")

        assert missing.status_code == status.HTTP_404_NOT_FOUND
        assert malformed.status_code == status.HTTP_404_NOT_FOUND

    async def test_my_properties(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                 db_session: AsyncSession):
        await PropertyFactory.create_property(db_session, test_owner)
        await PropertyFactory.create_property(db_session, test_user, title="Someone else's")

        response = await async_client.get("/api/properties/user/my-properties", headers=auth_headers(test_owner))

        assert response.json()["count"] == 1


class TestPropertyOwnership:

    async def test_owner_updates_within_window(self, async_client: AsyncClient, test_owner: User,
                                               db_session: AsyncSession):
        property_obj = await PropertyFactory.create_property(db_session, test_owner)

        response = await async_client.put(
            f"/api/properties/{property_obj.id}", json={"price": "80 Lakh"}, headers=auth_headers(test_owner)
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["property"]["price"] == "80 Lakh"
        assert response.json()["property"]["title"] == property_obj.title

    async def test_update_after_window_is_forbidden(self, async_client: AsyncClient, test_owner: User,
                                                    db_session: AsyncSession):
        property_obj = await PropertyFactory.create_property(
            db_session, test_owner, created_at=utc_now() - timedelta(days=4)
        )

        response = await async_client.put(
            f"/api/properties/{property_obj.id}", json={"price": "80 Lakh"}, headers=auth_headers(test_owner)
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_non_owner_cannot_edit_or_delete(self, async_client: AsyncClient, test_owner: User,
                                                   test_user: User, db_session: AsyncSession):
        property_obj = await PropertyFactory.create_property(db_session, test_owner)

        update = await async_client.put(
            f"/api/properties/{property_obj.id}", json={"price": "1 Lakh"}, headers=auth_headers(test_user)
        )
        delete = await async_client.delete(f"/api/properties/{property_obj.id}", headers=auth_headers(test_user))

        assert update.status_code == status.HTTP_404_NOT_FOUND
        assert delete.status_code == status.HTTP_404_NOT_FOUND

    async def test_owner_deletes(self, async_client: AsyncClient, test_owner: User, db_session: AsyncSession):
        property_obj = await PropertyFactory.create_property(db_session, test_owner)

        response = await async_client.delete(f"/api/properties/{property_obj.id}", headers=auth_headers(test_owner))

        assert response.status_code == status.HTTP_200_OK
        follow_up = await async_client.get(f"/api/properties/{property_obj.id}")
        assert follow_up.status_code == status.HTTP_404_NOT_FOUND


class TestFavorites:

    async def test_toggle_adds_then_removes(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                            db_session: AsyncSession):
        property_obj = await PropertyFactory.create_property(db_session, test_owner)
        headers = auth_headers(test_user)

        added = await async_client.post(
            "/api/favorites/toggle", json={"propertyId": str(property_obj.id)}, headers=headers
        )
        assert added.json()["isFavorite"] is True

        ids = await async_client.get("/api/favorites/ids", headers=headers)
        assert ids.json()["favoriteIds"] == [str(property_obj.id)]

        listed = await async_client.get("/api/favorites", headers=headers)
        assert [p["id"] for p in listed.json()["properties"]] == [str(property_obj.id)]

        removed = await async_client.post(
            "/api/favorites/toggle", json={"propertyId": str(property_obj.id)}, headers=headers
        )
        assert removed.json()["isFavorite"] is False

    async def test_toggle_requires_property_id(self, async_client: AsyncClient, test_user: User):
        response = await async_client.post("/api/favorites/toggle", json={}, headers=auth_headers(test_user))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_toggle_unknown_property(self, async_client: AsyncClient, test_user: User):
        response = await async_client.post(
            "/api/favorites/toggle", json={"propertyId": str(uuid.uuid4())}, headers=auth_headers(test_user)
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestAdminProperties:

    async def test_requires_admin(self, async_client: AsyncClient, test_user: User):
        response = await async_client.get("/api/admin/properties", headers=auth_headers(test_user))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_admin_create_spends_no_credit(self, async_client: AsyncClient, test_admin: User):
        response = await async_client.post(
            "/api/admin/properties",
            json={"title": "Platform listing", "property_source": "Developer", "is_featured": True},
            headers=auth_headers(test_admin)
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["property"]
        assert data["property_source"] == "Developer"
        assert data["user_type"] == "developer"
        assert data["is_featured"] is True

    async def test_admin_status_and_stats(self, async_client: AsyncClient, test_admin: User, test_owner: User,
                                          db_session: AsyncSession):
        property_obj = await PropertyFactory.create_property(db_session, test_owner)
        await PropertyFactory.create_property(db_session, test_owner, title="Waiting", status="pending")
        headers = auth_headers(test_admin)

        moderated = await async_client.patch(
            f"/api/admin/properties/{property_obj.id}/status", json={"is_featured": True}, headers=headers
        )
        assert moderated.json()["property"]["is_featured"] is True

        stats = await async_client.get("/api/admin/properties/stats", headers=headers)
        assert stats.json() == {"total": 2, "active": 1, "pending": 1, "featured": 1}

        empty = await async_client.patch(
            f"/api/admin/properties/{property_obj.id}/status", json={}, headers=headers
        )
        assert empty.status_code == status.HTTP_400_BAD_REQUEST

    async def test_admin_search_by_source_and_text(self, async_client: AsyncClient, test_admin: User,
                                                   test_owner: User, db_session: AsyncSession):
        await PropertyFactory.create_property(
            db_session, test_owner, title="Riverfront Tower", property_source="Developer"
        )
        await PropertyFactory.create_property(
            db_session, test_owner, title="Cozy flat", property_source="Individual"
        )

        response = await async_client.get(
            "/api/admin/properties", params={"source": "Developer", "search": "river"},
            headers=auth_headers(test_admin)
        )

        assert response.json()["count"] == 1
        assert response.json()["properties"][0]["owner"]["name"] == test_owner.name

    async def test_dashboard_stats(self, async_client: AsyncClient, test_admin: User, test_owner: User,
                                   db_session: AsyncSession):
        await PropertyFactory.create_property(db_session, test_owner)

        response = await async_client.get("/api/admin/stats", headers=auth_headers(test_admin))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["totalUsers"] == 2
        assert data["totalProperties"] == 1
        assert data["activeListings"] == 1
        assert isinstance(data["recentActivity"], list)

    async def test_approval_rate_rounds_halves_up(self, async_client: AsyncClient, test_admin: User,
                                                  test_owner: User, db_session: AsyncSession):
        await PropertyFactory.create_property(db_session, test_owner, title="Approved")
        for index in range(7):
            await PropertyFactory.create_property(db_session, test_owner, title=f"Rejected {index}", status="rejected")

        response = await async_client.get("/api/admin/stats", headers=auth_headers(test_admin))

        assert response.json()["approvalRate"] == 13
