"""
Tests for named wishlists.
"""

import uuid

from httpx import AsyncClient
from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from tests.conftest import PropertyFactory, auth_headers


class TestWishlists:

    async def test_create_add_and_list(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                       db_session: AsyncSession):
        property_obj = await PropertyFactory.create_property(db_session, test_owner)
        headers = auth_headers(test_user)

        created = await async_client.post("/api/wishlists", json={"name": "  Weekend homes "}, headers=headers)
        assert created.status_code == status.HTTP_201_CREATED
        wishlist_id = created.json()["wishlist"]["id"]
        assert created.json()["wishlist"]["name"] == "Weekend homes"

        added = await async_client.post(
            f"/api/wishlists/{wishlist_id}/properties", json={"propertyId": str(property_obj.id)}, headers=headers
        )
        assert added.status_code == status.HTTP_201_CREATED

        listing = await async_client.get("/api/wishlists", headers=headers)
        assert listing.json()["wishlists"][0]["property_count"] == 1

        contents = await async_client.get(f"/api/wishlists/{wishlist_id}", headers=headers)
        assert [p["id"] for p in contents.json()["properties"]] == [str(property_obj.id)]

    async def test_duplicate_add_is_rejected(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                             db_session: AsyncSession):
        property_obj = await PropertyFactory.create_property(db_session, test_owner)
        headers = auth_headers(test_user)
        wishlist_id = (await async_client.post("/api/wishlists", json={"name": "Shortlist"}, headers=headers)
                       ).json()["wishlist"]["id"]
        url = f"/api/wishlists/{wishlist_id}/properties"
        body = {"propertyId": str(property_obj.id)}

        await async_client.post(url, json=body, headers=headers)
        duplicate = await async_client.post(url, json=body, headers=headers)

        assert duplicate.status_code == status.HTTP_400_BAD_REQUEST
        assert duplicate.json()["error"]["message"] == "Property already in wishlist"

    async def test_name_validation(self, async_client: AsyncClient, test_user: User):
        headers = auth_headers(test_user)

        blank = await async_client.post("/api/wishlists", json={"name": "   "}, headers=headers)
        too_long = await async_client.post("/api/wishlists", json={"name": "x" * 51}, headers=headers)

        assert blank.status_code == status.HTTP_400_BAD_REQUEST
        assert too_long.status_code == status.HTTP_400_BAD_REQUEST

    async def test_add_requires_existing_property(self, async_client: AsyncClient, test_user: User):
        headers = auth_headers(test_user)
        wishlist_id = (await async_client.post("/api/wishlists", json={"name": "Later"}, headers=headers)
                       ).json()["wishlist"]["id"]

        missing_id = await async_client.post(f"/api/wishlists/{wishlist_id}/properties", json={}, headers=headers)
        unknown = await async_client.post(
            f"/api/wishlists/{wishlist_id}/properties", json={"propertyId": str(uuid.uuid4())}, headers=headers
        )

        assert missing_id.status_code == status.HTTP_400_BAD_REQUEST
        assert unknown.status_code == status.HTTP_404_NOT_FOUND

    async def test_remove_and_delete(self, async_client: AsyncClient, test_owner: User, test_user: User,
                                     db_session: AsyncSession):
        property_obj = await PropertyFactory.create_property(db_session, test_owner)
        headers = auth_headers(test_user)
        wishlist_id = (await async_client.post("/api/wishlists", json={"name": "Temp"}, headers=headers)
                       ).json()["wishlist"]["id"]
        await async_client.post(
            f"/api/wishlists/{wishlist_id}/properties", json={"propertyId": str(property_obj.id)}, headers=headers
        )

        removed = await async_client.delete(
            f"/api/wishlists/{wishlist_id}/properties/{property_obj.id}", headers=headers
        )
        assert removed.status_code == status.HTTP_200_OK
        contents = await async_client.get(f"/api/wishlists/{wishlist_id}", headers=headers)
        assert contents.json()["properties"] == []

        deleted = await async_client.delete(f"/api/wishlists/{wishlist_id}", headers=headers)
        assert deleted.status_code == status.HTTP_200_OK
        gone = await async_client.get(f"/api/wishlists/{wishlist_id}", headers=headers)
        assert gone.status_code == status.HTTP_404_NOT_FOUND

    async def test_wishlists_are_private(self, async_client: AsyncClient, test_owner: User, test_user: User):
        wishlist_id = (await async_client.post("/api/wishlists", json={"name": "Mine"},
                                               headers=auth_headers(test_user))).json()["wishlist"]["id"]

        response = await async_client.get(f"/api/wishlists/{wishlist_id}", headers=auth_headers(test_owner))
        assert response.status_code == status.HTTP_404_NOT_FOUND
