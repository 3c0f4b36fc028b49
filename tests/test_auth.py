"""
Tests for login, token refresh, OTP registration and password reset.
"""

import pytest
from unittest.mock import patch
from httpx import AsyncClient
from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User, UserType
from app.repositories.user import UserRepository
from app.utils.exceptions import ExternalServiceError
from tests.conftest import UserFactory, auth_headers


class TestLogin:

    async def test_login_success(self, async_client: AsyncClient, test_user: User):
        response = await async_client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": "testpassword123"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "buyer@example.com"
        assert data["user"]["user_type"] == "individual"
        assert "hashed_password" not in data["user"]

    async def test_login_email_is_case_insensitive(self, async_client: AsyncClient, test_user: User):
        response = await async_client.post(
            "/api/auth/login",
            json={"email": "BUYER@Example.com", "password": "testpassword123"}
        )
        assert response.status_code == status.HTTP_200_OK

    async def test_login_wrong_password(self, async_client: AsyncClient, test_user: User):
        response = await async_client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": "wrongpassword"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        error = response.json()["error"]
        assert error["code"] == "UNAUTHORIZED"
        assert error["message"] == "Invalid email or password"

    async def test_login_unknown_email(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": "password123"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_login_unverified_user(self, async_client: AsyncClient, db_session: AsyncSession):
        user = await UserFactory.create_user(db_session, email="pending@example.com", is_verified=False)

        response = await async_client.post(
            "/api/auth/login",
            json={"email": user.email, "password": "testpassword123"}
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_login_inactive_user(self, async_client: AsyncClient, db_session: AsyncSession):
        user = await UserFactory.create_user(db_session, email="gone@example.com", is_active=False)

        response = await async_client.post(
            "/api/auth/login",
            json={"email": user.email, "password": "testpassword123"}
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestTokens:

    async def test_me_requires_token(self, async_client: AsyncClient):
        response = await async_client.get("/api/auth/me")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_me_rejects_garbage_token(self, async_client: AsyncClient):
        response = await async_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_me_returns_profile(self, async_client: AsyncClient, test_user: User):
        response = await async_client.get("/api/auth/me", headers=auth_headers(test_user))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == str(test_user.id)

    async def test_refresh_issues_access_token(self, async_client: AsyncClient, test_user: User):
        login = await async_client.post(
            "/api/auth/login",
            json={"email": test_user.email, "password": "testpassword123"}
        )
        refresh_token = login.json()["refresh_token"]

        response = await async_client.post("/api/auth/refresh", json={"refreshToken": refresh_token})

        assert response.status_code == status.HTTP_200_OK
        new_token = response.json()["access_token"]
        me = await async_client.get("/api/auth/me", headers={"Authorization": f"Bearer {new_token}"})
        assert me.status_code == status.HTTP_200_OK

    async def test_access_token_cannot_refresh(self, async_client: AsyncClient, test_user: User):
        access_token = auth_headers(test_user)["Authorization"].split()[1]

        response = await async_client.post("/api/auth/refresh", json={"refreshToken": access_token})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_update_profile(self, async_client: AsyncClient, test_user: User):
        response = await async_client.put(
            "/api/auth/me",
            json={"name": "Asha Patel", "phone": "+91 98765 43210"},
            headers=auth_headers(test_user)
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "Asha Patel"
        assert response.json()["phone"] == "+91 98765 43210"


class TestOTPRegistration:

    async def test_send_otp_mails_code(self, async_client: AsyncClient, mail_outbox):
        with patch("app.services.otp.generate_otp", return_value="123456"):
            response = await async_client.post(
                "/api/otp/send-otp", json={"email": "new@example.com", "name": "Neha"}
            )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is True
        mail_outbox["brevo"].assert_awaited_once()
        args = mail_outbox["brevo"].await_args.args
        assert args[0] == "new@example.com"
        assert "123456" in args[2]

    async def test_send_otp_rejects_verified_email(self, async_client: AsyncClient, test_user: User):
        response = await async_client.post("/api/otp/send-otp", json={"email": test_user.email})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "already registered" in response.json()["error"]["message"]

    async def test_send_otp_mail_failure_is_503(self, async_client: AsyncClient, mail_outbox):
        mail_outbox["brevo"].side_effect = ExternalServiceError("Brevo", "401 unauthorized")

        response = await async_client.post("/api/otp/send-otp", json={"email": "new@example.com"})
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    async def test_verify_and_register(self, async_client: AsyncClient, db_session: AsyncSession):
        with patch("app.services.otp.generate_otp", return_value="123456"):
            await async_client.post("/api/otp/send-otp", json={"email": "new@example.com"})

        response = await async_client.post("/api/otp/verify-and-register", json={
            "email": "new@example.com",
            "otp": "123456",
            "password": "secret123",
            "name": "Neha Shah",
            "phone": "9876543210",
            "userType": "developer",
        })

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["access_token"]
        assert data["user"]["is_verified"] is True
        assert data["user"]["user_type"] == "developer"

        user = await UserRepository(db_session).get_by_email("new@example.com")
        assert user.user_type == UserType.DEVELOPER
        assert user.verify_password("secret123")

    async def test_code_is_single_use(self, async_client: AsyncClient):
        with patch("app.services.otp.generate_otp", return_value="123456"):
            await async_client.post("/api/otp/send-otp", json={"email": "new@example.com"})
        payload = {"email": "new@example.com", "otp": "123456", "password": "secret123", "name": "Neha"}

        first = await async_client.post("/api/otp/verify-and-register", json=payload)
        second = await async_client.post("/api/otp/verify-and-register", json=payload)

        assert first.status_code == status.HTTP_201_CREATED
        assert second.status_code == status.HTTP_400_BAD_REQUEST

    async def test_newer_code_replaces_older(self, async_client: AsyncClient):
        with patch("app.services.otp.generate_otp", return_value="111111"):
            await async_client.post("/api/otp/send-otp", json={"email": "new@example.com"})
        with patch("app.services.otp.generate_otp", return_value="222222"):
            await async_client.post("/api/otp/send-otp", json={"email": "new@example.com"})

        payload = {"email": "new@example.com", "otp": "111111", "password": "secret123", "name": "Neha"}
        response = await async_client.post("/api/otp/verify-and-register", json=payload)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == "Invalid or expired OTP"

    async def test_malformed_code_is_422(self, async_client: AsyncClient):
        response = await async_client.post("/api/otp/verify-and-register", json={
            "email": "new@example.com", "otp": "12ab", "password": "secret123", "name": "Neha"
        })
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestForgotPassword:

    async def test_full_reset_flow(self, async_client: AsyncClient, test_user: User, db_session: AsyncSession):
        with patch("app.services.otp.generate_otp", return_value="654321"):
            sent = await async_client.post("/api/forgot-password/send-otp", json={"email": test_user.email})
        assert sent.status_code == status.HTTP_200_OK

        verified = await async_client.post(
            "/api/forgot-password/verify-otp", json={"email": test_user.email, "otp": "654321"}
        )
        assert verified.status_code == status.HTTP_200_OK
        reset_token = verified.json()["resetToken"]

        reset = await async_client.post("/api/forgot-password/reset-password", json={
            "email": test_user.email, "newPassword": "brandnew456", "resetToken": reset_token
        })
        assert reset.status_code == status.HTTP_200_OK

        login = await async_client.post(
            "/api/auth/login", json={"email": test_user.email, "password": "brandnew456"}
        )
        assert login.status_code == status.HTTP_200_OK

    async def test_unknown_email_is_404(self, async_client: AsyncClient):
        response = await async_client.post("/api/forgot-password/send-otp", json={"email": "nobody@example.com"})
        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_wrong_code(self, async_client: AsyncClient, test_user: User):
        with patch("app.services.otp.generate_otp", return_value="654321"):
            await async_client.post("/api/forgot-password/send-otp", json={"email": test_user.email})

        response = await async_client.post(
            "/api/forgot-password/verify-otp", json={"email": test_user.email, "otp": "000000"}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_reset_token_bound_to_email(self, async_client: AsyncClient, test_user: User,
                                              test_owner: User):
        with patch("app.services.otp.generate_otp", return_value="654321"):
            await async_client.post("/api/forgot-password/send-otp", json={"email": test_user.email})
        verified = await async_client.post(
            "/api/forgot-password/verify-otp", json={"email": test_user.email, "otp": "654321"}
        )

        response = await async_client.post("/api/forgot-password/reset-password", json={
            "email": test_owner.email, "newPassword": "brandnew456", "resetToken": verified.json()["resetToken"]
        })
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
