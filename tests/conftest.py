"""
Test configuration and fixtures for the marketplace API.
Provides database fixtures, test data factories, and common test utilities.
"""

import os
import tempfile

# Settings are read at import time, so the test environment is set up first.
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-the-marketplace-suite")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")
os.environ.setdefault("ADMIN_EMAIL", "admin@example.com")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="bada-uploads-"))

import io
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Dict, Optional
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image as PILImage
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.main import app
from app.database import Base, get_db
from app.middleware.rate_limit import reset_rate_limits
from app.models.live_group import LiveGroupProject, LiveGroupTower, LiveGroupUnit, UnitStatus
from app.models.property import Property
from app.models.short_stay import ShortStayProperty, ShortStayReservation
from app.models.user import User, UserRole, UserType
from app.repositories.user import UserRepository
from app.services.account import deletion_store
from app.utils.auth import create_access_token
from app.utils.payments import compute_signature


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async test client whose requests share the test's database session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clean_process_state():
    reset_rate_limits()
    deletion_store._tokens.clear()
    deletion_store._otp_requests.clear()
    yield
    reset_rate_limits()


@pytest.fixture(autouse=True)
def mail_outbox():
    """Stub both mail transports; tests inspect the mocks' calls."""
    with patch("app.utils.email.send_brevo_email", new=AsyncMock(return_value="msg-1")) as brevo, \
            patch("app.utils.email.send_smtp_email", new=AsyncMock(return_value=None)) as smtp:
        yield {"brevo": brevo, "smtp": smtp}


@pytest.fixture
def razorpay_orders():
    order = {"id": "order_test123", "amount": 10000, "currency": "INR", "status": "created"}
    with patch("app.utils.payments.create_order", new=AsyncMock(return_value=order)) as mock:
        yield mock


def payment_signature(order_id: str = "order_test123", payment_id: str = "pay_test456") -> Dict[str, str]:
    """Checkout fields with a signature valid for the test Razorpay secret."""
    return {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": compute_signature(order_id, payment_id),
    }


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


def png_bytes(color: str = "red") -> bytes:
    buffer = io.BytesIO()
    PILImage.new("RGB", (8, 8), color).save(buffer, format="PNG")
    return buffer.getvalue()


# Test data factories
class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    async def create_user(
        db: AsyncSession,
        email: str = None,
        password: str = "testpassword123",
        name: str = "Test User",
        user_type: UserType = UserType.INDIVIDUAL,
        role: UserRole = UserRole.USER,
        is_verified: bool = True,
        is_active: bool = True,
        individual_credits: int = 0,
        developer_credits: int = 0
    ) -> User:
        return await UserRepository(db).create_user({
            "email": email or f"user{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "name": name,
            "user_type": user_type,
            "role": role,
            "is_verified": is_verified,
            "is_active": is_active,
            "individual_credits": individual_credits,
            "developer_credits": developer_credits,
        })


class PropertyFactory:
    """Factory for creating marketplace listings."""

    @staticmethod
    async def create_property(db: AsyncSession, owner: User, title: str = "3 BHK in Vesu", **fields) -> Property:
        values = {
            "title": title,
            "type": "Flat",
            "location": "Surat, Gujarat",
            "price": "85 Lakh",
            "bhk": 3,
            "user_id": owner.id,
        }
        values.update(fields)
        property_obj = Property(**values)
        db.add(property_obj)
        await db.commit()
        await db.refresh(property_obj)
        return property_obj


class LiveGroupFactory:
    """Project with one tower and the given unit labels on floor 1."""

    @staticmethod
    async def create_project(
        db: AsyncSession,
        creator: User,
        title: str = "Skyline Residency",
        unit_labels=("1A", "1B"),
        unit_price: Decimal = Decimal("4500000"),
        group_price: str = "45 Lakh"
    ) -> LiveGroupProject:
        project = LiveGroupProject(
            title=title,
            developer="Skyline Builders",
            location="Surat",
            original_price="50 Lakh",
            group_price=group_price,
            status="live",
            created_by=creator.id,
            total_slots=len(unit_labels),
        )
        db.add(project)
        await db.flush()
        tower = LiveGroupTower(project_id=project.id, tower_name="Tower A", total_floors=4, position=0)
        db.add(tower)
        await db.flush()
        for label in unit_labels:
            db.add(LiveGroupUnit(
                tower_id=tower.id,
                floor_number=1,
                unit_number=label,
                unit_type="2BHK",
                area=Decimal("1000"),
                price=unit_price,
                status=UnitStatus.AVAILABLE.value,
            ))
        await db.commit()
        return project


class ShortStayFactory:
    """Short-stay listings and reservations."""

    @staticmethod
    async def create_listing(
        db: AsyncSession,
        host: User,
        title: str = "Beach Villa",
        per_night: Optional[int] = 2500,
        city: str = "Goa",
        max_guests: int = 4,
        category: str = "villa"
    ) -> ShortStayProperty:
        listing = ShortStayProperty(
            user_id=host.id,
            title=title,
            category=category,
            location={"city": city, "state": city, "address": "12 Beach Road"},
            pricing={"perNight": per_night} if per_night is not None else {},
            specific_details={"maxGuests": max_guests},
            images=[],
        )
        db.add(listing)
        await db.commit()
        await db.refresh(listing)
        return listing

    @staticmethod
    async def create_reservation(
        db: AsyncSession,
        listing: ShortStayProperty,
        guest: User,
        check_in: date,
        nights: int = 2,
        booking_code: str = "RES-ABC123"
    ) -> ShortStayReservation:
        reservation = ShortStayReservation(
            property_id=listing.id,
            user_id=guest.id,
            host_id=listing.user_id,
            check_in=check_in,
            check_out=check_in + timedelta(days=nights),
            guests={"adults": 2},
            total_price=Decimal(2500 * nights),
            status="confirmed",
            booking_code=booking_code,
        )
        db.add(reservation)
        await db.commit()
        await db.refresh(reservation)
        return reservation


# Common fixtures
@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await UserFactory.create_user(db_session, email="buyer@example.com", name="Asha Buyer")


@pytest.fixture
async def test_owner(db_session: AsyncSession) -> User:
    return await UserFactory.create_user(db_session, email="owner@example.com", name="Ravi Owner")


@pytest.fixture
async def test_admin(db_session: AsyncSession) -> User:
    return await UserFactory.create_user(
        db_session,
        email="root@example.com",
        name="Admin",
        role=UserRole.ADMIN,
        user_type=UserType.ADMIN,
    )


@pytest.fixture
async def test_developer(db_session: AsyncSession) -> User:
    return await UserFactory.create_user(
        db_session, email="dev@example.com", name="Dev Corp", user_type=UserType.DEVELOPER
    )
