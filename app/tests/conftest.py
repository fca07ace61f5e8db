"""
Shared fixtures: an in-memory Supabase, a scripted Stripe gateway and seeded people.
"""
from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_current_user, get_optional_user
from app.api.routes import admin, bookings, events
from app.core.database import SupabaseClient
from app.main import app
from app.schemas.user import CurrentUser, UserRole
from app.tests.fakes import FakeGateway, FakeSupabase, day, now_iso


@pytest.fixture
def db():
    """Fresh in-memory database behind every Supabase client of the app."""
    fake = FakeSupabase()
    SupabaseClient._client = fake
    SupabaseClient._service_client = fake
    yield fake
    SupabaseClient.reset()


@pytest.fixture
def gateway(monkeypatch: pytest.MonkeyPatch) -> FakeGateway:
    fake = FakeGateway()
    monkeypatch.setattr(bookings.booking_service, "gateway", fake)
    monkeypatch.setattr(admin.admin_service.booking_service, "gateway", fake)
    monkeypatch.setattr(events.booking_service, "gateway", fake)
    return fake


@pytest.fixture
def client(db, gateway):
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login() -> Callable[[CurrentUser], CurrentUser]:
    """Authenticate every following request as the given user."""
    def _login(user: CurrentUser) -> CurrentUser:
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_optional_user] = lambda: user
        return user
    return _login


def _seed_profile(db: FakeSupabase, user: CurrentUser, **extra) -> CurrentUser:
    row = {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role.value,
        "is_active": user.is_active,
        "is_verified": user.is_verified,
        "host_status": "approved" if user.role == UserRole.HOST else "none",
        "average_rating": 0,
        "total_reviews": 0,
        "created_at": now_iso(days=-40),
        "updated_at": now_iso(days=-40),
    }
    row.update(extra)
    db.seed("profile", row)
    return user


@pytest.fixture
def member(db) -> CurrentUser:
    return _seed_profile(db, CurrentUser(id="user-1", email="alice@example.com", full_name="Alice Walker"))


@pytest.fixture
def other_member(db) -> CurrentUser:
    return _seed_profile(db, CurrentUser(id="user-2", email="bob@example.com", full_name="Bob Stone"))


@pytest.fixture
def host(db) -> CurrentUser:
    return _seed_profile(db, CurrentUser(
        id="host-1", email="hana@example.com", full_name="Hana Host",
        role=UserRole.HOST, is_verified=True
    ))


@pytest.fixture
def admin_user(db) -> CurrentUser:
    return _seed_profile(db, CurrentUser(
        id="admin-1", email="root@example.com", full_name="Ada Admin",
        role=UserRole.ADMIN, is_verified=True
    ))


@pytest.fixture
def make_event(db, host) -> Callable[..., Dict[str, Any]]:
    """Insert an event row hosted by the default host; keyword arguments override columns."""
    def _make(**overrides) -> Dict[str, Any]:
        row = {
            "title": "Sunday Trail Run",
            "description": "Ten kilometres through the park",
            "event_type": "sports",
            "category": "running",
            "event_date": day(10),
            "start_time": "09:00",
            "duration": 90,
            "venue": "North Gate",
            "address": "1 Park Road",
            "city": "Berlin",
            "price": 0,
            "currency": "usd",
            "max_participants": 10,
            "image_url": None,
            "event_status": "published",
            "is_public": True,
            "host_id": host.id,
            "created_at": now_iso(days=-5),
            "updated_at": now_iso(days=-5),
        }
        row.update(overrides)
        return db.seed("event", row)[0]
    return _make
