"""
Shared fixtures: an in-memory store, a test client bound to it, and
factories for seeding owners, staff and venues directly.
"""

import asyncio
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SENTRY_DSN", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from venuefinder.api.app import create_app
from venuefinder.auth.jwt import create_access_token, create_staff_token, hash_password
from venuefinder.auth.permissions import refresh_staff_permissions
from venuefinder.config import get_jwt_secret, get_settings
from venuefinder.core.models import GeoPoint, Staff, User, Venue
from venuefinder.storage import Collections, create_local_storage

PASSWORD = "password123"

# Hashing is deliberately slow; hash once for every seeded account.
PASSWORD_HASH = hash_password(PASSWORD)


def run(coro):
    """Drive a storage coroutine from synchronous fixtures."""
    return asyncio.run(coro)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings and the signing secret are cached per process; reset around each test."""
    get_settings.cache_clear()
    get_jwt_secret.cache_clear()
    yield
    get_settings.cache_clear()
    get_jwt_secret.cache_clear()


# =============================================================================
# Storage + Client
# =============================================================================


@pytest.fixture
def storage():
    return create_local_storage()


@pytest.fixture
def client(storage):
    with TestClient(create_app(storage)) as c:
        yield c


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_user(storage):
    def _make(email="owner@example.com", full_name="Olivia Owner", role="user"):
        user = User(full_name=full_name, email=email, password_hash=PASSWORD_HASH, role=role)
        return run(storage.metadata.save(Collections.USERS, user.id, user.to_document()))
    return _make


@pytest.fixture
def make_staff(storage):
    def _make(owner, role="host", venues=(), email=None, is_active=True):
        staff = Staff(
            first_name="Sam",
            last_name=role.title(),
            email=email or f"{role}@example.com",
            password_hash=PASSWORD_HASH,
            role=role,
            owner=owner["_id"],
            venues=[v["_id"] for v in venues],
            is_active=is_active,
        )
        record = refresh_staff_permissions(None, staff.to_document())
        return run(storage.metadata.save(Collections.STAFF, staff.id, record))
    return _make


@pytest.fixture
def make_venue(storage):
    def _make(owner, name="The Loft", coordinates=(-71.06, 42.36), **extra):
        venue = Venue(
            name=name,
            description=f"{name} description",
            address="1 Main St, Boston MA",
            location=GeoPoint(coordinates=list(coordinates)),
            owner=owner["_id"],
            **extra,
        )
        return run(storage.metadata.save(Collections.VENUES, venue.id, venue.to_document()))
    return _make


# =============================================================================
# Common Principals
# =============================================================================


@pytest.fixture
def owner(make_user):
    return make_user()


@pytest.fixture
def other_owner(make_user):
    return make_user(email="rival@example.com", full_name="Rita Rival")


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", full_name="Ada Admin", role="admin")


@pytest.fixture
def owner_headers(owner):
    return bearer(create_access_token(owner["_id"]))


@pytest.fixture
def other_headers(other_owner):
    return bearer(create_access_token(other_owner["_id"]))


@pytest.fixture
def admin_headers(admin):
    return bearer(create_access_token(admin["_id"]))


@pytest.fixture
def venue(owner, make_venue):
    return make_venue(owner)


@pytest.fixture
def staff_headers():
    """Bearer headers for a stored staff record."""
    return lambda staff: bearer(create_staff_token(staff))
