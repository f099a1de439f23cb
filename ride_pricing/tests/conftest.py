"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from ride_pricing.app.main import app
from ride_pricing.app.db.session import get_db, Base
from ride_pricing.app.core.redis_client import get_redis
from ride_pricing.app.models.pricing_enums import VersionStatus
from ride_pricing.app.models.pricing_version import PricingConfigVersion
from ride_pricing.app.services.audit import InMemoryAuditRecorder
from ride_pricing.app.services.geography import ResolvedLocation, get_geography_resolver

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

# Ids used by the static geography below
COUNTRY_ID = 1
REGION_ID = 10
CITY_ID = 100
OTHER_CITY_ID = 200
ZONE_ID = 1000
AIRPORT_ZONE_ID = 1001

DOWNTOWN = (40.7128, -74.0060)
MIDTOWN = (40.7549, -73.9840)
AIRPORT = (40.6413, -73.7781)
ELSEWHERE = (34.0522, -118.2437)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def incr(self, key):
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


class StaticGeographyResolver:
    """Geography stub answering from a fixed table of points."""

    def __init__(self, locations=None, default=None):
        self.locations = dict(locations or {})
        self.default = default or ResolvedLocation(timezone="UTC")
        self.calls = []

    async def resolve_location(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        return self.locations.get((latitude, longitude), self.default)


@pytest.fixture
def geography():
    return StaticGeographyResolver({
        DOWNTOWN: ResolvedLocation(COUNTRY_ID, REGION_ID, CITY_ID, ZONE_ID, "UTC"),
        MIDTOWN: ResolvedLocation(COUNTRY_ID, REGION_ID, CITY_ID, None, "UTC"),
        AIRPORT: ResolvedLocation(COUNTRY_ID, REGION_ID, CITY_ID, AIRPORT_ZONE_ID, "UTC"),
        ELSEWHERE: ResolvedLocation(COUNTRY_ID, 20, OTHER_CITY_ID, None, "America/Los_Angeles"),
    })


@pytest.fixture
def mock_redis():
    return MockRedis()


@pytest.fixture
def audit():
    return InMemoryAuditRecorder()


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def apply_overrides(geography, mock_redis):
    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_geography_resolver] = lambda: geography
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client(apply_overrides):
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


async def create_version(db, name="v1", status=VersionStatus.DRAFT, **kwargs):
    version = PricingConfigVersion(name=name, status=status, **kwargs)
    db.add(version)
    await db.commit()
    await db.refresh(version)
    return version


@pytest.fixture
async def active_version(db_session):
    return await create_version(db_session, name="live", status=VersionStatus.ACTIVE)


@pytest.fixture
async def draft_version(db_session):
    return await create_version(db_session, name="draft")
