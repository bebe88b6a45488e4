"""Global test fixtures and utilities for progression engine tests"""
import pytest
from datetime import datetime, timedelta, timezone

from progression.db.memory_store import InMemoryProgressionStore
from progression.gamification.points_ledger import PointsLedger
from progression.models.account import Account
from progression.services.progression_service import ProgressionService


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ============================================================================
# Clock & Identity Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Clock fixed at 2024-01-07 12:00 UTC"""
    return FakeClock(datetime(2024, 1, 7, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "123456789"


@pytest.fixture
def test_api_key():
    """Standard test API key"""
    return "test_api_key_12345"


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def store():
    """Fresh in-memory store"""
    return InMemoryProgressionStore()


@pytest.fixture
def ledger(store, clock):
    """PointsLedger over the in-memory store"""
    return PointsLedger(store, clock=clock, tz_name="UTC")


@pytest.fixture
def service(store, clock):
    """ProgressionService over the in-memory store"""
    return ProgressionService(store, clock=clock, tz_name="UTC")


@pytest.fixture
async def account(service, test_user_id):
    """Initialized account with zero points"""
    return await service.initialize(test_user_id)


@pytest.fixture
def make_account(store):
    """Insert an account with arbitrary starting state"""
    async def _make(user_id: str, **fields) -> Account:
        return await store.create_account(Account(user_id=user_id, **fields))
    return _make


@pytest.fixture
def reward_factory(service):
    """Create catalog rewards with sensible defaults"""
    async def _create(**overrides):
        fields = {
            "name": "Free Protein Shake",
            "description": "Redeem at partner gyms",
            "points_cost": 500,
            "reward_type": "supplement_discount",
        }
        fields.update(overrides)
        return await service.create_reward(**fields)
    return _create
