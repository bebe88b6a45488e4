"""Unit tests for the PostgreSQL store (progression/db/postgres_store.py) with mocked queries"""
import asyncio
import pytest
from contextlib import asynccontextmanager
from datetime import date
from unittest.mock import AsyncMock, patch

import psycopg

from progression.db.postgres_store import PostgresProgressionStore
from progression.db.queries import account_from_row
from progression.gamification.points_ledger import PointsLedger
from progression.gamification.reward_store import RewardStore
from progression.exceptions import (
    AccountNotInitializedError,
    ConnectionError,
    InsufficientPointsError,
    RedemptionAlreadyUsedError,
    RedemptionNotFoundError,
)
from progression.models.account import Account, PointsTransaction, StreakCategory, TransactionKind


class FakeConnection:
    """Stands in for psycopg.AsyncConnection; records transaction outcomes"""

    def __init__(self):
        self.committed = 0
        self.rolled_back = 0

    @asynccontextmanager
    async def transaction(self):
        try:
            yield
        except BaseException:
            self.rolled_back += 1
            raise
        self.committed += 1


class FakeDatabase:
    def __init__(self, conn):
        self.conn = conn
        self.closed = False

    @asynccontextmanager
    async def connection(self):
        yield self.conn

    async def close_pool(self):
        self.closed = True


@pytest.fixture
def mock_db_connection():
    return FakeConnection()


@pytest.fixture
def pg_store(mock_db_connection):
    return PostgresProgressionStore(FakeDatabase(mock_db_connection))


@pytest.fixture
def account_row():
    return {
        "user_id": "123456789",
        "total_points": 700,
        "weekly_points": 700,
        "monthly_points": 700,
        "current_streak": 2,
        "longest_streak": 5,
        "last_active_date": date(2024, 1, 6),
        "last_award_date": date(2024, 1, 6),
        "achievements": {"level_2": "2024-01-06T10:00:00+00:00"},
        "category_streaks": {
            "workout": {"current_streak": 2, "longest_streak": 2, "last_active_date": "2024-01-06"},
            "diet": {"current_streak": 0, "longest_streak": 0, "last_active_date": None},
            "mental_health": {"current_streak": 0, "longest_streak": 0, "last_active_date": None},
        },
        "activity_counts": {"workout": 3},
    }


def test_account_from_row_parses_json_columns(account_row):
    account = account_from_row(account_row)

    assert account.level == 2
    assert "level_2" in account.achievements
    assert account.category_streaks[StreakCategory.WORKOUT].last_active_date == date(2024, 1, 6)
    assert account.last_workout_date == date(2024, 1, 6)


@pytest.mark.asyncio
async def test_account_transaction_commits_staged_changes(pg_store, mock_db_connection, account_row):
    with patch("progression.db.postgres_store.queries.select_account", AsyncMock(return_value=account_row)) as select, \
         patch("progression.db.postgres_store.queries.update_account", AsyncMock()) as update, \
         patch("progression.db.postgres_store.queries.insert_points_transaction", AsyncMock()) as insert:

        async with pg_store.account_transaction("123456789") as txn:
            txn.account.total_points += 50
            txn.record_points(PointsTransaction(
                user_id="123456789", amount=50, kind=TransactionKind.AWARD, reason="Run",
            ))

        select.assert_awaited_once_with(mock_db_connection, "123456789", for_update=True)
        update.assert_awaited_once()
        assert update.await_args.args[1].total_points == 750
        insert.assert_awaited_once()
        assert mock_db_connection.committed == 1


@pytest.mark.asyncio
async def test_account_transaction_rolls_back_on_error(pg_store, mock_db_connection, account_row):
    with patch("progression.db.postgres_store.queries.select_account", AsyncMock(return_value=account_row)), \
         patch("progression.db.postgres_store.queries.update_account", AsyncMock()) as update:

        with pytest.raises(InsufficientPointsError):
            async with pg_store.account_transaction("123456789"):
                raise InsufficientPointsError("123456789", required=1000, available=700)

        update.assert_not_awaited()
        assert mock_db_connection.rolled_back == 1
        assert mock_db_connection.committed == 0


@pytest.mark.asyncio
async def test_account_transaction_requires_account(pg_store):
    with patch("progression.db.postgres_store.queries.select_account", AsyncMock(return_value=None)):
        with pytest.raises(AccountNotInitializedError):
            async with pg_store.account_transaction("ghost"):
                pass


@pytest.mark.asyncio
async def test_driver_errors_are_wrapped(pg_store):
    failing = AsyncMock(side_effect=psycopg.OperationalError("server closed the connection"))
    with patch("progression.db.postgres_store.queries.select_account", failing):
        with pytest.raises(ConnectionError):
            await pg_store.get_account("123456789")


@pytest.mark.asyncio
async def test_create_account_returns_existing(pg_store, account_row):
    with patch("progression.db.postgres_store.queries.insert_account", AsyncMock(return_value=None)), \
         patch("progression.db.postgres_store.queries.select_account", AsyncMock(return_value=account_row)):
        account = await pg_store.create_account(Account(user_id="123456789"))

    assert account.total_points == 700


@pytest.mark.asyncio
async def test_mark_redemption_used(pg_store):
    row = {
        "id": "red_1",
        "user_id": "123456789",
        "reward_id": "reward_1",
        "redemption_code": "REWARD-ABC-123456",
        "redeemed_at": "2024-01-07T12:00:00+00:00",
        "expires_at": None,
        "used": False,
    }
    with patch("progression.db.postgres_store.queries.select_redemption_for_update", AsyncMock(return_value=row)), \
         patch("progression.db.postgres_store.queries.set_redemption_used", AsyncMock(return_value={**row, "used": True})):
        redemption = await pg_store.mark_redemption_used("red_1")

    assert redemption.used is True


@pytest.mark.asyncio
async def test_mark_redemption_used_errors(pg_store):
    with patch("progression.db.postgres_store.queries.select_redemption_for_update", AsyncMock(return_value=None)):
        with pytest.raises(RedemptionNotFoundError):
            await pg_store.mark_redemption_used("missing")

    with patch("progression.db.postgres_store.queries.select_redemption_for_update", AsyncMock(return_value={"used": True})):
        with pytest.raises(RedemptionAlreadyUsedError):
            await pg_store.mark_redemption_used("red_1")


@pytest.mark.asyncio
async def test_close_releases_pool(pg_store):
    await pg_store.close()

    assert pg_store.db.closed is True


class SingleConnectionDatabase(FakeDatabase):
    """Pool with one connection; a second checkout while it is held times out"""

    def __init__(self, conn):
        super().__init__(conn)
        self._available = asyncio.Semaphore(1)

    @asynccontextmanager
    async def connection(self):
        await asyncio.wait_for(self._available.acquire(), timeout=1)
        try:
            yield self.conn
        finally:
            self._available.release()


@pytest.mark.asyncio
async def test_redeem_uses_a_single_connection(mock_db_connection, account_row, clock):
    store = PostgresProgressionStore(SingleConnectionDatabase(mock_db_connection))
    ledger = PointsLedger(store, clock=clock, tz_name="UTC")
    rewards = RewardStore(store, ledger)
    reward_row = {
        "id": "reward_1",
        "name": "Free Protein Shake",
        "points_cost": 500,
        "reward_type": "supplement_discount",
        "limit_per_user": 1,
    }

    with patch("progression.db.postgres_store.queries.select_account", AsyncMock(return_value=account_row)), \
         patch("progression.db.postgres_store.queries.select_reward", AsyncMock(return_value=reward_row)) as select_reward, \
         patch("progression.db.postgres_store.queries.count_user_redemptions", AsyncMock(return_value=0)), \
         patch("progression.db.postgres_store.queries.update_account", AsyncMock()), \
         patch("progression.db.postgres_store.queries.insert_points_transaction", AsyncMock()), \
         patch("progression.db.postgres_store.queries.insert_redemption", AsyncMock()) as insert_redemption:
        result = await rewards.redeem("123456789", "reward_1")

    assert result.remaining_points == 200
    select_reward.assert_awaited_once_with(mock_db_connection, "reward_1")
    insert_redemption.assert_awaited_once()
    assert mock_db_connection.committed == 1
