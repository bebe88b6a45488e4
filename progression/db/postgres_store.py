"""
PostgreSQL store for the progression engine

An account transaction runs inside one database transaction: the account
row is locked with SELECT ... FOR UPDATE, the working copy is written back
and staged points-log entries and redemptions are inserted before COMMIT.
Any exception inside the block rolls the whole unit back. Row locks keep
concurrent writers for the same user in line without blocking other users.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import psycopg

from progression.db import queries
from progression.db.connection import Database
from progression.db.store import AccountTransaction, ProgressionStore
from progression.exceptions import (
    AccountNotInitializedError,
    RedemptionAlreadyUsedError,
    RedemptionNotFoundError,
    wrap_external_exception,
)
from progression.models.account import Account, PointsTransaction
from progression.models.reward import Redemption, Reward

logger = logging.getLogger(__name__)


class PostgresAccountTransaction(AccountTransaction):
    """Unit of work bound to an open database transaction"""

    def __init__(self, conn: psycopg.AsyncConnection, account: Account):
        super().__init__(account)
        self._conn = conn

    async def find_event(self, event_id: str) -> Optional[PointsTransaction]:
        row = await queries.select_points_transaction_by_event(self._conn, self.account.user_id, event_id)
        return PointsTransaction.model_validate(row) if row else None

    async def count_redemptions(self, reward_id: str) -> int:
        committed = await queries.count_user_redemptions(self._conn, self.account.user_id, reward_id)
        staged = sum(1 for r in self.new_redemptions if r.reward_id == reward_id)
        return committed + staged

    async def get_reward(self, reward_id: str) -> Optional[Reward]:
        row = await queries.select_reward(self._conn, reward_id)
        return Reward.model_validate(row) if row else None


class PostgresProgressionStore(ProgressionStore):
    """Store backed by a psycopg connection pool"""

    def __init__(self, database: Database):
        self.db = database

    # ==========================================
    # Accounts
    # ==========================================

    async def create_account(self, account: Account) -> Account:
        try:
            async with self.db.connection() as conn:
                async with conn.transaction():
                    row = await queries.insert_account(conn, account)
                    if row is None:
                        row = await queries.select_account(conn, account.user_id)
                    else:
                        logger.info(f"Created progression account for user {account.user_id}")
            return queries.account_from_row(row)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="create_account", user_id=account.user_id)

    async def get_account(self, user_id: str) -> Optional[Account]:
        try:
            async with self.db.connection() as conn:
                row = await queries.select_account(conn, user_id)
            return queries.account_from_row(row) if row else None
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_account", user_id=user_id)

    @asynccontextmanager
    async def account_transaction(self, user_id: str) -> AsyncIterator[AccountTransaction]:
        try:
            async with self.db.connection() as conn:
                async with conn.transaction():
                    row = await queries.select_account(conn, user_id, for_update=True)
                    if row is None:
                        raise AccountNotInitializedError(user_id)

                    txn = PostgresAccountTransaction(conn, queries.account_from_row(row))
                    yield txn

                    await queries.update_account(conn, txn.account)
                    for entry in txn.new_points_transactions:
                        await queries.insert_points_transaction(conn, entry)
                    for redemption in txn.new_redemptions:
                        await queries.insert_redemption(conn, redemption)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="account_transaction", user_id=user_id)

    async def list_accounts(self) -> list[Account]:
        try:
            async with self.db.connection() as conn:
                rows = await queries.select_all_accounts(conn)
            return [queries.account_from_row(row) for row in rows]
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="list_accounts")

    async def list_user_ids(self) -> list[str]:
        try:
            async with self.db.connection() as conn:
                return await queries.select_user_ids(conn)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="list_user_ids")

    # ==========================================
    # Points log
    # ==========================================

    async def list_points_transactions(self, user_id: str, limit: int = 50) -> list[PointsTransaction]:
        try:
            async with self.db.connection() as conn:
                rows = await queries.select_points_transactions(conn, user_id, limit)
            return [PointsTransaction.model_validate(row) for row in rows]
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="list_points_transactions", user_id=user_id)

    # ==========================================
    # Rewards
    # ==========================================

    async def save_reward(self, reward: Reward) -> Reward:
        try:
            async with self.db.connection() as conn:
                async with conn.transaction():
                    await queries.upsert_reward(conn, reward)
            return reward
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="save_reward", context={"reward_id": reward.id})

    async def get_reward(self, reward_id: str) -> Optional[Reward]:
        try:
            async with self.db.connection() as conn:
                row = await queries.select_reward(conn, reward_id)
            return Reward.model_validate(row) if row else None
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_reward", context={"reward_id": reward_id})

    async def list_rewards(self) -> list[Reward]:
        try:
            async with self.db.connection() as conn:
                rows = await queries.select_rewards(conn)
            return [Reward.model_validate(row) for row in rows]
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="list_rewards")

    # ==========================================
    # Redemptions
    # ==========================================

    async def list_redemptions(self, user_id: str) -> list[Redemption]:
        try:
            async with self.db.connection() as conn:
                rows = await queries.select_user_redemptions(conn, user_id)
            return [Redemption.model_validate(row) for row in rows]
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="list_redemptions", user_id=user_id)

    async def mark_redemption_used(self, redemption_id: str) -> Redemption:
        try:
            async with self.db.connection() as conn:
                async with conn.transaction():
                    row = await queries.select_redemption_for_update(conn, redemption_id)
                    if row is None:
                        raise RedemptionNotFoundError(redemption_id)
                    if row["used"]:
                        raise RedemptionAlreadyUsedError(redemption_id)
                    row = await queries.set_redemption_used(conn, redemption_id)
            return Redemption.model_validate(row)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="mark_redemption_used", context={"redemption_id": redemption_id})

    async def close(self) -> None:
        await self.db.close_pool()
