"""
In-process store for the progression engine

Keeps everything in dictionaries. Suitable for tests and single-process
deployments; nothing survives a restart.

Each user gets an `asyncio.Lock`; a transaction works on a deep copy of the
account and swaps it in at commit without awaiting, so concurrent awards for
one user are applied one after another while different users never wait on
each other.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from progression.db.store import AccountTransaction, ProgressionStore
from progression.exceptions import (
    AccountNotInitializedError,
    RedemptionAlreadyUsedError,
    RedemptionNotFoundError,
)
from progression.models.account import Account, PointsTransaction
from progression.models.reward import Redemption, Reward

logger = logging.getLogger(__name__)


class InMemoryAccountTransaction(AccountTransaction):
    """Unit of work backed by the store's dictionaries"""

    def __init__(self, store: "InMemoryProgressionStore", account: Account):
        super().__init__(account)
        self._store = store

    async def find_event(self, event_id: str) -> Optional[PointsTransaction]:
        for txn in self._store._points_log.get(self.account.user_id, []):
            if txn.event_id == event_id:
                return txn
        return None

    async def count_redemptions(self, reward_id: str) -> int:
        committed = self._store._redemptions.get(self.account.user_id, [])
        staged = self.new_redemptions
        return sum(1 for r in committed + staged if r.reward_id == reward_id)

    async def get_reward(self, reward_id: str) -> Optional[Reward]:
        return await self._store.get_reward(reward_id)


class InMemoryProgressionStore(ProgressionStore):
    """Dictionary-backed store"""

    def __init__(self):
        self._accounts: dict[str, Account] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._points_log: dict[str, list[PointsTransaction]] = {}
        self._rewards: dict[str, Reward] = {}
        self._redemptions: dict[str, list[Redemption]] = {}
        self._redemption_index: dict[str, Redemption] = {}
        logger.debug("InMemoryProgressionStore initialized")

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        return self._locks.setdefault(user_id, asyncio.Lock())

    # ==========================================
    # Accounts
    # ==========================================

    async def create_account(self, account: Account) -> Account:
        existing = self._accounts.get(account.user_id)
        if existing:
            return existing.model_copy(deep=True)

        self._accounts[account.user_id] = account.model_copy(deep=True)
        logger.info(f"Created progression account for user {account.user_id}")
        return account

    async def get_account(self, user_id: str) -> Optional[Account]:
        account = self._accounts.get(user_id)
        return account.model_copy(deep=True) if account else None

    @asynccontextmanager
    async def account_transaction(self, user_id: str) -> AsyncIterator[AccountTransaction]:
        if user_id not in self._accounts:
            raise AccountNotInitializedError(user_id)

        async with self._lock_for(user_id):
            working_copy = self._accounts[user_id].model_copy(deep=True)
            txn = InMemoryAccountTransaction(self, working_copy)

            yield txn

            # Commit: no awaits below, so the swap is atomic for the event loop
            self._accounts[user_id] = txn.account
            self._points_log.setdefault(user_id, []).extend(txn.new_points_transactions)
            for redemption in txn.new_redemptions:
                self._redemptions.setdefault(user_id, []).append(redemption)
                self._redemption_index[redemption.id] = redemption

    async def list_accounts(self) -> list[Account]:
        return [account.model_copy(deep=True) for account in self._accounts.values()]

    async def list_user_ids(self) -> list[str]:
        return list(self._accounts.keys())

    # ==========================================
    # Points log
    # ==========================================

    async def list_points_transactions(self, user_id: str, limit: int = 50) -> list[PointsTransaction]:
        transactions = self._points_log.get(user_id, [])
        return list(reversed(transactions))[:limit]

    # ==========================================
    # Rewards
    # ==========================================

    async def save_reward(self, reward: Reward) -> Reward:
        self._rewards[reward.id] = reward.model_copy(deep=True)
        return reward

    async def get_reward(self, reward_id: str) -> Optional[Reward]:
        reward = self._rewards.get(reward_id)
        return reward.model_copy(deep=True) if reward else None

    async def list_rewards(self) -> list[Reward]:
        return [reward.model_copy(deep=True) for reward in self._rewards.values()]

    # ==========================================
    # Redemptions
    # ==========================================

    async def list_redemptions(self, user_id: str) -> list[Redemption]:
        redemptions = self._redemptions.get(user_id, [])
        return [r.model_copy() for r in reversed(redemptions)]

    async def mark_redemption_used(self, redemption_id: str) -> Redemption:
        redemption = self._redemption_index.get(redemption_id)
        if redemption is None:
            raise RedemptionNotFoundError(redemption_id)
        if redemption.used:
            raise RedemptionAlreadyUsedError(redemption_id)

        redemption.used = True
        return redemption.model_copy()
