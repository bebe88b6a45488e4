"""
Storage contract for the progression engine

Every read-modify-write on an account goes through
`ProgressionStore.account_transaction()`. The context manager yields an
`AccountTransaction` holding a private copy of the account; the copy and any
staged points-log entries and redemptions are committed together when the
block exits normally, and discarded when it raises. Implementations must
serialize transactions for the same user and must not serialize across users.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Optional

from progression.models.account import Account, PointsTransaction
from progression.models.reward import Redemption, Reward


class AccountTransaction(ABC):
    """Unit of work over a single account"""

    def __init__(self, account: Account):
        self.account = account
        self.new_points_transactions: list[PointsTransaction] = []
        self.new_redemptions: list[Redemption] = []

    def record_points(self, transaction: PointsTransaction) -> None:
        """Stage a points-log entry"""
        self.new_points_transactions.append(transaction)

    def record_redemption(self, redemption: Redemption) -> None:
        """Stage a redemption"""
        self.new_redemptions.append(redemption)

    @abstractmethod
    async def find_event(self, event_id: str) -> Optional[PointsTransaction]:
        """Points transaction already recorded for this user and event id"""

    @abstractmethod
    async def count_redemptions(self, reward_id: str) -> int:
        """How many times this user has redeemed `reward_id`"""

    @abstractmethod
    async def get_reward(self, reward_id: str) -> Optional[Reward]:
        """Catalog reward read through this transaction's own connection"""


class ProgressionStore(ABC):
    """Persistence for accounts, points log, rewards and redemptions"""

    # Accounts

    @abstractmethod
    async def create_account(self, account: Account) -> Account:
        """Insert `account` unless one exists for its user; return the stored account"""

    @abstractmethod
    async def get_account(self, user_id: str) -> Optional[Account]:
        """Current account snapshot, or None"""

    @abstractmethod
    def account_transaction(self, user_id: str) -> AbstractAsyncContextManager[AccountTransaction]:
        """
        Serialized unit of work on one account

        Raises:
            AccountNotInitializedError: If the user has no account
        """

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """All accounts in creation order"""

    @abstractmethod
    async def list_user_ids(self) -> list[str]:
        """All user ids in creation order"""

    # Points log

    @abstractmethod
    async def list_points_transactions(self, user_id: str, limit: int = 50) -> list[PointsTransaction]:
        """Most recent points transactions, newest first"""

    # Rewards

    @abstractmethod
    async def save_reward(self, reward: Reward) -> Reward:
        """Insert or replace a catalog entry"""

    @abstractmethod
    async def get_reward(self, reward_id: str) -> Optional[Reward]:
        """Catalog entry, or None"""

    @abstractmethod
    async def list_rewards(self) -> list[Reward]:
        """Whole catalog in creation order"""

    # Redemptions

    @abstractmethod
    async def list_redemptions(self, user_id: str) -> list[Redemption]:
        """User's redemptions, newest first"""

    @abstractmethod
    async def mark_redemption_used(self, redemption_id: str) -> Redemption:
        """
        Flip `used` from False to True

        Raises:
            RedemptionNotFoundError: Unknown id
            RedemptionAlreadyUsedError: Already used
        """

    async def close(self) -> None:
        """Release resources"""
