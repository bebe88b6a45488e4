"""
Reward Store

Catalog of redeemable rewards and the redemption workflow.

Redemption checks, in order:
1. the user has an account
2. the reward exists and is active
3. the per-user redemption limit is not reached
4. the user can afford the reward

On success the cost is debited and the redemption recorded in the same
account transaction.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import uuid4
import logging

import pydantic

from progression.db.store import ProgressionStore
from progression.exceptions import (
    InsufficientPointsError,
    RedemptionLimitReachedError,
    RewardNotFoundError,
    ValidationError,
)
from progression.gamification.points_ledger import PointsLedger
from progression.models.reward import (
    STANDARD_REWARDS,
    AvailableReward,
    Redemption,
    RedemptionResult,
    Reward,
)
from progression.monitoring import record_redemption, track_ledger_operation

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_redemption_code(now: datetime) -> str:
    """
    Human-friendly code shown to the user, e.g. REWARD-LQ2X9K1B-4F0A2C

    Informational only; never used to authorize anything.
    """
    timestamp = _to_base36(int(now.timestamp() * 1000))
    random_part = uuid4().hex[:6]
    return f"REWARD-{timestamp}-{random_part}".upper()


class RewardStore:
    """Reward catalog management and redemptions"""

    def __init__(self, store: ProgressionStore, ledger: PointsLedger):
        self.store = store
        self.ledger = ledger

    # ==========================================
    # Catalog
    # ==========================================

    async def create_reward(self, **fields: Any) -> Reward:
        """
        Add a reward to the catalog

        Raises:
            ValidationError: Invalid reward definition (e.g. cost <= 0)
        """
        try:
            reward = Reward(created_at=self.ledger.clock(), **fields)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            raise ValidationError(
                message=first["msg"],
                field=".".join(str(part) for part in first["loc"]),
                value=first.get("input"),
                operation="create_reward",
            )

        await self.store.save_reward(reward)
        logger.info(f"Created reward {reward.id} ({reward.name}, {reward.points_cost} points)")
        return reward

    async def set_reward_active(self, reward_id: str, is_active: bool) -> Reward:
        """Activate or retire a reward"""
        reward = await self.store.get_reward(reward_id)
        if reward is None:
            raise RewardNotFoundError(reward_id)

        reward.is_active = is_active
        await self.store.save_reward(reward)
        logger.info(f"Reward {reward_id} is now {'active' if is_active else 'inactive'}")
        return reward

    async def list_rewards(self, include_inactive: bool = False) -> List[Reward]:
        rewards = await self.store.list_rewards()
        if include_inactive:
            return rewards
        return [reward for reward in rewards if reward.is_active]

    async def seed_standard_rewards(self) -> List[Reward]:
        """Insert the standard catalog when no rewards exist yet"""
        if await self.store.list_rewards():
            logger.info("Reward catalog already populated, skipping seed")
            return []

        created = [await self.create_reward(**definition) for definition in STANDARD_REWARDS]
        logger.info(f"Seeded {len(created)} standard rewards")
        return created

    # ==========================================
    # Redemption
    # ==========================================

    async def list_available(self, user_id: str) -> List[AvailableReward]:
        """
        Active rewards the user can afford and has not exhausted

        Each reward is flagged `already_redeemed` when the user holds an
        unused, unexpired redemption of it. Without an account the list is empty.
        """
        account = await self.store.get_account(user_id)
        if account is None:
            return []

        now = self.ledger.clock()
        redemptions = await self.store.list_redemptions(user_id)

        redemption_counts: Dict[str, int] = {}
        outstanding_ids = set()
        for redemption in redemptions:
            redemption_counts[redemption.reward_id] = redemption_counts.get(redemption.reward_id, 0) + 1
            if redemption.is_outstanding(now):
                outstanding_ids.add(redemption.reward_id)

        available = []
        for reward in await self.store.list_rewards():
            if not reward.is_active or reward.points_cost > account.total_points:
                continue
            if reward.limit_per_user is not None and redemption_counts.get(reward.id, 0) >= reward.limit_per_user:
                continue
            available.append(AvailableReward(
                **reward.model_dump(),
                already_redeemed=reward.id in outstanding_ids,
            ))

        return available

    async def redeem(self, user_id: str, reward_id: str) -> RedemptionResult:
        """
        Spend points on a reward

        Raises:
            AccountNotInitializedError: No account for the user
            RewardNotFoundError: Unknown or inactive reward
            RedemptionLimitReachedError: Per-user limit reached
            InsufficientPointsError: Balance below the reward cost
        """
        with track_ledger_operation("redeem"):
            async with self.ledger.transaction(user_id) as txn:
                account = txn.account

                reward = await txn.get_reward(reward_id)
                if reward is None or not reward.is_active:
                    raise RewardNotFoundError(reward_id, user_id=user_id, operation="redeem")

                if reward.limit_per_user is not None:
                    previous = await txn.count_redemptions(reward_id)
                    if previous >= reward.limit_per_user:
                        raise RedemptionLimitReachedError(user_id, reward_id, reward.limit_per_user)

                if account.total_points < reward.points_cost:
                    raise InsufficientPointsError(user_id, reward.points_cost, account.total_points)

                now = self.ledger.clock()
                self.ledger.debit(txn, reward.points_cost, f"Redeemed {reward.name}")

                redemption = Redemption(
                    user_id=user_id,
                    reward_id=reward.id,
                    redemption_code=generate_redemption_code(now),
                    redeemed_at=now,
                    expires_at=now + timedelta(days=reward.validity_days) if reward.validity_days else None,
                )
                txn.record_redemption(redemption)
                remaining = account.total_points

        record_redemption(reward.reward_type.value)
        logger.info(
            f"User {user_id} redeemed {reward.name} for {reward.points_cost} points. "
            f"Remaining: {remaining}"
        )

        return RedemptionResult(
            redemption_id=redemption.id,
            redemption_code=redemption.redemption_code,
            remaining_points=remaining,
            expires_at=redemption.expires_at,
            reward=reward,
        )

    async def list_redemptions(self, user_id: str, limit: Optional[int] = None) -> List[Redemption]:
        redemptions = await self.store.list_redemptions(user_id)
        return redemptions[:limit] if limit is not None else redemptions

    async def mark_used(self, redemption_id: str) -> Redemption:
        """Mark a redemption as used; only possible once"""
        redemption = await self.store.mark_redemption_used(redemption_id)
        logger.info(f"Redemption {redemption_id} marked as used")
        return redemption
