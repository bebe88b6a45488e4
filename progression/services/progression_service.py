"""
ProgressionService - Entry point for activity sources

Wires the ledger, achievement engine, leaderboard and reward store around a
single store and exposes the operations that diet, workout, mental-health
and ordering modules call. Activity sources never read or write account
fields themselves.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from progression.config import RESET_TIMEZONE
from progression.db.store import ProgressionStore
from progression.gamification.achievement_system import get_achievement_statuses
from progression.gamification.leaderboard import DEFAULT_LIMIT, LeaderboardRanker
from progression.gamification.level_curve import level_progress, points_to_next_level
from progression.gamification.points_ledger import PointsLedger
from progression.gamification.reward_store import RewardStore
from progression.models.account import (
    Account,
    AwardCategory,
    AwardResult,
    LeaderboardEntry,
    LeaderboardPeriod,
    PointsPeriod,
    PointsTransaction,
    StreakCategory,
    StreakResult,
)
from progression.models.achievement import AchievementStatus
from progression.models.reward import AvailableReward, Redemption, RedemptionResult, Reward
from progression.models.status import AccountStatus

logger = logging.getLogger(__name__)

RECENT_REDEMPTIONS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressionService:
    """
    Service for points, levels, streaks, achievements, leaderboards and rewards.

    Args:
        store: Persistence backend shared by all components
        clock: Current aware datetime (injectable for tests)
        tz_name: Timezone that defines calendar days
    """

    def __init__(
        self,
        store: ProgressionStore,
        clock: Callable[[], datetime] = _utcnow,
        tz_name: str = RESET_TIMEZONE,
    ):
        self.store = store
        self.ledger = PointsLedger(store, clock=clock, tz_name=tz_name)
        self.leaderboard = LeaderboardRanker(store)
        self.rewards = RewardStore(store, self.ledger)
        logger.debug("ProgressionService initialized")

    # ==========================================
    # Ledger
    # ==========================================

    async def initialize(self, user_id: str) -> Account:
        return await self.ledger.initialize(user_id)

    async def get_account(self, user_id: str) -> Optional[Account]:
        return await self.store.get_account(user_id)

    async def award_points(
        self,
        user_id: str,
        amount: int,
        reason: str,
        category: Union[str, AwardCategory],
        event_id: Optional[str] = None,
    ) -> AwardResult:
        return await self.ledger.award_points(user_id, amount, reason, category, event_id=event_id)

    async def advance_streak(
        self,
        user_id: str,
        activity_date: date,
        category: Optional[Union[str, StreakCategory]] = None,
    ) -> StreakResult:
        return await self.ledger.advance_streak(user_id, activity_date, category)

    async def reset_period(self, period: Union[str, PointsPeriod]) -> Dict[str, Any]:
        return await self.ledger.reset_period(period)

    async def get_status(self, user_id: str) -> Optional[AccountStatus]:
        """
        Full account view, or None when the user has no account

        Includes points to next level, level progress percentage, all-time
        leaderboard position and the most recent redemptions.
        """
        account = await self.store.get_account(user_id)
        if account is None:
            return None

        position = await self.leaderboard.position_of(user_id)
        recent = await self.rewards.list_redemptions(user_id, limit=RECENT_REDEMPTIONS)

        return AccountStatus(
            account=account,
            points_to_next_level=points_to_next_level(account.total_points),
            level_progress=round(level_progress(account.total_points, account.level), 2),
            leaderboard_position=position,
            recent_redemptions=recent,
        )

    async def get_points_history(self, user_id: str, limit: int = 50) -> List[PointsTransaction]:
        return await self.store.list_points_transactions(user_id, limit=limit)

    # ==========================================
    # Achievements
    # ==========================================

    async def get_achievements(self, user_id: str) -> List[AchievementStatus]:
        """Catalog annotated for the user; empty without an account"""
        account = await self.store.get_account(user_id)
        if account is None:
            return []
        return get_achievement_statuses(account)

    async def evaluate_achievements(self, user_id: str, category: Union[str, AwardCategory]) -> List[str]:
        return await self.ledger.achievements.evaluate_and_grant(user_id, category)

    # ==========================================
    # Leaderboard
    # ==========================================

    async def rank(
        self,
        period: Union[str, LeaderboardPeriod] = LeaderboardPeriod.ALL_TIME,
        limit: int = DEFAULT_LIMIT,
    ) -> List[LeaderboardEntry]:
        return await self.leaderboard.rank(period, limit)

    # ==========================================
    # Rewards
    # ==========================================

    async def list_available_rewards(self, user_id: str) -> List[AvailableReward]:
        return await self.rewards.list_available(user_id)

    async def redeem(self, user_id: str, reward_id: str) -> RedemptionResult:
        return await self.rewards.redeem(user_id, reward_id)

    async def list_redemptions(self, user_id: str) -> List[Redemption]:
        return await self.rewards.list_redemptions(user_id)

    async def mark_redemption_used(self, redemption_id: str) -> Redemption:
        return await self.rewards.mark_used(redemption_id)

    async def create_reward(self, **fields: Any) -> Reward:
        return await self.rewards.create_reward(**fields)

    async def set_reward_active(self, reward_id: str, is_active: bool) -> Reward:
        return await self.rewards.set_reward_active(reward_id, is_active)

    async def list_rewards(self, include_inactive: bool = False) -> List[Reward]:
        return await self.rewards.list_rewards(include_inactive=include_inactive)

    async def seed_standard_rewards(self) -> List[Reward]:
        return await self.rewards.seed_standard_rewards()
