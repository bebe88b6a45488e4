"""
Leaderboards

Ranks every account by weekly, monthly or all-time points. Read-only.

Ties keep the store's account order (creation order), which makes the
ranking deterministic without inventing a secondary key.
"""

from typing import List, Optional, Union
import logging

from progression.db.store import ProgressionStore
from progression.exceptions import ValidationError
from progression.gamification.points_ledger import parse_category
from progression.models.account import Account, LeaderboardEntry, LeaderboardPeriod

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

SORT_FIELDS = {
    LeaderboardPeriod.WEEKLY: "weekly_points",
    LeaderboardPeriod.MONTHLY: "monthly_points",
    LeaderboardPeriod.ALL_TIME: "total_points",
}


def rank_accounts(accounts: List[Account], period: LeaderboardPeriod) -> List[LeaderboardEntry]:
    """Order accounts by the period's points field, descending, 1-based ranks"""
    sort_field = SORT_FIELDS[period]
    ordered = sorted(accounts, key=lambda a: getattr(a, sort_field), reverse=True)

    return [
        LeaderboardEntry(
            rank=index + 1,
            user_id=account.user_id,
            display_name=account.display_name,
            points=getattr(account, sort_field),
            level=account.level,
            current_streak=account.current_streak,
            achievement_count=len(account.achievements),
        )
        for index, account in enumerate(ordered)
    ]


class LeaderboardRanker:
    """Ranked views over all accounts"""

    def __init__(self, store: ProgressionStore):
        self.store = store

    async def rank(
        self,
        period: Union[str, LeaderboardPeriod] = LeaderboardPeriod.ALL_TIME,
        limit: int = DEFAULT_LIMIT,
    ) -> List[LeaderboardEntry]:
        """
        Top `limit` users for the period

        Raises:
            ValidationError: Unknown period or limit outside 1..100
        """
        leaderboard_period = parse_category(period, LeaderboardPeriod, field_name="period")
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_LIMIT:
            raise ValidationError(
                message=f"Limit must be between 1 and {MAX_LIMIT}",
                field="limit",
                value=limit,
            )

        accounts = await self.store.list_accounts()
        return rank_accounts(accounts, leaderboard_period)[:limit]

    async def position_of(
        self,
        user_id: str,
        period: LeaderboardPeriod = LeaderboardPeriod.ALL_TIME,
    ) -> Optional[int]:
        """1-based rank of the user, or None without an account"""
        accounts = await self.store.list_accounts()
        for entry in rank_accounts(accounts, period):
            if entry.user_id == user_id:
                return entry.rank
        return None
