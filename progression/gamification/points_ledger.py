"""
Points Ledger

Authoritative owner of progression accounts. Every change to an account
(awards, bonuses, streaks, redemptions, period resets) is made here, inside
a store transaction, so activity sources never touch account fields directly.

Award rules:
- The award amount is credited to total, weekly and monthly points
- Each level gained by the award amount adds a level-up bonus of 100 points;
  every level reached unlocks `level_<N>` once
- Achievement rules for the award's category are evaluated afterwards and
  their bonuses are credited in the same transaction
- An optional event id makes a repeated submission a no-op
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Union
from zoneinfo import ZoneInfo
import logging

from progression.config import RESET_TIMEZONE
from progression.db.store import AccountTransaction, ProgressionStore
from progression.exceptions import ValidationError
from progression.gamification.achievement_system import AchievementEngine
from progression.gamification.streak_system import advance_streak
from progression.models.account import (
    Account,
    AwardCategory,
    AwardResult,
    PointsPeriod,
    PointsTransaction,
    StreakCategory,
    StreakResult,
    StreakState,
    TransactionKind,
)
from progression.models.achievement import AchievementId
from progression.monitoring import record_achievements, record_points, track_ledger_operation

logger = logging.getLogger(__name__)

LEVEL_UP_BONUS_PER_LEVEL = 100


@dataclass
class CreditOutcome:
    """What a single credit did to an account"""
    level_up_bonus: int = 0
    levels_reached: List[int] = field(default_factory=list)

    @property
    def unlocked(self) -> List[str]:
        return [AchievementId.for_level(level).value for level in self.levels_reached]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_category(category: Union[str, AwardCategory], enum_type=AwardCategory, field_name: str = "category"):
    """Coerce a raw category string into its enum or raise ValidationError"""
    try:
        return enum_type(category)
    except ValueError:
        raise ValidationError(
            message=f"Unknown {field_name} '{category}'. Expected one of: {[c.value for c in enum_type]}",
            field=field_name,
            value=category,
        )


class PointsLedger:
    """
    Per-user points, level, streak and achievement bookkeeping.

    Args:
        store: Persistence backend
        clock: Returns the current aware datetime (injectable for tests)
        tz_name: Timezone that defines "today" for award dates
    """

    def __init__(
        self,
        store: ProgressionStore,
        clock: Callable[[], datetime] = _utcnow,
        tz_name: str = RESET_TIMEZONE,
    ):
        self.store = store
        self.clock = clock
        self.tz = ZoneInfo(tz_name)
        self.achievements = AchievementEngine(self)

    def today(self) -> date:
        return self.clock().astimezone(self.tz).date()

    def transaction(self, user_id: str):
        """Serialized unit of work on one account"""
        return self.store.account_transaction(user_id)

    # ==========================================
    # Accounts
    # ==========================================

    async def initialize(self, user_id: str) -> Account:
        """Create the user's account with zeroed counters, or return the existing one"""
        if not user_id or not user_id.strip():
            raise ValidationError(message="User id must not be empty", field="user_id", value=user_id)

        now = self.clock()
        return await self.store.create_account(Account(user_id=user_id, created_at=now, updated_at=now))

    async def get_account(self, user_id: str) -> Optional[Account]:
        return await self.store.get_account(user_id)

    # ==========================================
    # Credits and debits (inside a transaction)
    # ==========================================

    def credit(
        self,
        txn: AccountTransaction,
        amount: int,
        kind: TransactionKind,
        reason: str,
        category: Optional[AwardCategory] = None,
        event_id: Optional[str] = None,
    ) -> CreditOutcome:
        """
        Add `amount` to total, weekly and monthly points and settle level-ups

        The level-up bonus is 100 points per level gained by `amount` alone.
        The bonus is credited on top and never earns a bonus of its own; every
        level between the old and the final level unlocks its `level_<N>`.
        """
        account = txn.account
        now = self.clock()
        outcome = CreditOutcome()

        old_level = account.level
        self._add_points(account, amount)
        txn.record_points(PointsTransaction(
            user_id=account.user_id,
            amount=amount,
            kind=kind,
            category=category,
            reason=reason,
            event_id=event_id,
            created_at=now,
        ))

        levels_gained = account.level - old_level
        if levels_gained > 0:
            bonus = LEVEL_UP_BONUS_PER_LEVEL * levels_gained
            self._add_points(account, bonus)
            outcome.level_up_bonus = bonus
            txn.record_points(PointsTransaction(
                user_id=account.user_id,
                amount=bonus,
                kind=TransactionKind.LEVEL_UP_BONUS,
                category=AwardCategory.ACHIEVEMENT,
                reason=f"Reached level {old_level + levels_gained}",
                created_at=now,
            ))
            logger.info(f"User {account.user_id} reached level {account.level} (+{bonus} level-up bonus)")

        for lvl in range(old_level + 1, account.level + 1):
            achievement_id = AchievementId.for_level(lvl).value
            if not account.has_achievement(achievement_id):
                account.achievements[achievement_id] = now
                outcome.levels_reached.append(lvl)

        account.updated_at = now
        return outcome

    def debit(self, txn: AccountTransaction, amount: int, reason: str) -> None:
        """Remove `amount` from total points; weekly and monthly counters are untouched"""
        account = txn.account
        if amount > account.total_points:
            raise ValidationError(
                message=f"Cannot debit {amount} points from a balance of {account.total_points}",
                field="amount",
                value=amount,
                user_id=account.user_id,
            )

        account.total_points -= amount
        account.updated_at = self.clock()
        txn.record_points(PointsTransaction(
            user_id=account.user_id,
            amount=-amount,
            kind=TransactionKind.REDEMPTION,
            reason=reason,
            created_at=account.updated_at,
        ))

    @staticmethod
    def _add_points(account: Account, amount: int) -> None:
        account.total_points += amount
        account.weekly_points += amount
        account.monthly_points += amount

    # ==========================================
    # Operations
    # ==========================================

    async def award_points(
        self,
        user_id: str,
        amount: int,
        reason: str,
        category: Union[str, AwardCategory],
        event_id: Optional[str] = None,
    ) -> AwardResult:
        """
        Award points for an activity

        Args:
            user_id: User identifier
            amount: Positive number of points
            reason: Human-readable description
            category: workout, diet, mental_health, social, consistency, achievement
            event_id: Optional idempotency key for the qualifying event

        Returns:
            AwardResult with points_awarded, level_up_bonus, new_level, total_points

        Raises:
            ValidationError: Non-positive amount or unknown category
            AccountNotInitializedError: No account for the user
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(
                message="Amount must be a positive integer",
                field="amount",
                value=amount,
                user_id=user_id,
                operation="award_points",
            )
        award_category = parse_category(category)

        with track_ledger_operation("award_points"):
            async with self.transaction(user_id) as txn:
                account = txn.account

                if event_id:
                    previous = await txn.find_event(event_id)
                    if previous is not None:
                        logger.info(f"Ignoring duplicate award event {event_id} for user {user_id}")
                        return AwardResult(
                            points_awarded=0,
                            level_up_bonus=0,
                            new_level=account.level,
                            total_points=account.total_points,
                            duplicate=True,
                        )

                account.activity_counts[award_category] = account.activity_count(award_category) + 1
                outcome = self.credit(
                    txn,
                    amount,
                    TransactionKind.AWARD,
                    reason,
                    category=award_category,
                    event_id=event_id,
                )
                account.last_award_date = self.today()

                unlocked = outcome.unlocked + self.achievements.grant_in_transaction(txn, award_category)

                result = AwardResult(
                    points_awarded=amount,
                    level_up_bonus=outcome.level_up_bonus,
                    new_level=account.level,
                    total_points=account.total_points,
                    achievements_unlocked=unlocked,
                )

        for entry in txn.new_points_transactions:
            record_points((entry.category or AwardCategory.ACHIEVEMENT).value, entry.amount)
        record_achievements(unlocked)
        logger.info(
            f"Awarded {amount} points to user {user_id} for {award_category.value} ({reason}). "
            f"Total: {result.total_points}, Level: {result.new_level}"
        )
        return result

    async def advance_streak(
        self,
        user_id: str,
        activity_date: date,
        category: Optional[Union[str, StreakCategory]] = None,
    ) -> StreakResult:
        """
        Count a day of qualifying activity towards the daily streak

        Calling it again for the same date is a no-op. With a category the
        matching sub-streak advances by the same rule.

        Raises:
            ValidationError: Unknown streak category
            AccountNotInitializedError: No account for the user
        """
        streak_category = parse_category(category, StreakCategory) if category is not None else None

        with track_ledger_operation("advance_streak"):
            async with self.transaction(user_id) as txn:
                account = txn.account

                overall, _ = advance_streak(
                    StreakState(
                        current_streak=account.current_streak,
                        longest_streak=account.longest_streak,
                        last_active_date=account.last_active_date,
                    ),
                    activity_date,
                )
                account.current_streak = overall.current_streak
                account.longest_streak = overall.longest_streak
                account.last_active_date = overall.last_active_date

                category_streak = None
                if streak_category is not None:
                    sub_state, _ = advance_streak(account.category_streaks.get(streak_category, StreakState()), activity_date)
                    account.category_streaks[streak_category] = sub_state
                    category_streak = sub_state.current_streak

                account.updated_at = self.clock()
                unlocked = self.achievements.grant_in_transaction(txn, AwardCategory.CONSISTENCY)

                result = StreakResult(
                    current_streak=account.current_streak,
                    longest_streak=account.longest_streak,
                    category=streak_category,
                    category_streak=category_streak,
                    achievements_unlocked=unlocked,
                )

        for entry in txn.new_points_transactions:
            record_points((entry.category or AwardCategory.ACHIEVEMENT).value, entry.amount)
        record_achievements(unlocked)
        logger.info(
            f"Streak for user {user_id} on {activity_date.isoformat()}: "
            f"{result.current_streak} days (best {result.longest_streak})"
        )
        return result

    async def reset_period(self, period: Union[str, PointsPeriod]) -> dict:
        """
        Zero weekly or monthly points for every account

        Best effort: a failure on one account is logged and does not stop
        the others.

        Returns:
            {'period': str, 'reset': int, 'failed': [user_id, ...]}
        """
        points_period = parse_category(period, PointsPeriod, field_name="period")
        field_name = "weekly_points" if points_period == PointsPeriod.WEEKLY else "monthly_points"

        reset_count = 0
        failed: List[str] = []

        for user_id in await self.store.list_user_ids():
            try:
                async with self.transaction(user_id) as txn:
                    setattr(txn.account, field_name, 0)
                    txn.account.updated_at = self.clock()
                reset_count += 1
            except Exception as e:
                failed.append(user_id)
                logger.error(f"Failed to reset {points_period.value} points for user {user_id}: {e}", exc_info=True)

        logger.info(f"Reset {points_period.value} points for {reset_count} accounts ({len(failed)} failed)")
        return {"period": points_period.value, "reset": reset_count, "failed": failed}
