"""
Achievement System

Evaluates the achievement catalog against an account and grants newly
satisfied achievements:
- Activity counts (workouts, consumed meals, mental-health check-ins)
- Overall daily streak (7 and 30 days)
- Category sub-streaks (7 days of diet logging)
- Level milestones (granted by the ledger when a level is first reached)

Granting is idempotent: an achievement already present on the account is
skipped, and the unlock plus its bonus points are applied inside the same
account transaction, so neither can be observed without the other.
"""

from typing import TYPE_CHECKING, Dict, List, Union
import logging

from progression.db.store import AccountTransaction
from progression.models.account import Account, AwardCategory, TransactionKind
from progression.models.achievement import (
    ACHIEVEMENT_CATALOG,
    AchievementMetric,
    AchievementStatus,
    get_achievement,
)
from progression.monitoring import record_achievements, record_points

if TYPE_CHECKING:
    from progression.gamification.points_ledger import PointsLedger

logger = logging.getLogger(__name__)


class AchievementEngine:
    """Rule evaluation and idempotent grants, crediting bonuses through the ledger"""

    def __init__(self, ledger: "PointsLedger"):
        self.ledger = ledger

    def grant_in_transaction(self, txn: AccountTransaction, category: AwardCategory) -> List[str]:
        """
        Grant every achievement whose rule applies to `category` and is now satisfied

        Must be called inside an open account transaction.

        Returns:
            Newly unlocked achievement ids, including level milestones reached
            through achievement bonuses
        """
        account = txn.account
        newly_unlocked: List[str] = []

        for achievement in ACHIEVEMENT_CATALOG.values():
            achievement_id = achievement.id.value

            if not achievement.applies_to(category):
                continue
            if account.has_achievement(achievement_id):
                continue
            if not achievement.rule.is_satisfied(account):
                continue

            account.achievements[achievement_id] = self.ledger.clock()
            newly_unlocked.append(achievement_id)

            if achievement.bonus_points > 0:
                outcome = self.ledger.credit(
                    txn,
                    achievement.bonus_points,
                    TransactionKind.ACHIEVEMENT_BONUS,
                    f"Achievement unlocked: {achievement.name}",
                    category=AwardCategory.ACHIEVEMENT,
                )
                newly_unlocked.extend(outcome.unlocked)

            logger.info(
                f"User {account.user_id} unlocked achievement: {achievement_id} "
                f"({achievement.name}) +{achievement.bonus_points} points"
            )

        return newly_unlocked

    async def evaluate_and_grant(self, user_id: str, category: Union[str, AwardCategory]) -> List[str]:
        """
        Re-evaluate achievements for a user outside of an award

        Safe to call any number of times; already held achievements are
        never granted twice.

        Raises:
            ValidationError: Unknown category
            AccountNotInitializedError: No account for the user
        """
        from progression.gamification.points_ledger import parse_category

        award_category = parse_category(category)

        async with self.ledger.transaction(user_id) as txn:
            unlocked = self.grant_in_transaction(txn, award_category)

        for entry in txn.new_points_transactions:
            record_points(AwardCategory.ACHIEVEMENT.value, entry.amount)
        record_achievements(unlocked)
        return unlocked


def get_achievement_statuses(account: Account) -> List[AchievementStatus]:
    """
    Whole catalog annotated with unlock state and progress for one account

    Unlocked achievements come first (most recent first), then locked ones
    ordered by how close they are to completion.
    """
    statuses = []
    for achievement in ACHIEVEMENT_CATALOG.values():
        achievement_id = achievement.id.value
        target = achievement.rule.threshold
        progress = min(achievement.rule.current_value(account), target)

        statuses.append(AchievementStatus(
            achievement=achievement,
            unlocked=account.has_achievement(achievement_id),
            unlocked_at=account.achievements.get(achievement_id),
            progress=progress,
            target=target,
        ))

    unlocked = [s for s in statuses if s.unlocked]
    locked = [s for s in statuses if not s.unlocked]
    unlocked.sort(key=lambda s: s.unlocked_at, reverse=True)
    locked.sort(key=lambda s: s.progress / s.target if s.target else 0, reverse=True)
    return unlocked + locked


def summarize_achievements(account: Account) -> Dict[str, any]:
    """
    Achievement totals for display

    Returns:
        {
            'total_unlocked': int,
            'total_achievements': int,
            'total_points_from_achievements': int,
            'by_tier': {'gold': int, 'silver': int, 'bronze': int}
        }
    """
    by_tier = {"gold": 0, "silver": 0, "bronze": 0}
    total_points = 0

    for achievement_id in account.achievements:
        try:
            achievement = get_achievement(achievement_id)
        except ValueError:
            logger.warning(f"Account {account.user_id} holds unknown achievement {achievement_id}")
            continue
        by_tier[achievement.tier.value] += 1
        if achievement.rule.metric != AchievementMetric.LEVEL:
            total_points += achievement.bonus_points

    return {
        "total_unlocked": len(account.achievements),
        "total_achievements": len(ACHIEVEMENT_CATALOG),
        "total_points_from_achievements": total_points,
        "by_tier": by_tier,
    }
