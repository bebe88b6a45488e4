"""Achievement models and catalog for gamification"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from progression.models.account import Account, AwardCategory, StreakCategory


class AchievementId(str, Enum):
    """Every achievement the engine can grant"""
    FIRST_WORKOUT = "first_workout"
    FIRST_10_WORKOUTS = "first_10_workouts"
    WORKOUT_WARRIOR = "workout_warrior"
    CENTURY_CLUB = "century_club"
    NUTRITION_TRACKER = "nutrition_tracker"
    DIET_TRACKER = "diet_tracker"
    MINDFUL_MONTH = "mindful_month"
    WEEK_STREAK = "week_streak"
    MONTH_STREAK = "month_streak"
    LEVEL_2 = "level_2"
    LEVEL_3 = "level_3"
    LEVEL_4 = "level_4"
    LEVEL_5 = "level_5"
    LEVEL_6 = "level_6"
    LEVEL_7 = "level_7"
    LEVEL_8 = "level_8"
    LEVEL_9 = "level_9"
    LEVEL_10 = "level_10"

    @classmethod
    def for_level(cls, level: int) -> "AchievementId":
        return cls(f"level_{level}")


class AchievementCategory(str, Enum):
    """Achievement categories"""
    FITNESS = "fitness"
    DIET = "diet"
    MENTAL_HEALTH = "mental_health"
    CONSISTENCY = "consistency"
    MILESTONES = "milestones"


class AchievementTier(str, Enum):
    """Achievement tiers, gold being the rarest"""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class AchievementMetric(str, Enum):
    """What an achievement rule measures"""
    ACTIVITY_COUNT = "activity_count"
    STREAK = "streak"
    CATEGORY_STREAK = "category_streak"
    LEVEL = "level"


class AchievementRule(BaseModel):
    """Threshold predicate over an account"""
    model_config = ConfigDict(frozen=True)

    metric: AchievementMetric
    threshold: int
    award_category: Optional[AwardCategory] = None
    streak_category: Optional[StreakCategory] = None

    def current_value(self, account: Account) -> int:
        if self.metric == AchievementMetric.ACTIVITY_COUNT:
            return account.activity_count(self.award_category)
        if self.metric == AchievementMetric.STREAK:
            return account.current_streak
        if self.metric == AchievementMetric.CATEGORY_STREAK:
            return account.category_streaks[self.streak_category].current_streak
        return account.level

    def is_satisfied(self, account: Account) -> bool:
        return self.current_value(account) >= self.threshold


class Achievement(BaseModel):
    """Achievement definition"""
    model_config = ConfigDict(frozen=True)

    id: AchievementId
    name: str
    description: str
    icon: str
    category: AchievementCategory
    tier: AchievementTier
    bonus_points: int
    rule: AchievementRule

    def applies_to(self, category: AwardCategory) -> bool:
        """
        Whether an activity in `category` can move this achievement's rule.

        Count rules only move with their own category; streak rules are
        checked on every evaluation; level rules are granted by the ledger.
        """
        if self.rule.metric == AchievementMetric.ACTIVITY_COUNT:
            return self.rule.award_category == category
        return self.rule.metric != AchievementMetric.LEVEL


class UserAchievement(BaseModel):
    """User's unlocked achievement"""
    user_id: str
    achievement_id: AchievementId
    unlocked_at: datetime


class AchievementStatus(BaseModel):
    """Catalog entry annotated for one user"""
    achievement: Achievement
    unlocked: bool
    unlocked_at: Optional[datetime] = None
    progress: int
    target: int


def _count_rule(category: AwardCategory, threshold: int) -> AchievementRule:
    return AchievementRule(metric=AchievementMetric.ACTIVITY_COUNT, threshold=threshold, award_category=category)


def _level_tier(level: int) -> AchievementTier:
    if level >= 8:
        return AchievementTier.GOLD
    if level >= 5:
        return AchievementTier.SILVER
    return AchievementTier.BRONZE


_CATALOG_ENTRIES = [
    Achievement(
        id=AchievementId.FIRST_WORKOUT,
        name="First Workout",
        description="Complete your first workout session",
        icon="🏋️",
        category=AchievementCategory.FITNESS,
        tier=AchievementTier.BRONZE,
        bonus_points=0,
        rule=_count_rule(AwardCategory.WORKOUT, 1),
    ),
    Achievement(
        id=AchievementId.FIRST_10_WORKOUTS,
        name="Getting Serious",
        description="Complete 10 workouts",
        icon="💪",
        category=AchievementCategory.FITNESS,
        tier=AchievementTier.SILVER,
        bonus_points=50,
        rule=_count_rule(AwardCategory.WORKOUT, 10),
    ),
    Achievement(
        id=AchievementId.WORKOUT_WARRIOR,
        name="Workout Warrior",
        description="Complete 50 workouts",
        icon="⚔️",
        category=AchievementCategory.FITNESS,
        tier=AchievementTier.GOLD,
        bonus_points=50,
        rule=_count_rule(AwardCategory.WORKOUT, 50),
    ),
    Achievement(
        id=AchievementId.CENTURY_CLUB,
        name="Century Club",
        description="Complete 100 workout sessions",
        icon="💯",
        category=AchievementCategory.FITNESS,
        tier=AchievementTier.GOLD,
        bonus_points=500,
        rule=_count_rule(AwardCategory.WORKOUT, 100),
    ),
    Achievement(
        id=AchievementId.NUTRITION_TRACKER,
        name="Nutrition Tracker",
        description="Log 50 consumed meals",
        icon="🥗",
        category=AchievementCategory.DIET,
        tier=AchievementTier.SILVER,
        bonus_points=50,
        rule=_count_rule(AwardCategory.DIET, 50),
    ),
    Achievement(
        id=AchievementId.DIET_TRACKER,
        name="Diet Tracker",
        description="Log meals for 7 consecutive days",
        icon="🍎",
        category=AchievementCategory.DIET,
        tier=AchievementTier.BRONZE,
        bonus_points=30,
        rule=AchievementRule(
            metric=AchievementMetric.CATEGORY_STREAK,
            threshold=7,
            streak_category=StreakCategory.DIET,
        ),
    ),
    Achievement(
        id=AchievementId.MINDFUL_MONTH,
        name="Mindful Month",
        description="Complete 30 mental health check-ins",
        icon="🧘",
        category=AchievementCategory.MENTAL_HEALTH,
        tier=AchievementTier.SILVER,
        bonus_points=50,
        rule=_count_rule(AwardCategory.MENTAL_HEALTH, 30),
    ),
    Achievement(
        id=AchievementId.WEEK_STREAK,
        name="Week Warrior",
        description="Stay active 7 days in a row",
        icon="🔥",
        category=AchievementCategory.CONSISTENCY,
        tier=AchievementTier.SILVER,
        bonus_points=50,
        rule=AchievementRule(metric=AchievementMetric.STREAK, threshold=7),
    ),
    Achievement(
        id=AchievementId.MONTH_STREAK,
        name="Monthly Master",
        description="Stay active 30 days in a row",
        icon="🏆",
        category=AchievementCategory.CONSISTENCY,
        tier=AchievementTier.GOLD,
        bonus_points=200,
        rule=AchievementRule(metric=AchievementMetric.STREAK, threshold=30),
    ),
] + [
    Achievement(
        id=AchievementId.for_level(level),
        name=f"Level {level}",
        description=f"Reached Level {level}!",
        icon="⭐",
        category=AchievementCategory.MILESTONES,
        tier=_level_tier(level),
        # The level-up bonus already pays for reaching a level
        bonus_points=0,
        rule=AchievementRule(metric=AchievementMetric.LEVEL, threshold=level),
    )
    for level in range(2, 11)
]

ACHIEVEMENT_CATALOG: dict[AchievementId, Achievement] = {entry.id: entry for entry in _CATALOG_ENTRIES}

# Every enum member must have a catalog entry
_missing = set(AchievementId) - set(ACHIEVEMENT_CATALOG)
if _missing:
    raise RuntimeError(f"Achievement catalog is missing entries: {sorted(m.value for m in _missing)}")


def get_achievement(achievement_id: str) -> Achievement:
    """
    Look up a catalog entry

    Raises:
        ValueError: If the id is not a known achievement
    """
    return ACHIEVEMENT_CATALOG[AchievementId(achievement_id)]
