"""Progression account models"""
from enum import Enum
from typing import Optional
from datetime import date, datetime, timezone
from uuid import uuid4
from pydantic import BaseModel, Field, computed_field

from progression.gamification.level_curve import level_of


class AwardCategory(str, Enum):
    """Activity categories that can award points"""
    WORKOUT = "workout"
    DIET = "diet"
    MENTAL_HEALTH = "mental_health"
    SOCIAL = "social"
    CONSISTENCY = "consistency"
    ACHIEVEMENT = "achievement"


class StreakCategory(str, Enum):
    """Activity domains that keep their own daily sub-streak"""
    WORKOUT = "workout"
    DIET = "diet"
    MENTAL_HEALTH = "mental_health"


class PointsPeriod(str, Enum):
    """Periodic point counters that are reset on a schedule"""
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class LeaderboardPeriod(str, Enum):
    """Leaderboard ranking windows"""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StreakState(BaseModel):
    """Daily streak counter"""
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_active_date: Optional[date] = None


def _default_category_streaks() -> dict[StreakCategory, StreakState]:
    return {category: StreakState() for category in StreakCategory}


class Account(BaseModel):
    """
    Per-user progression record.

    `level` is derived from `total_points` and cannot drift from it.
    `achievements` maps achievement id to first-unlock timestamp.
    """
    user_id: str
    total_points: int = Field(default=0, ge=0)
    weekly_points: int = Field(default=0, ge=0)
    monthly_points: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_active_date: Optional[date] = None
    last_award_date: Optional[date] = None
    achievements: dict[str, datetime] = Field(default_factory=dict)
    category_streaks: dict[StreakCategory, StreakState] = Field(default_factory=_default_category_streaks)
    activity_counts: dict[AwardCategory, int] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def level(self) -> int:
        return level_of(self.total_points)

    @property
    def last_workout_date(self) -> Optional[date]:
        return self.category_streaks[StreakCategory.WORKOUT].last_active_date

    @property
    def display_name(self) -> str:
        return f"User{self.user_id[-4:]}"

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self.achievements

    def activity_count(self, category: AwardCategory) -> int:
        return self.activity_counts.get(category, 0)


class TransactionKind(str, Enum):
    """What produced a points-log entry"""
    AWARD = "award"
    LEVEL_UP_BONUS = "level_up_bonus"
    ACHIEVEMENT_BONUS = "achievement_bonus"
    REDEMPTION = "redemption"


class PointsTransaction(BaseModel):
    """Single entry in the points log (negative amounts are debits)"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    amount: int
    kind: TransactionKind
    category: Optional[AwardCategory] = None
    reason: str
    event_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class AwardResult(BaseModel):
    """Breakdown returned by an award"""
    points_awarded: int
    level_up_bonus: int
    new_level: int
    total_points: int
    achievements_unlocked: list[str] = Field(default_factory=list)
    duplicate: bool = False


class StreakResult(BaseModel):
    """Streak counters after an advance"""
    current_streak: int
    longest_streak: int
    category: Optional[StreakCategory] = None
    category_streak: Optional[int] = None
    achievements_unlocked: list[str] = Field(default_factory=list)


class LeaderboardEntry(BaseModel):
    """One ranked row"""
    rank: int
    user_id: str
    display_name: str
    points: int
    level: int
    current_streak: int
    achievement_count: int
