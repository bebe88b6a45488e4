"""Pydantic models for API request/response validation"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import date, datetime

from progression.models.account import AwardCategory, StreakCategory
from progression.models.reward import RewardType


class AwardPointsRequest(BaseModel):
    """Request to credit points for a qualifying activity"""
    amount: int = Field(..., description="Points to credit (positive)")
    reason: str = Field(..., min_length=1, description="Human-readable reason")
    category: AwardCategory = Field(..., description="Activity category")
    event_id: Optional[str] = Field(
        default=None,
        description="Idempotency key of the qualifying event"
    )


class AdvanceStreakRequest(BaseModel):
    """Request to record a day of activity"""
    activity_date: date = Field(..., description="Calendar date of the activity")
    category: Optional[StreakCategory] = Field(
        default=None,
        description="Also advance this domain's sub-streak"
    )


class RedeemRequest(BaseModel):
    """Request to spend points on a reward"""
    reward_id: str = Field(..., description="Catalog reward id")


class CreateRewardRequest(BaseModel):
    """Request to add a reward to the catalog"""
    name: str
    description: str = ""
    points_cost: int
    reward_type: RewardType
    availability: int = 0
    image_url: Optional[str] = None
    is_active: bool = True
    limit_per_user: Optional[int] = None
    validity_days: Optional[int] = None


class UpdateRewardRequest(BaseModel):
    """Request to activate or retire a reward"""
    is_active: bool


class PeriodResetResponse(BaseModel):
    """Outcome of a weekly/monthly reset"""
    period: str
    reset: int
    failed: List[str] = Field(default_factory=list)


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    timestamp: datetime
    store: str
    scheduler: bool
