"""Reward catalog and redemption models"""
from enum import Enum
from typing import Optional
from datetime import datetime
from uuid import uuid4
from pydantic import BaseModel, Field

from progression.models.account import utcnow


class RewardType(str, Enum):
    """Kinds of redeemable rewards"""
    SUPPLEMENT_DISCOUNT = "supplement_discount"
    TRAINER_SESSION = "trainer_session"
    MEAL_VOUCHER = "meal_voucher"
    GYM_MERCHANDISE = "gym_merchandise"
    EVENT_ENTRY = "event_entry"


class Reward(BaseModel):
    """Redeemable catalog item"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(..., min_length=1)
    description: str = ""
    points_cost: int = Field(..., gt=0)
    reward_type: RewardType
    availability: int = Field(default=0, ge=0)  # informational only
    image_url: Optional[str] = None
    is_active: bool = True
    limit_per_user: Optional[int] = Field(default=None, ge=1)
    validity_days: Optional[int] = Field(default=None, ge=1)
    created_at: datetime = Field(default_factory=utcnow)


class AvailableReward(Reward):
    """Reward annotated for one user"""
    already_redeemed: bool = False


class Redemption(BaseModel):
    """A paid-for reward held by a user"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    reward_id: str
    redemption_code: str
    redeemed_at: datetime
    expires_at: Optional[datetime] = None
    used: bool = False

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def is_outstanding(self, now: datetime) -> bool:
        """Unused and not expired"""
        return not self.used and not self.is_expired(now)


class RedemptionResult(BaseModel):
    """Outcome of a successful redemption"""
    redemption_id: str
    redemption_code: str
    remaining_points: int
    expires_at: Optional[datetime] = None
    reward: Reward


# Catalog inserted by seed_standard_rewards()
STANDARD_REWARDS = [
    {
        "name": "Free Protein Shake",
        "description": "Redeem at partner gyms",
        "points_cost": 500,
        "reward_type": RewardType.SUPPLEMENT_DISCOUNT,
        "availability": 100,
    },
    {
        "name": "Free Personal Training Session",
        "description": "30-minute 1-on-1 session with a certified trainer",
        "points_cost": 1500,
        "reward_type": RewardType.TRAINER_SESSION,
        "availability": 20,
    },
    {
        "name": "₹200 Meal Voucher",
        "description": "Use on any partnered restaurant order",
        "points_cost": 800,
        "reward_type": RewardType.MEAL_VOUCHER,
        "availability": 50,
    },
    {
        "name": "Premium Gym Merchandise",
        "description": "Exclusive t-shirt or water bottle",
        "points_cost": 1000,
        "reward_type": RewardType.GYM_MERCHANDISE,
        "availability": 30,
    },
    {
        "name": "Sunday Meetup Priority Entry",
        "description": "Guaranteed spot in the next Sunday community meetup",
        "points_cost": 300,
        "reward_type": RewardType.EVENT_ENTRY,
        "availability": 40,
    },
]
