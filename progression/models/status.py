"""Composite read models"""
from typing import Optional
from pydantic import BaseModel, Field

from progression.models.account import Account
from progression.models.reward import Redemption


class AccountStatus(BaseModel):
    """Full account view with level progress and ranking"""
    account: Account
    points_to_next_level: int
    level_progress: float
    leaderboard_position: Optional[int] = None
    recent_redemptions: list[Redemption] = Field(default_factory=list)
