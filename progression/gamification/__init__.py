"""
Progression engine for the fitness tracker

This package implements the bookkeeping behind points and rewards:
- Level curve (points -> level 1..10)
- Daily streak tracking (overall and per activity domain)
- Points ledger (awards, level-up bonuses, period resets)
- Achievement system (idempotent unlocks with bonus points)
- Leaderboards (weekly, monthly, all-time)
- Reward store (catalog and redemptions)

Only the level curve is re-exported here. Import the ledger, achievement
engine, leaderboard and reward store from their own modules.
"""

from progression.gamification.level_curve import (
    level_of,
    points_for_level,
    points_to_next_level,
    level_progress,
)

__all__ = [
    "level_of",
    "points_for_level",
    "points_to_next_level",
    "level_progress",
]
