"""
Daily Streak Tracking

Decides how a day's qualifying activity moves a streak counter:
- same calendar day as the last activity: no change (already counted)
- exactly one day after: streak continues (+1), best streak follows
- any larger gap, or no previous activity: streak restarts at 1

The same rule drives the overall streak and the workout / diet /
mental-health sub-streaks. Dates earlier than the last activity date are
treated as already counted, so late deliveries never break a streak.
"""

from enum import Enum
from typing import Tuple
from datetime import date, timedelta
import logging

from progression.models.account import StreakState

logger = logging.getLogger(__name__)


class StreakTransition(str, Enum):
    UNCHANGED = "unchanged"
    CONTINUED = "continued"
    STARTED = "started"


def advance_streak(state: StreakState, activity_date: date) -> Tuple[StreakState, StreakTransition]:
    """
    Apply one day's activity to a streak

    Args:
        state: Streak before the activity
        activity_date: Calendar date of the activity

    Returns:
        (new_state, transition); `state` itself is not modified
    """
    last_date = state.last_active_date

    if last_date is not None and activity_date <= last_date:
        return state.model_copy(), StreakTransition.UNCHANGED

    if last_date is not None and activity_date - last_date == timedelta(days=1):
        current = state.current_streak + 1
        transition = StreakTransition.CONTINUED
    else:
        current = 1
        transition = StreakTransition.STARTED
        if last_date is not None and state.current_streak > 0:
            logger.debug(
                f"Streak broken after {state.current_streak} days, "
                f"gap was {(activity_date - last_date).days} days"
            )

    new_state = StreakState(
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_active_date=activity_date,
    )
    return new_state, transition


def format_streak_message(state: StreakState, transition: StreakTransition) -> str:
    """Short user-facing description of a streak update"""
    if transition == StreakTransition.UNCHANGED:
        return f"Already counted today. Streak: {state.current_streak} days 🔥"
    if transition == StreakTransition.CONTINUED:
        return f"Streak continues! Day {state.current_streak} 🔥"
    return "Streak started! Day 1 🎉"
