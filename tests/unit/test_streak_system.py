"""Unit tests for Streak System (progression/gamification/streak_system.py)"""
from datetime import date, timedelta

from progression.gamification.streak_system import (
    StreakTransition,
    advance_streak,
    format_streak_message,
)
from progression.models.account import StreakState


# ============================================================================
# Streak Transition Tests
# ============================================================================

def test_first_activity_starts_streak():
    """First activity creates streak of 1"""
    state, transition = advance_streak(StreakState(), date(2024, 1, 1))

    assert transition == StreakTransition.STARTED
    assert state.current_streak == 1
    assert state.longest_streak == 1
    assert state.last_active_date == date(2024, 1, 1)


def test_consecutive_day_continues_streak():
    """Consecutive day activity increments streak"""
    before = StreakState(current_streak=5, longest_streak=10, last_active_date=date(2024, 1, 1))

    state, transition = advance_streak(before, date(2024, 1, 2))

    assert transition == StreakTransition.CONTINUED
    assert state.current_streak == 6
    assert state.longest_streak == 10  # Unchanged


def test_longest_streak_follows_current():
    before = StreakState(current_streak=10, longest_streak=10, last_active_date=date(2024, 1, 1))

    state, _ = advance_streak(before, date(2024, 1, 2))

    assert state.longest_streak == 11


def test_same_day_is_a_no_op():
    """Activity on the same day doesn't increment the streak again"""
    before = StreakState(current_streak=3, longest_streak=5, last_active_date=date(2024, 1, 1))

    once, _ = advance_streak(before, date(2024, 1, 2))
    twice, transition = advance_streak(once, date(2024, 1, 2))

    assert transition == StreakTransition.UNCHANGED
    assert twice == once


def test_gap_resets_streak():
    before = StreakState(current_streak=1, longest_streak=1, last_active_date=date(2024, 1, 1))

    state, transition = advance_streak(before, date(2024, 1, 1) + timedelta(days=3))

    assert transition == StreakTransition.STARTED
    assert state.current_streak == 1
    assert state.longest_streak == 1


def test_broken_streak_keeps_longest():
    before = StreakState(current_streak=12, longest_streak=12, last_active_date=date(2024, 1, 1))

    state, _ = advance_streak(before, date(2024, 1, 5))

    assert state.current_streak == 1
    assert state.longest_streak == 12


def test_earlier_date_is_ignored():
    """A late-arriving activity for a past day never breaks the streak"""
    before = StreakState(current_streak=4, longest_streak=4, last_active_date=date(2024, 1, 10))

    state, transition = advance_streak(before, date(2024, 1, 8))

    assert transition == StreakTransition.UNCHANGED
    assert state.current_streak == 4
    assert state.last_active_date == date(2024, 1, 10)


def test_input_state_is_not_modified():
    before = StreakState(current_streak=2, longest_streak=2, last_active_date=date(2024, 1, 1))

    advance_streak(before, date(2024, 1, 2))

    assert before.current_streak == 2


# ============================================================================
# Messages
# ============================================================================

def test_format_streak_message():
    state = StreakState(current_streak=4, longest_streak=4, last_active_date=date(2024, 1, 4))

    assert "Day 4" in format_streak_message(state, StreakTransition.CONTINUED)
    assert "Already counted" in format_streak_message(state, StreakTransition.UNCHANGED)
    assert "Day 1" in format_streak_message(state, StreakTransition.STARTED)
