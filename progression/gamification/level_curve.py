"""
Level Curve

Maps cumulative points to a level between 1 and 10.

Thresholds (minimum cumulative points):
- Level 1: 0
- Level 2: 500
- Level 3: 1,500
- Level 4: 3,000
- Level 5: 5,000
- Level 6: 8,000
- Level 7: 12,000
- Level 8: 17,000
- Level 9: 23,000
- Level 10: 30,000 (cap)

All functions are pure.
"""

from bisect import bisect_right
from typing import Dict

LEVEL_THRESHOLDS = (0, 500, 1500, 3000, 5000, 8000, 12000, 17000, 23000, 30000)
MIN_LEVEL = 1
MAX_LEVEL = len(LEVEL_THRESHOLDS)


def level_of(total_points: int) -> int:
    """Level reached with `total_points` cumulative points"""
    if total_points < 0:
        return MIN_LEVEL
    return bisect_right(LEVEL_THRESHOLDS, total_points)


def points_for_level(level: int) -> int:
    """
    Minimum cumulative points required for `level`

    Levels below 1 map to 0, levels above the cap map to the cap threshold.
    """
    if level <= MIN_LEVEL:
        return 0
    if level >= MAX_LEVEL:
        return LEVEL_THRESHOLDS[-1]
    return LEVEL_THRESHOLDS[level - 1]


def points_to_next_level(total_points: int) -> int:
    """Points still missing to reach the next level (0 at the cap)"""
    level = level_of(total_points)
    if level >= MAX_LEVEL:
        return 0
    return points_for_level(level + 1) - total_points


def level_progress(total_points: int, level: int) -> float:
    """
    Percentage of the way from `level` to the next level, clamped to [0, 100]

    At the cap there is no next level and progress is reported as 100.
    """
    current_floor = points_for_level(level)
    next_floor = points_for_level(level + 1)
    span = next_floor - current_floor

    if span <= 0:
        return 100.0

    progress = (total_points - current_floor) / span * 100
    return min(100.0, max(0.0, progress))


def calculate_level_info(total_points: int) -> Dict[str, any]:
    """
    Full level breakdown for display

    Returns:
        {
            'level': int,
            'points_for_level': int,
            'points_for_next_level': int,
            'points_to_next_level': int,
            'level_progress': float
        }
    """
    level = level_of(total_points)
    return {
        "level": level,
        "points_for_level": points_for_level(level),
        "points_for_next_level": points_for_level(level + 1),
        "points_to_next_level": points_to_next_level(total_points),
        "level_progress": level_progress(total_points, level),
    }
