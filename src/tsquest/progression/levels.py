"""XP thresholds and level computation.

These values MUST match XP_THRESHOLDS in the client progress bar.
"""

from __future__ import annotations

# Index i => level i + 1
XP_THRESHOLDS: list[int] = [0, 200, 500, 800]

MAX_LEVEL = len(XP_THRESHOLDS)


def level_for(total_xp: int) -> int:
    """Return the highest level whose threshold is <= total_xp.

    Anything below the level-2 threshold (negative XP included) is level 1.
    """
    level = 1
    for i, threshold in enumerate(XP_THRESHOLDS):
        if total_xp >= threshold:
            level = i + 1
    return level


def next_level_threshold(current_level: int) -> int:
    """XP needed for the level after ``current_level``.

    Clamped to the final threshold at max level. Display only, never used for gating.
    """
    index = max(current_level, 1)
    if index >= MAX_LEVEL:
        return XP_THRESHOLDS[-1]
    return XP_THRESHOLDS[index]


def level_progress(total_xp: int) -> dict:
    """Progress-bar summary for a given XP total."""
    level = level_for(total_xp)
    floor = XP_THRESHOLDS[level - 1]
    ceiling = next_level_threshold(level)
    is_max = level >= MAX_LEVEL

    xp_for_level = ceiling - floor
    # At max level, avoid division by zero on the client
    if xp_for_level <= 0:
        xp_for_level = 1

    return {
        "level": level,
        "xp_into_level": max(total_xp - floor, 0),
        "xp_for_level": xp_for_level,
        "next_level_xp": ceiling,
        "is_max_level": is_max,
    }
