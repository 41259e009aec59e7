"""
Game Configuration Constants Module

This module defines all game rule constants for both game modes.
All timing, scoring and progression parameters are centralized here to
enable easy balancing.
"""

from typing import Dict, Final

# Progression
MAX_LEVEL: Final[int] = 50
"""
Highest playable level. Matches the level range accepted by the leaderboard.
"""

BASE_PATTERN_LENGTH: Final[int] = 3
"""Levels pattern length is BASE_PATTERN_LENGTH + current level."""

MAX_RUN_LENGTH: Final[int] = 3
"""Longest allowed run of identical consecutive colors."""

# Levels mode timing (seconds)
REVEAL_STEP_SECONDS: Final[float] = 0.8
WAIT_BEFORE_INPUT_SECONDS: Final[float] = 2.0
LEVEL_BASE_TIME: Final[int] = 30
LEVEL_TIME_PER_LEVEL: Final[int] = 3

# Levels mode scoring
POINTS_PER_COLOR: Final[int] = 10
MIN_TIME_MULTIPLIER: Final[float] = 0.5
TIME_MULTIPLIER_BASE: Final[int] = 30
TIME_BONUS_PER_SECOND: Final[int] = 5
ACCURACY_BONUS: Final[int] = 100

# Challenge mode ("speed rush")
CHALLENGE_INITIAL_LENGTH: Final[int] = 5
CHALLENGE_GROWTH: Final[int] = 2
CHALLENGE_VISIBLE_WINDOW: Final[int] = 4
CHALLENGE_PREVIEW_SECONDS: Final[float] = 2.0
CHALLENGE_ADVANCE_PAUSE_SECONDS: Final[float] = 0.5
CHALLENGE_MAX_GUESS_SECONDS: Final[int] = 5
CHALLENGE_MIN_GUESS_SECONDS: Final[int] = 1
SPEED_RUSH_STEP_SECONDS: Final[int] = 100
CHALLENGE_DEADLINE_BUFFER_SECONDS: Final[float] = 0.1

# Secret level codes
SECRET_CODE_LENGTH: Final[int] = 4

LEVEL_CODES: Final[Dict[int, str]] = {
    1: "MEMO", 2: "PTRN", 3: "RCLL", 4: "FLSH", 5: "SEQN",
    6: "BLNK", 7: "GLOW", 8: "SHFT", 9: "ECHO", 10: "PULS",
    11: "TRCE", 12: "SPRK", 13: "CHRM", 14: "DRFT", 15: "LOOP",
    16: "FOCS", 17: "MIND", 18: "RUSH", 19: "APEX", 20: "ZNTH",
}
"""
Fixed unlock codes for the first 20 levels. Later levels use a code
synthesized from the level number (see level_code).
"""

# Difficulty bands: (highest level in band, label)
DIFFICULTY_BANDS: Final = ((5, "Easy"), (10, "Medium"), (15, "Hard"))
TOP_DIFFICULTY: Final[str] = "Expert"


def level_code(level: int) -> str:
    """
    Return the deterministic secret code for a level.

    Levels in LEVEL_CODES use the fixed table; any other level gets
    "L" followed by the zero-padded level number (e.g. "L021").
    """
    if level in LEVEL_CODES:
        return LEVEL_CODES[level]
    return f"L{level:03d}"


def level_for_code(code: str):
    """Return the level unlocked by a normalized code, or None."""
    for level in range(1, MAX_LEVEL + 1):
        if level_code(level) == code:
            return level
    return None


def difficulty_label(level: int) -> str:
    """Human-readable difficulty for a level."""
    for upper, label in DIFFICULTY_BANDS:
        if level <= upper:
            return label
    return TOP_DIFFICULTY


def pattern_length_for_level(level: int) -> int:
    return BASE_PATTERN_LENGTH + level


def time_budget_for_level(level: int) -> int:
    return LEVEL_BASE_TIME + level * LEVEL_TIME_PER_LEVEL


def validate_level_code_table() -> bool:
    """
    Validates the secret code table.

    Every playable level must map to a unique code of SECRET_CODE_LENGTH
    uppercase alphanumeric characters.

    Raises:
        ValueError: If any code is malformed or duplicated
    """
    codes = [level_code(level) for level in range(1, MAX_LEVEL + 1)]

    for level, code in enumerate(codes, start=1):
        if len(code) != SECRET_CODE_LENGTH:
            raise ValueError(f"Code for level {level} '{code}' is not {SECRET_CODE_LENGTH} characters long")
        if not code.isalnum() or code != code.upper():
            raise ValueError(f"Code for level {level} '{code}' must be uppercase alphanumeric")

    if len(codes) != len(set(codes)):
        duplicates = sorted({code for code in codes if codes.count(code) > 1})
        raise ValueError(f"Duplicate level codes found: {duplicates}")

    return True


if __name__ == "__main__":

    try:
        validate_level_code_table()
        print(" Level code table validation passed")
    except ValueError as config_error:
        print(f" Configuration validation failed: {config_error}")
        exit(1)
