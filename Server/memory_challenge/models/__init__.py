"""
Data Models Package

Contains all data models and schemas used throughout the application.
"""

from .game import (
    Color, GameMode, GamePhase, LevelsRound, ChallengeRound, Progression,
    LevelCompleteSummary, GameOverSummary, GameSnapshot
)
from .leaderboard import (
    LeaderboardEntry, LeaderboardValidationError, ScoreboardUnavailableError, validate_entry
)

__all__ = [
    'Color', 'GameMode', 'GamePhase', 'LevelsRound', 'ChallengeRound', 'Progression',
    'LevelCompleteSummary', 'GameOverSummary', 'GameSnapshot',
    'LeaderboardEntry', 'LeaderboardValidationError', 'ScoreboardUnavailableError', 'validate_entry'
]
