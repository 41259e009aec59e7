"""
Services Package

Contains all business logic and service classes.
"""

from .game_service import GameService, GameStateMachine, get_game_service
from .leaderboard_service import LeaderboardService, get_leaderboard_service
from .scoreboard_client import ScoreboardClient

__all__ = [
    'GameService', 'GameStateMachine', 'get_game_service',
    'LeaderboardService', 'get_leaderboard_service',
    'ScoreboardClient'
]
