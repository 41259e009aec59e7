"""
Leaderboard Data Models

Contains the leaderboard entry structure, its validation rules and the
errors raised by scoreboard implementations.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List

PLAYER_NAME_PATTERN = re.compile(r'[A-Za-z0-9 _.\-]+')
PLAYER_NAME_MAX_LENGTH = 20
MAX_SCORE = 1_000_000
MIN_ENTRY_LEVEL = 1
MAX_ENTRY_LEVEL = 50
LEADERBOARD_SIZE = 10


class ScoreboardUnavailableError(Exception):
    """The scoreboard could not be reached or failed to store/fetch entries."""


class LeaderboardValidationError(ValueError):
    """A submitted entry broke one or more field rules."""

    def __init__(self, errors: List[Dict[str, str]]):
        super().__init__("; ".join(f"{e.get('field')}: {e.get('message')}" for e in errors))
        self.errors = errors


@dataclass
class LeaderboardEntry:
    id: int
    player_name: str
    score: int
    level: int
    time_completed: int

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys)."""
        return {
            'id': self.id,
            'playerName': self.player_name,
            'score': self.score,
            'level': self.level,
            'timeCompleted': self.time_completed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LeaderboardEntry":
        return cls(
            id=int(data['id']),
            player_name=data['playerName'],
            score=int(data['score']),
            level=int(data['level']),
            time_completed=int(data['timeCompleted']),
        )


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_entry(data: Any) -> Dict[str, Any]:
    """
    Validate a leaderboard submission.

    Args:
        data: Decoded JSON body with playerName, score, level and timeCompleted

    Returns:
        dict: Cleaned entry fields (player name trimmed)

    Raises:
        LeaderboardValidationError: If any field is missing or out of range
    """
    if not isinstance(data, dict):
        raise LeaderboardValidationError([{'field': 'body', 'message': 'Expected a JSON object'}])

    errors = []

    player_name = data.get('playerName')
    if not isinstance(player_name, str) or not player_name:
        errors.append({'field': 'playerName', 'message': 'Player name is required'})
    elif len(player_name) > PLAYER_NAME_MAX_LENGTH:
        errors.append({'field': 'playerName', 'message': 'Player name must be 20 characters or less'})
    elif not PLAYER_NAME_PATTERN.fullmatch(player_name):
        errors.append({'field': 'playerName', 'message': 'Player name contains invalid characters'})

    score = data.get('score')
    if not _is_int(score) or not 0 <= score <= MAX_SCORE:
        errors.append({'field': 'score', 'message': f'Score must be an integer between 0 and {MAX_SCORE}'})

    level = data.get('level')
    if not _is_int(level) or not MIN_ENTRY_LEVEL <= level <= MAX_ENTRY_LEVEL:
        errors.append({'field': 'level', 'message': f'Level must be an integer between {MIN_ENTRY_LEVEL} and {MAX_ENTRY_LEVEL}'})

    time_completed = data.get('timeCompleted')
    if not _is_int(time_completed):
        errors.append({'field': 'timeCompleted', 'message': 'Time completed must be an integer'})

    if errors:
        raise LeaderboardValidationError(errors)

    player_name = player_name.strip()
    if not player_name:
        raise LeaderboardValidationError([{'field': 'playerName', 'message': 'Player name is required'}])

    return {
        'player_name': player_name,
        'score': score,
        'level': level,
        'time_completed': time_completed,
    }
