"""
Game Data Models

Contains all game-related data structures and enums.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union


class Color(Enum):
    """The two pad colors a pattern is built from."""
    GREEN = "green"
    RED = "red"

    @property
    def opposite(self) -> "Color":
        return Color.RED if self is Color.GREEN else Color.GREEN


class GameMode(Enum):
    LEVELS = "levels"
    CHALLENGE = "challenge"


class GamePhase(Enum):
    """Step within one attempt."""
    IDLE = "idle"
    SHOWING = "showing"
    WAITING = "waiting"
    PLAYING = "playing"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class LevelsRound:
    """Per-attempt state of a levels round."""
    pattern: List[Color]
    time_remaining: int
    user_input: List[Color] = field(default_factory=list)
    reveal_progress: int = 0

    @property
    def revealed_color(self) -> Optional[Color]:
        if 0 < self.reveal_progress <= len(self.pattern):
            return self.pattern[self.reveal_progress - 1]
        return None


@dataclass
class ChallengeRound:
    """Per-attempt state of a challenge run."""
    sequence: List[Color]
    current_index: int = 0
    start_time_ms: Optional[int] = None  # set once when rolling begins
    guess_seconds_left: int = 0
    advancing: bool = False

    def visible_window(self, size: int) -> List[Color]:
        return self.sequence[self.current_index + 1:self.current_index + 1 + size]


Round = Union[LevelsRound, ChallengeRound]


@dataclass
class Progression:
    """Durable progress mirrored to local storage."""
    current_level: int = 1
    unlocked_levels: int = 1
    current_score: int = 0
    level_codes: Dict[int, str] = field(default_factory=dict)
    player_name: str = ""


@dataclass
class LevelCompleteSummary:
    level: int
    secret_code: str
    earned_score: int
    time_bonus: int
    accuracy_bonus: int
    total_score: int


@dataclass
class GameOverSummary:
    mode: str
    final_score: int
    levels_completed: Optional[int] = None


@dataclass
class GameSnapshot:
    """Full state pushed to the presentation layer after every mutation."""
    mode: str
    phase: str
    current_level: int
    unlocked_levels: int
    current_score: int
    difficulty: str
    time_remaining: int
    player_name: str
    level_codes: Dict[int, str]
    # levels round
    pattern_length: int = 0
    reveal_progress: int = 0
    revealed_color: Optional[str] = None
    user_input: List[str] = field(default_factory=list)
    # challenge round
    sequence_length: int = 0
    initial_sequence: List[str] = field(default_factory=list)
    hidden_index: int = 0
    visible_window: List[str] = field(default_factory=list)
    guess_seconds_left: int = 0
    # modals and results
    instructions_open: bool = False
    level_complete: Optional[LevelCompleteSummary] = None
    game_over: Optional[GameOverSummary] = None
    # leaderboard and storage
    leaderboard: List[Dict] = field(default_factory=list)
    leaderboard_loading: bool = False
    leaderboard_error: Optional[str] = None
    score_submitting: bool = False
    storage_warning: Optional[str] = None
