"""
Game Service

Contains the game state machine for the levels and challenge modes, and the
registry of live game sessions (one per socket connection).
"""

import math
import random
import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from ..config.game_settings import (
    ACCURACY_BONUS, CHALLENGE_ADVANCE_PAUSE_SECONDS, CHALLENGE_DEADLINE_BUFFER_SECONDS,
    CHALLENGE_GROWTH, CHALLENGE_INITIAL_LENGTH, CHALLENGE_PREVIEW_SECONDS,
    CHALLENGE_VISIBLE_WINDOW, MAX_LEVEL, MIN_TIME_MULTIPLIER, POINTS_PER_COLOR,
    REVEAL_STEP_SECONDS, SECRET_CODE_LENGTH, TIME_BONUS_PER_SECOND, TIME_MULTIPLIER_BASE,
    WAIT_BEFORE_INPUT_SECONDS, difficulty_label, level_code, level_for_code,
    pattern_length_for_level, time_budget_for_level
)
from ..models.game import (
    ChallengeRound, Color, GameMode, GameOverSummary, GamePhase, GameSnapshot,
    LevelCompleteSummary, LevelsRound, Progression, Round
)
from ..models.leaderboard import (
    MAX_ENTRY_LEVEL, MIN_ENTRY_LEVEL, PLAYER_NAME_MAX_LENGTH, PLAYER_NAME_PATTERN,
    LeaderboardValidationError, ScoreboardUnavailableError
)
from ..utils.game_logger import game_logger
from .pattern_generator import generate_sequence
from .progress_store import ProgressStore, storage_for_profile
from .timing import Scheduler, ThreadingScheduler, TimerSlot, TimerSlots, guess_time_budget

Listener = Callable[[str, Dict[str, Any]], None]

IN_FLIGHT_PHASES = (GamePhase.SHOWING, GamePhase.WAITING, GamePhase.PLAYING)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class GameStateMachine:
    """
    Phase/model core of one player's game.

    Inputs are the public methods (mode selection, start, color clicks,
    codes, level selection, restart, next level, instructions). Timer
    callbacks drive the reveal, countdown and challenge guess deadlines.
    After every mutation the listener receives a 'game_state' event with a
    full snapshot; level completion, game over and storage problems raise
    their own events as well.

    Not thread-safe by itself: callers serialize access (see GameSession).
    """

    def __init__(self,
                 scheduler: Scheduler,
                 progress_store: Optional[ProgressStore] = None,
                 scoreboard=None,
                 rng: Optional[random.Random] = None,
                 listener: Optional[Listener] = None,
                 session_id: Optional[str] = None):
        self.scheduler = scheduler
        self.timers = TimerSlots(scheduler)
        self.progress_store = progress_store
        self.scoreboard = scoreboard
        self.rng = rng or random.Random()
        self.listener = listener
        self.session_id = session_id

        self.mode = GameMode.LEVELS
        self.phase = GamePhase.IDLE
        self.round: Optional[Round] = None

        self.instructions_open = False
        self.level_complete: Optional[LevelCompleteSummary] = None
        self.game_over: Optional[GameOverSummary] = None

        self.leaderboard = []
        self.leaderboard_loading = False
        self.leaderboard_error: Optional[str] = None
        self.score_submitting = False
        self.storage_warning: Optional[str] = None
        self._torn_down = False

        self.progress = Progression()
        if progress_store is not None:
            self.progress, self.storage_warning = progress_store.load()
        self._saved_state = self._durable_state()

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def select_mode(self, mode) -> bool:
        """
        Switch between levels and challenge.

        Refused while a round is in flight (showing, waiting or playing).

        Raises:
            ValueError: If mode is not a known GameMode value
        """
        mode = GameMode(mode)
        if self._torn_down or self.phase in IN_FLIGHT_PHASES:
            return False
        if mode is self.mode:
            return True

        self.timers.cancel_all()
        self.mode = mode
        self._discard_round()
        self._changed()
        return True

    def start_pattern(self) -> bool:
        """Begin a new attempt in the current mode. No-op while showing or playing."""
        if self._torn_down or self.phase in (GamePhase.SHOWING, GamePhase.PLAYING):
            return False

        self.timers.cancel_all()
        self.level_complete = None
        self.game_over = None
        self.phase = GamePhase.SHOWING

        if self.mode is GameMode.LEVELS:
            level = self.progress.current_level
            self.round = LevelsRound(
                pattern=generate_sequence(pattern_length_for_level(level), rng=self.rng),
                time_remaining=time_budget_for_level(level)
            )
            game_logger.log_game_event(self.session_id, 'pattern_started', mode=self.mode.value,
                                       level=level, pattern_length=len(self.round.pattern))
            self._reveal_next()
        else:
            self.progress.current_score = 0
            self.round = ChallengeRound(
                sequence=generate_sequence(CHALLENGE_INITIAL_LENGTH, rng=self.rng)
            )
            game_logger.log_game_event(self.session_id, 'pattern_started', mode=self.mode.value,
                                       sequence_length=len(self.round.sequence))
            self.timers.arm(TimerSlot.PHASE, CHALLENGE_PREVIEW_SECONDS, self._begin_rolling)
            self._changed()
        return True

    def color_click(self, color) -> bool:
        """
        Handle a color pad press. Ignored unless the phase is playing.

        Returns:
            bool: True if the press was evaluated

        Raises:
            ValueError: If color is not a known Color value
        """
        color = Color(color)
        if self._torn_down or self.phase is not GamePhase.PLAYING:
            return False
        if isinstance(self.round, LevelsRound):
            return self._levels_click(color)
        if isinstance(self.round, ChallengeRound):
            return self._challenge_click(color)
        return False

    def submit_secret_code(self, code) -> Dict[str, Any]:
        """
        Jump to the level a secret code belongs to.

        The code is trimmed and uppercased. On a match the level becomes the
        current one and is unlocked; otherwise nothing changes.
        """
        normalized = code.strip().upper() if isinstance(code, str) else ""
        level = level_for_code(normalized) if len(normalized) == SECRET_CODE_LENGTH else None

        if self._torn_down or level is None:
            game_logger.log_game_event(self.session_id, 'secret_code_rejected', code=normalized)
            return {'success': False, 'error': 'Invalid secret code'}

        self.timers.cancel_all()
        self.progress.current_level = level
        self.progress.unlocked_levels = max(self.progress.unlocked_levels, level)
        self._discard_round()
        game_logger.log_game_event(self.session_id, 'secret_code_accepted', level=level)
        self._changed()
        return {'success': True, 'level': level}

    def select_level(self, level) -> bool:
        """Make an unlocked level the current one."""
        if self._torn_down or isinstance(level, bool) or not isinstance(level, int):
            return False
        if not 1 <= level <= self.progress.unlocked_levels:
            return False

        self.timers.cancel_all()
        self.progress.current_level = level
        self._discard_round()
        self._changed()
        return True

    def restart(self) -> None:
        """Back to idle with a zero score; levels mode also returns to level 1."""
        if self._torn_down:
            return
        self.timers.cancel_all()
        self._discard_round()
        self.progress.current_score = 0
        if self.mode is GameMode.LEVELS:
            self.progress.current_level = 1
        self._changed()

    def next_level(self) -> bool:
        """Advance to the next level once it is unlocked."""
        if self._torn_down:
            return False
        target = self.progress.current_level + 1
        if target > min(self.progress.unlocked_levels, MAX_LEVEL):
            return False

        self.timers.cancel_all()
        self.progress.current_level = target
        self._discard_round()
        self._changed()
        return True

    def show_instructions(self) -> None:
        self.instructions_open = True
        self._changed()

    def hide_instructions(self) -> None:
        self.instructions_open = False
        self._changed()

    def set_player_name(self, name) -> Dict[str, Any]:
        """Store the name used for leaderboard submissions."""
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            return {'success': False, 'error': 'Player name is required'}
        if len(name) > PLAYER_NAME_MAX_LENGTH:
            return {'success': False, 'error': 'Player name must be 20 characters or less'}
        if not PLAYER_NAME_PATTERN.fullmatch(name):
            return {'success': False, 'error': 'Player name contains invalid characters'}

        self.progress.player_name = name
        self._changed()
        return {'success': True, 'player_name': name}

    def submit_score(self) -> Dict[str, Any]:
        """
        Send the current score to the scoreboard.

        Failures are reported in the returned dict and never touch the local
        score or progress. Refused while a round is in flight: the
        scoreboard call holds the session lock the round timers run under.
        """
        if self.phase in IN_FLIGHT_PHASES:
            return {'success': False, 'error': 'Scores can only be submitted between rounds'}
        if self.scoreboard is None:
            return {'success': False, 'error': 'Scoreboard unavailable'}
        if self.score_submitting:
            return {'success': False, 'error': 'A score submission is already in progress'}
        if not self.progress.player_name:
            return {'success': False, 'error': 'Enter a player name first'}
        score = self.progress.current_score
        if score <= 0:
            return {'success': False, 'error': 'Nothing to submit yet'}

        if self.mode is GameMode.LEVELS:
            level = self.progress.current_level
        else:
            level = score // 100
        payload = {
            'playerName': self.progress.player_name,
            'score': score,
            'level': max(MIN_ENTRY_LEVEL, min(level, MAX_ENTRY_LEVEL)),
            'timeCompleted': int(self.scheduler.now()),
        }

        self.score_submitting = True
        self._changed()
        try:
            entry = self.scoreboard.add_entry(payload)
        except (LeaderboardValidationError, ScoreboardUnavailableError) as e:
            game_logger.log_game_event(self.session_id, 'score_submit_failed', error=str(e))
            result = {'success': False, 'error': str(e)}
        else:
            game_logger.log_game_event(self.session_id, 'score_submitted', entry_id=entry.id, score=score)
            result = {'success': True, 'entry': entry.to_dict()}
            self._fetch_leaderboard()
        finally:
            self.score_submitting = False

        self._changed()
        return result

    def refresh_leaderboard(self) -> Dict[str, Any]:
        """
        Reload leaderboard entries, exposing loading and error flags.

        Refused while a round is in flight, like submit_score.
        """
        if self.phase in IN_FLIGHT_PHASES:
            return {'success': False, 'error': 'The leaderboard can only be loaded between rounds'}
        if self.scoreboard is None:
            self.leaderboard_error = 'Scoreboard unavailable'
            self._changed()
            return {'success': False, 'error': self.leaderboard_error}

        self.leaderboard_loading = True
        self._changed()
        try:
            ok = self._fetch_leaderboard()
        finally:
            self.leaderboard_loading = False
        self._changed()
        if not ok:
            return {'success': False, 'error': self.leaderboard_error}
        return {'success': True}

    def teardown(self) -> None:
        """Cancel every pending timer. The machine ignores all input afterwards."""
        self.timers.cancel_all()
        self._torn_down = True
        self.listener = None

    # ------------------------------------------------------------------
    # Levels mode
    # ------------------------------------------------------------------

    def _reveal_next(self) -> None:
        rnd = self.round
        if self.phase is not GamePhase.SHOWING or not isinstance(rnd, LevelsRound):
            return

        if rnd.reveal_progress >= len(rnd.pattern):
            self.phase = GamePhase.WAITING
            self.timers.arm(TimerSlot.PHASE, WAIT_BEFORE_INPUT_SECONDS, self._begin_levels_input)
        else:
            rnd.reveal_progress += 1
            self.timers.arm(TimerSlot.PHASE, REVEAL_STEP_SECONDS, self._reveal_next)
        self._changed()

    def _begin_levels_input(self) -> None:
        if self.phase is not GamePhase.WAITING:
            return
        self.phase = GamePhase.PLAYING
        self.timers.arm(TimerSlot.COUNTDOWN, 1.0, self._countdown_tick)
        self._changed()

    def _countdown_tick(self) -> None:
        rnd = self.round
        if self.phase is not GamePhase.PLAYING or not isinstance(rnd, LevelsRound):
            return

        rnd.time_remaining = max(0, rnd.time_remaining - 1)
        if rnd.time_remaining == 0:
            self._finish_with_game_over('timeout')
            return
        self.timers.arm(TimerSlot.COUNTDOWN, 1.0, self._countdown_tick)
        self._changed()

    def _levels_click(self, color: Color) -> bool:
        rnd = self.round
        index = len(rnd.user_input)
        rnd.user_input.append(color)

        if rnd.pattern[index] is not color:
            self._finish_with_game_over('mismatch')
        elif len(rnd.user_input) == len(rnd.pattern):
            self._complete_pattern()
        else:
            self._changed()
        return True

    def _complete_pattern(self) -> None:
        self.timers.cancel_all()
        rnd = self.round
        level = self.progress.current_level

        multiplier = max(MIN_TIME_MULTIPLIER, rnd.time_remaining / TIME_MULTIPLIER_BASE)
        earned = round_half_up(len(rnd.pattern) * POINTS_PER_COLOR * multiplier * level)
        self.progress.current_score += earned
        self.phase = GamePhase.COMPLETE

        code = level_code(level)
        self.progress.level_codes[level] = code
        time_bonus = round_half_up(rnd.time_remaining * TIME_BONUS_PER_SECOND)
        self.level_complete = LevelCompleteSummary(
            level=level,
            secret_code=code,
            earned_score=earned,
            time_bonus=time_bonus,
            accuracy_bonus=ACCURACY_BONUS,
            total_score=earned + time_bonus + ACCURACY_BONUS
        )
        self.progress.unlocked_levels = max(self.progress.unlocked_levels, min(level + 1, MAX_LEVEL))

        game_logger.log_game_event(self.session_id, 'level_complete', level=level,
                                   earned_score=earned, current_score=self.progress.current_score)
        self._changed()
        self._emit('level_complete', asdict(self.level_complete))

    # ------------------------------------------------------------------
    # Challenge mode
    # ------------------------------------------------------------------

    def _begin_rolling(self) -> None:
        rnd = self.round
        if self.phase is not GamePhase.SHOWING or not isinstance(rnd, ChallengeRound):
            return
        # Fixed for the whole run so stalling never buys extra time.
        rnd.start_time_ms = self.scheduler.now_ms()
        self.phase = GamePhase.PLAYING
        self._arm_guess()
        self._changed()

    def _arm_guess(self) -> None:
        rnd = self.round
        elapsed_seconds = (self.scheduler.now_ms() - rnd.start_time_ms) / 1000
        allowed = guess_time_budget(elapsed_seconds)
        rnd.guess_seconds_left = allowed
        self.timers.arm(TimerSlot.GUESS_DEADLINE, allowed + CHALLENGE_DEADLINE_BUFFER_SECONDS,
                        self._on_guess_timeout)
        self.timers.arm(TimerSlot.DISPLAY_TICK, 1.0, self._display_tick)

    def _display_tick(self) -> None:
        rnd = self.round
        if self.phase is not GamePhase.PLAYING or not isinstance(rnd, ChallengeRound):
            return
        rnd.guess_seconds_left = max(0, rnd.guess_seconds_left - 1)
        if rnd.guess_seconds_left > 0:
            self.timers.arm(TimerSlot.DISPLAY_TICK, 1.0, self._display_tick)
        self._changed()

    def _on_guess_timeout(self) -> None:
        if self.phase is GamePhase.PLAYING and isinstance(self.round, ChallengeRound):
            self._finish_with_game_over('timeout')

    def _challenge_click(self, color: Color) -> bool:
        rnd = self.round
        if rnd.advancing:
            return False

        if rnd.sequence[rnd.current_index] is not color:
            self._finish_with_game_over('mismatch')
            return True

        self.progress.current_score = self._survival_seconds()
        self.timers.cancel(TimerSlot.GUESS_DEADLINE)
        self.timers.cancel(TimerSlot.DISPLAY_TICK)
        rnd.advancing = True
        self.timers.arm(TimerSlot.PHASE, CHALLENGE_ADVANCE_PAUSE_SECONDS, self._advance_challenge)
        self._changed()
        return True

    def _advance_challenge(self) -> None:
        rnd = self.round
        if self.phase is not GamePhase.PLAYING or not isinstance(rnd, ChallengeRound):
            return
        rnd.sequence.extend(generate_sequence(CHALLENGE_GROWTH, previous=rnd.sequence, rng=self.rng))
        rnd.current_index += 1
        rnd.advancing = False
        self._arm_guess()
        self._changed()

    def _survival_seconds(self) -> int:
        rnd = self.round
        if not isinstance(rnd, ChallengeRound) or rnd.start_time_ms is None:
            return 0
        return max(0, (self.scheduler.now_ms() - rnd.start_time_ms) // 1000)

    # ------------------------------------------------------------------
    # Shared transitions
    # ------------------------------------------------------------------

    def _finish_with_game_over(self, reason: str) -> None:
        self.timers.cancel_all()
        self.phase = GamePhase.FAILED

        if self.mode is GameMode.CHALLENGE:
            final_score = self._survival_seconds()
            self.progress.current_score = final_score
            self.game_over = GameOverSummary(mode=self.mode.value, final_score=final_score)
            if isinstance(self.round, ChallengeRound):
                self.round.advancing = False
                self.round.guess_seconds_left = 0
        else:
            self.game_over = GameOverSummary(
                mode=self.mode.value,
                final_score=self.progress.current_score,
                levels_completed=self.progress.unlocked_levels - 1
            )

        game_logger.log_game_event(self.session_id, 'game_over', mode=self.mode.value,
                                   reason=reason, final_score=self.game_over.final_score)
        self._changed()
        self._emit('game_over', {**asdict(self.game_over), 'reason': reason})

    def _discard_round(self) -> None:
        self.round = None
        self.phase = GamePhase.IDLE
        self.level_complete = None
        self.game_over = None

    def _fetch_leaderboard(self) -> bool:
        try:
            entries = self.scoreboard.get_leaderboard()
        except ScoreboardUnavailableError as e:
            self.leaderboard_error = str(e)
            return False
        self.leaderboard = [entry.to_dict() for entry in entries]
        self.leaderboard_error = None
        return True

    # ------------------------------------------------------------------
    # Observation and persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> GameSnapshot:
        rnd = self.round
        level = self.progress.current_level
        snap = GameSnapshot(
            mode=self.mode.value,
            phase=self.phase.value,
            current_level=level,
            unlocked_levels=self.progress.unlocked_levels,
            current_score=self.progress.current_score,
            difficulty=difficulty_label(level),
            time_remaining=rnd.time_remaining if isinstance(rnd, LevelsRound) else time_budget_for_level(level),
            player_name=self.progress.player_name,
            level_codes=dict(self.progress.level_codes),
            instructions_open=self.instructions_open,
            level_complete=self.level_complete,
            game_over=self.game_over,
            leaderboard=list(self.leaderboard),
            leaderboard_loading=self.leaderboard_loading,
            leaderboard_error=self.leaderboard_error,
            score_submitting=self.score_submitting,
            storage_warning=self.storage_warning
        )

        if isinstance(rnd, LevelsRound):
            snap.pattern_length = len(rnd.pattern)
            snap.reveal_progress = rnd.reveal_progress
            if self.phase is GamePhase.SHOWING and rnd.revealed_color is not None:
                snap.revealed_color = rnd.revealed_color.value
            snap.user_input = [c.value for c in rnd.user_input]
        elif isinstance(rnd, ChallengeRound):
            snap.sequence_length = len(rnd.sequence)
            snap.hidden_index = rnd.current_index
            snap.guess_seconds_left = rnd.guess_seconds_left
            if self.phase is GamePhase.SHOWING:
                snap.initial_sequence = [c.value for c in rnd.sequence]
            else:
                snap.visible_window = [c.value for c in rnd.visible_window(CHALLENGE_VISIBLE_WINDOW)]
        return snap

    def snapshot_dict(self) -> Dict[str, Any]:
        return asdict(self.snapshot())

    def _durable_state(self) -> Dict[str, Any]:
        return asdict(self.progress)

    def _persist(self) -> None:
        if self.progress_store is None:
            return
        state = self._durable_state()
        if state == self._saved_state:
            return

        warning = self.progress_store.save(self.progress)
        if warning is None:
            self._saved_state = state
        elif warning != self.storage_warning:
            self.storage_warning = warning
            self._emit('storage_warning', {'warning': warning})

    def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        if self.listener is not None:
            self.listener(event, payload)

    def _changed(self) -> None:
        if self._torn_down:
            return
        self._persist()
        self._emit('game_state', self.snapshot_dict())


@dataclass
class GameSession:
    """One connection's state machine plus the lock that serializes it."""
    session_id: str
    profile_id: Optional[str]
    machine: GameStateMachine
    lock: Any


class GameService:
    """
    Registry of live game sessions.

    This class handles:
    - Creating a state machine per socket connection
    - Hydrating each machine from the player's progress file
    - Tearing sessions down (cancelling their timers) on disconnect
    """

    def __init__(self,
                 progress_dir: str = 'progress',
                 scoreboard=None,
                 scheduler_factory: Callable[[Any], Scheduler] = ThreadingScheduler,
                 rng_factory: Callable[[], random.Random] = random.Random):
        self.progress_dir = progress_dir
        self.scoreboard = scoreboard
        self.scheduler_factory = scheduler_factory
        self.rng_factory = rng_factory
        self.sessions: Dict[str, GameSession] = {}
        self._lock = threading.Lock()

    def create_session(self,
                       session_id: str,
                       profile_id: Optional[str] = None,
                       listener: Optional[Listener] = None) -> GameSession:
        """
        Creates (or replaces) the session of a connection.

        Args:
            session_id: Socket id of the connection
            profile_id: Player profile whose progress file is loaded, if any
            listener: Receives (event, payload) for every state change

        Raises:
            ValueError: If profile_id is not a valid profile name
        """
        store = ProgressStore(storage_for_profile(self.progress_dir, profile_id)) if profile_id else None
        self.end_session(session_id)

        lock = threading.RLock()
        machine = GameStateMachine(
            scheduler=self.scheduler_factory(lock),
            progress_store=store,
            scoreboard=self.scoreboard,
            rng=self.rng_factory(),
            listener=listener,
            session_id=session_id
        )
        session = GameSession(session_id=session_id, profile_id=profile_id, machine=machine, lock=lock)
        with self._lock:
            self.sessions[session_id] = session

        game_logger.log_game_event(session_id, 'session_created', profile_id=profile_id,
                                   storage_warning=machine.storage_warning)
        return session

    def get_session(self, session_id: str) -> Optional[GameSession]:
        return self.sessions.get(session_id)

    def end_session(self, session_id: str) -> bool:
        """Tear down a session. Returns False if there was none."""
        with self._lock:
            session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        with session.lock:
            session.machine.teardown()
        game_logger.log_game_event(session_id, 'session_ended')
        return True

    def active_session_count(self) -> int:
        return len(self.sessions)


# Global service instance
_game_service = None


def get_game_service() -> Optional[GameService]:
    """Get the global game service instance."""
    return _game_service


def initialize_game_service(progress_dir: str = 'progress', scoreboard=None, **kwargs) -> GameService:
    """Initialize the global game service instance."""
    global _game_service
    _game_service = GameService(progress_dir=progress_dir, scoreboard=scoreboard, **kwargs)
    return _game_service
