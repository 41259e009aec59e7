"""
Progress Store

Durable player progress (level, score, unlocked levels, codes, name).

LocalStorage gives each player profile a small key/value file with the same
string-in, string-out contract as browser localStorage. ProgressStore keeps
the progress blob under a single fixed key inside it.
"""

import json
import os
import re
from pathlib import Path
from typing import Dict, Optional, Tuple

from ..config.game_settings import MAX_LEVEL
from ..models.game import Progression
from ..utils.game_logger import game_logger

STORAGE_KEY = 'memoryGameState'

_PROFILE_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


class StorageCorruptedError(ValueError):
    """The storage file exists but does not hold a JSON object."""


class LocalStorage:
    """JSON-object file mapping string keys to string values."""

    def __init__(self, path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        """
        Raises:
            StorageCorruptedError: If the file is not a JSON object
        """
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageCorruptedError(f"Storage file {self.path} is not valid JSON: {e}") from e
        except OSError as e:
            game_logger.logger.warning(f"Unreadable storage file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            raise StorageCorruptedError(f"Storage file {self.path} does not hold an object")
        return data

    def _read_for_update(self) -> Dict[str, str]:
        try:
            return self._read_all()
        except StorageCorruptedError as e:
            game_logger.logger.warning(f"{e}; overwriting it")
            return {}

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def get_item(self, key: str) -> Optional[str]:
        """
        Raises:
            StorageCorruptedError: If the whole file is unreadable as JSON
        """
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        """Store a value. Raises OSError if the file cannot be written."""
        data = self._read_for_update()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_for_update()
        if key in data:
            del data[key]
            self._write_all(data)

    def clear(self) -> None:
        """Delete the storage file."""
        self.path.unlink(missing_ok=True)


def storage_for_profile(progress_dir, profile_id: str) -> LocalStorage:
    """
    Return the LocalStorage file of a player profile.

    Raises:
        ValueError: If the profile id is not a safe file name
    """
    if not isinstance(profile_id, str) or not _PROFILE_ID_PATTERN.match(profile_id):
        raise ValueError("Profile id must be 1-64 letters, digits, '_' or '-'")
    return LocalStorage(Path(progress_dir) / f"{profile_id}.json")


def _positive_int(value, default: int, upper: Optional[int] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return default
    return min(value, upper) if upper else value


def _parse_level_codes(value) -> Dict[int, str]:
    codes = {}
    if not isinstance(value, dict):
        return codes
    for key, code in value.items():
        try:
            level = int(key)
        except (TypeError, ValueError):
            continue
        if isinstance(code, str) and level >= 1:
            codes[level] = code
    return codes


class ProgressStore:
    """Save and restore Progression, tolerating corrupt or unwritable storage."""

    def __init__(self, storage: LocalStorage, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key

    def load(self) -> Tuple[Progression, Optional[str]]:
        """
        Restore saved progress.

        Returns:
            Tuple of (progression, error_message). On a corrupt entry or a
            corrupt storage file the defaults are returned, the bad data is
            removed and error_message describes the problem; otherwise
            error_message is None.
        """
        try:
            raw = self.storage.get_item(self.key)
        except StorageCorruptedError as e:
            return self._reset(e, self.storage.clear)
        if raw is None:
            return Progression(), None

        try:
            state = json.loads(raw)
            if not isinstance(state, dict):
                raise ValueError("saved progress is not an object")
        except ValueError as e:
            return self._reset(e, lambda: self.storage.remove_item(self.key))

        current_score = state.get('currentScore')
        if isinstance(current_score, bool) or not isinstance(current_score, int) or current_score < 0:
            current_score = 0
        player_name = state.get('playerName')

        unlocked_levels = _positive_int(state.get('unlockedLevels'), 1, MAX_LEVEL)
        progression = Progression(
            # A level above the unlocked ones can only come from a tampered blob.
            current_level=min(_positive_int(state.get('currentLevel'), 1, MAX_LEVEL), unlocked_levels),
            unlocked_levels=unlocked_levels,
            current_score=current_score,
            level_codes=_parse_level_codes(state.get('levelCodes')),
            player_name=player_name if isinstance(player_name, str) else "",
        )
        return progression, None

    def _reset(self, error: Exception, discard) -> Tuple[Progression, str]:
        game_logger.logger.warning(f"Discarding corrupted progress in {self.storage.path}: {error}")
        try:
            discard()
        except OSError as remove_error:
            game_logger.logger.warning(f"Could not remove corrupted progress: {remove_error}")
        return Progression(), "Saved progress was corrupted and has been reset"

    def save(self, progression: Progression) -> Optional[str]:
        """
        Persist progress.

        Returns:
            None on success, or a warning message if storage could not be
            written (the caller keeps playing from memory).
        """
        state = {
            'currentLevel': progression.current_level,
            'currentScore': progression.current_score,
            'unlockedLevels': progression.unlocked_levels,
            'levelCodes': {str(level): code for level, code in progression.level_codes.items()},
            'playerName': progression.player_name,
        }
        try:
            self.storage.set_item(self.key, json.dumps(state))
        except OSError as e:
            game_logger.logger.warning(f"Failed to save progress to {self.storage.path}: {e}")
            return "Progress could not be saved; it will be kept for this session only"
        return None
