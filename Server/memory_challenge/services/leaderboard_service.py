"""
Leaderboard Service

Stores high scores and serves the top entries. Entries live in MongoDB when
a connection string is configured, otherwise in process memory.
"""

import threading
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError
from pymongo.mongo_client import MongoClient
from pymongo.server_api import ServerApi

from ..models.leaderboard import (
    LEADERBOARD_SIZE, LeaderboardEntry, ScoreboardUnavailableError, validate_entry
)
from ..utils.game_logger import game_logger

SAMPLE_ENTRIES = [
    {'player_name': 'ProGamer', 'score': 2450, 'level': 15, 'time_completed': 120},
    {'player_name': 'MemoryMaster', 'score': 1890, 'level': 12, 'time_completed': 145},
    {'player_name': 'FastFingers', 'score': 1560, 'level': 10, 'time_completed': 98},
    {'player_name': 'PatternPro', 'score': 1340, 'level': 9, 'time_completed': 156},
    {'player_name': 'ColorKing', 'score': 1120, 'level': 8, 'time_completed': 189},
]


class InMemoryLeaderboardStore:
    """Process-local store, seeded with a few sample entries."""

    def __init__(self, seed: bool = True):
        self._entries: Dict[int, LeaderboardEntry] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        if seed:
            for fields in SAMPLE_ENTRIES:
                self.insert(fields)

    def top(self, limit: int) -> List[LeaderboardEntry]:
        with self._lock:
            entries = sorted(self._entries.values(), key=lambda e: e.score, reverse=True)
        return entries[:limit]

    def insert(self, fields: Dict[str, Any]) -> LeaderboardEntry:
        with self._lock:
            entry = LeaderboardEntry(id=self._next_id, **fields)
            self._entries[entry.id] = entry
            self._next_id += 1
        return entry


class MongoLeaderboardStore:
    """MongoDB-backed store with an integer id sequence."""

    def __init__(self, database):
        self.entries_collection = database.leaderboard_entries
        self.counters_collection = database.counters
        self.entries_collection.create_index([("score", DESCENDING)])
        self.entries_collection.create_index("id", unique=True)

    @classmethod
    def connect(cls, mongo_uri: str, db_name: str) -> "MongoLeaderboardStore":
        client = MongoClient(mongo_uri, server_api=ServerApi('1'))
        client.admin.command('ping')
        return cls(client[db_name])

    def _next_id(self) -> int:
        counter = self.counters_collection.find_one_and_update(
            {"_id": "leaderboard_entries"},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return int(counter["seq"])

    def top(self, limit: int) -> List[LeaderboardEntry]:
        cursor = self.entries_collection.find({}, {"_id": 0}).sort("score", DESCENDING).limit(limit)
        return [LeaderboardEntry(**doc) for doc in cursor]

    def insert(self, fields: Dict[str, Any]) -> LeaderboardEntry:
        entry = LeaderboardEntry(id=self._next_id(), **fields)
        self.entries_collection.insert_one(asdict(entry))
        return entry


class LeaderboardService:
    """
    High-score leaderboard.

    This class handles:
    - Validating submitted entries
    - Storing entries in the configured store
    - Returning the top LEADERBOARD_SIZE entries by score
    """

    def __init__(self, store=None):
        self.store = store if store is not None else InMemoryLeaderboardStore()

    def get_leaderboard(self) -> List[LeaderboardEntry]:
        """
        Returns the best entries, highest score first.

        Raises:
            ScoreboardUnavailableError: If the store cannot be read
        """
        try:
            return self.store.top(LEADERBOARD_SIZE)
        except PyMongoError as e:
            game_logger.logger.error(f"Failed to fetch leaderboard: {e}")
            raise ScoreboardUnavailableError("Failed to fetch leaderboard") from e

    def add_entry(self, data: Dict[str, Any]) -> LeaderboardEntry:
        """
        Validates and stores a leaderboard submission.

        Args:
            data: Wire-format entry (playerName, score, level, timeCompleted)

        Returns:
            The created LeaderboardEntry

        Raises:
            LeaderboardValidationError: If the entry breaks a field rule
            ScoreboardUnavailableError: If the store cannot be written
        """
        fields = validate_entry(data)
        try:
            entry = self.store.insert(fields)
        except PyMongoError as e:
            game_logger.logger.error(f"Failed to add leaderboard entry: {e}")
            raise ScoreboardUnavailableError("Failed to add leaderboard entry") from e

        game_logger.log_game_event(None, 'leaderboard_entry_added',
                                   entry_id=entry.id, player_name=entry.player_name, score=entry.score)
        return entry


# Global service instance
_leaderboard_service = None


def get_leaderboard_service() -> Optional[LeaderboardService]:
    """Get the global leaderboard service instance."""
    return _leaderboard_service


def initialize_leaderboard_service(mongo_uri: Optional[str] = None,
                                   db_name: str = 'memory_challenge',
                                   store=None) -> LeaderboardService:
    """
    Initialize the global leaderboard service instance.

    Uses MongoDB when mongo_uri is given, otherwise the in-memory store
    (unless an explicit store is passed).
    """
    global _leaderboard_service
    if store is None and mongo_uri:
        store = MongoLeaderboardStore.connect(mongo_uri, db_name)
    _leaderboard_service = LeaderboardService(store)
    return _leaderboard_service
