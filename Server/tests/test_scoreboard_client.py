import time
from unittest.mock import MagicMock

import pytest
import requests

from memory_challenge.models.game import GamePhase
from memory_challenge.models.leaderboard import (
    LeaderboardEntry, LeaderboardValidationError, ScoreboardUnavailableError
)
from memory_challenge.services import game_service
from memory_challenge.services.leaderboard_service import InMemoryLeaderboardStore, LeaderboardService
from memory_challenge.services.scoreboard_client import ScoreboardClient

ENTRY = {"id": 6, "playerName": "Ada", "score": 900, "level": 4, "timeCompleted": 1700000000}


def response(status_code, body=None):
    r = MagicMock()
    r.status_code = status_code
    if body is None:
        r.json.side_effect = ValueError("no body")
    else:
        r.json.return_value = body
    return r


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def client(http):
    return ScoreboardClient("http://scores.example/", request_timeout_s=3, session=http)


class TestGetLeaderboard:

    def test_entries_are_parsed(self, client, http):
        http.get.return_value = response(200, [ENTRY])

        assert client.get_leaderboard() == [LeaderboardEntry.from_dict(ENTRY)]
        http.get.assert_called_once_with("http://scores.example/api/leaderboard", timeout=3.0)

    def test_server_error(self, client, http):
        http.get.return_value = response(500, {"message": "Failed to fetch leaderboard"})

        with pytest.raises(ScoreboardUnavailableError, match="Failed to fetch leaderboard"):
            client.get_leaderboard()

    def test_unreachable(self, client, http):
        http.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ScoreboardUnavailableError):
            client.get_leaderboard()

    def test_malformed_body(self, client, http):
        http.get.return_value = response(200, [{"id": 1}])

        with pytest.raises(ScoreboardUnavailableError):
            client.get_leaderboard()


class TestAddEntry:

    def test_created_entry_is_returned(self, client, http):
        http.post.return_value = response(200, ENTRY)
        payload = {k: v for k, v in ENTRY.items() if k != "id"}

        assert client.add_entry(payload).id == 6
        http.post.assert_called_once_with("http://scores.example/api/leaderboard", json=payload, timeout=3.0)

    def test_validation_errors_are_passed_on(self, client, http):
        http.post.return_value = response(400, {
            "message": "Invalid data",
            "errors": [{"field": "score", "message": "Score must be an integer"}, "junk"],
        })

        with pytest.raises(LeaderboardValidationError) as excinfo:
            client.add_entry({})
        assert excinfo.value.errors == [{"field": "score", "message": "Score must be an integer"}]

    def test_server_error(self, client, http):
        http.post.return_value = response(500)

        with pytest.raises(ScoreboardUnavailableError, match="Failed to add leaderboard entry"):
            client.add_entry({})

    def test_timeout(self, client, http):
        http.post.side_effect = requests.Timeout("slow")

        with pytest.raises(ScoreboardUnavailableError):
            client.add_entry({})


class TestScoreSubmission:

    def test_levels_score_is_submitted(self, make_machine):
        service = LeaderboardService(InMemoryLeaderboardStore(seed=False))
        machine = make_machine(scoreboard=service)
        machine.submit_secret_code("SEQN")
        machine.progress.current_score = 640
        machine.set_player_name("Ada")

        result = machine.submit_score()

        assert result["success"]
        assert result["entry"]["level"] == 5
        assert result["entry"]["score"] == 640
        assert machine.snapshot().leaderboard == [result["entry"]]
        assert not machine.score_submitting

    def test_challenge_level_is_derived_from_score(self, make_machine):
        service = LeaderboardService(InMemoryLeaderboardStore(seed=False))
        machine = make_machine(scoreboard=service)
        machine.select_mode("challenge")
        machine.set_player_name("Ada")

        machine.progress.current_score = 250
        assert machine.submit_score()["entry"]["level"] == 2

        machine.progress.current_score = 42
        assert machine.submit_score()["entry"]["level"] == 1

    def test_name_is_required(self, make_machine):
        machine = make_machine(scoreboard=LeaderboardService())
        machine.progress.current_score = 100
        assert machine.submit_score() == {"success": False, "error": "Enter a player name first"}

    def test_zero_score_is_not_submitted(self, make_machine):
        machine = make_machine(scoreboard=LeaderboardService())
        machine.set_player_name("Ada")
        assert not machine.submit_score()["success"]

    def test_failure_keeps_local_progress(self, make_machine, http):
        http.post.side_effect = requests.ConnectionError("refused")
        machine = make_machine(scoreboard=ScoreboardClient("http://scores.example", session=http))
        machine.set_player_name("Ada")
        machine.progress.current_score = 300
        before = machine.progress

        result = machine.submit_score()

        assert not result["success"]
        assert machine.progress is before
        assert machine.progress.current_score == 300
        assert not machine.snapshot().score_submitting

    def test_refresh_leaderboard_reports_errors(self, make_machine, http):
        http.get.return_value = response(503)
        machine = make_machine(scoreboard=ScoreboardClient("http://scores.example", session=http))

        assert machine.refresh_leaderboard() == {"success": False, "error": "Failed to fetch leaderboard"}

        snap = machine.snapshot()
        assert snap.leaderboard_error == "Failed to fetch leaderboard"
        assert not snap.leaderboard_loading

    def test_refresh_leaderboard_shows_loading(self, make_machine, recorder):
        machine = make_machine(scoreboard=LeaderboardService())

        assert machine.refresh_leaderboard() == {"success": True}

        states = recorder.named("game_state")
        assert states[0]["leaderboard_loading"]
        assert not states[-1]["leaderboard_loading"]
        assert len(states[-1]["leaderboard"]) == 5

    @pytest.mark.parametrize("name", ["", "   ", "x" * 21, "bad<name>", "Ada\tL", "A\nB"])
    def test_bad_player_names(self, make_machine, name):
        machine = make_machine()
        assert not machine.set_player_name(name)["success"]
        assert machine.progress.player_name == ""


class SlowScoreboard:
    """Scoreboard whose calls block, recording that they were made."""

    def __init__(self, delay):
        self.delay = delay
        self.calls = []

    def add_entry(self, data):
        self.calls.append("add_entry")
        time.sleep(self.delay)
        raise ScoreboardUnavailableError("too slow")

    def get_leaderboard(self):
        self.calls.append("get_leaderboard")
        time.sleep(self.delay)
        return []


class TestScoreboardDuringARound:

    def test_submit_and_refresh_are_refused_mid_round(self, scheduler, make_machine):
        scoreboard = SlowScoreboard(delay=0)
        machine = make_machine(scoreboard=scoreboard)
        machine.set_player_name("Ada")
        machine.select_mode("challenge")
        machine.start_pattern()
        scheduler.advance(2.0)
        machine.progress.current_score = 10

        assert machine.submit_score() == {"success": False,
                                          "error": "Scores can only be submitted between rounds"}
        assert not machine.refresh_leaderboard()["success"]
        assert scoreboard.calls == []

    def test_allowed_again_once_the_round_ends(self, scheduler, make_machine):
        scoreboard = SlowScoreboard(delay=0)
        machine = make_machine(scoreboard=scoreboard)
        machine.set_player_name("Ada")
        machine.select_mode("challenge")
        machine.start_pattern()
        scheduler.advance(2.0 + 5.1)

        assert machine.refresh_leaderboard() == {"success": True}
        assert machine.submit_score() == {"success": False, "error": "too slow"}
        assert scoreboard.calls == ["get_leaderboard", "add_entry"]

    def test_slow_scoreboard_never_delays_the_guess_deadline(self, monkeypatch):
        monkeypatch.setattr(game_service, "CHALLENGE_PREVIEW_SECONDS", 0.05)
        monkeypatch.setattr(game_service, "guess_time_budget", lambda elapsed: 1)
        scoreboard = SlowScoreboard(delay=3.0)
        service = game_service.GameService(scoreboard=scoreboard)
        session = service.create_session("sid-1")
        machine = session.machine

        try:
            with session.lock:
                machine.set_player_name("Ada")
                machine.select_mode("challenge")
                machine.start_pattern()
            deadline = time.monotonic() + 2.0
            while machine.phase is not GamePhase.PLAYING and time.monotonic() < deadline:
                time.sleep(0.01)
            assert machine.phase is GamePhase.PLAYING

            started = time.monotonic()
            with session.lock:
                machine.progress.current_score = 10
                result = machine.submit_score()
            assert time.monotonic() - started < 0.5
            assert not result["success"]

            deadline = time.monotonic() + 3.0
            while machine.phase is not GamePhase.FAILED and time.monotonic() < deadline:
                time.sleep(0.01)

            assert machine.phase is GamePhase.FAILED
            assert machine.progress.current_score == 1
            assert scoreboard.calls == []
        finally:
            service.end_session("sid-1")
