"""
Scoreboard Client

HTTP client for a remotely deployed scoreboard. Exposes the same
get_leaderboard / add_entry contract as LeaderboardService so the game
state machine can use either.
"""

from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..models.leaderboard import (
    LeaderboardEntry, LeaderboardValidationError, ScoreboardUnavailableError
)


class ScoreboardClient:

    def __init__(self,
                 base_url: str,
                 request_timeout_s: float = 10.0,
                 session: Optional[requests.Session] = None):
        self._base = base_url.rstrip("/")
        self._timeout = float(request_timeout_s)
        self._http = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """
        Create a requests Session with retries for reads.

        Submissions are never retried: a POST that reached the server but
        lost its response would otherwise create a duplicate entry.
        """
        session = requests.Session()
        retry_strategy = Retry(
            total=3,
            backoff_factor=0.3,
            status_forcelist=[502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _url(self) -> str:
        return f"{self._base}/api/leaderboard"

    @staticmethod
    def _error_message(response: requests.Response, default: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return default
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            return body["message"]
        return default

    def get_leaderboard(self) -> List[LeaderboardEntry]:
        """
        Fetch the top entries.

        Raises:
            ScoreboardUnavailableError: On transport failure or a non-200 reply
        """
        try:
            r = self._http.get(self._url(), timeout=self._timeout)
        except requests.RequestException as e:
            raise ScoreboardUnavailableError(f"Scoreboard unreachable: {e}") from e

        if r.status_code != 200:
            raise ScoreboardUnavailableError(self._error_message(r, "Failed to fetch leaderboard"))

        try:
            return [LeaderboardEntry.from_dict(item) for item in r.json()]
        except (ValueError, KeyError, TypeError) as e:
            raise ScoreboardUnavailableError("Scoreboard returned a malformed leaderboard") from e

    def add_entry(self, data: Dict[str, Any]) -> LeaderboardEntry:
        """
        Submit an entry.

        Raises:
            LeaderboardValidationError: If the scoreboard rejected the fields (400)
            ScoreboardUnavailableError: On transport failure or any other error reply
        """
        try:
            r = self._http.post(self._url(), json=data, timeout=self._timeout)
        except requests.RequestException as e:
            raise ScoreboardUnavailableError(f"Scoreboard unreachable: {e}") from e

        if r.status_code == 400:
            try:
                errors = [e for e in r.json().get("errors") or [] if isinstance(e, dict)]
            except (ValueError, AttributeError, TypeError):
                errors = []
            raise LeaderboardValidationError(errors or [{'field': 'body', 'message': 'Invalid data'}])

        if r.status_code != 200:
            raise ScoreboardUnavailableError(self._error_message(r, "Failed to add leaderboard entry"))

        try:
            return LeaderboardEntry.from_dict(r.json())
        except (ValueError, KeyError, TypeError) as e:
            raise ScoreboardUnavailableError("Scoreboard returned a malformed entry") from e

    def close(self) -> None:
        self._http.close()
