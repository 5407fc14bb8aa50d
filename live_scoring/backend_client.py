# live_scoring/backend_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from live_scoring.config import (
    SCORING_API_BASE_URL,
    SCORING_API_TIMEOUT_SECONDS,
    SCORING_API_TOKEN,
)
from live_scoring.errors import BackendError

logger = logging.getLogger(__name__)


class ScoringBackend:
    """
    Thin wrapper around the scoring backend's REST API.

    Every call returns the match snapshot from the {success, data, message}
    envelope. Failures raise BackendError; nothing is retried here.

    Usage:
        backend = ScoringBackend()
        snapshot = backend.get_match("m-42")
    """

    def __init__(
        self,
        base_url: str = SCORING_API_BASE_URL,
        token: Optional[str] = SCORING_API_TOKEN,
        timeout: float = SCORING_API_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not base_url.startswith("http"):
            raise BackendError("SCORING_API_BASE_URL must start with http/https")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug("%s %s body=%s", method, url, body)

        try:
            resp = self.session.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise BackendError(f"Network error: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.status_code < 200 or resp.status_code >= 300:
            message = None
            if isinstance(data, dict):
                message = data.get("message")
            raise BackendError(message or f"HTTP {resp.status_code}: {resp.text}", status_code=resp.status_code)

        if not isinstance(data, dict):
            raise BackendError("Invalid JSON response", status_code=resp.status_code)

        if data.get("success") is False:
            raise BackendError(data.get("message", "Unknown API error"), status_code=resp.status_code)

        return data.get("data")

    # -----------------------------
    # Match snapshot
    # -----------------------------
    def get_match(self, match_id: str) -> Any:
        return self._request("GET", f"/scorer/matches/{match_id}")

    # -----------------------------
    # Ball-by-ball scoring
    # -----------------------------
    def record_ball(self, match_id: str, ball: Dict[str, Any]) -> Any:
        return self._request("POST", f"/cricket/local/matches/{match_id}/ball", ball)

    def undo_last_ball(self, match_id: str) -> Any:
        return self._request("POST", f"/cricket/local/matches/{match_id}/undo")

    # -----------------------------
    # Innings / match lifecycle
    # -----------------------------
    def start_second_innings(
        self,
        match_id: str,
        *,
        opening_batter1_id: str,
        opening_batter2_id: str,
        first_bowler_id: str,
    ) -> Any:
        return self._request(
            "POST",
            f"/cricket/local/matches/{match_id}/second-innings",
            {
                "openingBatter1Id": opening_batter1_id,
                "openingBatter2Id": opening_batter2_id,
                "firstBowlerId": first_bowler_id,
            },
        )

    def complete_match(
        self,
        match_id: str,
        *,
        winner: str,
        margin: str = "",
        key_performers: Optional[List[Dict[str, str]]] = None,
        notes: str = "",
    ) -> Any:
        return self._request(
            "POST",
            f"/cricket/local/matches/{match_id}/complete",
            {
                "winner": winner,
                "margin": margin,
                "keyPerformers": list(key_performers or []),
                "notes": notes,
            },
        )

    # -----------------------------
    # Manual corrections (bypass the delivery processor)
    # -----------------------------
    def update_live_state(self, match_id: str, live_state: Dict[str, Any]) -> Any:
        body = {k: v for k, v in live_state.items() if v is not None}
        return self._request("PATCH", f"/cricket/local/matches/{match_id}/live-state", body)

    def update_score(self, match_id: str, score: Dict[str, Any]) -> Any:
        return self._request("PUT", f"/cricket/local/matches/{match_id}/score", score)
