from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Tuple

import pytest

from live_scoring import cooldown
from live_scoring.errors import BackendError
from live_scoring.models import LiveState, Match, Score, ScoreState, TeamScore


# =============================================================================
# State builders
# =============================================================================

def make_state(
    *,
    status: str = "live",
    format: str = "t20",
    is_locked: bool = False,
    innings: int = 1,
    batting_team: str = "home",
    striker: str = "S1",
    non_striker: str = "S2",
    bowler: str = "B1",
    over: int = 0,
    ball: int = 0,
    free_hit: bool = False,
    home: TeamScore = TeamScore(),
    away: TeamScore = TeamScore(),
) -> ScoreState:
    """A live, set-up match with the batting side's score in step with over/ball."""
    return ScoreState(
        match=Match(match_id="m1", status=status, format=format, is_locked=is_locked, setup_complete=True),
        score=Score(home=home, away=away),
        live=LiveState(
            current_innings=innings,
            batting_team=batting_team,
            striker_id=striker,
            non_striker_id=non_striker,
            bowler_id=bowler,
            current_over=over,
            current_ball=ball,
            free_hit=free_hit,
        ),
    )


def make_snapshot(
    *,
    match_id: str = "m1",
    status: str = "live",
    format: str = "t20",
    is_locked: bool = False,
    home: Tuple[int, int, int, int] = (0, 0, 0, 0),
    away: Tuple[int, int, int, int] = (0, 0, 0, 0),
    innings: int = 1,
    batting_team: str = "home",
    striker: str = "S1",
    non_striker: str = "S2",
    bowler: str = "B1",
    over: int = 0,
    ball: int = 0,
    free_hit: Optional[bool] = False,
    bowling_stats: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Backend match snapshot as returned in the `data` field of the envelope."""

    def ts(t: Tuple[int, int, int, int]) -> Dict[str, int]:
        runs, wickets, overs, balls = t
        return {"runs": runs, "wickets": wickets, "overs": overs, "balls": balls}

    live: Dict[str, Any] = {
        "currentInnings": innings,
        "battingTeam": batting_team,
        "strikerId": striker,
        "nonStrikerId": non_striker,
        "bowlerId": bowler,
        "currentOver": over,
        "currentBall": ball,
    }
    if free_hit is not None:
        live["freeHit"] = free_hit

    return {
        "matchId": match_id,
        "status": status,
        "format": format,
        "isLocked": is_locked,
        "teams": {"home": {"name": "Home XI"}, "away": {"name": "Away XI"}},
        "matchSetup": {
            "isSetupComplete": True,
            "homePlayingXI": [{"id": "S1", "name": "Opener One"}, {"id": "S2", "name": "Opener Two"}],
            "awayPlayingXI": [{"id": "B1", "name": "Quick One"}],
        },
        "currentScore": {"home": ts(home), "away": ts(away)},
        "liveState": live,
        "battingStats": [],
        "bowlingStats": bowling_stats or [],
    }


# =============================================================================
# Fake backend
# =============================================================================

class FakeBackend:
    """
    Same interface as ScoringBackend, in memory.

    Every call is recorded in `calls`. Responses come from `responses`
    (queued, one per call) or fall back to the current `snapshot`.
    Put a BackendError in `responses` to make that call fail.
    """

    def __init__(self, snapshot: Optional[Dict[str, Any]] = None) -> None:
        self.snapshot = snapshot if snapshot is not None else make_snapshot()
        self.responses: List[Any] = []
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def _answer(self, name: str, *args: Any) -> Any:
        self.calls.append((name, args))
        if self.responses:
            resp = self.responses.pop(0)
            if isinstance(resp, BackendError):
                raise resp
            return copy.deepcopy(resp)
        return copy.deepcopy(self.snapshot)

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def get_match(self, match_id):
        return self._answer("get_match", match_id)

    def record_ball(self, match_id, ball):
        return self._answer("record_ball", match_id, ball)

    def undo_last_ball(self, match_id):
        return self._answer("undo_last_ball", match_id)

    def start_second_innings(self, match_id, *, opening_batter1_id, opening_batter2_id, first_bowler_id):
        return self._answer(
            "start_second_innings", match_id, opening_batter1_id, opening_batter2_id, first_bowler_id
        )

    def complete_match(self, match_id, *, winner, margin="", key_performers=None, notes=""):
        return self._answer("complete_match", match_id, winner, margin, key_performers, notes)

    def update_live_state(self, match_id, live_state):
        return self._answer("update_live_state", match_id, live_state)

    def update_score(self, match_id, score):
        return self._answer("update_score", match_id, score)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def _clear_cooldowns():
    cooldown.clear()
    yield
    cooldown.clear()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
