# live_scoring/scoreboard.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from live_scoring.completion import detect, first_innings_total
from live_scoring.models import Delivery, ScoreState, TeamScore
from live_scoring.rules import BALLS_PER_OVER, balls_to_overs, innings_overs_cap, is_legal_delivery


def format_overs(overs: int, balls: int) -> str:
    """12 overs, 3 balls -> "12.3" (cricket notation, not a decimal)."""
    return f"{overs}.{balls}"


def format_score(team_score: Optional[TeamScore]) -> str:
    if team_score is None:
        return "0/0 (0.0)"
    return f"{team_score.runs}/{team_score.wickets} ({format_overs(team_score.overs, team_score.balls)})"


def current_run_rate(team_score: TeamScore) -> float:
    """Runs per six legal balls; 0.0 before the first legal ball."""
    if team_score.total_balls == 0:
        return 0.0
    return round(team_score.runs * BALLS_PER_OVER / team_score.total_balls, 2)


def runs_needed(target: int, current_runs: int) -> int:
    return max(0, target - current_runs)


def required_run_rate(target: int, current_runs: int, balls_remaining: int) -> Optional[float]:
    """
    None when there is no ball budget to divide by (uncapped format, or the
    overs are used up).
    """
    if balls_remaining <= 0:
        return None
    return round(runs_needed(target, current_runs) * BALLS_PER_OVER / balls_remaining, 2)


@dataclass(frozen=True)
class Partnership:
    runs: int = 0
    balls: int = 0

    def describe(self) -> str:
        overs, balls = balls_to_overs(self.balls)
        return f"{self.balls} balls ({overs}.{balls} overs)"


def partnership_from_history(history: Sequence[Delivery], innings: int) -> Partnership:
    """
    Runs and legal balls since the last wicket of `innings`, counted from the
    deliveries recorded in this session.
    """
    runs = balls = 0
    for d in reversed(history):
        if d.innings != innings:
            continue
        if d.is_wicket:
            break
        runs += d.runs
        if is_legal_delivery(d.ball_type):
            balls += 1
    return Partnership(runs=runs, balls=balls)


def _team_score_dict(t: TeamScore) -> Dict[str, Any]:
    return {
        "runs": t.runs,
        "wickets": t.wickets,
        "overs": t.overs,
        "balls": t.balls,
        "display": format_score(t),
    }


def scoreboard(state: ScoreState) -> Dict[str, Any]:
    """Display block for the scorer screen."""
    live = state.live
    batting = state.batting_score
    partnership = partnership_from_history(state.history, live.current_innings)

    out: Dict[str, Any] = {
        "home": _team_score_dict(state.score.home),
        "away": _team_score_dict(state.score.away),
        "batting_team": live.batting_team,
        "current_run_rate": current_run_rate(batting),
        "partnership": {
            "runs": partnership.runs,
            "balls": partnership.balls,
            "display": partnership.describe(),
        },
    }

    first_total = first_innings_total(state)
    if first_total is not None:
        target = first_total + 1
        cap = innings_overs_cap(state.match.format)
        balls_remaining = cap * BALLS_PER_OVER - batting.total_balls if cap is not None else 0
        out["chase"] = {
            "target": target,
            "runs_needed": runs_needed(target, batting.runs),
            "required_run_rate": required_run_rate(target, batting.runs, balls_remaining),
        }

    signals = detect(state)
    out["signals"] = {
        "innings_complete": signals.innings_complete,
        "match_complete": signals.match_complete,
        "target_reached": signals.target_reached,
        "bowler_change_required": signals.bowler_change_required,
        "bowler_overs": signals.bowler_overs,
    }
    return out
