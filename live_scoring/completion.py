# live_scoring/completion.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from live_scoring.models import ScoreState, TeamScore
from live_scoring.rules import MAX_WICKETS, bowler_overs_cap, innings_overs_cap


@dataclass(frozen=True)
class CompletionSignals:
    """
    Output of one detector pass.

    innings_complete: first innings is over (all out or overs cap reached)
    match_complete:   second innings is over by the same predicate
    target_reached:   second-innings side has passed the first-innings total
    bowler_change_required: current bowler has bowled the per-format quota (advisory)
    """
    innings_complete: bool = False
    match_complete: bool = False
    target_reached: bool = False
    bowler_change_required: bool = False
    bowler_overs: Optional[float] = None

    @property
    def match_end(self) -> bool:
        return self.match_complete or self.target_reached

    @property
    def any(self) -> bool:
        return self.innings_complete or self.match_end or self.bowler_change_required


def is_innings_complete(team_score: TeamScore, match_format: str) -> bool:
    """
    All out, or a capped format has reached exactly `cap` overs with no
    balls into the next one. Test/first-class never complete by overs.
    """
    if team_score.wickets >= MAX_WICKETS:
        return True
    cap = innings_overs_cap(match_format)
    if cap is None:
        return False
    return team_score.overs >= cap and team_score.balls == 0


def first_innings_total(state: ScoreState) -> Optional[int]:
    if state.live.current_innings != 2:
        return None
    return state.bowling_score.runs


def is_target_reached(state: ScoreState) -> bool:
    total = first_innings_total(state)
    if total is None:
        return False
    return state.batting_score.runs > total


def current_bowler_overs(state: ScoreState) -> Optional[float]:
    """overs + balls/6 for the current bowler in this innings (server stats)."""
    if not state.live.bowler_id:
        return None
    stat = state.bowling_stat_for(state.live.bowler_id, state.live.current_innings)
    if stat is None:
        return None
    return stat.total_overs


def is_bowler_change_required(state: ScoreState) -> bool:
    cap = bowler_overs_cap(state.match.format)
    if cap is None:
        return False
    overs = current_bowler_overs(state)
    return overs is not None and overs >= cap


def detect(state: ScoreState) -> CompletionSignals:
    """
    Pure evaluation of the three checks. Locked matches raise nothing.
    Which of these turn into a prompt is decided against the open dialog
    (see live_scoring.session.next_ui_state), so repeated calls are safe.
    """
    if state.match.is_locked:
        return CompletionSignals()

    innings = state.live.current_innings
    over_by_predicate = is_innings_complete(state.batting_score, state.match.format)

    bowler_overs = current_bowler_overs(state)
    return CompletionSignals(
        innings_complete=innings == 1 and over_by_predicate,
        match_complete=innings == 2 and over_by_predicate,
        target_reached=is_target_reached(state),
        bowler_change_required=is_bowler_change_required(state),
        bowler_overs=None if bowler_overs is None else int(bowler_overs * 10) / 10,
    )
