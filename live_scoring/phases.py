# live_scoring/phases.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from live_scoring.completion import is_innings_complete, is_target_reached
from live_scoring.errors import (
    IncompleteSetupError,
    InningsCompleteError,
    MatchLockedError,
    MatchNotLiveError,
)
from live_scoring.models import ScoreState, Side


# -----------------------------
# Lifecycle phases
# -----------------------------
@dataclass(frozen=True)
class SetupIncomplete:
    missing: Tuple[str, ...]


@dataclass(frozen=True)
class InningsInProgress:
    innings: int
    batting_team: Side
    striker_id: str
    non_striker_id: str
    bowler_id: str


@dataclass(frozen=True)
class InningsBreak:
    first_innings_total: int

    @property
    def target(self) -> int:
        return self.first_innings_total + 1


@dataclass(frozen=True)
class MatchComplete:
    locked: bool


Phase = Union[SetupIncomplete, InningsInProgress, InningsBreak, MatchComplete]


def _missing_players(state: ScoreState) -> Tuple[str, ...]:
    live = state.live
    missing = []
    if not live.striker_id.strip():
        missing.append("striker")
    if not live.non_striker_id.strip():
        missing.append("non-striker")
    if not live.bowler_id.strip():
        missing.append("bowler")
    return tuple(missing)


def classify(state: ScoreState) -> Phase:
    if state.match.is_locked or state.match.status == "completed":
        return MatchComplete(locked=state.match.is_locked)

    innings_over = is_innings_complete(state.batting_score, state.match.format)
    if state.live.current_innings == 1 and innings_over:
        return InningsBreak(first_innings_total=state.batting_score.runs)
    if state.live.current_innings == 2 and (innings_over or is_target_reached(state)):
        return MatchComplete(locked=False)

    missing = _missing_players(state)
    if missing:
        return SetupIncomplete(missing=missing)

    live = state.live
    return InningsInProgress(
        innings=live.current_innings,
        batting_team=live.batting_team,
        striker_id=live.striker_id,
        non_striker_id=live.non_striker_id,
        bowler_id=live.bowler_id,
    )


def ensure_mutable(state: ScoreState) -> None:
    """Locked matches refuse every mutating operation."""
    if state.match.is_locked:
        raise MatchLockedError("Match is locked and cannot be edited")


def require_in_progress(state: ScoreState) -> InningsInProgress:
    """
    Gate for scoring a delivery. Order matters: locked, then not live,
    then the phase itself.
    """
    ensure_mutable(state)
    if state.match.status != "live":
        raise MatchNotLiveError(f"Match is {state.match.status}, not live")

    phase = classify(state)
    if isinstance(phase, SetupIncomplete):
        raise IncompleteSetupError(
            "Please complete match setup: select "
            + ", ".join(phase.missing)
        )
    if isinstance(phase, InningsBreak):
        raise InningsCompleteError("Innings is complete; start the second innings")
    if isinstance(phase, MatchComplete):
        raise InningsCompleteError("Match is complete; no further deliveries")
    return phase
