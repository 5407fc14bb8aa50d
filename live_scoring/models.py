from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Literal, Tuple

from live_scoring.rules import BALLS_PER_OVER, MAX_WICKETS

Side = Literal["home", "away"]
MatchStatus = Literal["upcoming", "live", "completed", "cancelled"]
SyncStatus = Literal["synced", "syncing", "error"]

DismissalType = Literal[
    "bowled",
    "caught",
    "lbw",
    "run_out",
    "stumped",
    "hit_wicket",
    "retired_hurt",
    "retired_out",
    "handled_ball",
    "obstructing_field",
    "timed_out",
]

DISMISSAL_TYPES: Tuple[str, ...] = (
    "bowled",
    "caught",
    "lbw",
    "run_out",
    "stumped",
    "hit_wicket",
    "retired_hurt",
    "retired_out",
    "handled_ball",
    "obstructing_field",
    "timed_out",
)
DISMISSALS_NEEDING_FIELDER = frozenset({"caught", "run_out", "stumped"})


def other_side(side: Side) -> Side:
    return "away" if side == "home" else "home"


# -----------------------------
# Match header
# -----------------------------
@dataclass(frozen=True)
class Player:
    id: str
    name: str = ""


@dataclass(frozen=True)
class Match:
    match_id: str
    status: MatchStatus = "upcoming"
    format: str = "t20"
    is_locked: bool = False
    setup_complete: bool = False

    home_name: str = ""
    away_name: str = ""

    # Playing XIs from match setup (read-only here)
    home_xi: Tuple[Player, ...] = ()
    away_xi: Tuple[Player, ...] = ()

    def playing_xi(self, side: Side) -> Tuple[Player, ...]:
        return self.home_xi if side == "home" else self.away_xi


# -----------------------------
# Score
# -----------------------------
@dataclass(frozen=True)
class TeamScore:
    runs: int = 0
    wickets: int = 0
    overs: int = 0
    balls: int = 0  # legal balls in the current over, 0-5

    def __post_init__(self) -> None:
        if self.runs < 0:
            raise ValueError("runs cannot be negative")
        if self.wickets < 0 or self.wickets > MAX_WICKETS:
            raise ValueError(f"wickets must be 0-{MAX_WICKETS}, got {self.wickets}")
        if self.overs < 0:
            raise ValueError("overs cannot be negative")
        if self.balls < 0 or self.balls >= BALLS_PER_OVER:
            raise ValueError(f"balls must be 0-5, got {self.balls}")

    @property
    def total_balls(self) -> int:
        return self.overs * BALLS_PER_OVER + self.balls


@dataclass(frozen=True)
class Score:
    home: TeamScore = TeamScore()
    away: TeamScore = TeamScore()

    def for_side(self, side: Side) -> TeamScore:
        return self.home if side == "home" else self.away

    def with_side(self, side: Side, team_score: TeamScore) -> "Score":
        if side == "home":
            return replace(self, home=team_score)
        return replace(self, away=team_score)


# -----------------------------
# Live state
# -----------------------------
@dataclass(frozen=True)
class LiveState:
    current_innings: int = 1
    batting_team: Side = "home"
    striker_id: str = ""
    non_striker_id: str = ""
    bowler_id: str = ""
    current_over: int = 0
    current_ball: int = 0
    free_hit: bool = False

    def __post_init__(self) -> None:
        if self.current_innings not in (1, 2):
            raise ValueError(f"current_innings must be 1 or 2, got {self.current_innings}")
        if self.striker_id and self.striker_id == self.non_striker_id:
            raise ValueError("striker and non-striker must differ")

    @property
    def bowling_team(self) -> Side:
        return other_side(self.batting_team)

    @property
    def has_players(self) -> bool:
        return bool(self.striker_id.strip() and self.non_striker_id.strip() and self.bowler_id.strip())


# -----------------------------
# Ball history
# -----------------------------
@dataclass(frozen=True)
class Delivery:
    """
    One recorded delivery. over/ball and the player ids are the values
    BEFORE the delivery was applied (what the backend expects).
    """
    innings: int
    over: int
    ball: int
    runs: int
    ball_type: str
    striker_id: str
    non_striker_id: str
    bowler_id: str
    timestamp: datetime

    is_wicket: bool = False
    is_free_hit: bool = False
    dismissal_type: Optional[str] = None
    dismissed_batter_id: Optional[str] = None
    fielder_id: Optional[str] = None
    incoming_batter_id: Optional[str] = None


# -----------------------------
# Server-derived stats (display only)
# -----------------------------
@dataclass(frozen=True)
class BattingStat:
    player_id: str
    innings: int
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    strike_rate: float = 0.0


@dataclass(frozen=True)
class BowlingStat:
    player_id: str
    innings: int
    overs: int = 0
    balls: int = 0
    runs: int = 0
    wickets: int = 0
    economy: float = 0.0

    @property
    def total_overs(self) -> float:
        return self.overs + self.balls / BALLS_PER_OVER


# -----------------------------
# Whole-match scoring snapshot
# -----------------------------
@dataclass(frozen=True)
class ScoreState:
    match: Match
    score: Score = Score()
    live: LiveState = LiveState()
    batting_stats: Tuple[BattingStat, ...] = ()
    bowling_stats: Tuple[BowlingStat, ...] = ()
    history: Tuple[Delivery, ...] = ()

    @property
    def batting_score(self) -> TeamScore:
        return self.score.for_side(self.live.batting_team)

    @property
    def bowling_score(self) -> TeamScore:
        return self.score.for_side(self.live.bowling_team)

    def bowling_stat_for(self, player_id: str, innings: int) -> Optional[BowlingStat]:
        for s in self.bowling_stats:
            if s.player_id == player_id and s.innings == innings:
                return s
        return None

    def batting_stat_for(self, player_id: str, innings: int) -> Optional[BattingStat]:
        for s in self.batting_stats:
            if s.player_id == player_id and s.innings == innings:
                return s
        return None
