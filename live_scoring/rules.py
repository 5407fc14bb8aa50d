# live_scoring/rules.py
from __future__ import annotations

from typing import Literal, NamedTuple, Optional, Tuple

BallType = Literal["normal", "wide", "no_ball", "bye", "leg_bye"]
MatchFormat = Literal["t20", "t20i", "odi", "test", "first-class", "list-a"]

BALL_TYPES: Tuple[str, ...] = ("normal", "wide", "no_ball", "bye", "leg_bye")
LEGAL_BALL_TYPES = frozenset({"normal", "bye", "leg_bye"})
EXTRAS_WITH_BASE_RUN = frozenset({"wide", "no_ball"})

BALLS_PER_OVER = 6
MAX_WICKETS = 10

# Scorer picks 0-4 runs on top of the one-run penalty for wides/no-balls
MAX_ADDITIONAL_EXTRAS_RUNS = 4
MAX_RUNS_PER_DELIVERY = 6

# None = uncapped (never completes by overs)
INNINGS_OVERS_CAP = {
    "t20": 20,
    "t20i": 20,
    "odi": 50,
    "list-a": 50,
    "test": None,
    "first-class": None,
}

BOWLER_OVERS_CAP = {
    "t20": 4,
    "t20i": 4,
    "odi": 10,
    "list-a": 10,
    "test": None,
    "first-class": None,
}


class OverAdvance(NamedTuple):
    over: int
    ball: int
    over_complete: bool


def _normalize_format(match_format: str) -> str:
    return str(match_format or "").strip().lower()


def is_legal_delivery(ball_type: str) -> bool:
    """
    Legal deliveries count toward the six-ball over: normal, bye, leg_bye.
    Wides and no-balls never advance the ball counter.
    """
    if ball_type not in BALL_TYPES:
        raise ValueError(f"Unknown ball type: {ball_type}")
    return ball_type in LEGAL_BALL_TYPES


def team_runs_for_delivery(runs: int, ball_type: str) -> int:
    """
    Every ball type credits its full runs value to the batting side.
    For wides/no-balls the caller has already folded the one-run penalty
    into runs (see extras_total_runs).
    """
    if ball_type not in BALL_TYPES:
        raise ValueError(f"Unknown ball type: {ball_type}")
    if runs < 0:
        raise ValueError("Runs cannot be negative")
    return int(runs)


def extras_total_runs(ball_type: str, scorer_runs: int) -> int:
    """
    Runs credited for an extras delivery.

    - wide / no_ball: 1 (penalty) + additional runs chosen by the scorer (0-4)
    - bye / leg_bye: the scorer's value directly, no implicit base run
    """
    if ball_type in EXTRAS_WITH_BASE_RUN:
        if scorer_runs < 0 or scorer_runs > MAX_ADDITIONAL_EXTRAS_RUNS:
            raise ValueError(
                f"Additional runs for {ball_type} must be 0-{MAX_ADDITIONAL_EXTRAS_RUNS}, got {scorer_runs}"
            )
        return 1 + int(scorer_runs)

    if ball_type in ("bye", "leg_bye"):
        if scorer_runs < 0 or scorer_runs > MAX_RUNS_PER_DELIVERY:
            raise ValueError(f"Runs for {ball_type} must be 0-{MAX_RUNS_PER_DELIVERY}, got {scorer_runs}")
        return int(scorer_runs)

    raise ValueError(f"{ball_type} is not an extras ball type")


def should_rotate_strike(runs: int) -> bool:
    """Odd runs swap the batters, whatever the ball type."""
    return runs % 2 == 1


def advance_over(current_over: int, current_ball: int) -> OverAdvance:
    """
    Position after one legal delivery.

    Example: (3, 4) -> (3, 5); (3, 5) -> (4, 0) with over_complete=True.
    """
    if current_over < 0:
        raise ValueError(f"Invalid over: {current_over}")
    if current_ball < 0 or current_ball >= BALLS_PER_OVER:
        raise ValueError(f"Invalid ball: {current_ball} (must be 0-5)")

    next_ball = current_ball + 1
    if next_ball == BALLS_PER_OVER:
        return OverAdvance(current_over + 1, 0, True)
    return OverAdvance(current_over, next_ball, False)


def swap(striker_id: str, non_striker_id: str) -> Tuple[str, str]:
    return non_striker_id, striker_id


def rotate_strike(striker_id: str, non_striker_id: str, runs: int, over_complete: bool) -> Tuple[str, str]:
    """
    Parity swap first, then the end-of-over swap. The two compose:
    an odd-run last ball leaves the same batter on strike for the next over.
    """
    if should_rotate_strike(runs):
        striker_id, non_striker_id = swap(striker_id, non_striker_id)
    if over_complete:
        striker_id, non_striker_id = swap(striker_id, non_striker_id)
    return striker_id, non_striker_id


def next_free_hit(free_hit: bool, ball_type: str) -> bool:
    """
    A no-ball arms the free hit; the next legal delivery clears it whether or
    not a wicket falls. A wide leaves it as it was.
    """
    if ball_type == "no_ball":
        return True
    if is_legal_delivery(ball_type):
        return False
    return free_hit


def innings_overs_cap(match_format: str) -> Optional[int]:
    return INNINGS_OVERS_CAP.get(_normalize_format(match_format))


def bowler_overs_cap(match_format: str) -> Optional[int]:
    return BOWLER_OVERS_CAP.get(_normalize_format(match_format))


def is_boundary(runs: int) -> bool:
    return runs == 4


def is_six(runs: int) -> bool:
    return runs == 6


def overs_to_balls(overs: int, balls: int) -> int:
    return overs * BALLS_PER_OVER + balls


def balls_to_overs(total_balls: int) -> Tuple[int, int]:
    if total_balls < 0:
        raise ValueError("Balls cannot be negative")
    return total_balls // BALLS_PER_OVER, total_balls % BALLS_PER_OVER
