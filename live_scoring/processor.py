"""
Delivery processor.

Applies one delivery to a ScoreState and returns the new state together
with the Delivery record appended to the ball history. Nothing here talks to
the network; every failure is a local ScoringError.

Usage:
    from live_scoring.processor import DeliveryRequest, apply

    applied = apply(state, DeliveryRequest(runs=1))
    applied.state.live.striker_id   # batters crossed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from live_scoring import rules
from live_scoring.errors import InvalidDeliveryError
from live_scoring.models import (
    DISMISSAL_TYPES,
    DISMISSALS_NEEDING_FIELDER,
    Delivery,
    LiveState,
    ScoreState,
    TeamScore,
)
from live_scoring.phases import require_in_progress

logger = logging.getLogger(__name__)


class UiIntent(str, Enum):
    """What the scorer has to be asked before a delivery can be finalized."""
    NONE = "none"
    COLLECT_EXTRAS = "collect_extras"
    COLLECT_WICKET = "collect_wicket"


@dataclass(frozen=True)
class DeliveryRequest:
    """
    A fully specified delivery. `runs` is the total credited to the batting
    side; for wides/no-balls it already includes the one-run penalty.
    """
    runs: int
    ball_type: str = "normal"
    is_wicket: bool = False
    dismissal_type: Optional[str] = None
    fielder_id: Optional[str] = None
    incoming_batter_id: Optional[str] = None


@dataclass(frozen=True)
class Applied:
    state: ScoreState
    delivery: Delivery


def intent_for(ball_type: str, is_wicket: bool) -> UiIntent:
    """
    Normal, bye and leg-bye go straight through. Wides and no-balls need the
    additional runs; wickets need dismissal type, fielder and incoming batter.
    """
    if is_wicket:
        return UiIntent.COLLECT_WICKET
    if ball_type in rules.EXTRAS_WITH_BASE_RUN:
        return UiIntent.COLLECT_EXTRAS
    if ball_type not in rules.BALL_TYPES:
        raise InvalidDeliveryError(f"Unknown ball type: {ball_type}")
    return UiIntent.NONE


def _validate_runs(request: DeliveryRequest) -> None:
    bt = request.ball_type
    if bt not in rules.BALL_TYPES:
        raise InvalidDeliveryError(f"Unknown ball type: {bt}")

    if bt in rules.EXTRAS_WITH_BASE_RUN:
        lo, hi = 1, 1 + rules.MAX_ADDITIONAL_EXTRAS_RUNS
    else:
        lo, hi = 0, rules.MAX_RUNS_PER_DELIVERY

    if request.runs < lo or request.runs > hi:
        raise InvalidDeliveryError(f"Runs for {bt} must be {lo}-{hi}, got {request.runs}")


def _validate_wicket(state: ScoreState, request: DeliveryRequest) -> None:
    if not rules.is_legal_delivery(request.ball_type):
        raise InvalidDeliveryError(f"A wicket cannot be recorded on a {request.ball_type}")

    if request.dismissal_type not in DISMISSAL_TYPES:
        raise InvalidDeliveryError(f"Unknown dismissal type: {request.dismissal_type}")

    if request.dismissal_type in DISMISSALS_NEEDING_FIELDER and not (request.fielder_id or "").strip():
        raise InvalidDeliveryError(f"Dismissal {request.dismissal_type} requires a fielder")

    incoming = (request.incoming_batter_id or "").strip()
    last_wicket = state.batting_score.wickets + 1 >= rules.MAX_WICKETS
    if not incoming and not last_wicket:
        raise InvalidDeliveryError("Incoming batter is required")
    if incoming and incoming in (state.live.striker_id, state.live.non_striker_id):
        raise InvalidDeliveryError("Incoming batter is already at the crease")


def validate(state: ScoreState, request: DeliveryRequest) -> None:
    """Local checks only; raises a ScoringError subclass on failure."""
    require_in_progress(state)
    _validate_runs(request)
    if request.is_wicket:
        _validate_wicket(state, request)


def _place_batters(live: LiveState, request: DeliveryRequest, over_complete: bool):
    striker, non_striker = live.striker_id, live.non_striker_id

    if not request.is_wicket:
        return rules.rotate_strike(striker, non_striker, request.runs, over_complete)

    # Striker is out. Odd runs: the batters crossed, the new batter goes to
    # the non-striker's end. Even runs: the new batter takes strike.
    incoming = (request.incoming_batter_id or "").strip()
    if rules.should_rotate_strike(request.runs):
        striker, non_striker = non_striker, incoming
    else:
        striker = incoming

    if over_complete:
        striker, non_striker = rules.swap(striker, non_striker)
    return striker, non_striker


def apply(state: ScoreState, request: DeliveryRequest, *, now: Optional[datetime] = None) -> Applied:
    validate(state, request)

    live = state.live
    team = state.batting_score
    legal = rules.is_legal_delivery(request.ball_type)

    # The team counter moves from its own overs/balls: a push or a manual
    # score entry can change it without touching the live position.
    if legal:
        advance = rules.advance_over(live.current_over, live.current_ball)
        team_pos = rules.advance_over(team.overs, team.balls)
    else:
        advance = rules.OverAdvance(live.current_over, live.current_ball, False)
        team_pos = rules.OverAdvance(team.overs, team.balls, False)

    striker, non_striker = _place_batters(live, request, advance.over_complete)
    runs = rules.team_runs_for_delivery(request.runs, request.ball_type)

    new_team = TeamScore(
        runs=team.runs + runs,
        wickets=team.wickets + (1 if request.is_wicket else 0),
        overs=team_pos.over,
        balls=team_pos.ball,
    )
    new_live = replace(
        live,
        striker_id=striker,
        non_striker_id=non_striker,
        current_over=advance.over,
        current_ball=advance.ball,
        free_hit=rules.next_free_hit(live.free_hit, request.ball_type),
    )

    delivery = Delivery(
        innings=live.current_innings,
        over=live.current_over,
        ball=live.current_ball,
        runs=request.runs,
        ball_type=request.ball_type,
        striker_id=live.striker_id,
        non_striker_id=live.non_striker_id,
        bowler_id=live.bowler_id,
        timestamp=now or datetime.now(timezone.utc),
        is_wicket=request.is_wicket,
        is_free_hit=live.free_hit,
        dismissal_type=request.dismissal_type if request.is_wicket else None,
        dismissed_batter_id=live.striker_id if request.is_wicket else None,
        fielder_id=request.fielder_id if request.is_wicket else None,
        incoming_batter_id=request.incoming_batter_id if request.is_wicket else None,
    )

    new_state = replace(
        state,
        score=state.score.with_side(live.batting_team, new_team),
        live=new_live,
        history=state.history + (delivery,),
    )

    logger.debug(
        "Applied %s runs=%d wicket=%s at %d.%d -> %d.%d striker=%s",
        request.ball_type,
        request.runs,
        request.is_wicket,
        live.current_over,
        live.current_ball,
        advance.over,
        advance.ball,
        striker,
    )
    return Applied(state=new_state, delivery=delivery)
