from datetime import datetime, timezone

import pytest

from conftest import make_state
from live_scoring.errors import (
    IncompleteSetupError,
    InningsCompleteError,
    InvalidDeliveryError,
    MatchLockedError,
    MatchNotLiveError,
)
from live_scoring.models import TeamScore
from live_scoring.processor import DeliveryRequest, UiIntent, apply, intent_for

NOW = datetime(2026, 3, 14, 18, 30, tzinfo=timezone.utc)


def _apply(state, **kwargs):
    return apply(state, DeliveryRequest(**kwargs), now=NOW)


# =============================================================================
# Worked scenarios
# =============================================================================

def test_single_rotates_strike():
    state = make_state(over=0, ball=0)
    out = _apply(state, runs=1).state
    assert (out.live.current_over, out.live.current_ball) == (0, 1)
    assert out.live.striker_id == "S2"
    assert out.live.non_striker_id == "S1"
    assert out.score.home.runs == 1


def test_even_runs_on_last_ball_swap_at_end_of_over():
    state = make_state(over=2, ball=5, home=TeamScore(runs=10, overs=2, balls=5))
    out = _apply(state, runs=2).state
    assert (out.live.current_over, out.live.current_ball) == (3, 0)
    assert out.live.striker_id == "S2"
    assert out.score.home == TeamScore(runs=12, wickets=0, overs=3, balls=0)


def test_wide_with_three_extra_runs():
    state = make_state(over=1, ball=2, home=TeamScore(runs=7, overs=1, balls=2))
    out = _apply(state, runs=4, ball_type="wide").state
    assert out.score.home.runs == 11
    assert out.live.striker_id == "S1"  # 4 total runs, even
    assert (out.live.current_over, out.live.current_ball) == (1, 2)
    assert (out.score.home.overs, out.score.home.balls) == (1, 2)


def test_wide_with_odd_total_swaps_strike():
    out = _apply(make_state(), runs=1, ball_type="wide").state
    assert out.live.striker_id == "S2"
    assert out.live.current_ball == 0


def test_free_hit_lifecycle_after_no_ball():
    state = make_state()
    after_nb = _apply(state, runs=1, ball_type="no_ball").state
    assert after_nb.live.free_hit is True
    assert after_nb.live.current_ball == 0

    after_next = _apply(after_nb, runs=0).state
    assert after_next.live.free_hit is False
    assert after_next.history[-1].is_free_hit is True


def test_wide_after_no_ball_keeps_free_hit():
    after_nb = _apply(make_state(), runs=1, ball_type="no_ball").state
    after_wide = _apply(after_nb, runs=1, ball_type="wide").state
    assert after_wide.live.free_hit is True


def test_wicket_with_one_run():
    state = make_state()
    out = _apply(
        state, runs=1, is_wicket=True, dismissal_type="run_out", fielder_id="F1", incoming_batter_id="S3"
    ).state
    assert out.live.striker_id == "S2"
    assert out.live.non_striker_id == "S3"
    assert out.score.home.wickets == 1
    assert out.score.home.runs == 1


# =============================================================================
# Properties
# =============================================================================

@pytest.mark.parametrize("ball_type", ["normal", "bye", "leg_bye"])
def test_legal_deliveries_advance(ball_type):
    out = _apply(make_state(over=0, ball=3), runs=0, ball_type=ball_type).state
    assert out.live.current_ball == 4


@pytest.mark.parametrize("ball_type", ["wide", "no_ball"])
def test_illegal_deliveries_never_advance(ball_type):
    out = _apply(make_state(over=4, ball=5), runs=2, ball_type=ball_type).state
    assert (out.live.current_over, out.live.current_ball) == (4, 5)


def test_team_overs_advance_from_the_team_score():
    # score moved on by a push, live position not yet
    state = make_state(over=0, ball=0, home=TeamScore(runs=40, overs=5, balls=2))
    out = _apply(state, runs=1).state
    assert out.score.home == TeamScore(runs=41, wickets=0, overs=5, balls=3)
    assert (out.live.current_over, out.live.current_ball) == (0, 1)

    out = _apply(make_state(home=TeamScore(runs=40, overs=5, balls=5)), runs=1, ball_type="wide").state
    assert out.score.home == TeamScore(runs=41, wickets=0, overs=5, balls=5)


def test_bye_on_last_ball_completes_over():
    out = _apply(make_state(over=0, ball=5), runs=1, ball_type="leg_bye").state
    assert (out.live.current_over, out.live.current_ball) == (1, 0)
    # odd runs and over completion cancel out
    assert out.live.striker_id == "S1"


def test_even_run_wicket_puts_incoming_batter_on_strike():
    out = _apply(make_state(), runs=0, is_wicket=True, dismissal_type="bowled", incoming_batter_id="S3").state
    assert out.live.striker_id == "S3"
    assert out.live.non_striker_id == "S2"


def test_wicket_on_last_ball_applies_end_of_over_after_placement():
    state = make_state(over=3, ball=5, home=TeamScore(runs=20, overs=3, balls=5))
    out = _apply(state, runs=0, is_wicket=True, dismissal_type="lbw", incoming_batter_id="S3").state
    # incoming on strike, then the over ends
    assert out.live.striker_id == "S2"
    assert out.live.non_striker_id == "S3"

    out_odd = _apply(
        state, runs=1, is_wicket=True, dismissal_type="run_out", fielder_id="F1", incoming_batter_id="S3"
    ).state
    assert out_odd.live.striker_id == "S3"
    assert out_odd.live.non_striker_id == "S2"


def test_wicket_on_free_hit_clears_it():
    state = make_state(free_hit=True)
    out = _apply(state, runs=0, is_wicket=True, dismissal_type="run_out", fielder_id="F1", incoming_batter_id="S3")
    assert out.state.live.free_hit is False
    assert out.delivery.is_free_hit is True


def test_tenth_wicket_needs_no_incoming_batter():
    state = make_state(home=TeamScore(runs=90, wickets=9, overs=15, balls=2), over=15, ball=2)
    out = _apply(state, runs=0, is_wicket=True, dismissal_type="bowled").state
    assert out.score.home.wickets == 10


def test_history_records_pre_delivery_position():
    state = make_state(over=5, ball=3, bowler="B9")
    applied = _apply(state, runs=4)
    d = applied.delivery
    assert (d.over, d.ball) == (5, 3)
    assert (d.striker_id, d.non_striker_id, d.bowler_id) == ("S1", "S2", "B9")
    assert d.timestamp == NOW
    assert applied.state.history == (d,)


def test_apply_does_not_mutate_input():
    state = make_state()
    _apply(state, runs=3)
    assert state.score.home.runs == 0
    assert state.history == ()


# =============================================================================
# Rejections
# =============================================================================

def test_rejects_when_not_live():
    with pytest.raises(MatchNotLiveError):
        _apply(make_state(status="upcoming"), runs=1)


def test_rejects_when_locked():
    with pytest.raises(MatchLockedError):
        _apply(make_state(status="completed", is_locked=True), runs=1)


def test_rejects_without_bowler():
    with pytest.raises(IncompleteSetupError) as exc:
        _apply(make_state(bowler=""), runs=1)
    assert exc.value.redirect_to_setup is True


def test_rejects_after_innings_complete():
    state = make_state(home=TeamScore(runs=150, wickets=6, overs=20, balls=0), over=20, ball=0)
    with pytest.raises(InningsCompleteError):
        _apply(state, runs=1)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"runs": 7},
        {"runs": -1},
        {"runs": 0, "ball_type": "wide"},
        {"runs": 6, "ball_type": "no_ball"},
        {"runs": 1, "ball_type": "dead_ball"},
        {"runs": 0, "is_wicket": True, "dismissal_type": "bowled"},
        {"runs": 0, "is_wicket": True, "dismissal_type": "caught", "incoming_batter_id": "S3"},
        {"runs": 0, "is_wicket": True, "dismissal_type": "vanished", "incoming_batter_id": "S3"},
        {"runs": 1, "ball_type": "wide", "is_wicket": True, "dismissal_type": "stumped",
         "fielder_id": "K", "incoming_batter_id": "S3"},
        {"runs": 0, "is_wicket": True, "dismissal_type": "bowled", "incoming_batter_id": "S2"},
    ],
)
def test_rejects_malformed_delivery(kwargs):
    with pytest.raises(InvalidDeliveryError):
        _apply(make_state(), **kwargs)


# =============================================================================
# UI intent
# =============================================================================

def test_intent_for():
    assert intent_for("normal", False) is UiIntent.NONE
    assert intent_for("bye", False) is UiIntent.NONE
    assert intent_for("wide", False) is UiIntent.COLLECT_EXTRAS
    assert intent_for("no_ball", False) is UiIntent.COLLECT_EXTRAS
    assert intent_for("normal", True) is UiIntent.COLLECT_WICKET
