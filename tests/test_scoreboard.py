from conftest import make_state
from live_scoring.models import TeamScore
from live_scoring.processor import DeliveryRequest, apply
from live_scoring.scoreboard import (
    Partnership,
    current_run_rate,
    format_overs,
    format_score,
    partnership_from_history,
    required_run_rate,
    runs_needed,
    scoreboard,
)


def test_format_score():
    assert format_overs(12, 3) == "12.3"
    assert format_score(TeamScore(runs=123, wickets=4, overs=12, balls=3)) == "123/4 (12.3)"
    assert format_score(None) == "0/0 (0.0)"


def test_run_rates():
    assert current_run_rate(TeamScore()) == 0.0
    assert current_run_rate(TeamScore(runs=45, overs=5, balls=0)) == 9.0
    assert runs_needed(151, 160) == 0
    assert required_run_rate(151, 100, 30) == 10.2
    assert required_run_rate(151, 100, 0) is None


def test_partnership_counts_since_last_wicket():
    state = make_state()
    state = apply(state, DeliveryRequest(runs=4)).state
    state = apply(
        state, DeliveryRequest(runs=0, is_wicket=True, dismissal_type="bowled", incoming_batter_id="S3")
    ).state
    state = apply(state, DeliveryRequest(runs=2)).state
    state = apply(state, DeliveryRequest(runs=1, ball_type="wide")).state

    p = partnership_from_history(state.history, 1)
    assert p == Partnership(runs=3, balls=1)
    assert Partnership(runs=40, balls=27).describe() == "27 balls (4.3 overs)"


def test_scoreboard_chase_block():
    state = make_state(
        innings=2,
        batting_team="away",
        home=TeamScore(runs=150, wickets=8, overs=20),
        away=TeamScore(runs=100, wickets=2, overs=15),
    )
    board = scoreboard(state)
    assert board["home"]["display"] == "150/8 (20.0)"
    assert board["chase"] == {"target": 151, "runs_needed": 51, "required_run_rate": 10.2}
    assert board["signals"]["target_reached"] is False


def test_scoreboard_first_innings_has_no_chase():
    assert "chase" not in scoreboard(make_state())
