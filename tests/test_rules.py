import pytest

from live_scoring import rules


# =============================================================================
# Legal deliveries and runs
# =============================================================================

@pytest.mark.parametrize(
    "ball_type,legal",
    [("normal", True), ("bye", True), ("leg_bye", True), ("wide", False), ("no_ball", False)],
)
def test_is_legal_delivery(ball_type, legal):
    assert rules.is_legal_delivery(ball_type) is legal


def test_unknown_ball_type_is_rejected():
    with pytest.raises(ValueError):
        rules.is_legal_delivery("beamer")


def test_every_ball_type_credits_its_runs():
    for bt in rules.BALL_TYPES:
        assert rules.team_runs_for_delivery(3, bt) == 3


def test_wide_and_no_ball_add_one_penalty_run():
    assert rules.extras_total_runs("wide", 0) == 1
    assert rules.extras_total_runs("wide", 3) == 4
    assert rules.extras_total_runs("no_ball", 4) == 5


def test_byes_have_no_implicit_base_run():
    assert rules.extras_total_runs("bye", 0) == 0
    assert rules.extras_total_runs("leg_bye", 2) == 2


@pytest.mark.parametrize("ball_type,runs", [("wide", 5), ("no_ball", -1), ("bye", 7)])
def test_extras_runs_out_of_range(ball_type, runs):
    with pytest.raises(ValueError):
        rules.extras_total_runs(ball_type, runs)


def test_extras_total_runs_rejects_normal_ball():
    with pytest.raises(ValueError):
        rules.extras_total_runs("normal", 1)


# =============================================================================
# Over advance and strike rotation
# =============================================================================

def test_advance_within_over():
    assert rules.advance_over(3, 4) == rules.OverAdvance(3, 5, False)


def test_sixth_legal_ball_rolls_the_over():
    assert rules.advance_over(3, 5) == rules.OverAdvance(4, 0, True)


def test_advance_over_rejects_uncollapsed_ball():
    with pytest.raises(ValueError):
        rules.advance_over(0, 6)


def test_full_over_of_legal_balls():
    over, ball = 0, 0
    completions = 0
    for _ in range(6):
        adv = rules.advance_over(over, ball)
        over, ball = adv.over, adv.ball
        completions += adv.over_complete
    assert (over, ball) == (1, 0)
    assert completions == 1


@pytest.mark.parametrize("runs", range(7))
def test_strike_swaps_iff_runs_odd(runs):
    striker, non = rules.rotate_strike("A", "B", runs, over_complete=False)
    assert (striker == "B") is (runs % 2 == 1)


def test_end_of_over_swap_composes_with_parity():
    # even runs on the last ball: only the end-of-over swap
    assert rules.rotate_strike("A", "B", 2, over_complete=True) == ("B", "A")
    # odd runs on the last ball: the two swaps cancel out
    assert rules.rotate_strike("A", "B", 1, over_complete=True) == ("A", "B")


# =============================================================================
# Free hit
# =============================================================================

def test_no_ball_arms_free_hit():
    assert rules.next_free_hit(False, "no_ball") is True


def test_wide_leaves_free_hit_unchanged():
    assert rules.next_free_hit(True, "wide") is True
    assert rules.next_free_hit(False, "wide") is False


@pytest.mark.parametrize("ball_type", ["normal", "bye", "leg_bye"])
def test_legal_delivery_clears_free_hit(ball_type):
    assert rules.next_free_hit(True, ball_type) is False


# =============================================================================
# Format caps and helpers
# =============================================================================

@pytest.mark.parametrize(
    "fmt,innings_cap,bowler_cap",
    [
        ("t20", 20, 4),
        ("T20I", 20, 4),
        ("odi", 50, 10),
        ("list-a", 50, 10),
        ("test", None, None),
        ("first-class", None, None),
    ],
)
def test_format_caps(fmt, innings_cap, bowler_cap):
    assert rules.innings_overs_cap(fmt) == innings_cap
    assert rules.bowler_overs_cap(fmt) == bowler_cap


def test_boundary_flags_are_runs_based():
    assert rules.is_boundary(4) and not rules.is_six(4)
    assert rules.is_six(6) and not rules.is_boundary(6)
    assert not rules.is_boundary(5)


def test_balls_to_overs():
    assert rules.balls_to_overs(75) == (12, 3)
    assert rules.overs_to_balls(12, 3) == 75
