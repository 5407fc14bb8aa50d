# live_scoring/snapshot.py
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from live_scoring.models import (
    BattingStat,
    BowlingStat,
    Delivery,
    LiveState,
    Match,
    Player,
    Score,
    ScoreState,
    TeamScore,
)
from live_scoring.rules import BALLS_PER_OVER, is_boundary, is_six


class SnapshotError(ValueError):
    """Raised when a backend match snapshot cannot be turned into a ScoreState."""
    pass


def _safe_int(x: object, default: int = 0) -> int:
    try:
        if x is None:
            return default
        sx = str(x).strip()
        if not sx or sx.lower() == "nan":
            return default
        return int(float(sx))
    except Exception:
        return default


def _safe_float(x: object, default: float = 0.0) -> float:
    try:
        if x is None:
            return default
        return float(x)
    except Exception:
        return default


def _safe_bool(x: object, default: bool = False) -> bool:
    if isinstance(x, bool):
        return x
    if x is None:
        return default
    sx = str(x).strip().lower()
    if sx in ("true", "1", "yes"):
        return True
    if sx in ("false", "0", "no", ""):
        return False
    return default


def _clean_id(x: object) -> str:
    if x is None:
        return ""
    return str(x).strip()


def _utc_iso(ts: datetime) -> str:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts.isoformat() + "Z"


# -----------------------------
# Inbound: backend JSON -> models
# -----------------------------
def parse_team_score(raw: Optional[Dict[str, Any]]) -> TeamScore:
    """
    Accepts {"runs", "wickets", "overs", "balls"?}.

    Some payloads carry overs in notation form (12.3 = 12 overs, 3 balls)
    and omit balls; six or more balls are collapsed into overs.
    """
    if not raw:
        return TeamScore()

    runs = max(0, _safe_int(raw.get("runs")))
    wickets = min(10, max(0, _safe_int(raw.get("wickets"))))

    overs_raw = raw.get("overs")
    balls_raw = raw.get("balls")

    if balls_raw is None and overs_raw is not None and "." in str(overs_raw):
        ov_part, ball_part = str(overs_raw).split(".", 1)
        overs = _safe_int(ov_part)
        balls = _safe_int(ball_part[:1])
    else:
        overs = _safe_int(overs_raw)
        balls = _safe_int(balls_raw)

    overs = max(0, overs) + max(0, balls) // BALLS_PER_OVER
    balls = max(0, balls) % BALLS_PER_OVER
    return TeamScore(runs=runs, wickets=wickets, overs=overs, balls=balls)


def parse_score(raw: Optional[Dict[str, Any]]) -> Score:
    raw = raw or {}
    return Score(home=parse_team_score(raw.get("home")), away=parse_team_score(raw.get("away")))


def parse_live_state(raw: Optional[Dict[str, Any]], fallback: LiveState) -> LiveState:
    """
    Fields the backend sends win. Fields it omits keep the fallback value
    (the server does not always echo freeHit, for example).
    """
    if not raw:
        return fallback

    def pick(key: str, current):
        val = raw.get(key)
        return current if val is None else val

    innings = _safe_int(pick("currentInnings", fallback.current_innings), fallback.current_innings)
    if innings != fallback.current_innings:
        # live state is reset when an innings starts
        fallback = LiveState(current_innings=innings, batting_team=fallback.bowling_team)

    batting_team = pick("battingTeam", fallback.batting_team)
    if batting_team not in ("home", "away"):
        batting_team = fallback.batting_team

    # a ball count of 6 or more carries into the over, as in parse_team_score
    over = max(0, _safe_int(pick("currentOver", fallback.current_over)))
    ball = max(0, _safe_int(pick("currentBall", fallback.current_ball)))
    over, ball = over + ball // BALLS_PER_OVER, ball % BALLS_PER_OVER

    return LiveState(
        current_innings=innings,
        batting_team=batting_team,
        striker_id=_clean_id(pick("strikerId", fallback.striker_id)),
        non_striker_id=_clean_id(pick("nonStrikerId", fallback.non_striker_id)),
        bowler_id=_clean_id(pick("bowlerId", fallback.bowler_id)),
        current_over=over,
        current_ball=ball,
        free_hit=_safe_bool(pick("freeHit", fallback.free_hit), fallback.free_hit),
    )


def _parse_players(raw: Any) -> Tuple[Player, ...]:
    out: List[Player] = []
    for p in raw or []:
        if isinstance(p, dict):
            pid = _clean_id(p.get("id") or p.get("playerId"))
            if pid:
                out.append(Player(id=pid, name=str(p.get("name") or "")))
        elif p:
            out.append(Player(id=_clean_id(p)))
    return tuple(out)


def parse_match(raw: Dict[str, Any]) -> Match:
    match_id = _clean_id(raw.get("matchId") or raw.get("_id"))
    if not match_id:
        raise SnapshotError("Match snapshot has no matchId")

    teams = raw.get("teams") or {}
    setup = raw.get("matchSetup") or {}

    return Match(
        match_id=match_id,
        status=raw.get("status") or "upcoming",
        format=str(raw.get("format") or "t20").strip().lower(),
        is_locked=_safe_bool(raw.get("isLocked")),
        setup_complete=_safe_bool(setup.get("isSetupComplete")),
        home_name=str((teams.get("home") or {}).get("name") or ""),
        away_name=str((teams.get("away") or {}).get("name") or ""),
        home_xi=_parse_players(setup.get("homePlayingXI")),
        away_xi=_parse_players(setup.get("awayPlayingXI")),
    )


def parse_batting_stats(raw: Any) -> Tuple[BattingStat, ...]:
    out: List[BattingStat] = []
    for s in raw or []:
        pid = _clean_id(s.get("playerId"))
        if not pid:
            continue
        out.append(
            BattingStat(
                player_id=pid,
                innings=_safe_int(s.get("innings"), 1),
                runs=_safe_int(s.get("runs")),
                balls=_safe_int(s.get("balls")),
                fours=_safe_int(s.get("fours")),
                sixes=_safe_int(s.get("sixes")),
                strike_rate=_safe_float(s.get("strikeRate")),
            )
        )
    return tuple(out)


def parse_bowling_stats(raw: Any) -> Tuple[BowlingStat, ...]:
    out: List[BowlingStat] = []
    for s in raw or []:
        pid = _clean_id(s.get("playerId"))
        if not pid:
            continue
        out.append(
            BowlingStat(
                player_id=pid,
                innings=_safe_int(s.get("innings"), 1),
                overs=_safe_int(s.get("overs")),
                balls=_safe_int(s.get("balls")),
                runs=_safe_int(s.get("runs")),
                wickets=_safe_int(s.get("wickets")),
                economy=_safe_float(s.get("economy")),
            )
        )
    return tuple(out)


def has_score_payload(payload: Any) -> bool:
    return isinstance(payload, dict) and bool(payload.get("currentScore"))


def build_score_state(payload: Dict[str, Any], previous: Optional[ScoreState] = None) -> ScoreState:
    """
    Convert a backend match snapshot -> ScoreState.

    Rules:
      - Everything the server sends replaces local values.
      - BallHistory is client-side bookkeeping and always carries over from `previous`.
      - A missing liveState (or missing fields in it) keeps the previous live values.
    """
    if not isinstance(payload, dict):
        raise SnapshotError(f"Match snapshot must be an object, got {type(payload).__name__}")

    try:
        match = parse_match(payload)
        fallback_live = previous.live if previous is not None else LiveState()
        live = parse_live_state(payload.get("liveState"), fallback_live)

        if "currentScore" in payload or previous is None:
            score = parse_score(payload.get("currentScore"))
        else:
            score = previous.score

        return ScoreState(
            match=match,
            score=score,
            live=live,
            batting_stats=parse_batting_stats(payload.get("battingStats")),
            bowling_stats=parse_bowling_stats(payload.get("bowlingStats")),
            history=previous.history if previous is not None else (),
        )
    except SnapshotError:
        raise
    except (ValueError, TypeError, AttributeError) as e:
        raise SnapshotError(f"Invalid match snapshot: {e}") from e


# -----------------------------
# Outbound: models -> backend JSON
# -----------------------------
def record_ball_payload(state_before: ScoreState, delivery: Delivery) -> Dict[str, Any]:
    """
    recordBall body. Position and players are the PRE-delivery values;
    the server applies the rotation itself.
    """
    body: Dict[str, Any] = {
        "runs": delivery.runs,
        "ballType": delivery.ball_type,
        "isWicket": delivery.is_wicket,
        "isBoundary": is_boundary(delivery.runs),
        "isSix": is_six(delivery.runs),
        "isFreeHit": delivery.is_free_hit,
    }
    if delivery.is_wicket:
        body["dismissalType"] = delivery.dismissal_type
        body["dismissedBatterId"] = delivery.dismissed_batter_id
        if delivery.fielder_id:
            body["fielderId"] = delivery.fielder_id
        if delivery.incoming_batter_id:
            body["incomingBatterId"] = delivery.incoming_batter_id

    return {
        "matchId": state_before.match.match_id,
        "innings": delivery.innings,
        "battingTeam": state_before.live.batting_team,
        "over": delivery.over,
        "ball": delivery.ball,
        "strikerId": delivery.striker_id,
        "nonStrikerId": delivery.non_striker_id,
        "bowlerId": delivery.bowler_id,
        "delivery": body,
        "timestamp": _utc_iso(delivery.timestamp),
    }


def manual_score_payload(state: ScoreState, team_score: TeamScore, live: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """updateScore body: both sides' scores with the batting side replaced."""
    def ts(t: TeamScore) -> Dict[str, int]:
        return {"runs": t.runs, "wickets": t.wickets, "overs": t.overs, "balls": t.balls}

    score = state.score.with_side(state.live.batting_team, team_score)
    body: Dict[str, Any] = {
        "home": ts(score.home),
        "away": ts(score.away),
        "innings": state.live.current_innings,
    }
    if live:
        body["liveState"] = dict(live)
    return body


def merge_push_update(state: ScoreState, event: Dict[str, Any]) -> ScoreState:
    """
    Push channel payload {matchId, score, timestamp}. Treated as server
    truth for the score; events for other matches are ignored.
    """
    if _clean_id(event.get("matchId")) != state.match.match_id:
        return state
    raw_score = event.get("score")
    if not raw_score:
        return state
    try:
        score = parse_score(raw_score)
    except (ValueError, TypeError, AttributeError) as e:
        raise SnapshotError(f"Invalid push update: {e}") from e

    return replace(state, score=score)
