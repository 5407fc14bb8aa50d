# main.py (scorer console)
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from live_scoring.backend_client import ScoringBackend
from live_scoring.config import configure_logging, validate_config
from live_scoring.console import ConsoleRegistry, ScoringConsole
from live_scoring.errors import (
    BackendError,
    DialogStateError,
    InningsCompleteError,
    MatchLockedError,
    MatchNotLiveError,
    NothingToUndoError,
    ScoringError,
    SyncInProgressError,
)
from live_scoring.models import TeamScore
from live_scoring.scoreboard import scoreboard
from live_scoring.session import (
    CancelDialog,
    ChangeBowler,
    CompleteMatch,
    ConfirmExtras,
    ConfirmWicket,
    RecordDelivery,
    Session,
    StartSecondInnings,
    Undo,
)
from live_scoring.snapshot import SnapshotError

# -----------------------
# App
# -----------------------
app = FastAPI(
    title="Cricket Live Scoring Console API",
    version="0.1.0",
    description="Ball-by-ball scorer console: optimistic scoring, backend sync, undo and innings/match completion",
)

_registry: Optional[ConsoleRegistry] = None


@app.on_event("startup")
def on_startup():
    configure_logging()
    validate_config()


def get_registry() -> ConsoleRegistry:
    global _registry
    if _registry is None:
        _registry = ConsoleRegistry(ScoringBackend())
    return _registry


@app.get("/health")
def health_check():
    return {"status": "ok", "time": datetime.utcnow().isoformat() + "Z"}


# -----------------------
# Helpers
# -----------------------
CONFLICT_ERRORS = (
    MatchNotLiveError,
    DialogStateError,
    SyncInProgressError,
    InningsCompleteError,
    NothingToUndoError,
)


def _error_detail(message: str, redirect_to_setup: bool) -> Dict[str, Any]:
    return {"message": message, "redirect_to_setup": redirect_to_setup}


def _to_http(e: Exception) -> HTTPException:
    if isinstance(e, MatchLockedError):
        return HTTPException(status_code=423, detail=_error_detail(str(e), False))
    if isinstance(e, CONFLICT_ERRORS):
        return HTTPException(status_code=409, detail=_error_detail(str(e), False))
    if isinstance(e, ScoringError):
        return HTTPException(status_code=400, detail=_error_detail(str(e), e.redirect_to_setup))
    if isinstance(e, BackendError):
        status = e.status_code if e.status_code is not None and 400 <= e.status_code < 500 else 502
        return HTTPException(status_code=status, detail=_error_detail(e.message, e.redirect_to_setup))
    if isinstance(e, SnapshotError):
        return HTTPException(status_code=502, detail=_error_detail(f"Unreadable match data: {e}", False))
    return HTTPException(status_code=500, detail=_error_detail(f"Unexpected error: {e}", False))


def _console(match_id: str, registry: ConsoleRegistry) -> ScoringConsole:
    console = registry.get(match_id)
    if console is None:
        raise HTTPException(status_code=404, detail=f"No scoring session for match {match_id}; load it first")
    return console


def _view(session: Session) -> Dict[str, Any]:
    state = session.state
    live = state.live
    return {
        "match_id": state.match.match_id,
        "status": state.match.status,
        "format": state.match.format,
        "is_locked": state.match.is_locked,
        "teams": {"home": state.match.home_name, "away": state.match.away_name},
        "ui_state": session.ui.value,
        "pending": (
            None
            if session.pending is None
            else {
                "ball_type": session.pending.ball_type,
                "runs": session.pending.runs,
                "is_wicket": session.pending.is_wicket,
            }
        ),
        "sync_status": session.sync_status,
        "last_error": session.last_error,
        "live_state": {
            "current_innings": live.current_innings,
            "batting_team": live.batting_team,
            "striker_id": live.striker_id,
            "non_striker_id": live.non_striker_id,
            "bowler_id": live.bowler_id,
            "current_over": live.current_over,
            "current_ball": live.current_ball,
            "free_hit": live.free_hit,
        },
        "scoreboard": scoreboard(state),
        "history_length": len(state.history),
    }


def _run(fn) -> Dict[str, Any]:
    try:
        return _view(fn())
    except (ScoringError, BackendError, SnapshotError) as e:
        raise _to_http(e)


# -----------------------
# Request models
# -----------------------
BallTypeIn = Literal["normal", "wide", "no_ball", "bye", "leg_bye"]


class DeliveryIn(BaseModel):
    runs: int = Field(0, ge=0, le=6, description="Runs off the bat (or byes); extras runs are asked for next")
    ball_type: BallTypeIn = Field("normal")
    is_wicket: bool = Field(False)


class WicketIn(BaseModel):
    dismissal_type: str = Field(..., description="e.g. bowled, caught, run_out")
    incoming_batter_id: Optional[str] = Field(None, description="Not needed for the tenth wicket")
    fielder_id: Optional[str] = Field(None, description="Required for caught, run_out, stumped")


class ExtrasIn(BaseModel):
    additional_runs: int = Field(0, description="Runs on top of the one-run wide/no-ball penalty")


class BowlerIn(BaseModel):
    bowler_id: str = Field(..., min_length=1)


class SecondInningsIn(BaseModel):
    opening_batter1_id: str
    opening_batter2_id: str
    first_bowler_id: str


class KeyPerformerIn(BaseModel):
    player_id: str
    performance: str = ""


class CompleteMatchIn(BaseModel):
    winner: Literal["home", "away", "tie", "no_result"]
    margin: str = Field("", description="e.g. '5 wickets' or '23 runs'")
    key_performers: List[KeyPerformerIn] = Field(default_factory=list)
    notes: str = ""


class LiveStateIn(BaseModel):
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None
    current_over: Optional[int] = Field(None, ge=0)
    current_ball: Optional[int] = Field(None, ge=0, le=5)


class ScoreIn(BaseModel):
    runs: int = Field(..., ge=0)
    wickets: int = Field(..., ge=0, le=10)
    overs: int = Field(..., ge=0)
    balls: int = Field(0, ge=0, le=5)
    live_state: Optional[LiveStateIn] = None


class PushIn(BaseModel):
    matchId: str
    score: Dict[str, Any]
    timestamp: Optional[str] = None


def _live_state_body(req: LiveStateIn) -> Dict[str, Any]:
    return {
        "strikerId": req.striker_id,
        "nonStrikerId": req.non_striker_id,
        "bowlerId": req.bowler_id,
        "currentOver": req.current_over,
        "currentBall": req.current_ball,
    }


# -----------------------
# Session lifecycle
# -----------------------
@app.post("/api/matches/{match_id}/load")
def load_match(match_id: str, registry: ConsoleRegistry = Depends(get_registry)):
    return _run(lambda: registry.open(match_id).session)


@app.get("/api/matches/{match_id}")
def get_session(match_id: str, registry: ConsoleRegistry = Depends(get_registry)):
    return _view(_console(match_id, registry).session)


# -----------------------
# Scoring
# -----------------------
@app.post("/api/matches/{match_id}/deliveries")
def record_delivery(match_id: str, req: DeliveryIn, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    action = RecordDelivery(runs=req.runs, ball_type=req.ball_type, is_wicket=req.is_wicket)
    return _run(lambda: console.dispatch(action))


@app.post("/api/matches/{match_id}/wicket")
def confirm_wicket(match_id: str, req: WicketIn, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    action = ConfirmWicket(
        dismissal_type=req.dismissal_type,
        incoming_batter_id=req.incoming_batter_id,
        fielder_id=req.fielder_id,
    )
    return _run(lambda: console.dispatch(action))


@app.post("/api/matches/{match_id}/extras")
def confirm_extras(match_id: str, req: ExtrasIn, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    return _run(lambda: console.dispatch(ConfirmExtras(additional_runs=req.additional_runs)))


@app.post("/api/matches/{match_id}/cancel-dialog")
def cancel_dialog(match_id: str, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    return _run(lambda: console.dispatch(CancelDialog()))


@app.post("/api/matches/{match_id}/undo")
def undo_last_ball(match_id: str, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    return _run(lambda: console.dispatch(Undo()))


@app.post("/api/matches/{match_id}/bowler")
def change_bowler(match_id: str, req: BowlerIn, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    return _run(lambda: console.dispatch(ChangeBowler(bowler_id=req.bowler_id)))


# -----------------------
# Innings / match lifecycle
# -----------------------
@app.post("/api/matches/{match_id}/second-innings")
def start_second_innings(match_id: str, req: SecondInningsIn, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    action = StartSecondInnings(
        opening_batter1_id=req.opening_batter1_id,
        opening_batter2_id=req.opening_batter2_id,
        first_bowler_id=req.first_bowler_id,
    )
    return _run(lambda: console.dispatch(action))


@app.post("/api/matches/{match_id}/complete")
def complete_match(match_id: str, req: CompleteMatchIn, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    action = CompleteMatch(
        winner=req.winner,
        margin=req.margin,
        key_performers=tuple({"playerId": p.player_id, "performance": p.performance} for p in req.key_performers),
        notes=req.notes,
    )
    return _run(lambda: console.dispatch(action))


# -----------------------
# Manual corrections / push
# -----------------------
@app.patch("/api/matches/{match_id}/live-state")
def update_live_state(match_id: str, req: LiveStateIn, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    return _run(lambda: console.update_live_state(_live_state_body(req)))


@app.put("/api/matches/{match_id}/score")
def update_score(match_id: str, req: ScoreIn, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    team_score = TeamScore(runs=req.runs, wickets=req.wickets, overs=req.overs, balls=req.balls)
    live = None
    if req.live_state is not None:
        live = {k: v for k, v in _live_state_body(req.live_state).items() if v is not None}
    return _run(lambda: console.update_score(team_score, live))


@app.post("/api/matches/{match_id}/push")
def push_update(match_id: str, req: PushIn, registry: ConsoleRegistry = Depends(get_registry)):
    console = _console(match_id, registry)
    event = {"matchId": req.matchId, "score": req.score, "timestamp": req.timestamp}
    return _run(lambda: console.apply_push(event))
