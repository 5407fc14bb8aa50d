"""
Scoring session state machine.

One reducer, one closed set of actions. `reduce(session, action)` is pure: it
returns the next Session and, when the backend has to be told, the command to
send. Coordinators execute commands; their results come back through
`server_confirmed` / `server_failed`.

    transition = reduce(session, RecordDelivery(runs=4))
    transition.session.sync_status   # "syncing"
    transition.command               # RecordBallCommand(...)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from live_scoring.completion import detect
from live_scoring.errors import (
    DialogStateError,
    IncompleteSetupError,
    InvalidDeliveryError,
    ScoringError,
)
from live_scoring.models import Delivery, ScoreState, SyncStatus
from live_scoring.phases import InningsBreak, classify, ensure_mutable, require_in_progress
from live_scoring.processor import DeliveryRequest, UiIntent, intent_for
from live_scoring.rules import (
    BALL_TYPES,
    MAX_RUNS_PER_DELIVERY,
    extras_total_runs,
    is_legal_delivery,
)
from live_scoring.sync import optimistic_apply, reconcile_with_server
from live_scoring.undo import local_undo

logger = logging.getLogger(__name__)

WINNERS = ("home", "away", "tie", "no_result")


class UiState(str, Enum):
    IDLE = "idle"
    AWAITING_WICKET_DETAILS = "awaiting_wicket_details"
    AWAITING_EXTRAS_DETAILS = "awaiting_extras_details"
    AWAITING_BOWLER_CHANGE = "awaiting_bowler_change"
    INNINGS_BREAK = "innings_break"
    MATCH_END = "match_end"


DETAIL_DIALOGS = (UiState.AWAITING_WICKET_DETAILS, UiState.AWAITING_EXTRAS_DETAILS)


class ActionType(str, Enum):
    RECORD_DELIVERY = "record_delivery"
    CONFIRM_WICKET = "confirm_wicket"
    CONFIRM_EXTRAS = "confirm_extras"
    UNDO = "undo"
    START_SECOND_INNINGS = "start_second_innings"
    COMPLETE_MATCH = "complete_match"
    # outside the scoring set
    CANCEL_DIALOG = "cancel_dialog"
    CHANGE_BOWLER = "change_bowler"


# -----------------------------
# Actions
# -----------------------------
@dataclass(frozen=True)
class RecordDelivery:
    runs: int = 0
    ball_type: str = "normal"
    is_wicket: bool = False
    type = ActionType.RECORD_DELIVERY


@dataclass(frozen=True)
class ConfirmWicket:
    dismissal_type: str
    incoming_batter_id: Optional[str] = None
    fielder_id: Optional[str] = None
    type = ActionType.CONFIRM_WICKET


@dataclass(frozen=True)
class ConfirmExtras:
    additional_runs: int = 0
    type = ActionType.CONFIRM_EXTRAS


@dataclass(frozen=True)
class Undo:
    type = ActionType.UNDO


@dataclass(frozen=True)
class StartSecondInnings:
    opening_batter1_id: str
    opening_batter2_id: str
    first_bowler_id: str
    type = ActionType.START_SECOND_INNINGS


@dataclass(frozen=True)
class CompleteMatch:
    winner: str
    margin: str = ""
    key_performers: Tuple[Dict[str, str], ...] = ()
    notes: str = ""
    type = ActionType.COMPLETE_MATCH


@dataclass(frozen=True)
class CancelDialog:
    type = ActionType.CANCEL_DIALOG


@dataclass(frozen=True)
class ChangeBowler:
    bowler_id: str
    type = ActionType.CHANGE_BOWLER


Action = Union[
    RecordDelivery,
    ConfirmWicket,
    ConfirmExtras,
    Undo,
    StartSecondInnings,
    CompleteMatch,
    CancelDialog,
    ChangeBowler,
]


# -----------------------------
# Outbound commands
# -----------------------------
@dataclass(frozen=True)
class RecordBallCommand:
    payload: Dict[str, Any]
    delivery: Delivery


@dataclass(frozen=True)
class UndoCommand:
    undone: Delivery


@dataclass(frozen=True)
class StartSecondInningsCommand:
    opening_batter1_id: str
    opening_batter2_id: str
    first_bowler_id: str


@dataclass(frozen=True)
class CompleteMatchCommand:
    winner: str
    margin: str
    key_performers: Tuple[Dict[str, str], ...]
    notes: str


@dataclass(frozen=True)
class UpdateLiveStateCommand:
    live_state: Dict[str, Any]


Command = Union[
    RecordBallCommand,
    UndoCommand,
    StartSecondInningsCommand,
    CompleteMatchCommand,
    UpdateLiveStateCommand,
]


# -----------------------------
# Session
# -----------------------------
@dataclass(frozen=True)
class PendingDelivery:
    """A delivery waiting on the extras or wicket dialog."""
    ball_type: str
    runs: int = 0
    is_wicket: bool = False


@dataclass(frozen=True)
class Session:
    state: ScoreState
    ui: UiState = UiState.IDLE
    pending: Optional[PendingDelivery] = None
    sync_status: SyncStatus = "synced"
    last_error: Optional[str] = None

    @property
    def match_id(self) -> str:
        return self.state.match.match_id


@dataclass(frozen=True)
class Transition:
    session: Session
    command: Optional[Command] = None


def next_ui_state(state: ScoreState, current: UiState) -> UiState:
    """
    Which prompt should be open after `state` changed.

    Priority: match end, innings break, bowler change. An open wicket or
    extras dialog is never interrupted. Calling this again with its own
    result returns the same value, so a prompt is only raised once.
    """
    if current in DETAIL_DIALOGS:
        return current

    if state.match.is_locked:
        return UiState.IDLE

    signals = detect(state)
    if signals.match_end:
        return UiState.MATCH_END
    if signals.innings_complete:
        return UiState.INNINGS_BREAK
    if signals.bowler_change_required:
        return UiState.AWAITING_BOWLER_CHANGE
    return UiState.IDLE


def open_session(state: ScoreState) -> Session:
    return Session(state=state, ui=next_ui_state(state, UiState.IDLE))


def _require_dialog(session: Session, expected: UiState) -> PendingDelivery:
    if session.ui != expected or session.pending is None:
        raise DialogStateError(f"Expected {expected.value}, session is {session.ui.value}")
    return session.pending


def _commit_delivery(
    session: Session, request: DeliveryRequest, now: Optional[datetime]
) -> Transition:
    optimistic = optimistic_apply(session.state, request, now=now)
    cleared = replace(session, ui=UiState.IDLE, pending=None)
    return Transition(
        session=replace(
            cleared,
            state=optimistic.state,
            ui=next_ui_state(optimistic.state, UiState.IDLE),
            sync_status="syncing",
            last_error=None,
        ),
        command=RecordBallCommand(payload=optimistic.payload, delivery=optimistic.delivery),
    )


# -----------------------------
# Reducers per action
# -----------------------------
def _record_delivery(session: Session, action: RecordDelivery, now: Optional[datetime]) -> Transition:
    if session.ui in DETAIL_DIALOGS:
        raise DialogStateError("Finish or cancel the open dialog first")

    require_in_progress(session.state)
    intent = intent_for(action.ball_type, action.is_wicket)

    if intent is UiIntent.COLLECT_EXTRAS:
        pending = PendingDelivery(ball_type=action.ball_type)
        return Transition(replace(session, ui=UiState.AWAITING_EXTRAS_DETAILS, pending=pending))

    if intent is UiIntent.COLLECT_WICKET:
        # reject what the dialog can never fix before opening it
        if action.ball_type not in BALL_TYPES or not is_legal_delivery(action.ball_type):
            raise InvalidDeliveryError(f"A wicket cannot be recorded on a {action.ball_type}")
        if action.runs < 0 or action.runs > MAX_RUNS_PER_DELIVERY:
            raise InvalidDeliveryError(f"Runs must be 0-{MAX_RUNS_PER_DELIVERY}, got {action.runs}")
        pending = PendingDelivery(ball_type=action.ball_type, runs=action.runs, is_wicket=True)
        return Transition(replace(session, ui=UiState.AWAITING_WICKET_DETAILS, pending=pending))

    request = DeliveryRequest(runs=action.runs, ball_type=action.ball_type)
    return _commit_delivery(session, request, now)


def _confirm_extras(session: Session, action: ConfirmExtras, now: Optional[datetime]) -> Transition:
    pending = _require_dialog(session, UiState.AWAITING_EXTRAS_DETAILS)
    try:
        runs = extras_total_runs(pending.ball_type, action.additional_runs)
    except ValueError as e:
        raise InvalidDeliveryError(str(e)) from e

    request = DeliveryRequest(runs=runs, ball_type=pending.ball_type)
    return _commit_delivery(session, request, now)


def _confirm_wicket(session: Session, action: ConfirmWicket, now: Optional[datetime]) -> Transition:
    pending = _require_dialog(session, UiState.AWAITING_WICKET_DETAILS)
    request = DeliveryRequest(
        runs=pending.runs,
        ball_type=pending.ball_type,
        is_wicket=True,
        dismissal_type=action.dismissal_type,
        fielder_id=action.fielder_id,
        incoming_batter_id=action.incoming_batter_id,
    )
    return _commit_delivery(session, request, now)


def _undo(session: Session) -> Transition:
    if session.ui in DETAIL_DIALOGS:
        raise DialogStateError("Finish or cancel the open dialog first")

    state, undone = local_undo(session.state)
    return Transition(
        session=replace(session, state=state, sync_status="syncing", last_error=None),
        command=UndoCommand(undone=undone),
    )


def _start_second_innings(session: Session, action: StartSecondInnings) -> Transition:
    ensure_mutable(session.state)
    if not isinstance(classify(session.state), InningsBreak):
        raise DialogStateError("Second innings can only start once the first innings is complete")

    b1 = action.opening_batter1_id.strip()
    b2 = action.opening_batter2_id.strip()
    bowler = action.first_bowler_id.strip()
    if not (b1 and b2 and bowler):
        raise IncompleteSetupError("Select both opening batters and the first bowler")
    if b1 == b2:
        raise InvalidDeliveryError("Opening batters must be different players")

    return Transition(
        session=replace(session, sync_status="syncing", last_error=None),
        command=StartSecondInningsCommand(
            opening_batter1_id=b1, opening_batter2_id=b2, first_bowler_id=bowler
        ),
    )


def _complete_match(session: Session, action: CompleteMatch) -> Transition:
    ensure_mutable(session.state)
    if action.winner not in WINNERS:
        raise InvalidDeliveryError(f"winner must be one of {', '.join(WINNERS)}")

    return Transition(
        session=replace(session, sync_status="syncing", last_error=None),
        command=CompleteMatchCommand(
            winner=action.winner,
            margin=action.margin.strip(),
            key_performers=tuple(action.key_performers),
            notes=action.notes.strip(),
        ),
    )


def _change_bowler(session: Session, action: ChangeBowler) -> Transition:
    ensure_mutable(session.state)
    bowler = action.bowler_id.strip()
    if not bowler:
        raise IncompleteSetupError("Select a bowler")

    state = replace(session.state, live=replace(session.state.live, bowler_id=bowler))
    ui = session.ui if session.ui in DETAIL_DIALOGS else next_ui_state(state, UiState.IDLE)
    return Transition(
        session=replace(session, state=state, ui=ui, sync_status="syncing", last_error=None),
        command=UpdateLiveStateCommand(live_state={"bowlerId": bowler}),
    )


def reduce(session: Session, action: Action, *, now: Optional[datetime] = None) -> Transition:
    """
    Apply one action. Raises a ScoringError subclass when the action is not
    allowed in the current state; the session passed in is never modified.
    """
    if isinstance(action, RecordDelivery):
        return _record_delivery(session, action, now)
    if isinstance(action, ConfirmExtras):
        return _confirm_extras(session, action, now)
    if isinstance(action, ConfirmWicket):
        return _confirm_wicket(session, action, now)
    if isinstance(action, Undo):
        return _undo(session)
    if isinstance(action, StartSecondInnings):
        return _start_second_innings(session, action)
    if isinstance(action, CompleteMatch):
        return _complete_match(session, action)
    if isinstance(action, CancelDialog):
        return Transition(replace(session, ui=UiState.IDLE, pending=None))
    if isinstance(action, ChangeBowler):
        return _change_bowler(session, action)
    raise ScoringError(f"Unknown action: {action!r}")


# -----------------------------
# Server results
# -----------------------------
def server_confirmed(session: Session, snapshot: Dict[str, Any]) -> Session:
    """Replace local state with server truth, then re-run the detector."""
    state = reconcile_with_server(session.state, snapshot)
    return replace(
        session,
        state=state,
        ui=next_ui_state(state, session.ui),
        sync_status="synced",
        last_error=None,
    )


def server_failed(session: Session, message: str) -> Session:
    """Keep the optimistic state; only the sync status changes."""
    return replace(session, sync_status="error", last_error=message)
