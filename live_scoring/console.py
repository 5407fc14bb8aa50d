# live_scoring/console.py
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from live_scoring.backend_client import ScoringBackend
from live_scoring.config import RECORD_COOLDOWN_MS, UNDO_COOLDOWN_MS, WICKET_COOLDOWN_MS
from live_scoring.errors import BackendError
from live_scoring.models import TeamScore
from live_scoring.phases import ensure_mutable
from live_scoring.session import (
    Action,
    Command,
    CompleteMatchCommand,
    RecordBallCommand,
    Session,
    StartSecondInningsCommand,
    UndoCommand,
    UpdateLiveStateCommand,
    next_ui_state,
    open_session,
    reduce,
    server_confirmed,
    server_failed,
)
from live_scoring.snapshot import (
    SnapshotError,
    build_score_state,
    has_score_payload,
    manual_score_payload,
    merge_push_update,
)
from live_scoring.sync import SyncCoordinator
from live_scoring.undo import UndoCoordinator

logger = logging.getLogger(__name__)


class ScoringConsole:
    """
    One scoring session for one match.

    dispatch() runs an action through the reducer, then executes the
    resulting command against the backend. Failures leave the session in
    sync status "error" and are re-raised so the caller can show them.

    The lock only guards swapping the Session; it is never held across a
    network call. A delivery or undo while another is in flight is refused
    by the coordinators' shared guard (SyncInProgressError), not queued.
    """

    def __init__(
        self,
        match_id: str,
        backend: ScoringBackend,
        sync: Optional[SyncCoordinator] = None,
        undo: Optional[UndoCoordinator] = None,
    ) -> None:
        self.match_id = match_id
        self.backend = backend
        self.sync = sync or SyncCoordinator(backend)
        self.undo = undo or UndoCoordinator(backend)
        self._session: Optional[Session] = None
        self._lock = threading.Lock()

    @property
    def session(self) -> Session:
        session = self._session
        if session is None:
            raise RuntimeError(f"Match {self.match_id} has not been loaded")
        return session

    @property
    def loaded(self) -> bool:
        return self._session is not None

    # -----------------------------
    # Load / reload
    # -----------------------------
    def load(self) -> Session:
        snapshot = self.backend.get_match(self.match_id)
        with self._lock:
            if self._session is None:
                self._session = open_session(build_score_state(snapshot))
            else:
                # reload keeps the ball history
                self._session = server_confirmed(self._session, snapshot)
            session = self._session

        logger.info(
            "Loaded match %s (status=%s, innings=%d)",
            self.match_id,
            session.state.match.status,
            session.state.live.current_innings,
        )
        return session

    # -----------------------------
    # Actions
    # -----------------------------
    def dispatch(self, action: Action, *, now: Optional[datetime] = None) -> Session:
        with self._lock:
            transition = reduce(self.session, action, now=now)
            if transition.command is None:
                self._session = transition.session
                return transition.session
        return self._execute(transition.session, transition.command)

    def _set(self, session: Session) -> None:
        with self._lock:
            self._session = session

    def _execute(self, pending: Session, command: Command) -> Session:
        if isinstance(command, RecordBallCommand):
            with self.sync.guard(self.match_id, is_wicket=command.delivery.is_wicket):
                # optimistic state is visible before the round-trip
                self._set(pending)
                return self._round_trip(lambda: self.sync.send(self.match_id, command.payload), "recordBall")

        if isinstance(command, UndoCommand):
            with self.undo.guard(self.match_id):
                self._set(pending)
                return self._round_trip(lambda: self.undo.send(self.match_id), "undoLastBall")

        self._set(pending)
        if isinstance(command, StartSecondInningsCommand):
            return self._round_trip(
                lambda: self.backend.start_second_innings(
                    self.match_id,
                    opening_batter1_id=command.opening_batter1_id,
                    opening_batter2_id=command.opening_batter2_id,
                    first_bowler_id=command.first_bowler_id,
                ),
                "startSecondInnings",
            )
        if isinstance(command, CompleteMatchCommand):
            return self._round_trip(
                lambda: self.backend.complete_match(
                    self.match_id,
                    winner=command.winner,
                    margin=command.margin,
                    key_performers=list(command.key_performers),
                    notes=command.notes,
                ),
                "completeMatch",
            )
        if isinstance(command, UpdateLiveStateCommand):
            return self._round_trip(
                lambda: self.backend.update_live_state(self.match_id, command.live_state),
                "updateLiveState",
            )
        raise TypeError(f"Unhandled command: {command!r}")

    def _round_trip(self, call: Callable[[], Any], label: str) -> Session:
        try:
            snapshot = call()
            if not has_score_payload(snapshot):
                logger.warning("%s for %s returned no score, reloading", label, self.match_id)
                snapshot = self.backend.get_match(self.match_id)
            with self._lock:
                self._session = server_confirmed(self.session, snapshot)
                session = self._session
        except BackendError as e:
            logger.error("%s failed for %s: %s", label, self.match_id, e.message)
            self._set(server_failed(self.session, e.message))
            raise
        except SnapshotError as e:
            logger.error("%s for %s returned an unreadable snapshot: %s", label, self.match_id, e)
            self._set(server_failed(self.session, str(e)))
            raise

        batting = session.state.batting_score
        logger.info(
            "%s confirmed for %s: %d/%d (%d.%d) ui=%s",
            label,
            self.match_id,
            batting.runs,
            batting.wickets,
            batting.overs,
            batting.balls,
            session.ui.value,
        )
        return session

    # -----------------------------
    # Manual corrections
    # -----------------------------
    def update_live_state(self, live_state: Dict[str, Any]) -> Session:
        """Change players / position by hand; bypasses the delivery processor."""
        with self._lock:
            ensure_mutable(self.session.state)
            body = {k: v for k, v in live_state.items() if v is not None}
            self._session = replace(self.session, sync_status="syncing", last_error=None)
        return self._round_trip(
            lambda: self.backend.update_live_state(self.match_id, body),
            "updateLiveState",
        )

    def update_score(self, team_score: TeamScore, live_state: Optional[Dict[str, Any]] = None) -> Session:
        """Overwrite the batting side's score (manual score entry)."""
        with self._lock:
            ensure_mutable(self.session.state)
            body = manual_score_payload(self.session.state, team_score, live_state)
            self._session = replace(self.session, sync_status="syncing", last_error=None)
        return self._round_trip(
            lambda: self.backend.update_score(self.match_id, body),
            "updateScore",
        )

    # -----------------------------
    # Push channel
    # -----------------------------
    def apply_push(self, event: Dict[str, Any]) -> Session:
        with self._lock:
            current = self.session
            state = merge_push_update(current.state, event)
            if state is current.state:
                logger.debug("Ignoring push event for %s on %s", event.get("matchId"), self.match_id)
                return current
            self._session = replace(current, state=state, ui=next_ui_state(state, current.ui))
            return self._session


class ConsoleRegistry:
    """match_id -> ScoringConsole. One backend shared by every console."""

    def __init__(
        self,
        backend: ScoringBackend,
        record_cooldown_ms: int = RECORD_COOLDOWN_MS,
        wicket_cooldown_ms: int = WICKET_COOLDOWN_MS,
        undo_cooldown_ms: int = UNDO_COOLDOWN_MS,
    ) -> None:
        self.backend = backend
        self.sync = SyncCoordinator(backend, record_cooldown_ms, wicket_cooldown_ms)
        self.undo = UndoCoordinator(backend, undo_cooldown_ms)
        self._consoles: Dict[str, ScoringConsole] = {}
        self._lock = threading.Lock()

    def open(self, match_id: str) -> ScoringConsole:
        with self._lock:
            console = self._consoles.get(match_id)
            if console is None:
                console = ScoringConsole(match_id, self.backend, sync=self.sync, undo=self.undo)
                self._consoles[match_id] = console
        console.load()
        return console

    def get(self, match_id: str) -> Optional[ScoringConsole]:
        with self._lock:
            console = self._consoles.get(match_id)
        if console is None or not console.loaded:
            return None
        return console

    def clear(self) -> None:
        with self._lock:
            self._consoles.clear()
