# live_scoring/undo.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterator, Tuple

from live_scoring import cooldown
from live_scoring.backend_client import ScoringBackend
from live_scoring.config import UNDO_COOLDOWN_MS
from live_scoring.errors import NothingToUndoError
from live_scoring.models import Delivery, ScoreState
from live_scoring.phases import ensure_mutable
from live_scoring.rules import BALLS_PER_OVER
from live_scoring.snapshot import has_score_payload

logger = logging.getLogger(__name__)


def rollback_position(over: int, ball: int) -> Tuple[int, int]:
    """
    Best-effort step back one ball: (4, 0) -> (3, 5), (4, 3) -> (4, 2).
    Never goes below (0, 0).
    """
    if ball == 0:
        if over == 0:
            return 0, 0
        return over - 1, BALLS_PER_OVER - 1
    return over, ball - 1


def local_undo(state: ScoreState) -> Tuple[ScoreState, Delivery]:
    """
    Pop the last BallHistory entry and roll the over/ball back locally so
    the display does not stall while the backend answers. Strike and score
    are left for the server to correct.
    """
    ensure_mutable(state)
    if not state.history:
        raise NothingToUndoError("No deliveries to undo")

    last = state.history[-1]
    over, ball = rollback_position(state.live.current_over, state.live.current_ball)
    live = replace(state.live, current_over=over, current_ball=ball)
    return replace(state, live=live, history=state.history[:-1]), last


class UndoCoordinator:
    """
    Sends "undo last ball" to the backend. A minimum delay between calls
    stops a double tap from undoing two balls.
    """

    def __init__(self, backend: ScoringBackend, cooldown_ms: int = UNDO_COOLDOWN_MS) -> None:
        self.backend = backend
        self.cooldown_ms = cooldown_ms

    @contextmanager
    def guard(self, match_id: str) -> Iterator[None]:
        with cooldown.guard(
            cooldown.make_key("undo", match_id), self.cooldown_ms, in_flight_key=cooldown.command_key(match_id)
        ):
            yield

    def send(self, match_id: str) -> Dict[str, Any]:
        snapshot = self.backend.undo_last_ball(match_id)
        if has_score_payload(snapshot):
            return snapshot

        logger.warning("No valid match data in undo response for %s, reloading", match_id)
        return self.backend.get_match(match_id)
