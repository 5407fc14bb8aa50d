# live_scoring/sync.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, Optional

from live_scoring import cooldown
from live_scoring.backend_client import ScoringBackend
from live_scoring.config import RECORD_COOLDOWN_MS, WICKET_COOLDOWN_MS
from live_scoring.models import Delivery, ScoreState
from live_scoring.processor import DeliveryRequest, apply
from live_scoring.snapshot import build_score_state, has_score_payload, record_ball_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Optimistic:
    """Local state after the delivery, plus what goes over the wire."""
    state: ScoreState
    delivery: Delivery
    payload: Dict[str, Any]


def optimistic_apply(state: ScoreState, request: DeliveryRequest, *, now: Optional[datetime] = None) -> Optimistic:
    """
    Apply a delivery locally so the scorer sees it with zero latency.
    The payload carries the PRE-delivery over/ball/striker/bowler.
    """
    applied = apply(state, request, now=now)
    return Optimistic(
        state=applied.state,
        delivery=applied.delivery,
        payload=record_ball_payload(state, applied.delivery),
    )


def reconcile_with_server(local: ScoreState, snapshot: Dict[str, Any]) -> ScoreState:
    """
    Server wins: the locally computed state is discarded and replaced by the
    snapshot. Only the client-side ball history survives.
    """
    return build_score_state(snapshot, previous=local)


class SyncCoordinator:
    """
    Sends delivery commands for one or more matches.

    - at most one command in flight per match
    - a cool-down after each recorded delivery suppresses double taps
    - a response without a score payload falls back to a full reload
    - no retries, no queue: failures propagate as BackendError
    """

    def __init__(
        self,
        backend: ScoringBackend,
        record_cooldown_ms: int = RECORD_COOLDOWN_MS,
        wicket_cooldown_ms: int = WICKET_COOLDOWN_MS,
    ) -> None:
        self.backend = backend
        self.record_cooldown_ms = record_cooldown_ms
        self.wicket_cooldown_ms = wicket_cooldown_ms

    @contextmanager
    def guard(self, match_id: str, *, is_wicket: bool = False) -> Iterator[None]:
        ms = self.wicket_cooldown_ms if is_wicket else self.record_cooldown_ms
        with cooldown.guard(
            cooldown.make_key("record", match_id), ms, in_flight_key=cooldown.command_key(match_id)
        ):
            yield

    def send(self, match_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """One recordBall round-trip. Returns the authoritative match snapshot."""
        logger.debug("Recording ball for %s: %s", match_id, payload)
        snapshot = self.backend.record_ball(match_id, payload)

        if has_score_payload(snapshot):
            return snapshot

        logger.warning(
            "No valid match data in recordBall response for %s, reloading (has_data=%s)",
            match_id,
            snapshot is not None,
        )
        return self.backend.get_match(match_id)
