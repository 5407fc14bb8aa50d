# live_scoring/errors.py
from __future__ import annotations

from typing import Optional

# Words in a backend message that mean the match setup is the root cause
_SETUP_HINTS = ("setup", "striker", "bowler")


class ScoringError(Exception):
    """Local precondition failure. Raised before any network call."""

    redirect_to_setup: bool = False


class MatchNotLiveError(ScoringError):
    pass


class MatchLockedError(ScoringError):
    """Match is completed and locked; no further mutation is permitted."""
    pass


class IncompleteSetupError(ScoringError):
    """Striker, non-striker or bowler is missing."""

    redirect_to_setup = True


class InvalidDeliveryError(ScoringError, ValueError):
    pass


class InningsCompleteError(ScoringError):
    pass


class NothingToUndoError(ScoringError):
    pass


class DialogStateError(ScoringError):
    """Action does not fit the dialog currently open (or none is open)."""
    pass


class SyncInProgressError(ScoringError):
    """Another command for this match is in flight or cooling down."""
    pass


class BackendError(Exception):
    """
    Raised when a scoring backend call fails.

    status_code is None for transport failures (timeout, connection reset),
    otherwise the HTTP status the backend answered with.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_transport_error(self) -> bool:
        return self.status_code is None or self.status_code >= 500

    @property
    def redirect_to_setup(self) -> bool:
        lowered = self.message.lower()
        return any(hint in lowered for hint in _SETUP_HINTS)
