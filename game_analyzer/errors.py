from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Session


class GameAnalyzerError(Exception):
    """Base class for service errors."""


class SessionNotFound(GameAnalyzerError):
    def __init__(self, session_id: str):
        super().__init__(f"session not found: {session_id}")
        self.session_id = session_id


class AugmentationError(GameAnalyzerError):
    """Raised by insight providers. Always recovered by the orchestrator."""

    reason: str = "augmentation_error"


class AugmentationUnavailable(AugmentationError):
    """The text-generation service could not be reached in time."""

    reason = "unavailable"


class AugmentationFailed(AugmentationError):
    """The service answered, but with an error status or an unusable body."""

    reason = "failed"


class SessionAnalysisFailed(GameAnalyzerError):
    """Analysis raised after the session was finalized and evicted.

    Carries the finalized session so the HTTP layer can still return a fallback analysis.
    """

    def __init__(self, session: "Session"):
        super().__init__(f"analysis failed for session {session.session_id}")
        self.session = session
