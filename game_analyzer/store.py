"""In-memory session and player profile stores.

Sessions live only for the process lifetime. Ingest and end for the same session
are serialized with a per-session lock; end evicts the session under that lock, so
a late ingest sees SessionNotFound instead of mutating a finalized log.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from . import stats
from .errors import SessionAnalysisFailed, SessionNotFound
from .models import AnalysisResult, PlayerProfile, Session, coerce_action
from .orchestrator import AnalysisOrchestrator, AnalysisOutcome
from .telemetry import (
    ACTIONS_COERCED_TOTAL,
    ACTIONS_INGESTED_TOTAL,
    ACTIVE_SESSIONS,
    SESSIONS_ENDED_TOTAL,
    SESSIONS_STARTED_TOTAL,
)

logger = logging.getLogger("game_analyzer.store")


def _now_ms() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class IngestResult:
    realtime_snapshot: Optional[Dict[str, Any]]
    session_metrics: Dict[str, Any]


@dataclass(frozen=True)
class SessionReport:
    session: Session
    outcome: AnalysisOutcome
    profile: PlayerProfile


class PlayerProfileStore:
    def __init__(self) -> None:
        self._profiles: Dict[str, PlayerProfile] = {}

    def get(self, player_id: str) -> Optional[PlayerProfile]:
        return self._profiles.get(player_id)

    def record(self, player_id: str, result: AnalysisResult, ended_at: float) -> PlayerProfile:
        profile = self._profiles.get(player_id)
        if profile is None:
            profile = PlayerProfile(player_id=player_id)
            self._profiles[player_id] = profile
        profile.total_sessions += 1
        profile.skill_progression.append(result.skill_level)
        profile.play_style = result.shooting_style
        profile.last_score = result.score
        if profile.best_score is None or result.score > profile.best_score:
            profile.best_score = result.score
        profile.last_session_at = ended_at
        return profile

    def __len__(self) -> int:
        return len(self._profiles)


class SessionStore:
    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        profiles: Optional[PlayerProfileStore] = None,
        clock: Callable[[], float] = _now_ms,
    ):
        self.orchestrator = orchestrator
        self.profiles = profiles if profiles is not None else PlayerProfileStore()
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def action_type(self) -> str:
        return self.orchestrator.action_type

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def start(self, player_id: str) -> Session:
        session_id = uuid.uuid4().hex
        session = Session(session_id=session_id, player_id=player_id, start_time=self._clock())
        session.metrics = stats.session_metrics(session.actions, self.action_type)
        self._sessions[session_id] = session
        self._locks[session_id] = asyncio.Lock()
        SESSIONS_STARTED_TOTAL.inc()
        ACTIVE_SESSIONS.set(len(self._sessions))
        logger.info(json.dumps({"event": "session_started", "sessionId": session_id, "playerId": player_id}))
        return session

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            raise SessionNotFound(session_id)
        return lock

    async def ingest(self, session_id: str, payload: Dict[str, Any]) -> IngestResult:
        async with self._lock_for(session_id):
            session = self._sessions.get(session_id)
            # Ended while we were waiting for the lock
            if session is None:
                raise SessionNotFound(session_id)

            action, defaulted = coerce_action(
                payload,
                sequence=len(session.actions) + 1,
                default_timestamp=max(0.0, self._clock() - session.start_time),
            )
            if defaulted:
                ACTIONS_COERCED_TOTAL.inc()
                logger.warning(json.dumps({
                    "event": "action_coerced",
                    "sessionId": session_id,
                    "sequence": action.sequence,
                    "defaulted": defaulted,
                }))
            session.actions.append(action)
            session.metrics = stats.session_metrics(session.actions, self.action_type)
            ACTIONS_INGESTED_TOTAL.labels(type=action.type).inc()

            snapshot = None
            if action.type == self.action_type:
                same_type = stats.filter_actions(session.actions, self.action_type)
                snapshot = stats.realtime_snapshot(action, same_type)
                self.orchestrator.record(action, session_id)

            logger.debug(json.dumps({
                "event": "action_ingested",
                "sessionId": session_id,
                "sequence": action.sequence,
                "type": action.type,
                "snapshot": snapshot,
            }))
            return IngestResult(realtime_snapshot=snapshot, session_metrics=dict(session.metrics))

    async def end(self, session_id: str) -> SessionReport:
        async with self._lock_for(session_id):
            session = self._sessions.pop(session_id, None)
            self._locks.pop(session_id, None)
            if session is None:
                raise SessionNotFound(session_id)
            session.end_time = self._clock()
            ACTIVE_SESSIONS.set(len(self._sessions))

        try:
            outcome = await self.orchestrator.analyze(session)
        except Exception as e:
            SESSIONS_ENDED_TOTAL.labels(status="error").inc()
            logger.exception(json.dumps({"event": "analysis_pipeline_failed", "sessionId": session_id}))
            raise SessionAnalysisFailed(session) from e

        profile = self.profiles.record(session.player_id, outcome.result, session.end_time)
        SESSIONS_ENDED_TOTAL.labels(status="degraded" if outcome.degraded else "augmented").inc()
        logger.info(json.dumps({
            "event": "session_ended",
            "sessionId": session_id,
            "playerId": session.player_id,
            "durationMs": session.duration,
            "totalActions": len(session.actions),
            "skillLevel": outcome.result.skill_level,
            "confidence": outcome.result.confidence,
            "reason": outcome.reason,
        }))
        return SessionReport(session=session, outcome=outcome, profile=profile)
