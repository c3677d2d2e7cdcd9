"""Session analysis orchestration.

Runs the heuristic classifier on every finished session and, when the insight
provider is reachable, asks it for a short free-text coaching note. Augmentation
failures never reach the caller: the outcome is the heuristic result flagged as
degraded.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import deque
from dataclasses import dataclass, replace
from typing import Any, Deque, Dict, Optional

from . import classifier
from .errors import AugmentationError
from .models import Action, AnalysisResult, Session
from .probe import ConnectivityProbe
from .providers.base import InsightClient
from .stats import SessionStats, aggregate, filter_actions
from .telemetry import ANALYSES_TOTAL, AUGMENT_SECONDS, DIAGNOSTIC_QUEUE_DROPPED_TOTAL

logger = logging.getLogger("game_analyzer.orchestrator")


@dataclass(frozen=True)
class AnalysisOutcome:
    result: AnalysisResult
    degraded: bool
    reason: str  # "augmented", "probe_unavailable", "timeout", "unavailable", "failed", "error"


def build_prompt(stats: SessionStats, duration_ms: float) -> str:
    # Numbers only: nothing from the raw payloads is interpolated
    return (
        "Missile shooting analysis:\n"
        f"Game Duration: {round(duration_ms / 1000)} seconds\n"
        f"Total Shots: {stats.shots}\n"
        f"Hit Rate: {stats.hit_rate:.1f}%\n"
        f"Average Response Time: {round(stats.avg_response_time)}ms\n"
        f"Average Target Distance: {round(stats.avg_target_distance)} units\n"
        "\n"
        "Analyze the player's:\n"
        "1. Shooting accuracy level (beginner/intermediate/advanced)\n"
        "2. Shooting style (precise/rapid/balanced)\n"
        "3. Main strength in missile combat\n"
        "4. Improvement tip for missile accuracy\n"
        "\n"
        "Be brief, under 100 words."
    )


def merge_insight(heuristic: AnalysisResult, insight: Optional[str], reason: str) -> AnalysisOutcome:
    """Combine the heuristic result with an optional generated insight."""
    if insight:
        return AnalysisOutcome(
            result=replace(heuristic, confidence="high", ai_insights=insight),
            degraded=False,
            reason="augmented",
        )
    return AnalysisOutcome(
        result=replace(heuristic, confidence="medium", ai_insights=None),
        degraded=True,
        reason=reason,
    )


class AnalysisOrchestrator:
    def __init__(
        self,
        client: InsightClient,
        probe: ConnectivityProbe,
        action_type: str = "missile_shot",
        generate_timeout_s: float = 30.0,
        insight_max_chars: int = 1200,
        queue_size: int = 5,
    ):
        self.client = client
        self.probe = probe
        self.action_type = action_type
        self._generate_timeout = generate_timeout_s
        self._insight_max_chars = insight_max_chars
        self._queue_size = queue_size
        self._queue: Deque[Dict[str, Any]] = deque()

    def _stats(self, session: Session) -> SessionStats:
        return aggregate(filter_actions(session.actions, self.action_type))

    def record(self, action: Action, session_id: str) -> bool:
        """Best-effort diagnostic copy of a shot action. Returns False when dropped.

        Nothing drains the queue: it holds the first actions offered and drops the rest.
        """
        if len(self._queue) >= self._queue_size:
            DIAGNOSTIC_QUEUE_DROPPED_TOTAL.inc()
            return False
        self._queue.append({"action": action.to_dict(), "sessionId": session_id})
        return True

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    async def analyze(self, session: Session) -> AnalysisOutcome:
        stats = self._stats(session)
        heuristic = classifier.classify(stats)

        if not await self.probe.is_available():
            outcome = merge_insight(heuristic, None, "probe_unavailable")
            logger.info(json.dumps({
                "event": "analysis_degraded",
                "sessionId": session.session_id,
                "reason": outcome.reason,
            }))
        else:
            insight, reason = await self._augment(build_prompt(stats, session.duration), session.session_id)
            outcome = merge_insight(heuristic, insight, reason)

        ANALYSES_TOTAL.labels(confidence=outcome.result.confidence, reason=outcome.reason).inc()
        return outcome

    async def _augment(self, prompt: str, session_id: str):
        t0 = time.perf_counter()
        labels = {"provider": self.client.provider_name, "model": self.client.model or "unknown"}
        try:
            text = await asyncio.wait_for(self.client.generate(prompt), timeout=self._generate_timeout)
        except asyncio.TimeoutError:
            reason, error = "timeout", f"no response within {self._generate_timeout}s"
        except AugmentationError as e:
            reason, error = e.reason, str(e)
        except Exception as e:
            logger.exception("augmentation_unexpected_error: %s", e)
            reason, error = "error", repr(e)
        else:
            text = (text or "").strip()[: self._insight_max_chars]
            if text:
                AUGMENT_SECONDS.labels(outcome="ok", **labels).observe(time.perf_counter() - t0)
                logger.info(json.dumps({
                    "event": "analysis_augmented",
                    "sessionId": session_id,
                    "provider": labels["provider"],
                    "latencyMs": int((time.perf_counter() - t0) * 1000),
                }))
                return text, "augmented"
            reason, error = "failed", "empty insight"

        AUGMENT_SECONDS.labels(outcome=reason, **labels).observe(time.perf_counter() - t0)
        logger.warning(json.dumps({
            "event": "analysis_degraded",
            "sessionId": session_id,
            "provider": labels["provider"],
            "reason": reason,
            "error": error[:300],
        }))
        return None, reason

    def fallback_analysis(self, session: Session) -> AnalysisResult:
        """Heuristic-only analysis for when the pipeline itself failed."""
        return classifier.classify(self._stats(session), confidence="low")

    def status(self) -> Dict[str, Any]:
        return {
            "initialized": self.probe.initialized,
            "provider": self.client.provider_name,
            "model": self.client.model,
            "url": self.client.base_url,
            "queueLength": self.queue_length,
            "queueCapacity": self._queue_size,
            "queuedActions": list(self._queue),
        }
