from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

SkillLevel = Literal["beginner", "intermediate", "advanced"]
ShootingStyle = Literal["rapid", "precise", "balanced"]
Confidence = Literal["low", "medium", "high"]

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Action:
    type: str
    success: bool
    timestamp: float
    target_distance: float = 0.0
    missile_speed: float = 0.0
    sequence: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "success": self.success,
            "timestamp": self.timestamp,
            "targetDistance": self.target_distance,
            "missileSpeed": self.missile_speed,
            "sequence": self.sequence,
        }


def _non_negative(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        num = float(value)
    except ValueError:
        return None
    if not math.isfinite(num) or num < 0:
        return None
    return num


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def coerce_action(payload: Dict[str, Any], sequence: int, default_timestamp: float) -> Tuple[Action, List[str]]:
    """Build an Action from a loosely-typed payload.

    Never rejects: unusable fields are replaced with defaults and their names returned
    alongside the action.
    """
    defaulted: List[str] = []

    action_type = payload.get("type")
    if not isinstance(action_type, str) or not action_type.strip():
        action_type = "unknown"
        defaulted.append("type")

    if "success" not in payload:
        defaulted.append("success")

    # Timestamps may be 0 (session start) but never negative
    timestamp = _non_negative(payload.get("timestamp"))
    if timestamp is None:
        timestamp = default_timestamp
        defaulted.append("timestamp")

    numbers: Dict[str, float] = {}
    for key in ("targetDistance", "missileSpeed"):
        num = _non_negative(payload.get(key))
        if num is None:
            num = 0.0
            if key in payload:
                defaulted.append(key)
        numbers[key] = num

    action = Action(
        type=action_type.strip(),
        success=_truthy(payload.get("success", False)),
        timestamp=timestamp,
        target_distance=numbers["targetDistance"],
        missile_speed=numbers["missileSpeed"],
        sequence=sequence,
    )
    return action, defaulted


@dataclass
class Session:
    session_id: str
    player_id: str
    start_time: float
    end_time: Optional[float] = None
    actions: List[Action] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Milliseconds between start and end; 0 while the session is open."""
        if self.end_time is None:
            return 0.0
        return max(0.0, self.end_time - self.start_time)

    def summary(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "playerId": self.player_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
            "totalActions": len(self.actions),
        }


@dataclass
class AnalysisResult:
    skill_level: SkillLevel
    shooting_style: ShootingStyle
    strengths: List[str]
    improvements: List[str]
    score: int
    confidence: Confidence = "medium"
    ai_insights: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "skillLevel": self.skill_level,
            "shootingStyle": self.shooting_style,
            "strengths": list(self.strengths),
            "improvements": list(self.improvements),
            "score": self.score,
            "confidence": self.confidence,
        }
        if self.ai_insights is not None:
            out["aiInsights"] = self.ai_insights
        return out


@dataclass
class PlayerProfile:
    player_id: str
    total_sessions: int = 0
    skill_progression: List[str] = field(default_factory=list)
    play_style: Optional[str] = None
    last_score: Optional[int] = None
    best_score: Optional[int] = None
    last_session_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "playerId": self.player_id,
            "totalSessions": self.total_sessions,
            "skillProgression": list(self.skill_progression),
            "playStyle": self.play_style,
            "lastScore": self.last_score,
            "bestScore": self.best_score,
            "lastSessionAt": self.last_session_at,
        }
