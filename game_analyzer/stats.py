"""Session metrics calculator.

Pure functions over action sequences that have already been filtered to one action
type. Every rate and mean in the service goes through here, so the empty cases are
defined once: an empty sequence yields 0, never a division error.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence

from .models import Action


def filter_actions(actions: Iterable[Action], action_type: str) -> List[Action]:
    return [a for a in actions if a.type == action_type]


def hit_rate(actions: Sequence[Action]) -> float:
    """Percentage of successful actions, 0..100."""
    if not actions:
        return 0.0
    hits = sum(1 for a in actions if a.success)
    return hits / len(actions) * 100


def average_inter_arrival_time(actions: Sequence[Action]) -> float:
    """Mean gap in ms between consecutive actions, using recorded timestamps."""
    if len(actions) < 2:
        return 0.0
    total = 0.0
    for prev, cur in zip(actions, actions[1:]):
        total += cur.timestamp - prev.timestamp
    return total / (len(actions) - 1)


def average_target_distance(actions: Sequence[Action]) -> float:
    if not actions:
        return 0.0
    return sum(a.target_distance for a in actions) / len(actions)


def average_missile_speed(actions: Sequence[Action]) -> float:
    if not actions:
        return 0.0
    return sum(a.missile_speed for a in actions) / len(actions)


@dataclass(frozen=True)
class SessionStats:
    shots: int
    hits: int
    hit_rate: float  # percent
    avg_response_time: float  # ms
    avg_target_distance: float
    avg_missile_speed: float

    @property
    def hit_rate_fraction(self) -> float:
        return self.hit_rate / 100


def aggregate(actions: Sequence[Action]) -> SessionStats:
    return SessionStats(
        shots=len(actions),
        hits=sum(1 for a in actions if a.success),
        hit_rate=hit_rate(actions),
        avg_response_time=average_inter_arrival_time(actions),
        avg_target_distance=average_target_distance(actions),
        avg_missile_speed=average_missile_speed(actions),
    )


def realtime_snapshot(latest: Action, actions: Sequence[Action]) -> Dict[str, Any]:
    """Metrics after ingesting `latest`; `actions` is the full same-type history including it."""
    return {
        "accuracy": 1 if latest.success else 0,
        "targetDistance": latest.target_distance,
        "missileSpeed": latest.missile_speed,
        "hitRate": round(hit_rate(actions), 2),
        "averageResponseTime": round(average_inter_arrival_time(actions)),
    }


def session_metrics(actions: Sequence[Action], action_type: str) -> Dict[str, Any]:
    shots = filter_actions(actions, action_type)
    stats = aggregate(shots)
    return {
        "totalActions": len(actions),
        "totalShots": stats.shots,
        "successfulHits": stats.hits,
        "hitRate": round(stats.hit_rate, 2),
        "averageResponseTime": round(stats.avg_response_time),
        "averageTargetDistance": round(stats.avg_target_distance, 2),
        "lastActionAt": actions[-1].timestamp if actions else None,
    }
