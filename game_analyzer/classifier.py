"""Heuristic skill classifier.

Deterministic rules over aggregate session statistics. Hit rates here are fractions
(0..1); response times and pauses are milliseconds.
"""
from __future__ import annotations

import math
from typing import List

from .models import AnalysisResult, Confidence, ShootingStyle, SkillLevel
from .stats import SessionStats

# (level, min hit rate exclusive, max response time exclusive), checked in order
SKILL_THRESHOLDS = [
    ("advanced", 0.8, 300.0),
    ("intermediate", 0.6, 500.0),
]

RAPID_PAUSE_MS = 200.0
PRECISE_PAUSE_MS = 800.0

STRENGTH_PLACEHOLDER = "room for improvement"
IMPROVEMENT_PLACEHOLDER = "keep practicing"

# Score weights accuracy far above distance: a perfect hit rate is worth 1000,
# each unit of average distance 10.
SCORE_ACCURACY_WEIGHT = 1000
SCORE_DISTANCE_WEIGHT = 10


def assess_skill_level(hit_rate: float, avg_response_time: float) -> SkillLevel:
    for level, min_rate, max_rt in SKILL_THRESHOLDS:
        if hit_rate > min_rate and avg_response_time < max_rt:
            return level  # type: ignore[return-value]
    return "beginner"


def determine_shooting_style(avg_pause: float) -> ShootingStyle:
    # Fewer than two shots has a pause of 0, so it reads as rapid
    if avg_pause < RAPID_PAUSE_MS:
        return "rapid"
    if avg_pause > PRECISE_PAUSE_MS:
        return "precise"
    return "balanced"


def identify_strengths(stats: SessionStats) -> List[str]:
    strengths: List[str] = []
    if stats.shots:
        if stats.hit_rate_fraction > 0.8:
            strengths.append("high accuracy")
        if stats.avg_response_time < 250:
            strengths.append("quick target acquisition")
        if stats.avg_target_distance > 500:
            strengths.append("long-range accuracy")
    return strengths or [STRENGTH_PLACEHOLDER]


def suggest_improvements(stats: SessionStats) -> List[str]:
    suggestions: List[str] = []
    if stats.shots:
        if stats.hit_rate_fraction < 0.5:
            suggestions.append("favor accuracy over speed")
        if stats.avg_response_time > 600:
            suggestions.append("faster target acquisition")
        if stats.avg_target_distance < 300:
            suggestions.append("practice long-range shots")
    return suggestions or [IMPROVEMENT_PLACEHOLDER]


def compute_score(hit_rate: float, avg_target_distance: float) -> int:
    # Halves round up, not to even
    return math.floor(hit_rate * SCORE_ACCURACY_WEIGHT + avg_target_distance * SCORE_DISTANCE_WEIGHT + 0.5)


def classify(stats: SessionStats, confidence: Confidence = "medium") -> AnalysisResult:
    rate = stats.hit_rate_fraction
    return AnalysisResult(
        skill_level=assess_skill_level(rate, stats.avg_response_time),
        shooting_style=determine_shooting_style(stats.avg_response_time),
        strengths=identify_strengths(stats),
        improvements=suggest_improvements(stats),
        score=compute_score(rate, stats.avg_target_distance),
        confidence=confidence,
    )
