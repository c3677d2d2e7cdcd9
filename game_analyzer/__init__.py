"""Gameplay analyzer service: session metrics, heuristic skill analysis and optional AI insights."""
