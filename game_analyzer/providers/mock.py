import re
from typing import Optional

from .base import InsightClient

_HIT_RATE = re.compile(r"Hit Rate: ([0-9.]+)%")


class MockInsightClient(InsightClient):
    provider_name: str = "mock"

    def __init__(self, model: Optional[str] = None):
        super().__init__(model=model or "mock-insight-1")

    async def ping(self) -> None:
        return None

    async def generate(self, prompt: str) -> str:
        # Deterministic reply keyed off the prompt's hit rate line
        m = _HIT_RATE.search(prompt or "")
        rate = float(m.group(1)) if m else 0.0
        if rate >= 80:
            return "Sharp shooting. Keep engaging targets at longer range."
        if rate >= 50:
            return "Solid accuracy. Slow down slightly before each shot to convert more hits."
        return "Focus on lining up each shot before firing; accuracy matters more than volume."
