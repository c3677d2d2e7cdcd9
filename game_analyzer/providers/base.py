from __future__ import annotations

import abc
from typing import Optional


class InsightClient(abc.ABC):
    """Abstract text-generation client used to augment session analyses.

    Implementations raise AugmentationUnavailable when the service cannot be reached
    and AugmentationFailed when it answers with something unusable.
    """

    provider_name: str = "unknown"
    base_url: Optional[str] = None

    def __init__(self, model: Optional[str] = None):
        self.model = model

    @abc.abstractmethod
    async def ping(self) -> None:
        """Lightweight liveness check; raises on failure."""
        ...

    async def warm_up(self) -> None:
        """Load the model ahead of the first real request. No-op by default."""
        return None

    @abc.abstractmethod
    async def generate(self, prompt: str) -> str:
        ...

    async def aclose(self) -> None:
        return None
