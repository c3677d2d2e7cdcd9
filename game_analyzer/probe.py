"""Process-wide availability check for the insight provider.

Checked once at startup. After a failed check, the next caller past the re-check
interval probes again; successful results are kept for the life of the process.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, Optional

from .errors import AugmentationError
from .providers.base import InsightClient
from .telemetry import PROBE_AVAILABLE

logger = logging.getLogger("game_analyzer.probe")

UNKNOWN = "unknown"
AVAILABLE = "available"
UNAVAILABLE = "unavailable"


class ConnectivityProbe:
    def __init__(
        self,
        client: InsightClient,
        recheck_after_s: float = 60.0,
        warm_up: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._recheck_after = recheck_after_s
        self._warm_up = warm_up
        self._clock = clock
        self._lock = asyncio.Lock()
        self.state = UNKNOWN
        self.last_error: Optional[str] = None
        self._checked_at: Optional[float] = None

    @property
    def initialized(self) -> bool:
        return self.state == AVAILABLE

    async def check(self) -> bool:
        """Probe now, unless another caller is already probing (then share its result)."""
        if self._lock.locked():
            async with self._lock:
                return self.state == AVAILABLE
        async with self._lock:
            try:
                await self._client.ping()
                if self._warm_up:
                    await self._client.warm_up()
            except (AugmentationError, asyncio.TimeoutError) as e:
                self._record(UNAVAILABLE, repr(e))
            except Exception as e:
                logger.exception("connectivity_check_unexpected_error: %s", e)
                self._record(UNAVAILABLE, repr(e))
            else:
                self._record(AVAILABLE, None)
            return self.state == AVAILABLE

    async def is_available(self) -> bool:
        if self.state == AVAILABLE:
            return True
        if self.state == UNKNOWN or self._stale():
            return await self.check()
        return False

    def _stale(self) -> bool:
        if self._checked_at is None:
            return True
        return self._clock() - self._checked_at >= self._recheck_after

    def _record(self, state: str, error: Optional[str]) -> None:
        self.state = state
        self.last_error = error
        self._checked_at = self._clock()
        PROBE_AVAILABLE.labels(provider=self._client.provider_name).set(1 if state == AVAILABLE else 0)
        log = {
            "event": "probe_result",
            "provider": self._client.provider_name,
            "model": self._client.model,
            "state": state,
        }
        if error:
            log["error"] = error
            logger.warning(json.dumps(log))
        else:
            logger.info(json.dumps(log))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "provider": self._client.provider_name,
            "model": self._client.model,
            "url": self._client.base_url,
            "lastError": self.last_error,
        }
