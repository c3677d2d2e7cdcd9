import json
import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import AugmentationFailed, AugmentationUnavailable
from .base import InsightClient

logger = logging.getLogger("game_analyzer.providers.ollama")


class OllamaInsightClient(InsightClient):
    """Client for a local Ollama server.

    Endpoints:
      GET  {base_url}/api/tags      liveness
      POST {base_url}/api/generate  {model, prompt, stream: false} -> {response: str}
    """

    provider_name: str = "ollama"

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: str = "http://localhost:11434",
        generate_timeout_s: float = 30.0,
        probe_timeout_s: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(model=model or "tinyllama")
        self.base_url = base_url.rstrip("/")
        self._generate_timeout = generate_timeout_s
        self._probe_timeout = probe_timeout_s
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        # Short-lived client per call so nothing leaks across event loops
        return httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=self._transport)

    async def ping(self) -> None:
        try:
            async with self._client(self._probe_timeout) as client:
                resp = await client.get("/api/tags")
        except httpx.HTTPError as e:
            raise AugmentationUnavailable(f"Ollama unreachable at {self.base_url}: {e!r}") from e
        if resp.status_code >= 400:
            raise AugmentationUnavailable(f"Ollama liveness error {resp.status_code}")

    async def warm_up(self) -> None:
        await self.generate("Hi")
        logger.info(json.dumps({"event": "ollama_model_loaded", "model": self.model}))

    async def generate(self, prompt: str) -> str:
        payload: Dict[str, Any] = {"model": self.model, "prompt": prompt, "stream": False}
        try:
            async with self._client(self._generate_timeout) as client:
                resp = await client.post("/api/generate", json=payload)
        except httpx.TimeoutException as e:
            raise AugmentationUnavailable(f"Ollama generate timed out after {self._generate_timeout}s") from e
        except httpx.HTTPError as e:
            raise AugmentationUnavailable(f"Ollama generate transport error: {e!r}") from e

        if resp.status_code >= 400:
            logger.error(json.dumps({
                "event": "ollama_generate_http_error",
                "status": resp.status_code,
                "body": (resp.text or "")[:1024],
                "model": self.model,
            }))
            raise AugmentationFailed(f"Ollama generate error {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise AugmentationFailed("Ollama generate returned non-JSON body") from e
        if not isinstance(data, dict):
            raise AugmentationFailed("Ollama generate returned unexpected payload shape")
        if data.get("error"):
            raise AugmentationFailed(f"Ollama generate error: {str(data['error'])[:200]}")
        text = data.get("response")
        if not isinstance(text, str) or not text.strip():
            raise AugmentationFailed("Ollama generate returned empty response")
        return text.strip()
