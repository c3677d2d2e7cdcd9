from typing import Optional

from ..config import Settings, load_settings
from .base import InsightClient
from .mock import MockInsightClient
from .ollama import OllamaInsightClient


def get_insight_client(settings: Optional[Settings] = None, provider: Optional[str] = None) -> InsightClient:
    """Return an insight client based on settings or an explicit override.

    Provider from AI_PROVIDER (default 'ollama'); 'mock'/'test' select the
    deterministic client and unknown values fall back to it.
    """
    settings = settings or load_settings()
    prov = (provider or settings.ai_provider or "mock").lower()

    if prov in ("ollama", "local"):
        return OllamaInsightClient(
            model=settings.ollama_model,
            base_url=settings.ollama_url,
            generate_timeout_s=settings.generate_timeout_s,
            probe_timeout_s=settings.probe_timeout_s,
        )

    # mock, test and anything unknown
    return MockInsightClient()
