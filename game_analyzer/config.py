import os
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv

# Load .env for local runs, but keep tests deterministic
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()


def _env_str(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _env_float(name: str, default: float) -> float:
    try:
        return float(_env_str(name) or default)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env_str(name) or default)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_str(name)
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    ai_provider: str = "ollama"
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "tinyllama"
    generate_timeout_s: float = 30.0
    probe_timeout_s: float = 5.0
    probe_recheck_s: float = 60.0
    warmup_enabled: bool = True
    insight_max_chars: int = 1200
    analysis_queue_size: int = 5
    shot_action_type: str = "missile_shot"
    cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def load_settings() -> Settings:
    """Read settings from the environment. Invalid numbers fall back to defaults."""
    d = Settings()
    return Settings(
        ai_provider=(_env_str("AI_PROVIDER") or d.ai_provider).lower(),
        ollama_url=(_env_str("OLLAMA_URL") or d.ollama_url).rstrip("/"),
        ollama_model=_env_str("OLLAMA_MODEL") or d.ollama_model,
        generate_timeout_s=_env_float("AI_GENERATE_TIMEOUT_SECONDS", d.generate_timeout_s),
        probe_timeout_s=_env_float("AI_PROBE_TIMEOUT_SECONDS", d.probe_timeout_s),
        probe_recheck_s=_env_float("AI_PROBE_RECHECK_SECONDS", d.probe_recheck_s),
        warmup_enabled=_env_bool("AI_WARMUP_ENABLED", d.warmup_enabled),
        insight_max_chars=_env_int("AI_INSIGHT_MAX_CHARS", d.insight_max_chars),
        analysis_queue_size=max(0, _env_int("ANALYSIS_QUEUE_SIZE", d.analysis_queue_size)),
        shot_action_type=_env_str("SHOT_ACTION_TYPE") or d.shot_action_type,
        cors_origins=_env_str("CORS_ORIGINS") or d.cors_origins,
        log_level=(_env_str("LOG_LEVEL") or d.log_level).upper(),
    )
