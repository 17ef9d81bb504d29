import os
from dataclasses import dataclass

from jobpost.core.config import settings

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


@dataclass(frozen=True)
class AIConfig:
    provider: str
    api_key: str
    base_url: str | None
    default_model: str


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def load_ai_config() -> AIConfig:
    provider = settings.llm_provider
    if provider == "groq":
        return AIConfig(
            provider=provider,
            api_key=(os.getenv("GROQ_API_KEY") or "").strip(),
            base_url=(os.getenv("GROQ_BASE_URL") or GROQ_BASE_URL).strip(),
            default_model=(os.getenv("GROQ_MODEL") or "llama-3.1-8b-instant").strip(),
        )
    return AIConfig(
        provider="openai",
        api_key=(os.getenv("OPENAI_API_KEY") or "").strip(),
        base_url=(os.getenv("OPENAI_BASE_URL") or "").strip() or None,
        default_model=(os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip(),
    )


def llm_enabled(cfg: AIConfig | None = None) -> bool:
    if not settings.llm_enabled:
        return False
    cfg = cfg or load_ai_config()
    return bool(cfg.api_key) and not _looks_like_placeholder(cfg.api_key)
