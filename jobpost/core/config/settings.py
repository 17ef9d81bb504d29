from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    rate_limit: str
    optimize_rate_limit: str
    rate_limit_enabled: bool
    cors_allowed_origins: tuple[str, ...]
    log_level: str
    sentry_dsn: str | None
    llm_enabled: bool
    llm_provider: str
    extraction_model: str
    scoring_model: str
    section_model: str
    coherence_model: str
    section_temperature: float
    coherence_temperature: float
    llm_timeout_s: float
    optimization_timeout_s: float
    retry_max_attempts: int
    retry_base_delay_s: float
    retry_jitter_s: float
    token_target_total: int
    token_fallback_total: int
    token_min_output: int
    max_section_chars: int
    fingerprint_db_path: str
    scoring_config_path: str | None
    score_cache_max_entries: int
    score_cache_ttl_s: float
    brand_keywords: tuple[str, ...]
    preserve_title: bool
    regression_min_category_gain: int
    regression_max_total_drop: int


settings = Settings(
    rate_limit=_get_env("RATE_LIMIT", "30/minute") or "30/minute",
    optimize_rate_limit=_get_env("OPTIMIZE_RATE_LIMIT", "10/minute") or "10/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    cors_allowed_origins=_get_env_list("CORS_ALLOWED_ORIGINS", ["http://localhost:3000"]),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    llm_enabled=_get_env_bool("LLM_ENABLED", True),
    llm_provider=(_get_env("LLM_PROVIDER", "openai") or "openai").strip().lower(),
    extraction_model=_get_env("EXTRACTION_MODEL", "gpt-4o-mini") or "gpt-4o-mini",
    scoring_model=_get_env("SCORING_MODEL", "gpt-4o-mini") or "gpt-4o-mini",
    section_model=_get_env("OPTIMIZATION_SECTION_MODEL", "gpt-4.1-mini") or "gpt-4.1-mini",
    coherence_model=_get_env("OPTIMIZATION_COHERENCE_MODEL", "gpt-4.1") or "gpt-4.1",
    section_temperature=_get_env_float("OPTIMIZATION_SECTION_TEMPERATURE", 0.4),
    coherence_temperature=_get_env_float("OPTIMIZATION_COHERENCE_TEMPERATURE", 0.3),
    llm_timeout_s=_get_env_float("LLM_TIMEOUT_S", 20.0),
    optimization_timeout_s=_get_env_float("OPTIMIZATION_TIMEOUT_S", 60.0),
    retry_max_attempts=_get_env_int("LLM_MAX_ATTEMPTS", 3),
    retry_base_delay_s=_get_env_float("LLM_RETRY_BASE_DELAY_S", 0.3),
    retry_jitter_s=_get_env_float("LLM_RETRY_JITTER_S", 0.1),
    token_target_total=_get_env_int("OPTIMIZATION_TOKEN_TARGET", 8000),
    token_fallback_total=_get_env_int("OPTIMIZATION_TOKEN_FALLBACK", 6000),
    token_min_output=_get_env_int("OPTIMIZATION_MIN_OUTPUT", 1500),
    max_section_chars=_get_env_int("OPTIMIZATION_MAX_SECTION_CHARS", 4500),
    fingerprint_db_path=_get_env("FINGERPRINT_DB_PATH", "data/fingerprints.db") or "data/fingerprints.db",
    scoring_config_path=_get_env("SCORING_CONFIG_PATH"),
    score_cache_max_entries=_get_env_int("SCORE_CACHE_MAX_ENTRIES", 256),
    score_cache_ttl_s=_get_env_float("SCORE_CACHE_TTL_S", 900.0),
    brand_keywords=_get_env_list("OPTIMIZATION_BRAND_KEYWORDS", []),
    preserve_title=_get_env_bool("OPTIMIZATION_PRESERVE_TITLE", True),
    regression_min_category_gain=_get_env_int("REGRESSION_MIN_CATEGORY_GAIN", 5),
    regression_max_total_drop=_get_env_int("REGRESSION_MAX_TOTAL_DROP", 5),
)

if settings.llm_provider not in {"openai", "groq"}:
    raise RuntimeError("LLM_PROVIDER must be either 'openai' or 'groq'.")

if settings.token_min_output < 0:
    raise RuntimeError("OPTIMIZATION_MIN_OUTPUT must not be negative.")
