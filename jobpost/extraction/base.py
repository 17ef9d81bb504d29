from __future__ import annotations

import logging
import time
from typing import Any

from jobpost.ai.completion import JSON_SYSTEM_MESSAGE, complete_json
from jobpost.ai.types import CompletionClient, CompletionOptions
from jobpost.core.config import settings
from jobpost.core.config.scoring import get_scoring_value

logger = logging.getLogger(__name__)

# Bodies beyond this are truncated before being sent for extraction.
MAX_EXTRACTION_CHARS = 6000


def confidence_threshold() -> float:
    return float(get_scoring_value("extraction.confidence_threshold", 0.5))


def model_confidence_floor(complete: bool) -> float:
    if complete:
        return float(get_scoring_value("extraction.model_floor_complete", 0.8))
    return float(get_scoring_value("extraction.model_floor", 0.6))


def confidence_weight(kind: str, signal: str, default: float) -> float:
    return float(get_scoring_value(f"extraction.{kind}.{signal}", default))


def clamp_confidence(value: float) -> float:
    return round(min(1.0, max(0.0, value)), 4)


async def model_extract(
    client: CompletionClient | None,
    prompt: str,
    *,
    caller: str,
    seed: int,
) -> dict[str, Any] | None:
    """Narrow JSON extraction call. Returns None on any failure so callers keep their deterministic result."""
    if client is None:
        return None
    started = time.perf_counter()
    options = CompletionOptions(
        model=settings.extraction_model,
        timeout_s=settings.llm_timeout_s,
        seed=seed,
        system_message=JSON_SYSTEM_MESSAGE,
        caller=caller,
    )
    try:
        payload = await complete_json(client, prompt, options)
    except Exception as exc:
        logger.warning(
            "extraction_model_failed caller=%s latency_ms=%s: %s",
            caller,
            int((time.perf_counter() - started) * 1000),
            exc,
        )
        return None
    logger.info(
        "extraction_model_success caller=%s latency_ms=%s",
        caller,
        int((time.perf_counter() - started) * 1000),
    )
    return payload


def safe_str(value: Any, max_len: int = 280) -> str | None:
    if not isinstance(value, str):
        return None
    text = " ".join(value.split())
    if not text or text.lower() in {"null", "none", "unknown", "n/a"}:
        return None
    return text[:max_len]


def safe_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.replace(",", "").strip()
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None
