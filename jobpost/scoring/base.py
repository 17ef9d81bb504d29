from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from jobpost.ai.completion import wrap_untrusted
from jobpost.ai.completion import complete_json
from jobpost.ai.types import CompletionClient, CompletionOptions
from jobpost.core.config import settings
from jobpost.core.config.scoring import get_scoring_value
from jobpost.schemas.document import JobDocument
from jobpost.schemas.extraction import LocationExtraction, LocationFields
from jobpost.schemas.scoring import CategoryScore
from jobpost.utils.markup import markup_to_text
from jobpost.utils.text import truncate

logger = logging.getLogger(__name__)

MAX_RUBRIC_CHARS = 3500
SCORER_SYSTEM_MESSAGE = "You are a job posting quality analyst. Output a single JSON object."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DerivedFacts:
    """Facts shared by scorers: the extracted location and the scoring clock."""

    location: LocationExtraction | None = None
    now: datetime = field(default_factory=_utc_now)

    @property
    def location_fields(self) -> LocationFields:
        return self.location.value if self.location else LocationFields()


Scorer = Callable[[JobDocument, DerivedFacts, "CompletionClient | None"], Awaitable[CategoryScore]]


@dataclass(frozen=True)
class ScorerSpec:
    name: str
    score: Scorer
    uses_model: bool


def scorer_value(scorer: str, key: str, default: Any) -> Any:
    return get_scoring_value(f"scorers.{scorer}.{key}", default)


def document_text(document: JobDocument) -> str:
    body = document.body or ""
    if body.strip():
        return body
    return markup_to_text(document.markup)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def with_default_suggestion(suggestions: list[str], neutral: str) -> list[str]:
    clean = [item for item in suggestions if item]
    return clean or [neutral]


def build_rubric_prompt(*, task: str, dimensions: dict[str, str], body: str) -> str:
    dimension_lines = "\n".join(f"- {key}: {description}" for key, description in dimensions.items())
    keys = ", ".join(f'"{key}": 0-10' for key in dimensions)
    return (
        f"{task}\n\n"
        "Rate each dimension with an integer from 0 (poor) to 10 (excellent):\n"
        f"{dimension_lines}\n\n"
        f'Return JSON: {{{keys}, "suggestion": "one concrete improvement"}}\n\n'
        "Job posting:\n"
        f"{wrap_untrusted(truncate(body, MAX_RUBRIC_CHARS))}"
    )


def _coerce_subscore(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(clamp(round(value), 0, 10))
    if isinstance(value, str) and value.strip().isdigit():
        return int(clamp(int(value.strip()), 0, 10))
    return None


@dataclass
class RubricResult:
    subscores: dict[str, int]
    suggestion: str | None

    @property
    def fraction(self) -> float:
        if not self.subscores:
            return 0.0
        return sum(self.subscores.values()) / (10.0 * len(self.subscores))


async def model_rubric(
    client: CompletionClient | None,
    *,
    category: str,
    prompt: str,
    dimensions: list[str],
    seed: int,
) -> RubricResult | None:
    """One constrained JSON call for small integer sub-scores; None when unavailable or malformed."""
    if client is None:
        return None
    started = time.perf_counter()
    options = CompletionOptions(
        model=settings.scoring_model,
        timeout_s=settings.llm_timeout_s,
        seed=seed,
        system_message=SCORER_SYSTEM_MESSAGE,
        caller=f"scoring/{category}",
    )
    try:
        payload = await complete_json(client, prompt, options)
    except Exception as exc:
        logger.warning("scorer_model_failed category=%s: %s", category, exc)
        return None

    subscores: dict[str, int] = {}
    for key in dimensions:
        value = _coerce_subscore(payload.get(key))
        if value is None:
            logger.warning("scorer_model_incomplete category=%s missing=%s", category, key)
            return None
        subscores[key] = value
    suggestion = payload.get("suggestion")
    logger.info(
        "scorer_model_success category=%s latency_ms=%s",
        category,
        int((time.perf_counter() - started) * 1000),
    )
    return RubricResult(
        subscores=subscores,
        suggestion=suggestion.strip() if isinstance(suggestion, str) and suggestion.strip() else None,
    )


def blended_score(
    *,
    category: str,
    deterministic_fraction: float,
    rubric: RubricResult | None,
    max_score: float,
    neutral_score: float,
    model_weight: float,
    breakdown: dict[str, Any],
    suggestions: list[str],
    neutral_suggestion: str,
) -> CategoryScore:
    breakdown = dict(breakdown)
    breakdown["deterministic_fraction"] = round(deterministic_fraction, 4)
    if rubric is None:
        logger.info("scorer_neutral_fallback category=%s score=%s", category, neutral_score)
        breakdown["source"] = "fallback_neutral"
        return CategoryScore(
            score=clamp(neutral_score, 0, max_score),
            max_score=max_score,
            breakdown=breakdown,
            suggestions=with_default_suggestion(suggestions, neutral_suggestion),
        )

    fraction = (1 - model_weight) * clamp(deterministic_fraction) + model_weight * rubric.fraction
    breakdown["source"] = "hybrid"
    breakdown["model_subscores"] = rubric.subscores
    if rubric.suggestion and fraction < 1.0:
        suggestions = [*suggestions, rubric.suggestion]
    return CategoryScore(
        score=round(clamp(fraction) * max_score, 2),
        max_score=max_score,
        breakdown=breakdown,
        suggestions=with_default_suggestion(suggestions, neutral_suggestion),
    )
