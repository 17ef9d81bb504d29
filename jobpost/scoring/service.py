from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Callable

from jobpost.ai.types import CompletionClient
from jobpost.core.cache import TTLCache
from jobpost.extraction.location import extract_location
from jobpost.schemas.document import JobDocument
from jobpost.schemas.scoring import CategoryScore, ScoreReport
from jobpost.scoring.aggregator import aggregate
from jobpost.scoring.base import DerivedFacts, ScorerSpec, document_text
from jobpost.scoring.clarity import score_clarity
from jobpost.scoring.compensation import score_compensation
from jobpost.scoring.keywords import score_keyword_targeting
from jobpost.scoring.page_context import score_page_context
from jobpost.scoring.recency import score_recency
from jobpost.scoring.structure import score_prompt_alignment
from jobpost.scoring.structured_data import score_structured_data

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

SCORERS: tuple[ScorerSpec, ...] = (
    ScorerSpec("structured_data", score_structured_data, uses_model=False),
    ScorerSpec("recency", score_recency, uses_model=False),
    ScorerSpec("keyword_targeting", score_keyword_targeting, uses_model=False),
    ScorerSpec("clarity", score_clarity, uses_model=True),
    ScorerSpec("prompt_alignment", score_prompt_alignment, uses_model=True),
    ScorerSpec("compensation", score_compensation, uses_model=True),
    ScorerSpec("page_context", score_page_context, uses_model=True),
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def _run_batch(
    specs: list[ScorerSpec],
    document: JobDocument,
    facts: DerivedFacts,
    client: CompletionClient | None,
) -> dict[str, CategoryScore]:
    results = await asyncio.gather(*(spec.score(document, facts, client) for spec in specs))
    return {spec.name: result for spec, result in zip(specs, results)}


async def score_document(
    document: JobDocument,
    client: CompletionClient | None,
    cache: TTLCache[ScoreReport] | None = None,
    clock: Clock | None = None,
) -> ScoreReport:
    cache_key = document.content_hash()
    if cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            logger.info("score_cache_hit key=%s", cache_key[:12])
            return cached

    started = time.perf_counter()
    now = (clock or _utc_now)()
    location = await extract_location(document_text(document), client)
    facts = DerivedFacts(location=location, now=now)

    deterministic = [spec for spec in SCORERS if not spec.uses_model]
    model_backed = [spec for spec in SCORERS if spec.uses_model]
    category_scores = await _run_batch(deterministic, document, facts, client)
    category_scores.update(await _run_batch(model_backed, document, facts, client))

    report = aggregate(category_scores, job_location=location.value)
    logger.info(
        json.dumps(
            {
                "event": "score_document",
                "total_score": report.total_score,
                "red_flags": report.red_flags,
                "location_source": location.source,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            }
        )
    )
    if cache is not None:
        cache.set(cache_key, report)
    return report
