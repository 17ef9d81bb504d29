from __future__ import annotations

import asyncio
import json
import logging
import time

from jobpost.ai.completion import complete_json
from jobpost.ai.types import CompletionClient, CompletionOptions
from jobpost.core.config import settings
from jobpost.optimization.prompts import build_section_prompt
from jobpost.schemas.fingerprint import CompanyFingerprint
from jobpost.schemas.optimization import GlobalContext, OptimizedSection, Section
from jobpost.utils.token_budget import compute_max_output, estimate_prompt_tokens

logger = logging.getLogger(__name__)

SECTION_SYSTEM_MESSAGE = "You are an expert job posting editor. Output a single JSON object."


def string_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def output_budget(prompt: str, markup_length: int = 0) -> int:
    prompt_tokens = estimate_prompt_tokens(text_length=len(prompt), markup_length=markup_length, section_count=1)
    return compute_max_output(
        prompt_tokens,
        target_total=settings.token_target_total,
        min_output=settings.token_min_output,
        fallback_total=settings.token_fallback_total,
    )


async def optimize_section(
    section: Section,
    fingerprint: CompanyFingerprint,
    context: GlobalContext,
    client: CompletionClient,
) -> OptimizedSection:
    prompt = build_section_prompt(
        section,
        fingerprint,
        context,
        brand_keywords=settings.brand_keywords,
        preserve_title=settings.preserve_title,
    )
    options = CompletionOptions(
        model=settings.section_model,
        temperature=settings.section_temperature,
        max_output_tokens=output_budget(prompt, len(section.original_markup or "")),
        timeout_s=settings.optimization_timeout_s,
        system_message=SECTION_SYSTEM_MESSAGE,
        caller="optimization/section",
    )
    payload = await complete_json(client, prompt, options)
    return OptimizedSection(
        label=section.label,
        optimized_text=str(payload.get("optimized_text") or ""),
        change_log=string_list(payload.get("change_log")),
        unaddressed_items=string_list(payload.get("unaddressed_items")),
    )


async def optimize_sections(
    sections: list[Section],
    fingerprint: CompanyFingerprint,
    context: GlobalContext,
    client: CompletionClient,
) -> list[OptimizedSection]:
    """Rewrite all sections concurrently; the first failure aborts the batch."""
    started = time.perf_counter()
    logger.info(json.dumps({"event": "section_optimization_started", "section_count": len(sections)}))
    tasks = [asyncio.ensure_future(optimize_section(section, fingerprint, context, client)) for section in sections]
    try:
        results = await asyncio.gather(*tasks)
    except Exception:
        logger.exception("section_optimization_failed section_count=%s", len(sections))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    duration_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        json.dumps(
            {
                "event": "section_optimization_completed",
                "section_count": len(sections),
                "duration_ms": duration_ms,
                "avg_per_section_ms": duration_ms // max(1, len(sections)),
            }
        )
    )
    return list(results)
