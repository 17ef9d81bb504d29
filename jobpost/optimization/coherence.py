from __future__ import annotations

import logging

from jobpost.ai.completion import complete_json
from jobpost.ai.types import CompletionClient, CompletionOptions
from jobpost.core.config import settings
from jobpost.optimization.optimizer import SECTION_SYSTEM_MESSAGE, output_budget, string_list
from jobpost.optimization.prompts import build_coherence_prompt
from jobpost.schemas.optimization import CoherenceResult, GlobalContext, SchemaSnapshot
from jobpost.utils.json_guards import ModelJsonError

logger = logging.getLogger(__name__)


def _skipped(draft: str, note: str) -> CoherenceResult:
    return CoherenceResult(optimized_text=draft, change_log=[note], unaddressed_items=[], skipped=True)


async def reconcile(
    draft: str,
    context: GlobalContext,
    schema_snapshot: SchemaSnapshot | None,
    client: CompletionClient,
) -> CoherenceResult:
    """One polishing call over the merged draft. Any failure returns the draft unchanged."""
    prompt = build_coherence_prompt(draft, context, schema_snapshot, brand_keywords=settings.brand_keywords)
    options = CompletionOptions(
        model=settings.coherence_model,
        temperature=settings.coherence_temperature,
        max_output_tokens=output_budget(prompt),
        timeout_s=settings.optimization_timeout_s,
        system_message=SECTION_SYSTEM_MESSAGE,
        caller="optimization/coherence",
    )
    try:
        payload = await complete_json(client, prompt, options)
    except ModelJsonError as exc:
        if not exc.preview:
            logger.warning("coherence_empty_response using_draft=true")
            return _skipped(draft, "Coherence pass skipped due to empty model response")
        logger.warning("coherence_malformed_response using_draft=true: %s", exc)
        return _skipped(draft, f"Coherence pass failed: {exc}")
    except Exception as exc:
        logger.warning("coherence_failed using_draft=true: %s", exc)
        return _skipped(draft, f"Coherence pass failed: {exc}")

    text = payload.get("optimized_text")
    return CoherenceResult(
        optimized_text=text if isinstance(text, str) and text.strip() else draft,
        change_log=string_list(payload.get("change_log")),
        unaddressed_items=string_list(payload.get("unaddressed_items")),
    )
