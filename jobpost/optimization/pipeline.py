from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass

from jobpost.ai.types import CompletionClient, CompletionError
from jobpost.core.config import settings
from jobpost.core.fingerprint_store import FingerprintStore, FingerprintStoreError
from jobpost.optimization.analysis import analyze_structure, extract_schema_snapshot
from jobpost.optimization.coherence import reconcile
from jobpost.optimization.fingerprint import FingerprintManager
from jobpost.optimization.optimizer import optimize_sections
from jobpost.optimization.sections import merge, segment
from jobpost.schemas.document import JobDocument
from jobpost.schemas.extraction import LocationFields
from jobpost.schemas.optimization import GlobalContext, ImprovementVerdict, OptimizationResult
from jobpost.schemas.scoring import ScoreReport
from jobpost.scoring.service import Clock, score_document
from jobpost.utils.json_guards import ModelJsonError
from jobpost.utils.markup import jsonld_scripts
from jobpost.utils.text import count_markdown_headings

logger = logging.getLogger(__name__)


class OptimizationError(RuntimeError):
    def __init__(self, message: str, *, code: str = "optimization_failed"):
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class RegressionPolicy:
    min_category_gain: float = 5
    max_total_regression: int = 5


def default_regression_policy() -> RegressionPolicy:
    return RegressionPolicy(
        min_category_gain=settings.regression_min_category_gain,
        max_total_regression=settings.regression_max_total_drop,
    )


def _log_timing(event: str, started: float, **fields: object) -> None:
    payload = {"event": event, "duration_ms": int((time.perf_counter() - started) * 1000), **fields}
    logger.info(json.dumps(payload))


async def run_optimization(
    document: JobDocument,
    client: CompletionClient,
    store: FingerprintStore,
    *,
    company_name: str | None = None,
    job_location: LocationFields | None = None,
    original_score: int | None = None,
) -> OptimizationResult:
    started = time.perf_counter()
    analysis = analyze_structure(document)
    company = company_name or analysis.company_name
    try:
        fingerprint = await FingerprintManager(store).ensure_fingerprint(company, analysis)
    except FingerprintStoreError as exc:
        logger.exception("fingerprint_store_failed operation=%s slug=%s", exc.operation, exc.slug)
        raise OptimizationError(str(exc), code="fingerprint_store_failed") from exc

    snapshot = extract_schema_snapshot(document)
    first_heading = analysis.detected_sections[0].heading_text if analysis.detected_sections else None
    context = GlobalContext(
        title=document.title or snapshot.title or first_heading,
        company_name=company,
        tone=fingerprint.tone,
        formatting=fingerprint.formatting,
        job_location=job_location,
        original_score=original_score,
    )

    sections = segment(document, fingerprint)
    if not sections:
        raise OptimizationError("Job posting has no content to optimize.", code="empty_document")

    try:
        optimized = await optimize_sections(sections, fingerprint, context, client)
    except CompletionError as exc:
        raise OptimizationError(str(exc), code="completion_failed") from exc
    except ModelJsonError as exc:
        raise OptimizationError(str(exc), code="malformed_model_output") from exc
    _log_timing("sections_optimized", started, section_count=len(sections))

    draft = merge(optimized, fingerprint)
    coherence_started = time.perf_counter()
    polished = await reconcile(draft, context, snapshot, client)
    _log_timing("coherence_completed", coherence_started, skipped=polished.skipped)

    before = count_markdown_headings(draft)
    after = count_markdown_headings(polished.optimized_text)
    if after < before:
        logger.warning("coherence_reduced_sections original=%s optimized=%s lost=%s", before, after, before - after)

    change_log = [item for section in optimized for item in section.change_log] + polished.change_log
    unaddressed = [item for section in optimized for item in section.unaddressed_items] + polished.unaddressed_items
    _log_timing("optimization_completed", started, change_count=len(change_log))
    return OptimizationResult(
        optimized_text=polished.optimized_text,
        change_log=change_log,
        unaddressed_items=unaddressed,
        fingerprint=fingerprint,
        schema_snapshot=snapshot,
    )


def evaluate_improvement(
    original: ScoreReport,
    optimized: ScoreReport,
    policy: RegressionPolicy | None = None,
) -> ImprovementVerdict:
    """Accept a rewrite that raises the total, or one that lifts a category enough to excuse a small drop."""
    policy = policy or default_regression_policy()
    delta = optimized.total_score - original.total_score

    best_category: str | None = None
    best_gain = 0.0
    for name, category in optimized.categories.items():
        before = original.categories.get(name)
        if before is None:
            continue
        gain = category.score - before.score
        if gain > best_gain:
            best_category, best_gain = name, gain

    if delta > 0:
        accepted, reason = True, f"Total score improved by {delta}."
    elif best_category is not None and best_gain >= policy.min_category_gain and -delta <= policy.max_total_regression:
        accepted = True
        reason = f"{best_category} improved by {best_gain:g} while the total changed by {delta}."
    elif delta == 0:
        accepted, reason = False, "Total score did not change."
    else:
        accepted, reason = False, f"Total score regressed by {-delta} without a qualifying category gain."

    return ImprovementVerdict(
        accepted=accepted,
        original_score=original.total_score,
        optimized_score=optimized.total_score,
        delta=delta,
        best_category=best_category,
        best_category_gain=best_gain,
        reason=reason,
    )


@dataclass
class RescoredOptimization:
    result: OptimizationResult
    original: ScoreReport
    optimized: ScoreReport
    verdict: ImprovementVerdict


async def optimize_and_rescore(
    document: JobDocument,
    client: CompletionClient,
    store: FingerprintStore,
    *,
    company_name: str | None = None,
    original: ScoreReport | None = None,
    policy: RegressionPolicy | None = None,
    clock: Clock | None = None,
) -> RescoredOptimization:
    if original is None:
        original = await score_document(document, client, clock=clock)
    result = await run_optimization(
        document,
        client,
        store,
        company_name=company_name,
        job_location=original.job_location,
        original_score=original.total_score,
    )
    rewritten = JobDocument(
        title=document.title,
        body=result.optimized_text,
        markup=jsonld_scripts(document.markup),
    )
    optimized = await score_document(rewritten, client, clock=clock)
    verdict = evaluate_improvement(original, optimized, policy)
    logger.info(
        "optimization_verdict accepted=%s original=%s optimized=%s reason=%s",
        verdict.accepted,
        verdict.original_score,
        verdict.optimized_score,
        verdict.reason,
    )
    return RescoredOptimization(result=result, original=original, optimized=optimized, verdict=verdict)
