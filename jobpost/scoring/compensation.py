from __future__ import annotations

import logging

from jobpost.ai.types import CompletionClient
from jobpost.compliance.jurisdictions import apply_compliance, is_remote_in_covered_country
from jobpost.core.config.scoring import get_scoring_value
from jobpost.extraction.compensation import extract_compensation
from jobpost.schemas.document import JobDocument
from jobpost.schemas.extraction import CompensationFields
from jobpost.schemas.scoring import CategoryScore
from jobpost.scoring.base import DerivedFacts, document_text

logger = logging.getLogger(__name__)

CATEGORY = "compensation"

DEFAULT_LADDER: dict[str, float] = {
    "range_full": 15,
    "range_missing_period": 13,
    "range_missing_currency_period": 12,
    "single_full": 11,
    "single_missing_period": 9,
    "single_missing_currency_period": 7,
    "vague_terms": 5,
    "missing": 0,
}

STATUS_SUGGESTIONS: dict[str, str] = {
    "range_missing_period": "State the pay period (per year, per hour) next to the salary range.",
    "range_missing_currency_period": "Add the currency and pay period to the salary range.",
    "single_full": "Publish a salary range instead of a single figure.",
    "single_missing_period": "Publish a salary range and state the pay period.",
    "single_missing_currency_period": "Publish a salary range with currency and pay period.",
    "vague_terms": "Replace vague pay wording with a specific salary range.",
    "missing": "Add a salary range with currency and pay period.",
}


def compensation_status(fields: CompensationFields) -> str:
    if fields.is_range and fields.min is not None and fields.max is not None:
        if fields.currency and fields.pay_period:
            return "range_full"
        if fields.currency:
            return "range_missing_period"
        return "range_missing_currency_period"
    if fields.amount is not None:
        if fields.currency and fields.pay_period:
            return "single_full"
        if fields.currency:
            return "single_missing_period"
        return "single_missing_currency_period"
    if fields.vague_terms:
        return "vague_terms"
    return "missing"


def ladder_points(status: str) -> float:
    ladder = get_scoring_value("compensation.ladder", None) or DEFAULT_LADDER
    return float(ladder.get(status, DEFAULT_LADDER.get(status, 0)))


async def score_compensation(
    document: JobDocument,
    facts: DerivedFacts,
    client: CompletionClient | None,
) -> CategoryScore:
    max_score = float(get_scoring_value("compensation.max_score", 15))
    location = facts.location_fields
    extraction = await extract_compensation(
        document_text(document),
        location_context=location.summary or "",
        client=client,
    )
    fields = extraction.value
    status = compensation_status(fields)
    raw = min(max_score, ladder_points(status))
    jurisdictions = facts.location.jurisdictions if facts.location else []
    outcome = apply_compliance(status, raw, jurisdictions, is_remote_in_covered_country(location))
    if outcome.score < raw:
        logger.info(
            "compensation_compliance_cap status=%s raw=%s capped=%s jurisdictions=%s",
            status,
            raw,
            outcome.score,
            ",".join(outcome.jurisdictions) or "remote_us",
        )

    suggestions = list(outcome.suggestions)
    if status in STATUS_SUGGESTIONS:
        suggestions.append(STATUS_SUGGESTIONS[status])
    if not suggestions:
        suggestions.append("No action needed: compensation is fully disclosed.")

    return CategoryScore(
        score=outcome.score,
        max_score=max_score,
        breakdown={
            "status": status,
            "ladder_points": raw,
            "requires_disclosure": outcome.requires_disclosure,
            "jurisdictions": outcome.jurisdictions,
            "confidence": extraction.confidence,
            "source": extraction.source,
            "compensation": fields.model_dump(),
        },
        suggestions=suggestions,
    )
