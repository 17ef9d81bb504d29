from __future__ import annotations

import re
from typing import Any

from jobpost.ai.types import CompletionClient
from jobpost.schemas.document import JobDocument
from jobpost.schemas.scoring import CategoryScore
from jobpost.scoring.base import DerivedFacts, clamp, document_text, scorer_value, with_default_suggestion
from jobpost.utils.markup import find_job_posting_jsonld

CATEGORY = "structured_data"

REQUIRED_FIELDS = ("title", "description", "datePosted", "hiringOrganization", "jobLocation")
RECOMMENDED_FIELDS = ("baseSalary", "employmentType", "validThrough")

# Plain-text proxies for the facts a JobPosting schema would carry.
TEXT_FACTS: dict[str, re.Pattern[str]] = {
    "location": re.compile(r"\b(location|remote|hybrid|on[-\s]?site|based in)\b", re.I),
    "compensation": re.compile(r"(salary|compensation|pay range|\$\s?\d)", re.I),
    "employment_type": re.compile(r"\b(full[-\s]?time|part[-\s]?time|contract|internship|temporary)\b", re.I),
    "date_posted": re.compile(r"\b(posted|date posted|published)\b", re.I),
}

# Without markup the posting can only earn partial credit.
TEXT_ONLY_SHARE = 7 / 15


def _has_value(node: dict[str, Any], key: str) -> bool:
    if key == "jobLocation" and node.get("jobLocationType") == "TELECOMMUTE":
        return True
    value = node.get(key)
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return bool(value)
    return True


def score_jsonld(node: dict[str, Any], max_score: float) -> CategoryScore:
    required = [key for key in REQUIRED_FIELDS if _has_value(node, key)]
    recommended = [key for key in RECOMMENDED_FIELDS if _has_value(node, key)]
    missing = [key for key in (*REQUIRED_FIELDS, *RECOMMENDED_FIELDS) if key not in required + recommended]
    fraction = 0.2 + 0.55 * len(required) / len(REQUIRED_FIELDS) + 0.25 * len(recommended) / len(RECOMMENDED_FIELDS)
    suggestions = []
    if missing:
        suggestions.append(f"Add the missing JobPosting fields: {', '.join(missing)}.")
    return CategoryScore(
        score=round(clamp(fraction) * max_score, 2),
        max_score=max_score,
        breakdown={"jsonld_found": True, "fields_present": required + recommended, "fields_missing": missing},
        suggestions=with_default_suggestion(suggestions, "No action needed: JobPosting structured data is complete."),
    )


def score_text_facts(text: str, max_score: float) -> CategoryScore:
    present = [name for name, pattern in TEXT_FACTS.items() if pattern.search(text)]
    fraction = TEXT_ONLY_SHARE * len(present) / len(TEXT_FACTS)
    suggestions = ["Publish JobPosting JSON-LD structured data so search engines can index the role."]
    missing = [name for name in TEXT_FACTS if name not in present]
    if missing:
        suggestions.append(f"State these facts explicitly in the posting: {', '.join(missing)}.")
    return CategoryScore(
        score=round(fraction * max_score, 2),
        max_score=max_score,
        breakdown={"jsonld_found": False, "text_facts": present},
        suggestions=suggestions,
    )


async def score_structured_data(
    document: JobDocument,
    facts: DerivedFacts,
    client: CompletionClient | None,
) -> CategoryScore:
    max_score = float(scorer_value(CATEGORY, "max_score", 15))
    node = find_job_posting_jsonld(document.markup)
    if node is not None:
        return score_jsonld(node, max_score)
    return score_text_facts(document_text(document), max_score)
