from __future__ import annotations

import re

from jobpost.ai.types import CompletionClient
from jobpost.schemas.document import JobDocument
from jobpost.schemas.scoring import CategoryScore
from jobpost.scoring.base import (
    DerivedFacts,
    blended_score,
    build_rubric_prompt,
    clamp,
    document_text,
    model_rubric,
    scorer_value,
)
from jobpost.utils.markup import HEADING_TAGS, load_markup
from jobpost.utils.text import count_markdown_headings, non_empty_lines

CATEGORY = "prompt_alignment"

CANONICAL_SECTIONS: dict[str, re.Pattern[str]] = {
    "about": re.compile(r"\b(about (us|the (company|team|role))|who we are|our (mission|team|company))\b", re.I),
    "responsibilities": re.compile(
        r"\b(responsibilities|what you('| wi)ll do|the role|your impact|duties|day to day)\b", re.I
    ),
    "requirements": re.compile(
        r"\b(requirements|qualifications|what you('| wi)ll bring|who you are|must have|skills)\b", re.I
    ),
    "benefits": re.compile(r"\b(benefits|perks|what we offer|compensation|why join)\b", re.I),
}
OPTIONAL_SECTIONS: dict[str, re.Pattern[str]] = {
    "preferred": re.compile(r"\b(nice to have|preferred|bonus points|pluses)\b", re.I),
    "apply": re.compile(r"\b(how to apply|application process|interview process|next steps)\b", re.I),
}

HEADING_LINE_RE = re.compile(r"^\s*(#{1,6}\s+.+|[A-Z][A-Za-z' /&-]{2,60}:?\s*)$")

DIMENSIONS = {
    "grouping": "related information is grouped under clear sections",
    "ordering": "sections follow a logical order for a candidate",
    "completeness": "role, requirements, benefits and process are all covered",
}

_SEED = 1202


def heading_candidates(document: JobDocument, text: str) -> list[str]:
    soup = load_markup(document.markup)
    if soup is not None:
        headings = [node.get_text(" ", strip=True) for node in soup.find_all(HEADING_TAGS)]
        if headings:
            return headings
    return [line.strip().lstrip("#").strip() for line in non_empty_lines(text) if HEADING_LINE_RE.match(line)]


def detect_sections(headings: list[str], patterns: dict[str, re.Pattern[str]]) -> list[str]:
    found: list[str] = []
    for name, pattern in patterns.items():
        if any(pattern.search(heading) for heading in headings):
            found.append(name)
    return found


def deterministic_structure(document: JobDocument, text: str) -> tuple[float, dict, list[str]]:
    headings = heading_candidates(document, text)
    core = detect_sections(headings, CANONICAL_SECTIONS)
    optional = detect_sections(headings, OPTIONAL_SECTIONS)
    heading_count = max(len(headings), count_markdown_headings(text))

    core_fraction = len(core) / len(CANONICAL_SECTIONS)
    heading_fraction = clamp(heading_count / 4)
    optional_fraction = len(optional) / len(OPTIONAL_SECTIONS)
    fraction = 0.6 * core_fraction + 0.3 * heading_fraction + 0.1 * optional_fraction

    suggestions: list[str] = []
    missing = [name for name in CANONICAL_SECTIONS if name not in core]
    if missing:
        suggestions.append(f"Add clearly headed sections for: {', '.join(missing)}.")
    if heading_count < 3:
        suggestions.append("Break the posting into headed sections so candidates can scan it.")

    breakdown = {
        "heading_count": heading_count,
        "sections_found": core + optional,
        "sections_missing": missing,
    }
    return fraction, breakdown, suggestions


async def score_prompt_alignment(
    document: JobDocument,
    facts: DerivedFacts,
    client: CompletionClient | None,
) -> CategoryScore:
    text = document_text(document)
    fraction, breakdown, suggestions = deterministic_structure(document, text)
    rubric = await model_rubric(
        client,
        category=CATEGORY,
        prompt=build_rubric_prompt(
            task="Assess how well this job posting is organised into sections.",
            dimensions=DIMENSIONS,
            body=text,
        ),
        dimensions=list(DIMENSIONS),
        seed=_SEED,
    )
    return blended_score(
        category=CATEGORY,
        deterministic_fraction=fraction,
        rubric=rubric,
        max_score=float(scorer_value(CATEGORY, "max_score", 20)),
        neutral_score=float(scorer_value(CATEGORY, "neutral_score", 10)),
        model_weight=float(scorer_value(CATEGORY, "model_weight", 0.5)),
        breakdown=breakdown,
        suggestions=suggestions,
        neutral_suggestion="No action needed: sections are well organised.",
    )
