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
from jobpost.utils.markup import load_markup
from jobpost.utils.text import non_empty_lines

CATEGORY = "page_context"

BOILERPLATE_RE = re.compile(
    r"(equal opportunity|affirmative action|without regard to|reasonable accommodation|e-verify|"
    r"privacy (policy|notice)|cookie|all rights reserved|terms of (use|service)|background check|"
    r"applicants? (with|must)|protected veteran)",
    re.IGNORECASE,
)
NAVIGATION_RE = re.compile(r"^(apply( now)?|share( this job)?|back to (jobs|search)|sign in|log in|save job)$", re.I)
WORD_RE = re.compile(r"\b\w+\b")

MIN_WORDS = 150
MAX_WORDS = 1500
MAX_BOILERPLATE_RATIO = 0.25
MAX_LINK_DENSITY = 0.1

DIMENSIONS = {
    "focus": "the page stays on the role rather than unrelated content",
    "clarity": "a candidate can understand the role from this page alone",
    "completeness": "the page gives enough context to decide whether to apply",
}

_SEED = 1207


def link_density(markup: str | None) -> float:
    soup = load_markup(markup)
    if soup is None:
        return 0.0
    total = len(WORD_RE.findall(soup.get_text(" ", strip=True)))
    if not total:
        return 0.0
    linked = sum(len(WORD_RE.findall(anchor.get_text(" ", strip=True))) for anchor in soup.find_all("a"))
    return linked / total


def deterministic_context(document: JobDocument, text: str) -> tuple[float, dict, list[str]]:
    lines = non_empty_lines(text)
    words = len(WORD_RE.findall(text))
    boilerplate_lines = [line for line in lines if BOILERPLATE_RE.search(line) or NAVIGATION_RE.match(line.strip())]
    boilerplate_ratio = len(boilerplate_lines) / len(lines) if lines else 0.0
    density = link_density(document.markup)

    if words < MIN_WORDS:
        length_fraction = words / MIN_WORDS
    elif words > MAX_WORDS:
        length_fraction = clamp(1.0 - (words - MAX_WORDS) / MAX_WORDS, 0.3)
    else:
        length_fraction = 1.0
    boilerplate_fraction = 1.0 if boilerplate_ratio <= MAX_BOILERPLATE_RATIO else clamp(1.0 - boilerplate_ratio)
    link_fraction = 1.0 if density <= MAX_LINK_DENSITY else clamp(1.0 - density)

    suggestions: list[str] = []
    if words < MIN_WORDS:
        suggestions.append(f"Expand the posting; {words} words is too little context for candidates.")
    elif words > MAX_WORDS:
        suggestions.append(f"Trim the posting; {words} words buries the key details.")
    if boilerplate_ratio > MAX_BOILERPLATE_RATIO:
        suggestions.append("Move legal and navigation boilerplate below the role description.")
    if density > MAX_LINK_DENSITY:
        suggestions.append("Reduce the number of links around the job description.")

    fraction = 0.4 * length_fraction + 0.4 * boilerplate_fraction + 0.2 * link_fraction
    breakdown = {
        "word_count": words,
        "boilerplate_ratio": round(boilerplate_ratio, 3),
        "link_density": round(density, 3),
    }
    return fraction, breakdown, suggestions


async def score_page_context(
    document: JobDocument,
    facts: DerivedFacts,
    client: CompletionClient | None,
) -> CategoryScore:
    text = document_text(document)
    fraction, breakdown, suggestions = deterministic_context(document, text)
    rubric = await model_rubric(
        client,
        category=CATEGORY,
        prompt=build_rubric_prompt(
            task="Assess whether this job posting page gives a candidate focused, useful context.",
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
        max_score=float(scorer_value(CATEGORY, "max_score", 10)),
        neutral_score=float(scorer_value(CATEGORY, "neutral_score", 5)),
        model_weight=float(scorer_value(CATEGORY, "model_weight", 0.5)),
        breakdown=breakdown,
        suggestions=suggestions,
        neutral_suggestion="No action needed: the page context is focused.",
    )
