from __future__ import annotations

import re

from jobpost.ai.types import CompletionClient
from jobpost.schemas.document import JobDocument
from jobpost.schemas.scoring import CategoryScore
from jobpost.scoring.base import DerivedFacts, clamp, document_text, scorer_value, with_default_suggestion
from jobpost.utils.text import non_empty_lines

CATEGORY = "keyword_targeting"

STOPWORDS = frozenset(
    {
        "and", "the", "for", "with", "from", "our", "you", "your", "are", "job", "role", "team",
        "new", "all", "remote", "hybrid", "onsite", "full", "time", "part", "who", "will",
    }
)
TOKEN_RE = re.compile(r"[a-z0-9][a-z0-9+#.-]*")
OPENING_WORDS = 100


def tokenize(text: str) -> list[str]:
    return [token.strip(".-") for token in TOKEN_RE.findall(text.lower()) if token.strip(".-")]


def title_terms(title: str) -> list[str]:
    terms: list[str] = []
    for token in tokenize(title):
        if len(token) < 3 or token in STOPWORDS or token in terms:
            continue
        terms.append(token)
    return terms


def infer_title(document: JobDocument, text: str) -> str:
    if document.title.strip():
        return document.title.strip()
    lines = non_empty_lines(text)
    return lines[0].lstrip("#").strip() if lines else ""


async def score_keyword_targeting(
    document: JobDocument,
    facts: DerivedFacts,
    client: CompletionClient | None,
) -> CategoryScore:
    max_score = float(scorer_value(CATEGORY, "max_score", 15))
    stuffing_density = float(scorer_value(CATEGORY, "stuffing_density", 0.04))
    text = document_text(document)
    title = infer_title(document, text)
    terms = title_terms(title)
    tokens = tokenize(text)

    if not terms or not tokens:
        return CategoryScore(
            score=0,
            max_score=max_score,
            breakdown={"title_terms": terms, "word_count": len(tokens)},
            suggestions=["Give the posting a specific job title and use it in the opening paragraph."],
        )

    counts = {term: tokens.count(term) for term in terms}
    opening = " ".join(tokens[:OPENING_WORDS])
    opening_hit = title.lower() in opening or all(term in tokens[:OPENING_WORDS] for term in terms)
    coverage = sum(1 for count in counts.values() if count > 0) / len(terms)
    densities = {term: count / len(tokens) for term, count in counts.items()}
    stuffed = sorted(term for term, density in densities.items() if density > stuffing_density and counts[term] > 3)

    opening_points = 1.0 if opening_hit else 0.0
    repetition_points = clamp(sum(min(count, 3) for count in counts.values()) / (3 * len(terms)))
    fraction = 0.35 * opening_points + 0.35 * coverage + 0.3 * repetition_points
    if stuffed:
        fraction *= 0.5

    suggestions: list[str] = []
    if not opening_hit:
        suggestions.append(f'Mention the title "{title}" within the first {OPENING_WORDS} words.')
    missing = [term for term, count in counts.items() if count == 0]
    if missing:
        suggestions.append(f"Use the title keywords in the body: {', '.join(missing)}.")
    if stuffed:
        suggestions.append(f"Reduce keyword repetition for: {', '.join(stuffed)}.")

    return CategoryScore(
        score=round(clamp(fraction) * max_score, 2),
        max_score=max_score,
        breakdown={
            "title": title,
            "title_terms": terms,
            "term_counts": counts,
            "opening_hit": opening_hit,
            "stuffed_terms": stuffed,
        },
        suggestions=with_default_suggestion(suggestions, "No action needed: title keywords are well targeted."),
    )
