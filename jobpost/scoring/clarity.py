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
from jobpost.utils.text import non_empty_lines

CATEGORY = "clarity"

BUZZWORDS = (
    "rockstar",
    "rock star",
    "ninja",
    "guru",
    "unicorn",
    "wizard",
    "synergy",
    "world-class",
    "fast-paced",
    "self-starter",
    "go-getter",
    "wear many hats",
    "work hard, play hard",
    "hit the ground running",
    "think outside the box",
    "dynamic",
    "passionate",
)

BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
WORD_RE = re.compile(r"[A-Za-z][A-Za-z'-]*")

IDEAL_SENTENCE_WORDS = (10, 22)

DIMENSIONS = {
    "readability": "short, plain sentences a candidate can scan quickly",
    "specificity": "concrete duties, tools and expectations rather than generic claims",
    "fluff": "absence of buzzwords and filler (10 means no fluff)",
}

_SEED = 1201


def _sentences(text: str) -> list[str]:
    sentences: list[str] = []
    for line in non_empty_lines(text):
        if BULLET_RE.match(line) or line.lstrip().startswith("#"):
            continue
        sentences.extend(part for part in SENTENCE_SPLIT_RE.split(line) if WORD_RE.search(part))
    return sentences


def sentence_length_fraction(text: str) -> tuple[float, float]:
    sentences = _sentences(text)
    if not sentences:
        return 0.5, 0.0
    avg = sum(len(WORD_RE.findall(sentence)) for sentence in sentences) / len(sentences)
    low, high = IDEAL_SENTENCE_WORDS
    if low <= avg <= high:
        return 1.0, avg
    distance = (low - avg) if avg < low else (avg - high)
    return clamp(1.0 - distance / high), avg


def buzzword_hits(text: str) -> list[str]:
    lowered = text.lower()
    return [word for word in BUZZWORDS if word in lowered]


def bullet_ratio(text: str) -> float:
    lines = non_empty_lines(text)
    if not lines:
        return 0.0
    return sum(1 for line in lines if BULLET_RE.match(line)) / len(lines)


def deterministic_clarity(text: str) -> tuple[float, dict, list[str]]:
    length_fraction, avg_words = sentence_length_fraction(text)
    hits = buzzword_hits(text)
    word_count = max(1, len(WORD_RE.findall(text)))
    fluff_fraction = clamp(1.0 - (len(hits) * 100.0 / word_count) / 2.0)
    ratio = bullet_ratio(text)
    bullet_fraction = 1.0 if 0.2 <= ratio <= 0.8 else (ratio / 0.2 if ratio < 0.2 else 0.7)

    suggestions: list[str] = []
    if length_fraction < 0.8:
        suggestions.append(f"Shorten long sentences; the average is {avg_words:.0f} words.")
    if hits:
        suggestions.append(f"Replace buzzwords ({', '.join(hits[:3])}) with concrete expectations.")
    if ratio < 0.2:
        suggestions.append("Use bullet points for responsibilities and requirements.")

    fraction = (length_fraction + fluff_fraction + bullet_fraction) / 3
    breakdown = {
        "avg_sentence_words": round(avg_words, 1),
        "buzzwords": hits,
        "bullet_ratio": round(ratio, 3),
    }
    return fraction, breakdown, suggestions


async def score_clarity(
    document: JobDocument,
    facts: DerivedFacts,
    client: CompletionClient | None,
) -> CategoryScore:
    text = document_text(document)
    fraction, breakdown, suggestions = deterministic_clarity(text)
    rubric = await model_rubric(
        client,
        category=CATEGORY,
        prompt=build_rubric_prompt(
            task="Assess the clarity and readability of this job posting.",
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
        neutral_suggestion="No action needed: the posting reads clearly.",
    )
