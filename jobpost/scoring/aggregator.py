from __future__ import annotations

from jobpost.core.config.scoring import get_category_weights
from jobpost.schemas.extraction import LocationFields
from jobpost.schemas.scoring import CategoryScore, ScoreReport

TOP_RECOMMENDATIONS = 3


def validate_weights(weights: dict[str, int]) -> dict[str, int]:
    total = sum(weights.values())
    if total != 100:
        raise ValueError(f"Category weights must sum to 100, got {total}")
    if any(weight <= 0 for weight in weights.values()):
        raise ValueError("Category weights must be positive")
    return weights


def rescale(category: CategoryScore, weight: int) -> int:
    scaled = round(category.score / category.max_score * weight)
    return max(0, min(weight, int(scaled)))


def build_feedback(total: int, recommendations: list[str]) -> str:
    if not recommendations:
        return f"Overall score {total}/100."
    top = "; ".join(recommendations[:TOP_RECOMMENDATIONS])
    return f"Overall score {total}/100. Top recommendations: {top}"


def aggregate(
    category_scores: dict[str, CategoryScore],
    weights: dict[str, int] | None = None,
    job_location: LocationFields | None = None,
) -> ScoreReport:
    weights = validate_weights(dict(weights) if weights is not None else get_category_weights())

    categories: dict[str, CategoryScore] = {}
    red_flags: list[str] = []
    recommendations: list[str] = []
    for name, weight in weights.items():
        raw = category_scores.get(name)
        if raw is None:
            raise ValueError(f"Missing score for category {name}")
        scaled = rescale(raw, weight)
        categories[name] = CategoryScore(
            score=scaled,
            max_score=weight,
            breakdown={**raw.breakdown, "raw_score": raw.score, "raw_max": raw.max_score},
            suggestions=list(raw.suggestions),
        )
        if scaled < weight / 2:
            red_flags.append(name)
        recommendations.extend(item for item in raw.suggestions if item)

    total = int(sum(category.score for category in categories.values()))
    return ScoreReport(
        total_score=total,
        categories=categories,
        red_flags=red_flags,
        recommendations=recommendations,
        feedback=build_feedback(total, recommendations),
        job_location=job_location,
    )
