from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

from .extraction import LocationFields


class CategoryScore(BaseModel):
    score: float
    max_score: float = Field(gt=0)
    breakdown: dict[str, Any] = Field(default_factory=dict)
    suggestions: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_bounds(self) -> "CategoryScore":
        if self.score < 0 or self.score > self.max_score:
            raise ValueError(f"score {self.score} outside [0, {self.max_score}]")
        return self


class ScoreReport(BaseModel):
    total_score: int = Field(ge=0, le=100)
    categories: dict[str, CategoryScore]
    red_flags: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    feedback: str = ""
    job_location: LocationFields | None = None

    @model_validator(mode="after")
    def _check_total(self) -> "ScoreReport":
        expected = sum(category.score for category in self.categories.values())
        if self.total_score != expected:
            raise ValueError(f"total_score {self.total_score} does not match category sum {expected}")
        return self
