from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from .optimization import OptimizationResult
from .scoring import ScoreReport

MAX_DOCUMENT_CHARS = 200000


class ScoreRequest(BaseModel):
    title: str = Field(default="", max_length=300)
    body: str = Field(default="", max_length=MAX_DOCUMENT_CHARS)
    markup: str | None = Field(default=None, max_length=MAX_DOCUMENT_CHARS)

    @model_validator(mode="after")
    def _require_content(self) -> "ScoreRequest":
        if not self.body.strip() and not (self.markup or "").strip():
            raise ValueError("Provide body or markup")
        return self


class OptimizeRequest(ScoreRequest):
    company_name: str | None = Field(default=None, max_length=200)
    original_score: ScoreReport | None = None


class OptimizeResponse(BaseModel):
    result: OptimizationResult
    original_score: ScoreReport
    optimized_score: ScoreReport
    accepted: bool
    reason: str
