from __future__ import annotations

from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field, model_validator

ExtractionSource = Literal["deterministic", "model"]

T = TypeVar("T", bound=BaseModel)


class LocationFields(BaseModel):
    summary: str | None = None
    raw: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    remote: bool = False
    hybrid: bool = False
    onsite: bool = False


class CompensationFields(BaseModel):
    original_text: str = ""
    currency: str | None = None
    pay_period: str | None = None
    min: float | None = None
    max: float | None = None
    amount: float | None = None
    is_range: bool = False
    includes_bonus: bool = False
    includes_equity: bool = False
    vague_terms: str | None = None
    location_context: str = ""


class FieldExtraction(BaseModel, Generic[T]):
    value: T
    confidence: float = Field(ge=0.0, le=1.0)
    source: ExtractionSource = "deterministic"
    deterministic_confidence: float = Field(ge=0.0, le=1.0)
    jurisdictions: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_provenance(self) -> "FieldExtraction[T]":
        if self.source == "model" and self.deterministic_confidence >= 0.5:
            raise ValueError("model provenance requires deterministic confidence below 0.5")
        if self.confidence < self.deterministic_confidence:
            raise ValueError("confidence must not drop below the deterministic confidence")
        return self


LocationExtraction = FieldExtraction[LocationFields]
CompensationExtraction = FieldExtraction[CompensationFields]
