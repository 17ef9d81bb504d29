from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from .extraction import LocationFields
from .fingerprint import CompanyFingerprint, FormattingProfile, ToneProfile

FingerprintSource = Literal["markup", "markdown", "full_text", "chunked"]


class Section(BaseModel):
    label: str
    heading_text: str
    raw_text: str
    original_markup: str | None = None
    fingerprint_source: FingerprintSource = "markdown"
    chunk_index: int = 0


class OptimizedSection(BaseModel):
    label: str
    optimized_text: str = ""
    change_log: list[str] = Field(default_factory=list)
    unaddressed_items: list[str] = Field(default_factory=list)


class CoherenceResult(BaseModel):
    optimized_text: str
    change_log: list[str] = Field(default_factory=list)
    unaddressed_items: list[str] = Field(default_factory=list)
    skipped: bool = False


class SchemaCompensation(BaseModel):
    currency: str | None = None
    min: float | None = None
    max: float | None = None
    period: str | None = None


class SchemaSnapshot(BaseModel):
    title: str | None = None
    description: str | None = None
    hiring_organization: str | None = None
    compensation: SchemaCompensation = Field(default_factory=SchemaCompensation)
    job_location: Any = None
    employment_type: Any = None
    date_posted: str | None = None
    compensation_range: str | None = None


class GlobalContext(BaseModel):
    title: str | None = None
    company_name: str | None = None
    tone: ToneProfile = Field(default_factory=ToneProfile)
    formatting: FormattingProfile = Field(default_factory=FormattingProfile)
    job_location: LocationFields | None = None
    original_score: int | None = None


class OptimizationResult(BaseModel):
    optimized_text: str
    change_log: list[str] = Field(default_factory=list)
    unaddressed_items: list[str] = Field(default_factory=list)
    fingerprint: CompanyFingerprint
    schema_snapshot: SchemaSnapshot


class ImprovementVerdict(BaseModel):
    accepted: bool
    original_score: int
    optimized_score: int
    delta: int
    best_category: str | None = None
    best_category_gain: float = 0.0
    reason: str
