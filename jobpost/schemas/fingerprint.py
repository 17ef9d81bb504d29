from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

Formality = Literal["formal", "conversational"]


class ToneProfile(BaseModel):
    formality: Formality = "conversational"
    mission_driven: bool = False
    avg_sentence_length: float = 0.0
    voice: str = "professional"


class FormattingProfile(BaseModel):
    uses_markup: bool = False
    bullet_style: str = "none"
    emphasis_count: int = 0
    prefers_tables: bool = False


class DetectedSection(BaseModel):
    label: str
    heading_text: str
    order: int = 0
    selector: str | None = None
    bullet_count: int = 0
    paragraph_count: int = 0
    raw_text: str = ""


class StructuralAnalysis(BaseModel):
    company_name: str | None = None
    detected_sections: list[DetectedSection] = Field(default_factory=list)
    tone: ToneProfile = Field(default_factory=ToneProfile)
    formatting: FormattingProfile = Field(default_factory=FormattingProfile)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CompanyFingerprint(BaseModel):
    version: int = 1
    section_order: list[str] = Field(default_factory=list)
    heading_aliases: dict[str, list[str]] = Field(default_factory=dict)
    tone: ToneProfile = Field(default_factory=ToneProfile)
    formatting: FormattingProfile = Field(default_factory=FormattingProfile)
    lexical_anchors: list[str] = Field(default_factory=list)
    selectors: list[str] = Field(default_factory=list)
    last_seen: datetime = Field(default_factory=_utc_now)
