from __future__ import annotations

import logging
import re

from jobpost.core.fingerprint_store import FingerprintStore
from jobpost.schemas.fingerprint import CompanyFingerprint, DetectedSection, StructuralAnalysis

logger = logging.getLogger(__name__)

MAX_LEXICAL_ANCHORS = 20
MAX_ANCHOR_WORDS = 6
STALE_OVERLAP_THRESHOLD = 0.6
DEFAULT_COMPANY_SLUG = "unknown-company"

ANCHOR_PHRASE_RE = re.compile(r"[A-Z][A-Za-z0-9& ]{4,}")


def slugify(value: str | None) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower()).strip("-")
    return slug or DEFAULT_COMPANY_SLUG


def _heading_aliases(sections: list[DetectedSection]) -> dict[str, list[str]]:
    aliases: dict[str, list[str]] = {}
    for section in sections:
        if not section.label:
            continue
        variants = aliases.setdefault(section.label.lower(), [])
        for candidate in (section.heading_text.strip(), section.selector):
            if candidate and candidate not in variants:
                variants.append(candidate)
    return aliases


def _lexical_anchors(sections: list[DetectedSection]) -> list[str]:
    anchors: list[str] = []

    def add(value: str) -> None:
        value = value.strip()
        if value and value not in anchors and len(anchors) < MAX_LEXICAL_ANCHORS:
            anchors.append(value)

    for section in sections:
        add(section.heading_text)
        for match in ANCHOR_PHRASE_RE.findall(section.raw_text):
            if len(match.split()) <= MAX_ANCHOR_WORDS:
                add(match)
    return anchors


def derive_fingerprint(analysis: StructuralAnalysis) -> CompanyFingerprint:
    sections = analysis.detected_sections
    return CompanyFingerprint(
        version=1,
        section_order=[section.label for section in sections if section.label],
        heading_aliases=_heading_aliases(sections),
        tone=analysis.tone,
        formatting=analysis.formatting,
        lexical_anchors=_lexical_anchors(sections),
        selectors=[section.selector for section in sections if section.selector],
    )


def section_overlap(cached: CompanyFingerprint, analysis: StructuralAnalysis) -> float:
    cached_labels = set(cached.section_order)
    new_labels = {section.label for section in analysis.detected_sections}
    if not cached_labels:
        return 0.0
    return len(cached_labels & new_labels) / max(len(cached_labels), len(new_labels))


def should_refresh(cached: CompanyFingerprint | None, analysis: StructuralAnalysis) -> bool:
    if cached is None:
        return True
    if not cached.section_order and analysis.detected_sections:
        return True
    return section_overlap(cached, analysis) < STALE_OVERLAP_THRESHOLD


class FingerprintManager:
    def __init__(self, store: FingerprintStore):
        self._store = store

    async def ensure_fingerprint(self, company_key: str | None, analysis: StructuralAnalysis) -> CompanyFingerprint:
        """Return the cached fingerprint, re-deriving and replacing it when the structure has drifted."""
        slug = slugify(company_key or analysis.company_name)
        cached = await self._store.get(slug)
        if not should_refresh(cached, analysis):
            logger.info("fingerprint_cache_hit slug=%s", slug)
            return cached

        derived = derive_fingerprint(analysis)
        await self._store.upsert(slug, derived)
        logger.info(
            "fingerprint_refreshed slug=%s sections=%s anchors=%s",
            slug,
            len(derived.section_order),
            len(derived.lexical_anchors),
        )
        return derived
