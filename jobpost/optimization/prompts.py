"""Pure prompt builders for the rewrite pipeline."""

from __future__ import annotations

import json
import re

from jobpost.ai.completion import wrap_untrusted
from jobpost.schemas.fingerprint import CompanyFingerprint
from jobpost.schemas.optimization import GlobalContext, SchemaSnapshot, Section

MAX_PROMPT_ANCHORS = 5
TITLE_RE = re.compile(r"title", re.IGNORECASE)
RESPONSE_SHAPE = '{"optimized_text": "...", "change_log": ["..."], "unaddressed_items": ["..."]}'


def _location_line(context: GlobalContext) -> str | None:
    location = context.job_location
    if location is None:
        return None
    value = location.summary or location.raw
    return f"Location: {value}" if value else None


def is_title_section(section: Section) -> bool:
    return bool(TITLE_RE.search(section.heading_text or "") or TITLE_RE.search(section.label or ""))


def build_section_prompt(
    section: Section,
    fingerprint: CompanyFingerprint,
    context: GlobalContext,
    *,
    brand_keywords: tuple[str, ...] | list[str] = (),
    preserve_title: bool = True,
) -> str:
    heading = section.heading_text or section.label
    tone = fingerprint.tone
    formatting = fingerprint.formatting
    context_lines = [
        f"Company: {context.company_name or 'Unknown'}",
        f"Role: {context.title or 'Unknown Role'}",
        f"Desired tone: {tone.voice}{', mission-driven' if tone.mission_driven else ''} ({tone.formality})",
        f"Formatting: {'HTML' if formatting.uses_markup else 'Markdown'} with bullet style {formatting.bullet_style}",
    ]
    location_line = _location_line(context)
    if location_line:
        context_lines.append(location_line)

    anchors = fingerprint.lexical_anchors[:MAX_PROMPT_ANCHORS]
    parts = [
        "You are optimizing a single section of a job posting.",
        "Stay faithful to the company fingerprint while improving clarity, inclusivity, and completeness.",
        "If location information is mentioned, preserve it exactly (city, state, remote/hybrid status).",
        f"Preserve these brand terms exactly: {', '.join(brand_keywords)}" if brand_keywords else "",
        (
            "This is the job title. Preserve it exactly as provided. Do not remove the company name "
            "or any specifics. Only fix typos."
            if preserve_title and is_title_section(section)
            else ""
        ),
        "\n".join(context_lines),
        f"Preserve branded phrases: {', '.join(anchors)}" if anchors else "",
        (
            f"Begin optimized_text with the heading as a markdown heading: ## {heading}"
            if section.chunk_index == 0
            else f"This continues the section '{heading}'. Do not repeat its heading; return only the content."
        ),
        f"Return JSON: {RESPONSE_SHAPE}",
        f"Section heading: {heading}",
        "Original section content:",
        wrap_untrusted(section.raw_text),
    ]
    return "\n\n".join(part for part in parts if part)


def _schema_hints(snapshot: SchemaSnapshot | None) -> list[str]:
    if snapshot is None:
        return []
    hints: list[str] = []
    for key, value in snapshot.model_dump(exclude={"description"}).items():
        if not value or (isinstance(value, dict) and not any(value.values())):
            continue
        rendered = json.dumps(value, ensure_ascii=False) if isinstance(value, (dict, list)) else str(value)
        hints.append(f"{key}: {rendered}")
    return hints


def build_coherence_prompt(
    draft: str,
    context: GlobalContext,
    snapshot: SchemaSnapshot | None,
    *,
    brand_keywords: tuple[str, ...] | list[str] = (),
) -> str:
    context_lines = [
        f"Company: {context.company_name or 'Unknown'}",
        f"Role: {context.title or 'Unknown Role'}",
        f"Tone: {context.tone.voice}",
    ]
    location_line = _location_line(context)
    if location_line:
        context_lines.append(location_line)
    hints = _schema_hints(snapshot)
    parts = [
        "Polish the following job posting for cohesion and tone consistency.",
        "Preserve all section headings, location details, and structural elements.",
        f"Preserve these brand terms exactly: {', '.join(brand_keywords)}" if brand_keywords else "",
        "Improve flow and transitions while maintaining the existing organization.",
        "\n".join(context_lines),
        "Schema context:\n" + "\n".join(hints) if hints else "",
        f"Return JSON: {RESPONSE_SHAPE}",
        "Document to polish:",
        wrap_untrusted(draft),
    ]
    return "\n\n".join(part for part in parts if part)
