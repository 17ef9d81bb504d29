from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

from jobpost.core.config import settings
from jobpost.optimization.analysis import MARKDOWN_SECTION_RE, collect_block
from jobpost.schemas.document import JobDocument
from jobpost.schemas.fingerprint import CompanyFingerprint
from jobpost.schemas.optimization import OptimizedSection, Section
from jobpost.utils.markup import HEADING_TAGS, load_markup
from jobpost.utils.text import normalize_label
from jobpost.utils.token_budget import should_segment

BARE_HEADING_SELECTOR_RE = re.compile(r"^h[1-6]$", re.IGNORECASE)
FULL_TEXT_LABEL = "Full Text"


def _find_heading(
    soup: BeautifulSoup,
    label: str,
    fingerprint: CompanyFingerprint,
    used: set[int],
) -> Tag | None:
    headings = [heading for heading in soup.find_all(HEADING_TAGS) if id(heading) not in used]
    aliases = fingerprint.heading_aliases.get(label.lower(), [])
    selector = next((alias for alias in aliases if BARE_HEADING_SELECTOR_RE.match(alias)), None)
    if selector:
        match = next((heading for heading in headings if heading.name == selector.lower()), None)
        if match is not None:
            return match
    wanted = normalize_label(label)
    return next(
        (heading for heading in headings if normalize_label(heading.get_text(" ", strip=True)) == wanted),
        None,
    )


def markup_sections(markup: str | None, fingerprint: CompanyFingerprint) -> list[Section]:
    soup = load_markup(markup)
    if soup is None:
        return []
    sections: list[Section] = []
    used: set[int] = set()
    for label in fingerprint.section_order:
        heading = _find_heading(soup, label, fingerprint, used)
        if heading is None:
            continue
        used.add(id(heading))
        raw_text, _, _, fragment = collect_block(heading)
        if not raw_text.strip():
            continue
        heading_text = heading.get_text(" ", strip=True)
        sections.append(
            Section(
                label=normalize_label(heading_text),
                heading_text=heading_text,
                raw_text=raw_text,
                original_markup=fragment,
                fingerprint_source="markup",
            )
        )
    return sections


def markdown_sections(text: str) -> list[Section]:
    sections: list[Section] = []
    current: Section | None = None
    for line in (text or "").splitlines():
        match = MARKDOWN_SECTION_RE.match(line)
        if match:
            if current is not None:
                sections.append(current)
            heading_text = match.group(1).strip()
            current = Section(label=normalize_label(heading_text), heading_text=heading_text, raw_text="")
            continue
        trimmed = line.strip()
        if current is not None and trimmed:
            current.raw_text += f"{trimmed}\n"
    if current is not None:
        sections.append(current)
    return sections


def chunk_section(section: Section, max_chars: int) -> list[Section]:
    text = section.raw_text
    return [
        Section(
            label=section.label,
            heading_text=section.heading_text,
            raw_text=text[start : start + max_chars],
            original_markup=None,
            fingerprint_source="chunked",
            chunk_index=index,
        )
        for index, start in enumerate(range(0, len(text), max_chars))
    ]


def enforce_limits(sections: list[Section], max_chars: int) -> list[Section]:
    limited: list[Section] = []
    for section in sections:
        if should_segment(len(section.raw_text), max_chars):
            limited.extend(chunk_section(section, max_chars))
        else:
            limited.append(section)
    return limited


def segment(
    document: JobDocument,
    fingerprint: CompanyFingerprint,
    max_chars: int | None = None,
) -> list[Section]:
    limit = max(1, int(max_chars or settings.max_section_chars))
    if document.has_markup:
        aligned = markup_sections(document.markup, fingerprint)
        if aligned:
            return enforce_limits(aligned, limit)

    text = document.body or ""
    sections = markdown_sections(text)
    if not sections and text.strip():
        heading_text = fingerprint.section_order[0] if fingerprint.section_order else FULL_TEXT_LABEL
        sections = [
            Section(
                label=normalize_label(heading_text),
                heading_text=heading_text,
                raw_text=text,
                fingerprint_source="full_text",
            )
        ]
    return enforce_limits(sections, limit)


def merge(sections: list[OptimizedSection], fingerprint: CompanyFingerprint) -> str:
    """Join optimized sections in fingerprint order; labels the fingerprint does not know go last."""
    order = list(dict.fromkeys(normalize_label(label) for label in fingerprint.section_order))
    ordered: list[OptimizedSection] = []
    for label in order:
        ordered.extend(section for section in sections if normalize_label(section.label) == label)
    ordered.extend(section for section in sections if normalize_label(section.label) not in order)
    return "\n\n".join(section.optimized_text for section in ordered)
