from __future__ import annotations

import re
from typing import Any

from bs4 import BeautifulSoup, NavigableString, Tag

from jobpost.schemas.document import JobDocument
from jobpost.schemas.fingerprint import DetectedSection, FormattingProfile, StructuralAnalysis, ToneProfile
from jobpost.schemas.optimization import SchemaCompensation, SchemaSnapshot
from jobpost.utils.markup import HEADING_TAGS, find_job_posting_jsonld, load_markup, markup_to_text
from jobpost.utils.text import normalize_label

MARKDOWN_SECTION_RE = re.compile(r"^\s*#{2,3}\s*(.+)$")
MARKDOWN_BULLET_RE = re.compile(r"^\s*[-*+]")
MARKDOWN_EMPHASIS_RE = re.compile(r"\*\*[^*]+\*\*")
SENTENCE_RE = re.compile(r"[.!?]+")
MISSION_RE = re.compile(r"mission|impact|purpose", re.IGNORECASE)
COMPANY_AT_RE = re.compile(r"\bat\s+([A-Z][A-Za-z0-9&]*(?: [A-Z][A-Za-z0-9&]*){0,4})")
TEXT_RANGE_RE = re.compile(r"\$[0-9,.]+[kK]?\s*(?:-|–|to)\s*\$[0-9,.]+[kK]?", re.IGNORECASE)

FORMAL_SENTENCE_WORDS = 18


def build_selector(element: Tag) -> str:
    parts: list[str] = []
    current: Any = element
    while isinstance(current, Tag) and current.name != "[document]" and len(parts) < 3:
        classes = current.get("class") or []
        parts.insert(0, f"{current.name}.{classes[0]}" if classes else current.name)
        current = current.parent
    return " > ".join(parts)


def collect_block(heading: Tag) -> tuple[str, int, int, str]:
    """Gather sibling content up to the next h1-h4. Returns (text, bullets, paragraphs, markup)."""
    lines: list[str] = []
    fragments: list[str] = []
    bullets = 0
    paragraphs = 0
    for node in heading.next_siblings:
        if isinstance(node, Tag) and node.name in HEADING_TAGS:
            break
        if isinstance(node, Tag):
            text = node.get_text("\n", strip=True)
            if not text:
                continue
            lines.append(text)
            fragments.append(str(node))
            if node.name in {"ul", "ol"}:
                bullets += len(node.find_all("li"))
            else:
                paragraphs += 1
        elif isinstance(node, NavigableString):
            text = str(node).strip()
            if text:
                lines.append(text)
                fragments.append(text)
                paragraphs += 1
    return "\n".join(lines), bullets, paragraphs, "\n".join(fragments)


def sections_from_markup(soup: BeautifulSoup) -> list[DetectedSection]:
    sections: list[DetectedSection] = []
    for heading in soup.find_all(HEADING_TAGS):
        heading_text = heading.get_text(" ", strip=True)
        label = normalize_label(heading_text)
        if not label:
            continue
        raw_text, bullets, paragraphs, _ = collect_block(heading)
        sections.append(
            DetectedSection(
                label=label,
                heading_text=heading_text,
                order=len(sections),
                selector=build_selector(heading),
                bullet_count=bullets,
                paragraph_count=paragraphs,
                raw_text=raw_text,
            )
        )
    return sections


def sections_from_text(text: str) -> list[DetectedSection]:
    sections: list[DetectedSection] = []
    current: DetectedSection | None = None
    for line in (text or "").splitlines():
        match = MARKDOWN_SECTION_RE.match(line)
        if match:
            if current is not None:
                sections.append(current)
            heading_text = match.group(1).strip()
            current = DetectedSection(label=normalize_label(heading_text), heading_text=heading_text, order=len(sections))
            continue
        trimmed = line.strip()
        if current is None or not trimmed:
            continue
        current.raw_text += f"{trimmed}\n"
        if MARKDOWN_BULLET_RE.match(trimmed):
            current.bullet_count += 1
        else:
            current.paragraph_count += 1
    if current is not None:
        sections.append(current)
    return [section for section in sections if section.label]


def derive_tone(text: str) -> ToneProfile:
    lengths = [len(part.split()) for part in SENTENCE_RE.split(text) if part.strip()]
    average = sum(lengths) / len(lengths) if lengths else 0.0
    mission_driven = bool(MISSION_RE.search(text))
    return ToneProfile(
        formality="formal" if average > FORMAL_SENTENCE_WORDS else "conversational",
        mission_driven=mission_driven,
        avg_sentence_length=round(average, 2),
        voice="mission-driven" if mission_driven else "professional",
    )


def detect_formatting(soup: BeautifulSoup | None, text: str) -> FormattingProfile:
    if soup is not None:
        bullets = len(soup.select("ul li, ol li"))
        return FormattingProfile(
            uses_markup=True,
            bullet_style="list" if bullets else "none",
            emphasis_count=len(soup.find_all(["strong", "b"])),
            prefers_tables=soup.find("table") is not None,
        )
    lines = (text or "").splitlines()
    bullets = sum(1 for line in lines if MARKDOWN_BULLET_RE.match(line))
    return FormattingProfile(
        uses_markup=False,
        bullet_style="markdown" if bullets else "none",
        emphasis_count=len(MARKDOWN_EMPHASIS_RE.findall(text or "")),
        prefers_tables=bool(re.search(r"\|.+\|", text or "")),
    )


def detect_company_name(soup: BeautifulSoup | None, text: str) -> str | None:
    if soup is not None:
        site_name = soup.find("meta", attrs={"property": "og:site_name"})
        if site_name is not None and (site_name.get("content") or "").strip():
            return site_name["content"].strip()
        brand = soup.select_one('[class*="logo"], [class*="brand"], header h1')
        if brand is not None and brand.get_text(strip=True):
            return brand.get_text(" ", strip=True)
    match = COMPANY_AT_RE.search(text or "")
    return match.group(1).strip() if match else None


def analyze_structure(document: JobDocument) -> StructuralAnalysis:
    soup = load_markup(document.markup)
    text = document.body or markup_to_text(document.markup)
    sections = sections_from_markup(soup) if soup is not None else []
    if not sections:
        sections = sections_from_text(text)
    tone_source = soup.get_text(" ", strip=True) if soup is not None else text
    return StructuralAnalysis(
        company_name=detect_company_name(soup, text),
        detected_sections=sections,
        tone=derive_tone(tone_source),
        formatting=detect_formatting(soup, text),
    )


def _nested(node: Any, *keys: str) -> Any:
    current = node
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def extract_schema_snapshot(document: JobDocument) -> SchemaSnapshot:
    node = find_job_posting_jsonld(document.markup) or {}
    salary = node.get("baseSalary") or node.get("salary") or {}
    organization = node.get("hiringOrganization")
    text = document.body or markup_to_text(document.markup)
    range_match = TEXT_RANGE_RE.search(text)
    return SchemaSnapshot(
        title=node.get("title") or document.title or None,
        description=node.get("description") or text or None,
        hiring_organization=organization.get("name") if isinstance(organization, dict) else organization,
        compensation=SchemaCompensation(
            currency=_nested(salary, "currency") or _nested(salary, "currencyCode"),
            min=_nested(salary, "value", "minValue"),
            max=_nested(salary, "value", "maxValue"),
            period=_nested(salary, "value", "unitText"),
        ),
        job_location=node.get("jobLocation") or node.get("jobLocationType"),
        employment_type=node.get("employmentType"),
        date_posted=node.get("datePosted"),
        compensation_range=range_match.group(0) if range_match else None,
    )
