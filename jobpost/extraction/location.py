from __future__ import annotations

import logging
import re

from jobpost.ai.completion import wrap_untrusted
from jobpost.ai.types import CompletionClient
from jobpost.compliance.jurisdictions import US_STATE_ABBR, compute_jurisdictions
from jobpost.extraction.base import (
    MAX_EXTRACTION_CHARS,
    clamp_confidence,
    confidence_threshold,
    confidence_weight,
    model_confidence_floor,
    model_extract,
    safe_str,
)
from jobpost.schemas.extraction import LocationExtraction, LocationFields
from jobpost.utils.text import non_empty_lines, normalize_whitespace, truncate

logger = logging.getLogger(__name__)

LOCATION_KEYWORDS_RE = re.compile(
    r"(location|work location|job location|based in|onsite|on-site|remote|hybrid|headquarters|office)",
    re.IGNORECASE,
)
WORK_MODE_RE = re.compile(r"\b(remote|hybrid|on[-\s]?site)\b", re.IGNORECASE)
CITY_STATE_RE = re.compile(r"([A-Za-z .'-]+),\s*([A-Z]{2})\b(?:\s*,?\s*(USA|United States))?")
STATE_TOKEN_RE = re.compile(r"\b([A-Z]{2})\b")
US_COUNTRY_RE = re.compile(r"United States|USA|U\.S\.A\.|U\.S\.", re.IGNORECASE)

_LOCATION_SEED = 4321


def extract_city_state(line: str) -> tuple[str, str] | None:
    for match in CITY_STATE_RE.finditer(line):
        state = match.group(2).upper()
        if state not in US_STATE_ABBR:
            continue
        city = normalize_whitespace(match.group(1))
        city = re.sub(r"^(?:location|based in|job location|work location)\s*:?\s*", "", city, flags=re.IGNORECASE)
        if city:
            return city, state
    return None


def find_location_line(body: str) -> str | None:
    lines = non_empty_lines(body)
    for line in lines:
        if LOCATION_KEYWORDS_RE.search(line) or WORK_MODE_RE.search(line):
            return line
    for line in lines:
        if extract_city_state(line):
            return line
    return None


def parse_location_line(line: str | None) -> LocationFields:
    if not line:
        return LocationFields()
    fields = LocationFields(summary=line, raw=line)
    city_state = extract_city_state(line)
    if city_state:
        fields.city, fields.state = city_state
        fields.country = "United States"
    fields.remote = bool(re.search(r"\bremote\b", line, re.IGNORECASE))
    fields.hybrid = bool(re.search(r"\bhybrid\b", line, re.IGNORECASE))
    fields.onsite = bool(re.search(r"\b(on[-\s]?site|onsite)\b", line, re.IGNORECASE))
    if not fields.state:
        for token in STATE_TOKEN_RE.findall(line):
            if token in US_STATE_ABBR:
                fields.state = token
                fields.country = fields.country or "United States"
                break
    if not fields.country and US_COUNTRY_RE.search(line):
        fields.country = "United States"
    return fields


def score_location_confidence(fields: LocationFields) -> float:
    confidence = 0.0
    if fields.summary:
        confidence += confidence_weight("location", "line_found", 0.2)
    if fields.city:
        confidence += confidence_weight("location", "city", 0.2)
    if fields.state:
        confidence += confidence_weight("location", "state", 0.3)
    if fields.country:
        confidence += confidence_weight("location", "country", 0.1)
    if fields.remote or fields.hybrid or fields.onsite:
        confidence += confidence_weight("location", "work_mode", 0.2)
    return clamp_confidence(confidence)


def build_location_prompt(body: str) -> str:
    return (
        "Extract the primary job location from the following job posting.\n"
        "Return JSON with keys: summary (string), city (string|null), state (string|null), "
        "country (string|null), remote (boolean), hybrid (boolean).\n"
        "If any field is unknown, use null. If the location is unknown, summary must be null.\n"
        "Job posting:\n"
        f"{wrap_untrusted(truncate(body, MAX_EXTRACTION_CHARS))}"
    )


def merge_model_location(fields: LocationFields, payload: dict) -> tuple[LocationFields, bool]:
    """Fill only the fields the deterministic pass left empty. Returns (merged, anything_added)."""
    merged = fields.model_copy()
    added = False
    summary = safe_str(payload.get("summary"))
    if summary and not merged.summary:
        merged.summary = summary
        merged.raw = summary
        added = True
    city = safe_str(payload.get("city"), max_len=80)
    if city and not merged.city:
        merged.city = city
        added = True
    state = safe_str(payload.get("state"), max_len=40)
    if state and not merged.state:
        merged.state = state.upper() if len(state) == 2 else state
        added = True
    country = safe_str(payload.get("country"), max_len=80)
    if country and not merged.country:
        merged.country = "United States" if US_COUNTRY_RE.fullmatch(country.strip()) else country
        added = True
    for flag in ("remote", "hybrid"):
        if payload.get(flag) is True and not getattr(merged, flag):
            setattr(merged, flag, True)
            added = True
    return merged, added


async def extract_location(body: str, client: CompletionClient | None = None) -> LocationExtraction:
    fields = parse_location_line(find_location_line(body or ""))
    deterministic_confidence = score_location_confidence(fields)
    extraction = LocationExtraction(
        value=fields,
        confidence=deterministic_confidence,
        source="deterministic",
        deterministic_confidence=deterministic_confidence,
        jurisdictions=compute_jurisdictions(fields),
    )
    if deterministic_confidence >= confidence_threshold():
        return extraction

    payload = await model_extract(
        client,
        build_location_prompt(body or ""),
        caller="extraction/location",
        seed=_LOCATION_SEED,
    )
    if not payload:
        return extraction

    merged, added = merge_model_location(fields, payload)
    if not added:
        return extraction

    floor = model_confidence_floor(complete=bool(merged.city and merged.state))
    confidence = clamp_confidence(max(score_location_confidence(merged), floor, deterministic_confidence))
    logger.info(
        "location_model_merge deterministic_confidence=%s confidence=%s",
        deterministic_confidence,
        confidence,
    )
    return LocationExtraction(
        value=merged,
        confidence=confidence,
        source="model",
        deterministic_confidence=deterministic_confidence,
        jurisdictions=compute_jurisdictions(merged),
    )
