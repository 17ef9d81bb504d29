from __future__ import annotations

import logging
import re

from jobpost.ai.completion import wrap_untrusted
from jobpost.ai.types import CompletionClient
from jobpost.extraction.base import (
    MAX_EXTRACTION_CHARS,
    clamp_confidence,
    confidence_threshold,
    confidence_weight,
    model_confidence_floor,
    model_extract,
    safe_float,
    safe_str,
)
from jobpost.schemas.extraction import CompensationExtraction, CompensationFields
from jobpost.utils.text import non_empty_lines, truncate

logger = logging.getLogger(__name__)

# Longer symbols first so "C$" is not read as "$".
CURRENCY_SYMBOLS: dict[str, str] = {
    "US$": "USD",
    "C$": "CAD",
    "A$": "AUD",
    "USD": "USD",
    "CAD": "CAD",
    "AUD": "AUD",
    "GBP": "GBP",
    "EUR": "EUR",
    "$": "USD",
    "£": "GBP",
    "€": "EUR",
}

PERIOD_KEYWORDS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(per\s*(year|yr|annum)|annual(ly)?|yearly|/\s*(year|yr)\b|\ba year\b)", re.IGNORECASE), "year"),
    (re.compile(r"(per\s*(month|mo)\b|monthly|/\s*(month|mo)\b)", re.IGNORECASE), "month"),
    (re.compile(r"(per\s*(week|wk)\b|weekly|/\s*(week|wk)\b)", re.IGNORECASE), "week"),
    (re.compile(r"(per\s*day\b|daily|/\s*day\b)", re.IGNORECASE), "day"),
    (re.compile(r"(per\s*(hour|hr)\b|hourly|/\s*(hour|hr)\b|\ban hour\b)", re.IGNORECASE), "hour"),
)

VAGUE_COMP_RE = re.compile(
    r"(competitive|commensurate|market rate|depends on experience|\bDOE\b|negotiable)",
    re.IGNORECASE,
)
COMPENSATION_LINE_RE = re.compile(r"compensation|salary|\bpay\b|base pay|base salary|pay range", re.IGNORECASE)

_CURRENCY = r"US\$|C\$|A\$|\$|USD|CAD|AUD|GBP|EUR|£|€"
_AMOUNT = r"\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d{2,}(?:\.\d{1,2})?"

RANGE_RE = re.compile(
    rf"(?P<currency>{_CURRENCY})?\s*(?P<min>{_AMOUNT})\s*(?P<k1>[kK])?\s*"
    rf"(?:-|–|—|\bto\b|\bthrough\b)\s*"
    rf"(?P<currency2>{_CURRENCY})?\s*(?P<max>{_AMOUNT})\s*(?P<k2>[kK])?(?![\d])",
    re.IGNORECASE,
)
SINGLE_RE = re.compile(
    rf"(?P<currency>{_CURRENCY})\s*(?P<amount>{_AMOUNT})\s*(?P<k>[kK])?(?![\d])",
    re.IGNORECASE,
)

_COMPENSATION_SEED = 8765


def detect_currency(text: str) -> str | None:
    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol.isalpha():
            if re.search(rf"\b{symbol}\b", text):
                return code
        elif symbol in text:
            return code
    return None


def detect_period(text: str | None) -> str | None:
    if not text:
        return None
    for pattern, value in PERIOD_KEYWORDS:
        if pattern.search(text):
            return value
    return None


def parse_amount(value: str | None, has_k_suffix: bool = False) -> float | None:
    if not value:
        return None
    numeric = value.replace(",", "").strip()
    try:
        parsed = float(numeric)
    except ValueError:
        return None
    if has_k_suffix and parsed < 1000:
        parsed *= 1000
    return parsed


def find_compensation_line(body: str) -> str | None:
    for line in non_empty_lines(body):
        if COMPENSATION_LINE_RE.search(line):
            return line
    return None


def _currency_code(symbol: str | None) -> str | None:
    if not symbol:
        return None
    return CURRENCY_SYMBOLS.get(symbol.upper()) or CURRENCY_SYMBOLS.get(symbol)


def parse_compensation_text(region: str, *, dedicated_line: bool, location_context: str = "") -> CompensationFields:
    fields = CompensationFields(original_text=region[:280], location_context=location_context)
    range_match = None
    for candidate in RANGE_RE.finditer(region):
        has_marker = bool(
            candidate.group("currency") or candidate.group("currency2") or candidate.group("k1") or candidate.group("k2")
        )
        if has_marker or dedicated_line:
            range_match = candidate
            break

    # A matched range and a single amount are mutually exclusive.
    single_match = None if range_match else SINGLE_RE.search(region)

    if range_match:
        has_k = bool(range_match.group("k1") or range_match.group("k2"))
        fields.min = parse_amount(range_match.group("min"), has_k)
        fields.max = parse_amount(range_match.group("max"), has_k)
        fields.is_range = fields.min is not None and fields.max is not None
        fields.currency = _currency_code(range_match.group("currency") or range_match.group("currency2"))
    elif single_match:
        fields.amount = parse_amount(single_match.group("amount"), bool(single_match.group("k")))
        fields.currency = _currency_code(single_match.group("currency"))

    fields.currency = fields.currency or detect_currency(region)
    fields.pay_period = detect_period(region)
    fields.includes_bonus = bool(re.search(r"bonus", region, re.IGNORECASE))
    fields.includes_equity = bool(re.search(r"equity|stock", region, re.IGNORECASE))
    vague = VAGUE_COMP_RE.search(region)
    fields.vague_terms = vague.group(0) if vague else None
    return fields


def score_compensation_confidence(fields: CompensationFields, *, dedicated_line: bool) -> float:
    confidence = 0.0
    if fields.is_range:
        confidence += confidence_weight("compensation", "range", 0.4)
    elif fields.amount is not None:
        confidence += confidence_weight("compensation", "single_amount", 0.25)
    if fields.currency:
        confidence += confidence_weight("compensation", "currency", 0.2)
    if fields.pay_period:
        confidence += confidence_weight("compensation", "pay_period", 0.2)
    if dedicated_line:
        confidence += confidence_weight("compensation", "dedicated_line", 0.1)
    if fields.vague_terms:
        confidence += confidence_weight("compensation", "vague_terms", -0.3)
    return clamp_confidence(confidence)


def build_compensation_prompt(body: str) -> str:
    return (
        "Extract compensation information from the following job posting.\n"
        "Return JSON with keys: salary_text (string|null), currency (ISO code string|null), "
        "min_value (number|null), max_value (number|null), pay_period "
        "(one of year, month, week, day, hour, or null), is_range (boolean), "
        "includes_equity (boolean), includes_bonus (boolean).\n"
        "Use null if unknown. Check the entire posting for salary information.\n"
        "Job posting:\n"
        f"{wrap_untrusted(truncate(body, MAX_EXTRACTION_CHARS))}"
    )


def merge_model_compensation(fields: CompensationFields, payload: dict) -> tuple[CompensationFields, bool]:
    merged = fields.model_copy()
    added = False
    min_value = safe_float(payload.get("min_value"))
    max_value = safe_float(payload.get("max_value"))
    model_is_range = payload.get("is_range") is True

    has_deterministic_amount = merged.is_range or merged.amount is not None
    if not has_deterministic_amount:
        if model_is_range and min_value is not None and max_value is not None:
            merged.min, merged.max, merged.is_range = min_value, max_value, True
            added = True
        elif min_value is not None or max_value is not None:
            merged.amount = min_value if min_value is not None else max_value
            added = True

    currency = safe_str(payload.get("currency"), max_len=8)
    if currency and not merged.currency:
        merged.currency = _currency_code(currency) or currency.upper()
        added = True
    period = safe_str(payload.get("pay_period"), max_len=20)
    if period and not merged.pay_period:
        merged.pay_period = detect_period(period) or period.lower()
        added = True
    salary_text = safe_str(payload.get("salary_text"))
    if salary_text and added:
        merged.original_text = salary_text
    for flag in ("includes_bonus", "includes_equity"):
        if payload.get(flag) is True and not getattr(merged, flag):
            setattr(merged, flag, True)
            added = True
    return merged, added


async def extract_compensation(
    body: str,
    location_context: str = "",
    client: CompletionClient | None = None,
) -> CompensationExtraction:
    body = body or ""
    line = find_compensation_line(body)
    dedicated_line = line is not None
    fields = parse_compensation_text(line or body, dedicated_line=dedicated_line, location_context=location_context)
    deterministic_confidence = score_compensation_confidence(fields, dedicated_line=dedicated_line)
    extraction = CompensationExtraction(
        value=fields,
        confidence=deterministic_confidence,
        source="deterministic",
        deterministic_confidence=deterministic_confidence,
    )
    if deterministic_confidence >= confidence_threshold():
        return extraction

    payload = await model_extract(
        client,
        build_compensation_prompt(body),
        caller="extraction/compensation",
        seed=_COMPENSATION_SEED,
    )
    if not payload:
        return extraction

    merged, added = merge_model_compensation(fields, payload)
    if not added:
        return extraction

    floor = model_confidence_floor(complete=merged.min is not None and merged.max is not None)
    recomputed = score_compensation_confidence(merged, dedicated_line=dedicated_line)
    confidence = clamp_confidence(max(recomputed, floor, deterministic_confidence))
    logger.info(
        "compensation_model_merge deterministic_confidence=%s confidence=%s",
        deterministic_confidence,
        confidence,
    )
    return CompensationExtraction(
        value=merged,
        confidence=confidence,
        source="model",
        deterministic_confidence=deterministic_confidence,
    )
