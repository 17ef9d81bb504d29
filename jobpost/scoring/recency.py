from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

from jobpost.ai.types import CompletionClient
from jobpost.schemas.document import JobDocument
from jobpost.schemas.scoring import CategoryScore
from jobpost.scoring.base import DerivedFacts, document_text, scorer_value
from jobpost.utils.markup import find_job_posting_jsonld, load_markup

CATEGORY = "recency"

ISO_DATE_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
LONG_DATE_RE = re.compile(
    r"\b((?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?\s+\d{1,2},\s+\d{4})\b",
    re.IGNORECASE,
)
RELATIVE_RE = re.compile(r"\bposted\s+(\d{1,4}|an?|one)\s+(day|week|month)s?\s+ago\b", re.IGNORECASE)
POSTED_TODAY_RE = re.compile(r"\bposted\s+(today|just now)\b", re.IGNORECASE)
POSTED_CONTEXT_RE = re.compile(r"posted|published|date", re.IGNORECASE)

_UNIT_DAYS = {"day": 1, "week": 7, "month": 30}


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    candidate = value.strip()
    try:
        return datetime.fromisoformat(candidate.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    iso = ISO_DATE_RE.search(candidate)
    if iso:
        try:
            return date.fromisoformat(iso.group(1))
        except ValueError:
            return None
    long_form = LONG_DATE_RE.search(candidate)
    if long_form:
        cleaned = re.sub(r"\.", "", long_form.group(1)).replace("Sept", "Sep")
        for fmt in ("%B %d, %Y", "%b %d, %Y"):
            try:
                return datetime.strptime(cleaned, fmt).date()
            except ValueError:
                continue
    return None


def _relative_date(text: str, today: date) -> date | None:
    if POSTED_TODAY_RE.search(text):
        return today
    match = RELATIVE_RE.search(text)
    if not match:
        return None
    count_text = match.group(1).lower()
    count = 1 if count_text in {"a", "an", "one"} else int(count_text)
    try:
        return today - timedelta(days=count * _UNIT_DAYS[match.group(2).lower()])
    except OverflowError:
        return None


def find_posting_dates(document: JobDocument, today: date) -> tuple[date | None, date | None, str | None]:
    """Return (date_posted, valid_through, where_found)."""
    node = find_job_posting_jsonld(document.markup)
    valid_through = parse_date(str(node.get("validThrough"))) if node and node.get("validThrough") else None
    if node and node.get("datePosted"):
        posted = parse_date(str(node["datePosted"]))
        if posted:
            return posted, valid_through, "jsonld"

    soup = load_markup(document.markup)
    if soup is not None:
        for tag in soup.find_all("time"):
            posted = parse_date(tag.get("datetime") or tag.get_text(" ", strip=True))
            if posted:
                return posted, valid_through, "markup"

    text = document_text(document)
    relative = _relative_date(text, today)
    if relative:
        return relative, valid_through, "text"
    for line in text.splitlines():
        if POSTED_CONTEXT_RE.search(line):
            posted = parse_date(line)
            if posted:
                return posted, valid_through, "text"
    return None, valid_through, None


def freshness_points(age_days: int, max_score: float) -> float:
    fresh = int(scorer_value(CATEGORY, "fresh_days", 14))
    stale = int(scorer_value(CATEGORY, "stale_days", 60))
    expired = int(scorer_value(CATEGORY, "expired_days", 120))
    if age_days <= fresh:
        return max_score
    if age_days <= stale:
        span = max(1, stale - fresh)
        return max_score * (1.0 - 0.4 * (age_days - fresh) / span)
    if age_days <= expired:
        return max_score * 0.3
    return max_score * 0.1


async def score_recency(
    document: JobDocument,
    facts: DerivedFacts,
    client: CompletionClient | None,
) -> CategoryScore:
    max_score = float(scorer_value(CATEGORY, "max_score", 10))
    today = facts.now.astimezone(timezone.utc).date() if facts.now.tzinfo else facts.now.date()
    posted, valid_through, found_in = find_posting_dates(document, today)

    if valid_through and valid_through < today:
        return CategoryScore(
            score=0,
            max_score=max_score,
            breakdown={"valid_through": valid_through.isoformat(), "expired": True},
            suggestions=["The posting is past its validThrough date. Close it or extend the date."],
        )

    if posted is None:
        return CategoryScore(
            score=min(max_score, float(scorer_value(CATEGORY, "neutral_score", 7))),
            max_score=max_score,
            breakdown={"date_posted": None},
            suggestions=["Show a posting date so candidates know the role is current."],
        )

    age_days = max(0, (today - posted).days)
    score = round(freshness_points(age_days, max_score), 2)
    suggestions: list[str] = []
    if score < max_score:
        suggestions.append(f"The posting is {age_days} days old. Refresh or repost it if the role is still open.")
    else:
        suggestions.append("No action needed: the posting is recent.")
    return CategoryScore(
        score=score,
        max_score=max_score,
        breakdown={"date_posted": posted.isoformat(), "age_days": age_days, "found_in": found_in},
        suggestions=suggestions,
    )
