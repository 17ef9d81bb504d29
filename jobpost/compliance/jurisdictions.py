"""Pay-transparency jurisdiction rules for compensation scoring.

Pure functions over already-extracted data; nothing here calls a model.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from jobpost.core.config.scoring import get_scoring_value
from jobpost.schemas.extraction import LocationFields

US_STATE_ABBR = frozenset(
    {
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA", "HI", "ID", "IL", "IN", "IA", "KS",
        "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ", "NM", "NY",
        "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC", "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV",
        "WI", "WY", "DC",
    }
)

PAY_TRANSPARENCY_STATES: dict[str, str] = {
    "CA": "California",
    "CO": "Colorado",
    "HI": "Hawaii",
    "IL": "Illinois",
    "MD": "Maryland",
    "NY": "New York",
    "WA": "Washington",
}

# City jurisdictions map to the state they sit in.
PAY_TRANSPARENCY_CITIES: dict[str, str] = {
    "Cincinnati": "OH",
    "Jersey City": "NJ",
    "New York City": "NY",
}

COVERED_REMOTE_COUNTRIES = frozenset({"United States"})

FULL_DISCLOSURE_STATUS = "range_full"


class ComplianceOutcome(BaseModel):
    status: str
    score: float
    requires_disclosure: bool
    jurisdictions: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


def compute_jurisdictions(location: LocationFields | None, extra: list[str] | None = None) -> list[str]:
    if location is None:
        return list(extra or [])
    matches: list[str] = []

    def add(item: str) -> None:
        if item not in matches:
            matches.append(item)

    state = (location.state or "").upper()
    if state in PAY_TRANSPARENCY_STATES:
        add(state)
    if location.city:
        city = location.city.strip().lower()
        for name in PAY_TRANSPARENCY_CITIES:
            if name.lower() == city:
                add(name)
    for item in extra or []:
        add(item)
    return matches


def is_remote_in_covered_country(location: LocationFields | None) -> bool:
    if location is None or not location.remote:
        return False
    return (location.country or "") in COVERED_REMOTE_COUNTRIES


def jurisdiction_names(jurisdictions: list[str]) -> list[str]:
    names: list[str] = []
    for item in jurisdictions:
        if item in PAY_TRANSPARENCY_STATES:
            names.append(PAY_TRANSPARENCY_STATES[item])
        elif item in PAY_TRANSPARENCY_CITIES:
            names.append(f"{item}, {PAY_TRANSPARENCY_CITIES[item]}")
        else:
            names.append(item)
    return names


def apply_compliance(
    status: str,
    score: float,
    jurisdictions: list[str],
    remote_in_covered_country: bool,
    *,
    cap: float | None = None,
) -> ComplianceOutcome:
    """Lower a compensation score where disclosure law applies; never raises it."""
    requires_disclosure = bool(jurisdictions) or remote_in_covered_country
    if not requires_disclosure:
        return ComplianceOutcome(status=status, score=score, requires_disclosure=False)

    cap_value = float(cap if cap is not None else get_scoring_value("compensation.compliance_cap", 8))
    where = ", ".join(jurisdiction_names(jurisdictions)) or "the United States (remote)"
    suggestions: list[str] = []
    adjusted = score
    if status == "missing":
        adjusted = 0.0
        suggestions.append(
            f"Pay transparency law applies in {where}. Publish a specific salary range with currency and pay period."
        )
    elif status != FULL_DISCLOSURE_STATUS:
        adjusted = min(score, cap_value)
        suggestions.append(
            f"Pay transparency law in {where} expects a full salary range with currency and pay period."
        )
    return ComplianceOutcome(
        status=status,
        score=min(score, adjusted),
        requires_disclosure=True,
        jurisdictions=list(jurisdictions),
        suggestions=suggestions,
    )
