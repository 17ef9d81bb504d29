from __future__ import annotations

import re

_WS_RE = re.compile(r"\s+")
_MD_HEADING_RE = re.compile(r"^\s*#{1,3}\s+", re.MULTILINE)


def normalize_whitespace(value: str | None) -> str:
    return _WS_RE.sub(" ", value or "").strip()


def non_empty_lines(text: str | None) -> list[str]:
    lines = (normalize_whitespace(line) for line in (text or "").splitlines())
    return [line for line in lines if line]


def normalize_label(value: str | None) -> str:
    """Case/punctuation-insensitive form used to compare section labels."""
    lowered = (value or "").lower()
    return normalize_whitespace(re.sub(r"[^a-z0-9 ]+", "", lowered))


def count_markdown_headings(text: str | None) -> int:
    return len(_MD_HEADING_RE.findall(text or ""))


def truncate(text: str | None, max_chars: int) -> str:
    value = text or ""
    if len(value) <= max_chars:
        return value
    return value[:max_chars].rstrip()
