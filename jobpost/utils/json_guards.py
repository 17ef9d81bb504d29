from __future__ import annotations

import json
import re
from typing import Any

_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z0-9_-]*\s*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?\s*```\s*$")
_PREVIEW_CHARS = 400


class ModelJsonError(ValueError):
    """Model output could not be turned into a JSON value."""

    def __init__(self, message: str, *, preview: str = ""):
        super().__init__(f"{message} :: {preview}" if preview else message)
        self.preview = preview


def _preview(text: str) -> str:
    if len(text) > _PREVIEW_CHARS:
        return text[:_PREVIEW_CHARS] + "…"
    return text


def strip_code_fences(text: str) -> str:
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    stripped = _FENCE_OPEN_RE.sub("", stripped, count=1)
    stripped = _FENCE_CLOSE_RE.sub("", stripped, count=1)
    return stripped.strip()


def is_balanced_json(text: str) -> bool:
    """Bracket/brace balance check that skips string literals and escapes."""
    if not text or not isinstance(text, str):
        return False
    stack: list[str] = []
    in_string = False
    escape = False
    for char in text:
        if escape:
            escape = False
            continue
        if char == "\\":
            escape = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char in "{[":
            stack.append(char)
        elif char in "}]":
            if not stack:
                return False
            opener = stack.pop()
            if (char == "}" and opener != "{") or (char == "]" and opener != "["):
                return False
    if escape:
        return False
    return not in_string and not stack


def _slice_json_region(candidate: str) -> str:
    first_brace = candidate.find("{")
    first_bracket = candidate.find("[")
    if first_brace != -1 and (first_bracket == -1 or first_brace <= first_bracket):
        start, end = first_brace, candidate.rfind("}")
    elif first_bracket != -1:
        start, end = first_bracket, candidate.rfind("]")
    else:
        return candidate
    if end > start:
        return candidate[start : end + 1]
    return candidate[start:]


def parse_model_json(raw: Any) -> dict[str, Any] | list[Any]:
    """Parse a JSON object or array out of free-text model output.

    Accepts output wrapped in code fences or preceded by prose. Raises
    ModelJsonError on empty input, unbalanced brackets, or invalid JSON.
    """
    if isinstance(raw, (dict, list)):
        return raw
    candidate = strip_code_fences(raw) if isinstance(raw, str) else ""
    if not candidate:
        raise ModelJsonError("Empty model output")

    sliced = _slice_json_region(candidate)
    if not is_balanced_json(sliced):
        raise ModelJsonError("Unbalanced JSON payload", preview=_preview(sliced))
    try:
        parsed = json.loads(sliced)
    except json.JSONDecodeError as exc:
        raise ModelJsonError(f"Failed to parse JSON payload: {exc.msg}", preview=_preview(sliced)) from exc
    if not isinstance(parsed, (dict, list)):
        raise ModelJsonError("Model output is not a JSON object or array", preview=_preview(sliced))
    return parsed


def parse_model_object(raw: Any) -> dict[str, Any]:
    parsed = parse_model_json(raw)
    if not isinstance(parsed, dict):
        raise ModelJsonError("Expected a JSON object", preview=_preview(json.dumps(parsed)[:_PREVIEW_CHARS]))
    return parsed
