from __future__ import annotations

import math

AVERAGE_CHARS_PER_TOKEN = 4
# Prompt scaffolding added per section (JSON wrappers, headings).
STRUCTURAL_TOKENS_PER_SECTION = 12


def estimate_tokens(char_length: int, section_count: int = 1, extra_tokens: int = 0) -> int:
    base = math.ceil(max(0, char_length) / AVERAGE_CHARS_PER_TOKEN)
    structural = max(0, section_count) * STRUCTURAL_TOKENS_PER_SECTION
    return base + structural + max(0, extra_tokens)


def estimate_prompt_tokens(*, text_length: int = 0, markup_length: int = 0, section_count: int = 1) -> int:
    return estimate_tokens(max(text_length, markup_length), section_count)


def compute_max_output(
    prompt_tokens: int,
    target_total: int = 8000,
    min_output: int = 1500,
    fallback_total: int = 6000,
) -> int:
    """Output budget for a call: target first, then fallback, never negative."""
    target_budget = target_total - prompt_tokens
    if target_budget >= min_output:
        return target_budget

    fallback_budget = fallback_total - prompt_tokens
    if fallback_budget >= min_output:
        return fallback_budget

    return max(0, target_budget, fallback_budget)


def should_segment(text_length: int, max_chars_per_section: int = 4500) -> bool:
    return text_length > max_chars_per_section
