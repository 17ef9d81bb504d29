from __future__ import annotations

import json
import logging
from typing import Any

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

HEADING_TAGS = ("h1", "h2", "h3", "h4")


def load_markup(markup: str | None) -> BeautifulSoup | None:
    if not markup or not markup.strip():
        return None
    return BeautifulSoup(markup, "html.parser")


def markup_to_text(markup: str | None) -> str:
    soup = load_markup(markup)
    if soup is None:
        return ""
    for node in soup(["script", "style", "noscript"]):
        node.decompose()
    return soup.get_text("\n", strip=True)


def _iter_json_nodes(payload: Any) -> list[dict[str, Any]]:
    nodes: list[dict[str, Any]] = []
    stack = [payload]
    while stack:
        current = stack.pop()
        if isinstance(current, list):
            stack.extend(current)
        elif isinstance(current, dict):
            nodes.append(current)
            graph = current.get("@graph")
            if graph is not None:
                stack.append(graph)
    return nodes


def _is_job_posting(node: dict[str, Any]) -> bool:
    node_type = node.get("@type")
    if isinstance(node_type, list):
        return "JobPosting" in node_type
    return node_type == "JobPosting"


def find_job_posting_jsonld(markup: str | None) -> dict[str, Any] | None:
    soup = load_markup(markup)
    if soup is None:
        return None
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        content = script.string or script.get_text() or ""
        try:
            payload = json.loads(content)
        except json.JSONDecodeError:
            logger.debug("jsonld_parse_failed length=%s", len(content))
            continue
        for node in _iter_json_nodes(payload):
            if _is_job_posting(node):
                return node
    return None


def jsonld_scripts(markup: str | None) -> str | None:
    """Only the JSON-LD script tags of a page, or None when it has none."""
    soup = load_markup(markup)
    if soup is None:
        return None
    scripts = soup.find_all("script", attrs={"type": "application/ld+json"})
    return "\n".join(str(script) for script in scripts) or None
