from __future__ import annotations

import json
from typing import Any

from jobpost.ai.types import CompletionOptions


class FakeCompletionClient:
    """Scripted completion client.

    `responses` is consumed in order; each item is a string, a dict (sent as JSON),
    an exception instance (raised) or a callable taking (prompt, options).
    `default` answers once the script runs out.
    """

    def __init__(self, responses: list[Any] | None = None, default: Any = None):
        self.responses = list(responses or [])
        self.default = default
        self.calls: list[tuple[str, CompletionOptions]] = []

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        self.calls.append((prompt, options))
        item = self.responses.pop(0) if self.responses else self.default
        if callable(item) and not isinstance(item, type):
            item = item(prompt, options)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, (dict, list)):
            return json.dumps(item)
        if item is None:
            raise AssertionError(f"Unexpected completion call from {options.caller}")
        return item

    def callers(self) -> list[str]:
        return [options.caller for _, options in self.calls]


def routed_client(routes: dict[str, Any], default: Any = None) -> FakeCompletionClient:
    """Answer by caller prefix, e.g. {"scoring/": {...}, "optimization/section": fn}."""

    def answer(prompt: str, options: CompletionOptions) -> Any:
        for prefix, response in routes.items():
            if options.caller.startswith(prefix):
                return response(prompt, options) if callable(response) else response
        return default

    return FakeCompletionClient(default=answer)
