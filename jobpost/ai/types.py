from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class CompletionError(RuntimeError):
    def __init__(self, message: str, *, code: str = "completion_failed", status_code: int | None = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class TransientCompletionError(CompletionError):
    """Rate limit, 5xx, connection or timeout failure; safe to retry."""

    def __init__(self, message: str, *, code: str = "transient", status_code: int | None = None):
        super().__init__(message, code=code, status_code=status_code)


class TemperatureUnsupportedError(CompletionError):
    def __init__(self, message: str, *, status_code: int | None = 400):
        super().__init__(message, code="temperature_unsupported", status_code=status_code)


class CompletionDisabledError(CompletionError):
    def __init__(self, message: str = "Completion service is not configured."):
        super().__init__(message, code="llm_disabled")


@dataclass(frozen=True)
class CompletionOptions:
    model: str
    temperature: float | None = None
    response_format_json: bool = False
    max_output_tokens: int | None = None
    timeout_s: float = 20.0
    seed: int | None = None
    system_message: str = "You are an expert in job posting analysis and improvement."
    caller: str = "jobpost"


class CompletionClient(Protocol):
    async def complete(self, prompt: str, options: CompletionOptions) -> str: ...
