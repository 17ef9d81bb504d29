from __future__ import annotations

import logging
import re
from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from jobpost.ai.types import (
    CompletionError,
    CompletionOptions,
    TemperatureUnsupportedError,
    TransientCompletionError,
)

logger = logging.getLogger(__name__)

_TEMPERATURE_UNSUPPORTED_RE = re.compile(
    r"Unsupported value: 'temperature'|Only the default \(1\) value is supported",
    re.IGNORECASE,
)

GROQ_MODEL_MAP = {
    "gpt-4o-mini": "llama-3.1-8b-instant",
    "gpt-4o": "openai/gpt-oss-20b",
    "gpt-4.1-mini": "llama-3.1-8b-instant",
    "gpt-4.1": "openai/gpt-oss-20b",
    "gpt-5-mini": "llama-3.1-8b-instant",
    "gpt-5": "openai/gpt-oss-20b",
}


def _uses_completion_tokens(model: str) -> bool:
    return any(marker in model for marker in ("gpt-5", "o1", "o3"))


class OpenAICompletionClient:
    """Completion client over the OpenAI chat API (also serves OpenAI-compatible hosts)."""

    def __init__(
        self,
        *,
        api_key: str,
        default_model: str,
        base_url: Optional[str] = None,
        provider: str = "openai",
        client: AsyncOpenAI | None = None,
    ):
        if not api_key and client is None:
            raise RuntimeError(f"API key for provider '{provider}' is missing")
        self._provider = provider
        self._default_model = default_model
        # Retries are handled by jobpost.ai.retry so the SDK must not retry on its own.
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    def _resolve_model(self, requested: str) -> str:
        if self._provider != "groq":
            return requested or self._default_model
        if requested in GROQ_MODEL_MAP:
            return GROQ_MODEL_MAP[requested]
        if requested.lower().startswith("gpt-"):
            logger.warning(
                "completion_model_unsupported provider=%s model=%s fallback=%s",
                self._provider,
                requested,
                self._default_model,
            )
            return self._default_model
        return requested or self._default_model

    def _build_params(self, prompt: str, options: CompletionOptions) -> dict[str, Any]:
        model = self._resolve_model(options.model)
        params: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": options.system_message},
                {"role": "user", "content": prompt},
            ],
            "user": options.caller,
        }
        if options.temperature is not None:
            params["temperature"] = options.temperature
        if options.response_format_json:
            params["response_format"] = {"type": "json_object"}
        if options.seed is not None:
            params["seed"] = options.seed
        if options.max_output_tokens is not None:
            key = "max_completion_tokens" if _uses_completion_tokens(options.model) else "max_tokens"
            params[key] = options.max_output_tokens
        return params

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        params = self._build_params(prompt, options)
        logger.info(
            "completion_request provider=%s model=%s requested=%s caller=%s prompt_len=%s",
            self._provider,
            params["model"],
            options.model,
            options.caller,
            len(prompt),
        )
        try:
            response = await self._client.chat.completions.create(**params, timeout=options.timeout_s)
        except openai.APITimeoutError as exc:
            raise TransientCompletionError(f"Completion timed out: {exc}", code="timeout") from exc
        except openai.APIConnectionError as exc:
            raise TransientCompletionError(f"Completion connection failed: {exc}", code="connection") from exc
        except openai.APIStatusError as exc:
            status = exc.status_code
            message = str(exc)
            if status == 429:
                raise TransientCompletionError(message, code="rate_limited", status_code=status) from exc
            if status >= 500:
                raise TransientCompletionError(message, code="server_error", status_code=status) from exc
            if _TEMPERATURE_UNSUPPORTED_RE.search(message):
                raise TemperatureUnsupportedError(message, status_code=status) from exc
            raise CompletionError(message, code="api_error", status_code=status) from exc

        content = response.choices[0].message.content if response.choices else ""
        return content or ""
