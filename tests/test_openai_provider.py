import sys
import unittest
from pathlib import Path
from types import SimpleNamespace

import httpx
import openai

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jobpost.ai.providers.openai_provider import OpenAICompletionClient  # noqa: E402
from jobpost.ai.types import (  # noqa: E402
    CompletionError,
    CompletionOptions,
    TemperatureUnsupportedError,
    TransientCompletionError,
)

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def status_error(status_code, message="request failed"):
    response = httpx.Response(status_code, request=REQUEST)
    return openai.APIStatusError(message, response=response, body=None)


class FakeSdk:
    def __init__(self, outcome):
        self.outcome = outcome
        self.params = None
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self.create))

    async def create(self, **params):
        self.params = params
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        message = SimpleNamespace(content=self.outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class OpenAICompletionClientTests(unittest.IsolatedAsyncioTestCase):
    def make(self, outcome, provider="openai"):
        sdk = FakeSdk(outcome)
        client = OpenAICompletionClient(api_key="", default_model="gpt-4o-mini", provider=provider, client=sdk)
        return client, sdk

    async def test_request_parameters(self):
        client, sdk = self.make('{"ok": true}')
        options = CompletionOptions(
            model="gpt-4o-mini",
            temperature=0.2,
            response_format_json=True,
            max_output_tokens=500,
            seed=7,
            caller="scoring/clarity",
        )
        self.assertEqual(await client.complete("prompt", options), '{"ok": true}')
        self.assertEqual(sdk.params["response_format"], {"type": "json_object"})
        self.assertEqual(sdk.params["max_tokens"], 500)
        self.assertEqual(sdk.params["seed"], 7)
        self.assertEqual(sdk.params["temperature"], 0.2)
        self.assertEqual(sdk.params["messages"][1], {"role": "user", "content": "prompt"})

    async def test_newer_models_use_completion_token_limit(self):
        client, sdk = self.make("{}")
        await client.complete("prompt", CompletionOptions(model="gpt-5-mini", max_output_tokens=100))
        self.assertEqual(sdk.params["max_completion_tokens"], 100)
        self.assertNotIn("temperature", sdk.params)

    async def test_groq_maps_openai_model_names(self):
        client, sdk = self.make("{}", provider="groq")
        await client.complete("prompt", CompletionOptions(model="gpt-4.1"))
        self.assertEqual(sdk.params["model"], "openai/gpt-oss-20b")

    async def test_empty_content_is_empty_string(self):
        client, _ = self.make(None)
        self.assertEqual(await client.complete("prompt", CompletionOptions(model="gpt-4o-mini")), "")

    async def test_rate_limit_and_server_errors_are_transient(self):
        for code in (429, 503):
            client, _ = self.make(status_error(code))
            with self.assertRaises(TransientCompletionError) as ctx:
                await client.complete("prompt", CompletionOptions(model="gpt-4o-mini"))
            self.assertEqual(ctx.exception.status_code, code)

    async def test_timeout_is_transient(self):
        client, _ = self.make(openai.APITimeoutError(request=REQUEST))
        with self.assertRaises(TransientCompletionError):
            await client.complete("prompt", CompletionOptions(model="gpt-4o-mini"))

    async def test_temperature_rejection_is_typed(self):
        client, _ = self.make(status_error(400, "Unsupported value: 'temperature' does not support 0.2"))
        with self.assertRaises(TemperatureUnsupportedError):
            await client.complete("prompt", CompletionOptions(model="gpt-5", temperature=0.2))

    async def test_other_client_errors_are_not_retryable(self):
        client, _ = self.make(status_error(401, "invalid api key"))
        with self.assertRaises(CompletionError) as ctx:
            await client.complete("prompt", CompletionOptions(model="gpt-4o-mini"))
        self.assertNotIsInstance(ctx.exception, TransientCompletionError)
        self.assertEqual(ctx.exception.code, "api_error")

    def test_missing_key_without_client_is_rejected(self):
        with self.assertRaises(RuntimeError):
            OpenAICompletionClient(api_key="", default_model="gpt-4o-mini")


if __name__ == "__main__":
    unittest.main()
