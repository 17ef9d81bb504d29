import asyncio
import random
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jobpost.ai.completion import complete_json, complete_with_retry  # noqa: E402
from jobpost.ai.retry import RetryPolicy, call_with_retry, is_retryable  # noqa: E402
from jobpost.ai.types import (  # noqa: E402
    CompletionError,
    CompletionOptions,
    TemperatureUnsupportedError,
    TransientCompletionError,
)
from tests.fakes import FakeCompletionClient  # noqa: E402


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class RetryPolicyTests(unittest.TestCase):
    def test_backoff_doubles_without_jitter(self):
        policy = RetryPolicy(base_delay_s=0.3, jitter_s=0.0)
        self.assertAlmostEqual(policy.delay_for(1), 0.3)
        self.assertAlmostEqual(policy.delay_for(2), 0.6)
        self.assertAlmostEqual(policy.delay_for(3), 1.2)

    def test_jitter_is_bounded(self):
        policy = RetryPolicy(base_delay_s=0.3, jitter_s=0.1)
        delay = policy.delay_for(1, rng=random.Random(7))
        self.assertGreaterEqual(delay, 0.3)
        self.assertLessEqual(delay, 0.4)

    def test_only_transient_errors_and_timeouts_are_retryable(self):
        self.assertTrue(is_retryable(TransientCompletionError("429")))
        self.assertTrue(is_retryable(asyncio.TimeoutError()))
        self.assertFalse(is_retryable(CompletionError("bad request")))
        self.assertFalse(is_retryable(ValueError("nope")))


class CallWithRetryTests(unittest.IsolatedAsyncioTestCase):
    async def test_retries_transient_then_succeeds(self):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise TransientCompletionError("server busy", status_code=503)
            return "ok"

        sleep = RecordingSleep()
        result = await call_with_retry(flaky, RetryPolicy(max_attempts=3, jitter_s=0.0), sleep=sleep)

        self.assertEqual(result, "ok")
        self.assertEqual(len(attempts), 3)
        self.assertEqual(len(sleep.delays), 2)
        self.assertAlmostEqual(sleep.delays[1], 2 * sleep.delays[0])

    async def test_gives_up_after_max_attempts(self):
        async def always_fails():
            raise TransientCompletionError("still down")

        sleep = RecordingSleep()
        with self.assertRaises(TransientCompletionError):
            await call_with_retry(always_fails, RetryPolicy(max_attempts=2, jitter_s=0.0), sleep=sleep)
        self.assertEqual(len(sleep.delays), 1)

    async def test_non_retryable_error_is_raised_immediately(self):
        sleep = RecordingSleep()

        async def broken():
            raise CompletionError("invalid api key", status_code=401)

        with self.assertRaises(CompletionError):
            await call_with_retry(broken, RetryPolicy(), sleep=sleep)
        self.assertEqual(sleep.delays, [])


class CompleteWithRetryTests(unittest.IsolatedAsyncioTestCase):
    async def test_temperature_is_dropped_once_when_rejected(self):
        client = FakeCompletionClient([TemperatureUnsupportedError("temperature not supported"), '{"ok": true}'])
        options = CompletionOptions(model="gpt-5", temperature=0.4, caller="test")

        payload = await complete_json(client, "prompt", options, sleep=RecordingSleep())

        self.assertEqual(payload, {"ok": True})
        self.assertEqual(client.calls[0][1].temperature, 0.4)
        self.assertIsNone(client.calls[1][1].temperature)
        self.assertTrue(client.calls[1][1].response_format_json)

    async def test_rejection_without_temperature_propagates(self):
        client = FakeCompletionClient([TemperatureUnsupportedError("no")])
        options = CompletionOptions(model="gpt-5", temperature=None, caller="test")
        with self.assertRaises(TemperatureUnsupportedError):
            await complete_with_retry(client, "prompt", options, sleep=RecordingSleep())

    async def test_json_system_message_is_hardened(self):
        client = FakeCompletionClient(['{"a": 1}'])
        await complete_json(client, "prompt", CompletionOptions(model="m", caller="test"))
        self.assertIn("untrusted", client.calls[0][1].system_message)


if __name__ == "__main__":
    unittest.main()
