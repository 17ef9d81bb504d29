import os
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("LLM_ENABLED", "0")

from jobpost.ai.types import CompletionError  # noqa: E402
from jobpost.extraction.compensation import (  # noqa: E402
    extract_compensation,
    parse_amount,
    parse_compensation_text,
)
from jobpost.extraction.location import extract_location, parse_location_line  # noqa: E402
from tests.fakes import FakeCompletionClient  # noqa: E402


class LocationExtractionTests(unittest.IsolatedAsyncioTestCase):
    async def test_remote_city_state_line_is_confident(self):
        client = FakeCompletionClient()
        result = await extract_location("Senior Engineer\nLocation: Remote (New York, NY)\nJoin us.", client)

        self.assertEqual(result.source, "deterministic")
        self.assertTrue(result.value.remote)
        self.assertEqual(result.value.city, "New York")
        self.assertEqual(result.value.state, "NY")
        self.assertEqual(result.value.country, "United States")
        self.assertIn("NY", result.jurisdictions)
        self.assertEqual(result.confidence, 1.0)
        self.assertEqual(client.calls, [])

    async def test_model_fills_gaps_when_deterministic_confidence_is_low(self):
        client = FakeCompletionClient(
            [
                {
                    "summary": "Austin, TX",
                    "city": "Austin",
                    "state": "TX",
                    "country": "United States",
                    "remote": False,
                    "hybrid": False,
                }
            ]
        )
        result = await extract_location("We are hiring a product designer to join our growing team.", client)

        self.assertEqual(result.source, "model")
        self.assertLess(result.deterministic_confidence, 0.5)
        self.assertGreaterEqual(result.confidence, result.deterministic_confidence)
        self.assertGreaterEqual(result.confidence, 0.8)
        self.assertEqual(result.value.city, "Austin")
        self.assertEqual(result.jurisdictions, [])
        self.assertEqual(client.callers(), ["extraction/location"])

    async def test_model_failure_keeps_deterministic_result(self):
        client = FakeCompletionClient([CompletionError("boom")])
        result = await extract_location("A role with no place mentioned.", client)

        self.assertEqual(result.source, "deterministic")
        self.assertEqual(result.confidence, result.deterministic_confidence)
        self.assertIsNone(result.value.summary)

    async def test_unexpected_client_error_keeps_deterministic_result(self):
        client = FakeCompletionClient(default=ValueError("bad frame"))
        result = await extract_location("A role with no place mentioned.", client)

        self.assertEqual(result.source, "deterministic")
        self.assertIsNone(result.value.summary)

    async def test_malformed_model_output_keeps_deterministic_result(self):
        client = FakeCompletionClient(['{"summary": "Austin'])
        result = await extract_location("A role with no place mentioned.", client)
        self.assertEqual(result.source, "deterministic")

    def test_hybrid_and_onsite_flags(self):
        fields = parse_location_line("Hybrid - Denver, CO (on-site twice a week)")
        self.assertTrue(fields.hybrid)
        self.assertTrue(fields.onsite)
        self.assertEqual(fields.state, "CO")


class CompensationExtractionTests(unittest.IsolatedAsyncioTestCase):
    async def test_full_range_is_parsed(self):
        result = await extract_compensation("$120,000 - $150,000 per year")
        fields = result.value

        self.assertTrue(fields.is_range)
        self.assertEqual(fields.currency, "USD")
        self.assertEqual(fields.min, 120000)
        self.assertEqual(fields.max, 150000)
        self.assertEqual(fields.pay_period, "year")
        self.assertIsNone(fields.amount)
        self.assertEqual(result.source, "deterministic")

    async def test_vague_salary_tries_model_and_survives_failure(self):
        client = FakeCompletionClient([CompletionError("unavailable")])
        result = await extract_compensation("Salary: competitive", client=client)

        self.assertTrue(result.value.vague_terms)
        self.assertEqual(result.source, "deterministic")
        self.assertEqual(client.callers(), ["extraction/compensation"])

    async def test_model_merge_never_lowers_confidence(self):
        client = FakeCompletionClient(
            [
                {
                    "salary_text": "$90k-$110k per year",
                    "currency": "USD",
                    "min_value": 90000,
                    "max_value": 110000,
                    "pay_period": "year",
                    "is_range": True,
                    "includes_equity": False,
                    "includes_bonus": True,
                }
            ]
        )
        result = await extract_compensation("Pay: depends on experience", client=client)

        self.assertEqual(result.source, "model")
        self.assertLess(result.deterministic_confidence, 0.5)
        self.assertGreaterEqual(result.confidence, 0.8)
        self.assertTrue(result.value.is_range)
        self.assertEqual(result.value.min, 90000)
        self.assertTrue(result.value.includes_bonus)

    def test_k_suffix_and_to_separator(self):
        fields = parse_compensation_text("Base salary 90k to 110k", dedicated_line=True)
        self.assertTrue(fields.is_range)
        self.assertEqual((fields.min, fields.max), (90000, 110000))

    def test_single_amount_excludes_range(self):
        fields = parse_compensation_text("Salary: $85,000 annually", dedicated_line=True)
        self.assertFalse(fields.is_range)
        self.assertEqual(fields.amount, 85000)
        self.assertEqual(fields.pay_period, "year")

    def test_parse_amount(self):
        self.assertEqual(parse_amount("1,250.50"), 1250.5)
        self.assertEqual(parse_amount("95", has_k_suffix=True), 95000)
        self.assertIsNone(parse_amount("abc"))

    async def test_repeated_extraction_is_idempotent(self):
        body = "Compensation: $45 - $60 per hour, plus bonus"
        first = await extract_compensation(body)
        second = await extract_compensation(body)
        self.assertEqual(first, second)
        self.assertEqual(first.value.pay_period, "hour")
        self.assertTrue(first.value.includes_bonus)


if __name__ == "__main__":
    unittest.main()
