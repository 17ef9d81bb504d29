import os
import re
import sys
import unittest
from datetime import datetime, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("LLM_ENABLED", "0")

from jobpost.core.fingerprint_store import InMemoryFingerprintStore  # noqa: E402
from jobpost.optimization.pipeline import RegressionPolicy, evaluate_improvement, optimize_and_rescore  # noqa: E402
from jobpost.schemas.document import JobDocument  # noqa: E402
from jobpost.schemas.scoring import CategoryScore, ScoreReport  # noqa: E402
from tests.fakes import routed_client  # noqa: E402
from tests.test_scorers import ALL_SUBSCORES, JSONLD_MARKUP  # noqa: E402

POLICY = RegressionPolicy(min_category_gain=5, max_total_regression=5)


def report(**scores):
    categories = {name: CategoryScore(score=value, max_score=20) for name, value in scores.items()}
    return ScoreReport(total_score=sum(scores.values()), categories=categories)


class EvaluateImprovementTests(unittest.TestCase):
    def test_higher_total_is_accepted(self):
        verdict = evaluate_improvement(report(clarity=10, recency=10), report(clarity=12, recency=10), POLICY)
        self.assertTrue(verdict.accepted)
        self.assertEqual(verdict.delta, 2)
        self.assertEqual(verdict.best_category, "clarity")

    def test_category_gain_excuses_small_regression(self):
        verdict = evaluate_improvement(report(clarity=5, recency=18), report(clarity=12, recency=8), POLICY)
        self.assertEqual(verdict.delta, -3)
        self.assertTrue(verdict.accepted)
        self.assertEqual(verdict.best_category_gain, 7)

    def test_large_regression_is_rejected(self):
        verdict = evaluate_improvement(report(clarity=5, recency=18), report(clarity=15, recency=2), POLICY)
        self.assertEqual(verdict.delta, -6)
        self.assertFalse(verdict.accepted)
        self.assertIn("regressed by 6", verdict.reason)

    def test_small_gain_does_not_excuse_regression(self):
        verdict = evaluate_improvement(report(clarity=10, recency=18), report(clarity=14, recency=12), POLICY)
        self.assertFalse(verdict.accepted)

    def test_unchanged_total_is_rejected(self):
        verdict = evaluate_improvement(report(clarity=10), report(clarity=10), POLICY)
        self.assertFalse(verdict.accepted)
        self.assertEqual(verdict.reason, "Total score did not change.")


HEADING_RE = re.compile(r"^Section heading: (.+)$", re.MULTILINE)


def rewrite_section(prompt, options):
    heading = HEADING_RE.search(prompt).group(1)
    return {"optimized_text": f"## {heading}\nWe build warehouse robots for retailers.", "change_log": []}


class OptimizeAndRescoreTests(unittest.IsolatedAsyncioTestCase):
    async def test_rescoring_keeps_structured_data(self):
        document = JobDocument(title="Backend Engineer", markup=JSONLD_MARKUP)
        client = routed_client(
            {
                "optimization/section": rewrite_section,
                "optimization/coherence": {"optimized_text": ""},
                "scoring/": ALL_SUBSCORES,
            },
            default="not json",
        )
        clock = lambda: datetime(2025, 3, 1, tzinfo=timezone.utc)  # noqa: E731
        outcome = await optimize_and_rescore(document, client, InMemoryFingerprintStore(), policy=POLICY, clock=clock)

        self.assertEqual(outcome.result.optimized_text, "## About Us\nWe build warehouse robots for retailers.")
        self.assertEqual(
            outcome.optimized.categories["structured_data"].score,
            outcome.original.categories["structured_data"].score,
        )
        self.assertEqual(outcome.verdict.original_score, outcome.original.total_score)
        self.assertEqual(outcome.verdict.optimized_score, outcome.optimized.total_score)


if __name__ == "__main__":
    unittest.main()
