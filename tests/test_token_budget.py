import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jobpost.utils.token_budget import (  # noqa: E402
    compute_max_output,
    estimate_prompt_tokens,
    estimate_tokens,
    should_segment,
)


class TokenBudgetTests(unittest.TestCase):
    def test_estimate_rounds_up_and_adds_structure(self):
        self.assertEqual(estimate_tokens(0, section_count=0), 0)
        self.assertEqual(estimate_tokens(1, section_count=1), 13)
        self.assertEqual(estimate_tokens(400, section_count=2, extra_tokens=5), 100 + 24 + 5)

    def test_prompt_estimate_uses_longer_of_text_and_markup(self):
        self.assertEqual(estimate_prompt_tokens(text_length=400, markup_length=800, section_count=1), 212)

    def test_target_budget_used_when_it_leaves_enough_room(self):
        self.assertEqual(compute_max_output(2000, target_total=8000, min_output=1500, fallback_total=6000), 6000)

    def test_fallback_when_target_too_small(self):
        self.assertEqual(compute_max_output(5000, target_total=6000, min_output=1500, fallback_total=7000), 2000)

    def test_never_negative(self):
        self.assertEqual(compute_max_output(9000, target_total=8000, min_output=1500, fallback_total=6000), 0)
        self.assertEqual(compute_max_output(7000, target_total=8000, min_output=1500, fallback_total=6000), 1000)

    def test_should_segment_threshold(self):
        self.assertFalse(should_segment(4500, 4500))
        self.assertTrue(should_segment(4501, 4500))


if __name__ == "__main__":
    unittest.main()
