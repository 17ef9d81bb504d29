import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jobpost.optimization.analysis import analyze_structure  # noqa: E402
from jobpost.optimization.fingerprint import derive_fingerprint  # noqa: E402
from jobpost.optimization.sections import markdown_sections, merge, segment  # noqa: E402
from jobpost.schemas.document import JobDocument  # noqa: E402
from jobpost.schemas.fingerprint import CompanyFingerprint  # noqa: E402
from jobpost.schemas.optimization import OptimizedSection  # noqa: E402

MARKDOWN = """## About Us
We build robots.

## Responsibilities
- Ship APIs
- Own services

## Requirements
- Python
"""

FRAGMENT = """<h2>About Us</h2><p>We build robots.</p>
<h2>Responsibilities</h2><ul><li>Ship APIs</li><li>Own services</li></ul>
<h2>Requirements</h2><ul><li>Python</li></ul>"""


class SegmentTests(unittest.TestCase):
    def test_markdown_headings_become_sections(self):
        sections = segment(JobDocument(body=MARKDOWN), CompanyFingerprint())
        self.assertEqual([s.label for s in sections], ["about us", "responsibilities", "requirements"])
        self.assertEqual(sections[1].raw_text, "- Ship APIs\n- Own services\n")
        self.assertTrue(all(s.fingerprint_source == "markdown" for s in sections))

    def test_markup_sections_follow_fingerprint(self):
        document = JobDocument(markup=FRAGMENT)
        fingerprint = derive_fingerprint(analyze_structure(document))
        sections = segment(document, fingerprint)

        self.assertEqual([s.heading_text for s in sections], ["About Us", "Responsibilities", "Requirements"])
        self.assertTrue(all(s.fingerprint_source == "markup" for s in sections))
        self.assertIn("<li>Ship APIs</li>", sections[1].original_markup)

    def test_renamed_headings_align_by_position_without_duplicates(self):
        fingerprint = derive_fingerprint(analyze_structure(JobDocument(markup=FRAGMENT)))
        renamed = FRAGMENT.replace("About Us", "Who We Are").replace("Responsibilities", "Your Day")
        sections = segment(JobDocument(markup=renamed), fingerprint)

        headings = [s.heading_text for s in sections]
        self.assertEqual(sorted(headings), sorted(set(headings)))
        self.assertIn("Requirements", headings)
        self.assertIn("Who We Are", headings)

    def test_unstructured_text_is_one_section(self):
        sections = segment(JobDocument(body="We need an engineer.\nApply today."), CompanyFingerprint())
        self.assertEqual(len(sections), 1)
        self.assertEqual(sections[0].heading_text, "Full Text")
        self.assertEqual(sections[0].fingerprint_source, "full_text")

    def test_long_sections_are_chunked(self):
        body = "## Details\n" + "\n".join(["x" * 20] * 3)
        sections = segment(JobDocument(body=body), CompanyFingerprint(), max_chars=25)
        self.assertEqual(len(sections), 3)
        self.assertTrue(all(s.fingerprint_source == "chunked" for s in sections))
        self.assertTrue(all(len(s.raw_text) <= 25 for s in sections))
        self.assertEqual("".join(s.raw_text for s in sections), ("x" * 20 + "\n") * 3)

    def test_chunks_carry_their_position(self):
        body = "## Details\n" + "\n".join(["x" * 20] * 3)
        sections = segment(JobDocument(body=body), CompanyFingerprint(), max_chars=25)
        self.assertEqual([s.chunk_index for s in sections], [0, 1, 2])
        self.assertTrue(all(s.heading_text == "Details" for s in sections))

    def test_selector_alias_is_tried_before_label(self):
        markup = "<h2>Requirements</h2><p>Old list</p><h3>Must Haves</h3><p>Python</p>"
        fingerprint = CompanyFingerprint(section_order=["requirements"], heading_aliases={"requirements": ["h3"]})
        sections = segment(JobDocument(markup=markup), fingerprint)
        self.assertEqual([s.heading_text for s in sections], ["Must Haves"])

    def test_label_match_when_no_selector_alias(self):
        markup = "<h2>Benefits</h2><p>Dental</p><h2>Requirements</h2><p>Python</p>"
        fingerprint = CompanyFingerprint(section_order=["requirements"])
        sections = segment(JobDocument(markup=markup), fingerprint)
        self.assertEqual([s.heading_text for s in sections], ["Requirements"])

    def test_empty_document_has_no_sections(self):
        self.assertEqual(segment(JobDocument(), CompanyFingerprint()), [])

    def test_markdown_ignores_text_before_first_heading(self):
        sections = markdown_sections("Intro line\n## Benefits\nDental")
        self.assertEqual(len(sections), 1)
        self.assertEqual(sections[0].raw_text, "Dental\n")


class MergeTests(unittest.TestCase):
    def test_merge_restores_fingerprint_order(self):
        fingerprint = CompanyFingerprint(section_order=["about us", "responsibilities", "requirements"])
        optimized = [
            OptimizedSection(label="requirements", optimized_text="## Requirements\nPython"),
            OptimizedSection(label="responsibilities", optimized_text="## Responsibilities\nShip"),
            OptimizedSection(label="about us", optimized_text="## About Us\nRobots"),
        ]
        merged = merge(optimized, fingerprint)
        self.assertEqual(
            merged,
            "## About Us\nRobots\n\n## Responsibilities\nShip\n\n## Requirements\nPython",
        )

    def test_unknown_labels_go_last(self):
        fingerprint = CompanyFingerprint(section_order=["About Us"])
        optimized = [
            OptimizedSection(label="perks", optimized_text="## Perks"),
            OptimizedSection(label="about us", optimized_text="## About Us"),
        ]
        self.assertEqual(merge(optimized, fingerprint), "## About Us\n\n## Perks")


if __name__ == "__main__":
    unittest.main()
