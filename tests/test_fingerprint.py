import os
import sqlite3
import sys
import tempfile
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jobpost.core.fingerprint_store import (  # noqa: E402
    FingerprintStoreError,
    InMemoryFingerprintStore,
    SqliteFingerprintStore,
)
from jobpost.optimization.analysis import analyze_structure  # noqa: E402
from jobpost.optimization.fingerprint import (  # noqa: E402
    FingerprintManager,
    derive_fingerprint,
    section_overlap,
    should_refresh,
    slugify,
)
from jobpost.schemas.document import JobDocument  # noqa: E402
from jobpost.schemas.fingerprint import CompanyFingerprint, DetectedSection, StructuralAnalysis  # noqa: E402

CAREERS_PAGE = """
<html><head><meta property="og:site_name" content="Acme Robotics"></head><body>
<h2>About Acme</h2><p>We build robots for Warehouse Automation teams.</p>
<h2>What You'll Do</h2><ul><li>Ship APIs</li><li>Own services</li></ul>
<h2>Requirements</h2><ul><li>Python</li></ul>
</body></html>
"""


def analysis_with(*labels):
    return StructuralAnalysis(
        detected_sections=[DetectedSection(label=label, heading_text=label.title(), order=i) for i, label in enumerate(labels)]
    )


class CountingStore(InMemoryFingerprintStore):
    def __init__(self):
        super().__init__()
        self.upserts = 0

    async def upsert(self, key, fingerprint):
        self.upserts += 1
        await super().upsert(key, fingerprint)


class FingerprintDerivationTests(unittest.TestCase):
    def test_slugify(self):
        self.assertEqual(slugify("Acme Robotics, Inc."), "acme-robotics-inc")
        self.assertEqual(slugify(None), "unknown-company")
        self.assertEqual(slugify("!!!"), "unknown-company")

    def test_fingerprint_records_section_order_and_aliases(self):
        analysis = analyze_structure(JobDocument(markup=CAREERS_PAGE))
        self.assertEqual(analysis.company_name, "Acme Robotics")

        fingerprint = derive_fingerprint(analysis)
        self.assertEqual(fingerprint.section_order, ["about acme", "what youll do", "requirements"])
        self.assertIn("What You'll Do", fingerprint.heading_aliases["what youll do"])
        self.assertIn("About Acme", fingerprint.lexical_anchors)
        self.assertTrue(fingerprint.formatting.uses_markup)

    def test_small_drift_keeps_cached_fingerprint(self):
        cached = CompanyFingerprint(section_order=["about", "duties", "requirements"])
        self.assertAlmostEqual(section_overlap(cached, analysis_with("about", "duties", "benefits")), 2 / 3)
        self.assertFalse(should_refresh(cached, analysis_with("about", "duties", "benefits")))

    def test_repeated_labels_count_once_in_overlap(self):
        cached = CompanyFingerprint(section_order=["about", "duties", "requirements"])
        repeated = analysis_with("about", "about", "about")
        self.assertAlmostEqual(section_overlap(cached, repeated), 1 / 3)
        self.assertTrue(should_refresh(cached, repeated))

    def test_large_drift_refreshes(self):
        cached = CompanyFingerprint(section_order=["about", "duties", "requirements"])
        self.assertTrue(should_refresh(cached, analysis_with("about", "perks", "benefits")))
        self.assertTrue(should_refresh(None, analysis_with("about")))
        self.assertTrue(should_refresh(CompanyFingerprint(), analysis_with("about")))


class FingerprintManagerTests(unittest.IsolatedAsyncioTestCase):
    async def test_reuses_fingerprint_until_structure_drifts(self):
        store = CountingStore()
        manager = FingerprintManager(store)

        first = await manager.ensure_fingerprint("Acme", analysis_with("about", "duties", "requirements"))
        again = await manager.ensure_fingerprint("Acme", analysis_with("about", "duties", "requirements"))
        self.assertEqual(store.upserts, 1)
        self.assertEqual(first.section_order, again.section_order)

        drifted = await manager.ensure_fingerprint("Acme", analysis_with("overview", "perks"))
        self.assertEqual(store.upserts, 2)
        self.assertEqual(drifted.section_order, ["overview", "perks"])
        stored = await store.get("acme")
        self.assertEqual(stored.section_order, ["overview", "perks"])

    async def test_company_name_falls_back_to_analysis(self):
        store = InMemoryFingerprintStore()
        analysis = analysis_with("about")
        analysis.company_name = "Globex Corp"
        await FingerprintManager(store).ensure_fingerprint(None, analysis)
        self.assertIsNotNone(await store.get("globex-corp"))


class SqliteFingerprintStoreTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmp.name, "data", "fingerprints.db")
        self.store = SqliteFingerprintStore(self.db_path)

    def tearDown(self):
        self.store.close()
        self.tmp.cleanup()

    async def test_upsert_and_get(self):
        self.assertIsNone(await self.store.get("acme"))
        await self.store.upsert("acme", CompanyFingerprint(section_order=["about"]))
        await self.store.upsert("acme", CompanyFingerprint(version=2, section_order=["about", "benefits"]))

        loaded = await self.store.get("acme")
        self.assertEqual(loaded.version, 2)
        self.assertEqual(loaded.section_order, ["about", "benefits"])

    async def test_corrupt_row_raises_store_error(self):
        await self.store.upsert("acme", CompanyFingerprint(section_order=["about"]))
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("UPDATE company_fingerprints SET fingerprint_json = 'not json' WHERE company_slug = 'acme'")
            conn.commit()
        finally:
            conn.close()

        with self.assertRaises(FingerprintStoreError) as ctx:
            await self.store.get("acme")
        self.assertEqual(ctx.exception.operation, "get")
        self.assertEqual(ctx.exception.slug, "acme")

    async def test_unusable_path_raises_store_error(self):
        blocker = os.path.join(self.tmp.name, "blocker")
        Path(blocker).write_text("x", encoding="utf-8")
        store = SqliteFingerprintStore(os.path.join(blocker, "fingerprints.db"))
        with self.assertRaises(FingerprintStoreError) as ctx:
            await store.upsert("acme", CompanyFingerprint())
        self.assertEqual(ctx.exception.operation, "upsert")
        self.assertEqual(ctx.exception.code, "fingerprint_store_error")


if __name__ == "__main__":
    unittest.main()
