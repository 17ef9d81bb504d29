from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jobpost.ai.factory import get_completion_client  # noqa: E402
from jobpost.core.fingerprint_store import SqliteFingerprintStore  # noqa: E402
from jobpost.optimization.pipeline import optimize_and_rescore  # noqa: E402
from jobpost.schemas.document import JobDocument  # noqa: E402
from jobpost.scoring.service import score_document  # noqa: E402

MARKUP_SUFFIXES = {".html", ".htm"}


def load_document(path: Path, title: str) -> JobDocument:
    content = path.read_text(encoding="utf-8")
    if path.suffix.lower() in MARKUP_SUFFIXES:
        return JobDocument(title=title, markup=content)
    return JobDocument(title=title, body=content)


async def run(args: argparse.Namespace) -> dict:
    document = load_document(Path(args.path), args.title)
    client = get_completion_client()
    if not args.optimize:
        report = await score_document(document, client)
        return report.model_dump(mode="json")

    store = SqliteFingerprintStore(args.db)
    try:
        outcome = await optimize_and_rescore(document, client, store, company_name=args.company)
    finally:
        store.close()
    return {
        "accepted": outcome.verdict.accepted,
        "reason": outcome.verdict.reason,
        "original_score": outcome.original.total_score,
        "optimized_score": outcome.optimized.total_score,
        "optimized_text": outcome.result.optimized_text,
        "change_log": outcome.result.change_log,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Score or rewrite a job posting stored in a local file.")
    parser.add_argument("path", help="Markdown/text file, or .html for a saved posting page")
    parser.add_argument("--title", default="", help="Job title, when the file does not lead with it")
    parser.add_argument("--optimize", action="store_true", help="Rewrite the posting and rescore it.")
    parser.add_argument("--company", default=None, help="Company name used for the fingerprint key")
    parser.add_argument("--db", default=None, help="Fingerprint database path (defaults to FINGERPRINT_DB_PATH)")
    args = parser.parse_args()

    print(json.dumps(asyncio.run(run(args)), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
