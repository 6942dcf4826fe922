"""Publish a test feed (.json list or .jsonl) into the teacher_tests slot after checking it normalizes."""
import json
import argparse
import logging
from pathlib import Path

from db import TESTS_SLOT, get_store_uncached
from src.normalizer import normalize

logger = logging.getLogger(__name__)


def parse_line(line: str) -> dict | None:
    """Parse one JSONL line into a raw test record. Returns None if invalid/skip."""
    line = line.strip()
    if not line:
        return None
    try:
        raw = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(raw, dict):
        return None
    return raw


def load_records(path: Path) -> list[dict]:
    """Read raw test records from a JSON array file or a JSONL file."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() != ".jsonl":
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path} is not valid JSON: {e}") from e
        if isinstance(raw, dict):
            raw = [raw]
        if not isinstance(raw, list):
            raise ValueError(f"{path} must hold a list of tests, got {type(raw).__name__}")
        return [r for r in raw if isinstance(r, dict)]
    records = []
    for n, line in enumerate(text.splitlines(), 1):
        row = parse_line(line)
        if row is None:
            if line.strip():
                logger.warning("Skipping unreadable line %d", n)
            continue
        records.append(row)
    return records


def existing_records(store) -> list:
    text = store.get_item(TESTS_SLOT)
    if not text:
        return []
    try:
        raw = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Existing test feed is not valid JSON; it will be replaced")
        return []
    return raw if isinstance(raw, list) else []


def run_import(path: Path, dry_run: bool = False, append: bool = False, store=None):
    if not path.exists():
        raise FileNotFoundError(f"Test feed not found: {path}")
    records = load_records(path)
    tests = normalize(records)
    n_questions = sum(len(t.questions) for t in tests)
    if dry_run:
        print(f"Dry run: would publish {len(tests)} tests ({n_questions} questions) from {path}")
        for t in tests:
            print(f"  {t.id}: {t.name} [{t.duration}] {len(t.questions)} questions")
        return tests
    store = store or get_store_uncached()
    if append:
        records = existing_records(store) + records
    store.set_item(TESTS_SLOT, json.dumps(records))
    print(f"Published {len(records)} tests to '{TESTS_SLOT}' ({n_questions} new questions)")
    return tests


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Publish a test feed for the student portal.")
    parser.add_argument("feed", help="Path to a .json list of tests or a .jsonl file (one test per line)")
    parser.add_argument("--dry-run", action="store_true", help="Normalize and summarize only, do not write")
    parser.add_argument("--append", action="store_true", help="Append to the published feed instead of replacing it")
    args = parser.parse_args()
    run_import(Path(args.feed), dry_run=args.dry_run, append=args.append)
