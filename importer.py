"""Bulk-load a CSV or JSON question file into one test."""
import argparse
import logging
from pathlib import Path

from src.bulk_upload import parse_upload
from src.catalog import next_position

logger = logging.getLogger(__name__)


def run_import(
    path: Path,
    test_id: str,
    subject: str | None = None,
    chunk_size: int = 200,
    dry_run: bool = False,
    db=None,
) -> int:
    """Parse the file and insert its questions. Returns the number of questions parsed."""
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if not dry_run and db is None:
        from db import get_database_uncached

        db = get_database_uncached()

    start = 1
    if subject and db is not None:
        start = next_position(db.fetch_questions_by_test_id(test_id), test_id, subject)
    questions = parse_upload(path.name, path.read_bytes(), test_id, subject=subject, start_position=start)

    if dry_run:
        print(f"Dry run: would insert {len(questions)} questions from {path} into test {test_id}")
        if questions:
            print("Sample question:", questions[0].to_row())
        return len(questions)
    if not questions:
        print(f"No valid questions found in {path}")
        return 0
    db.create_multiple_questions(questions, chunk_size=chunk_size)
    print(f"Inserted {len(questions)} questions from {path}")
    return len(questions)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Import a CSV/JSON question file into a PrepPro test.")
    parser.add_argument("file", help="Path to .csv or .json")
    parser.add_argument("--test-id", required=True, help="Target test id")
    parser.add_argument("--subject", default=None, help="Put questions into this subject (CSV answers are then 1-based)")
    parser.add_argument("--chunk-size", type=int, default=200, help="Insert chunk size (default 200)")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, do not insert")
    args = parser.parse_args()
    run_import(Path(args.file), args.test_id, subject=args.subject, chunk_size=args.chunk_size, dry_run=args.dry_run)
