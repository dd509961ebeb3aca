#!/usr/bin/env python3
"""Batch payee preparation script.

Reads a CSV of payee rows, drops keyword-excluded names, deduplicates the
rest and writes the unique names that still need classification. Fuzzy
duplicate links found along the way are saved to the dedupe link store.

Usage:
    python scripts/dedupe_payees.py data/payees.csv
    python scripts/dedupe_payees.py data/payees.csv --column "Vendor Name" --threshold 92
    python scripts/dedupe_payees.py data/payees.csv --output data/queue.csv --no-fuzzy
"""

from __future__ import annotations

import argparse
import csv
import sys
from pathlib import Path

from loguru import logger

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from payee_matching.classification.keyword_exclusion import KeywordExclusionFilter  # noqa: E402
from payee_matching.normalization.deduplication import DeduplicationEngine  # noqa: E402
from payee_matching.normalization.result_matcher import guess_payee_column  # noqa: E402
from payee_matching.storage.dedupe_store import JsonDedupeStore  # noqa: E402
from payee_matching.utils.config import load_config  # noqa: E402
from payee_matching.utils.logging_setup import setup_logging  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Filter and deduplicate payee names ahead of classification",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("input", type=Path, help="CSV file with a header row")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
    )
    parser.add_argument("--column", default=None, help="Payee column (default: guessed)")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output CSV (default: <input>_queue.csv)",
    )
    parser.add_argument("--threshold", type=float, default=None, help="Fuzzy threshold (0-100)")
    parser.add_argument("--no-fuzzy", action="store_true", help="Exact duplicates only")
    parser.add_argument("--no-save-links", action="store_true", help="Do not persist links")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    config = load_config(args.config)
    setup_logging(config.logging, verbose=args.verbose)

    with open(args.input, newline="", encoding="utf-8-sig") as f:
        rows = list(csv.DictReader(f))
    if not rows:
        logger.warning("No rows in {}", args.input)
        return

    column = args.column or guess_payee_column(rows[0])
    if column is None:
        logger.error("Could not determine payee column in {}", args.input)
        sys.exit(1)

    names = [row.get(column) or "" for row in rows]
    keyword_filter = KeywordExclusionFilter(config.keywords)
    # Blank out excluded names so row indices stay aligned with the input.
    candidates = [name if not keyword_filter.check(name).is_excluded else "" for name in names]
    excluded = sum(1 for name, kept in zip(names, candidates) if name.strip() and not kept)

    engine = DeduplicationEngine(
        store=JsonDedupeStore(config=config.storage),
        config=config.matching,
        similarity_threshold=args.threshold,
    )
    outcome = engine.process_payee_deduplication(
        candidates, original_rows=rows, use_fuzzy=not args.no_fuzzy
    )
    if not args.no_save_links:
        engine.persist_links(outcome.dedupe_links)

    output = args.output or args.input.with_name(f"{args.input.stem}_queue.csv")
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["row_index", "payee_name", "normalized_name"])
        writer.writeheader()
        for item in outcome.process_queue:
            writer.writerow(
                {
                    "row_index": item.original_index,
                    "payee_name": item.name,
                    "normalized_name": item.normalized_name,
                }
            )

    logger.info(
        "{} rows: {} excluded, {} duplicates, {} queued -> {}",
        len(rows),
        excluded,
        outcome.duplicate_count,
        len(outcome.process_queue),
        output,
    )


if __name__ == "__main__":
    main()
