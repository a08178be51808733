#!/usr/bin/env python3
"""Generate a sample ledger and export materialized months as JSON.

Each exported month lists persisted rows and the virtual occurrences of
every series, flagged with ``is_virtual``, plus the month summary.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from fintrack.config import FintrackConfig
from fintrack.generators import SampleLedgerGenerator
from fintrack.logging import setup_logging
from fintrack.reports import summarize_month
from fintrack.series.materializer import add_months
from fintrack.sinks import JsonFileSink
from fintrack.store import TransactionLedger

logger = logging.getLogger("fintrack.scripts.generate_sample_data")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate and export a sample ledger")
    parser.add_argument(
        "--start",
        type=date.fromisoformat,
        default=date(date.today().year, date.today().month, 1),
        help="First month of activity as YYYY-MM-DD (default: current month)",
    )
    parser.add_argument(
        "--months",
        type=int,
        default=3,
        help="Number of months to generate and export (default: 3)",
    )
    parser.add_argument(
        "--expenses-per-month",
        type=int,
        default=8,
        help="One-off expenses per month (default: 8)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility (default: SEED env var)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for JSON files (default: OUTPUT_DIR env var)",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Pretty-print JSON output",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = FintrackConfig.from_env()
    setup_logging(config.log_level, config.log_format)

    seed = args.seed if args.seed is not None else config.seed
    output_dir = args.output_dir or config.output.json_output_dir
    sink = JsonFileSink(output_dir, pretty=args.pretty or config.output.pretty_json)

    ledger = SampleLedgerGenerator(seed=seed).populate(
        TransactionLedger(),
        start=args.start,
        months=args.months,
        expenses_per_month=args.expenses_per_month,
    )
    logger.info("Generated ledger: %s", ledger.summary())

    sink.write_batch("banks", list(ledger.banks.values()))
    sink.write_batch("credit_cards", list(ledger.credit_cards.values()))
    sink.write_batch("records", ledger.records())

    for offset in range(args.months):
        window = add_months(args.start, offset)
        materialization = ledger.materialize(window.month, window.year)
        sink.write_month(materialization, summarize_month(materialization.entries))

    sink.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
