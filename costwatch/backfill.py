"""
Command line replay of anomaly detection over a cost record export.

Records are replayed in billing order, as if they were ingested one by one:
each record is checked against the records that precede it. Results are
written as one JSON DetectionResult per line.

Usage:
    costwatch-detect records.csv --backfill --output results.jsonl
    python -m costwatch.backfill records.json --check yoy_deviation --check budget_exceeded
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from dotenv import load_dotenv

from costwatch.anomaly import (
    AnomalyEngine,
    BudgetContext,
    DetectionOptions,
    DetectionResult,
    highest_severity,
)
from costwatch.core.exceptions import CostWatchError, DataValidationError
from costwatch.core.logging_config import setup_logging
from costwatch.data import CostRecord, ingest_cost_records, normalize_cost_records
from costwatch.data.context import CheckContextBuilder

logger = logging.getLogger(__name__)


def load_budgets(path: Path) -> List[BudgetContext]:
    """
    Load budgets from a JSON array.

    Raises:
        DataValidationError: If the file is not a JSON array of budgets
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
        if not isinstance(rows, list):
            raise DataValidationError(f"Budget file must contain a JSON array: {path}")
        return [BudgetContext.model_validate(row) for row in rows]
    except DataValidationError:
        raise
    except (OSError, ValueError) as e:
        raise DataValidationError(f"Invalid budget file {path}: {e}") from e


def replay(
    records: Sequence[CostRecord],
    engine: AnomalyEngine,
    builder: Optional[CheckContextBuilder] = None,
    budgets: Sequence[BudgetContext] = (),
    is_backfill: bool = True,
    check_ids: Optional[Sequence[str]] = None,
) -> List[DetectionResult]:
    """
    Run detection for every record against the records billed before it.

    Returns:
        One DetectionResult per record, in billing order
    """
    builder = builder or CheckContextBuilder()
    ordered = sorted(records, key=lambda r: (r.period_start, r.id))
    options = DetectionOptions(
        is_backfill=is_backfill,
        check_ids=tuple(check_ids) if check_ids else None,
    )

    results = []
    for index, record in enumerate(ordered):
        context = builder.build(
            record,
            ordered[:index],
            settings=engine.get_settings(),
            budgets=budgets,
        )
        results.append(engine.detect(builder.to_record_to_check(record), context, options))

    return results


def write_results(results: Sequence[DetectionResult], out: TextIO) -> None:
    for result in results:
        out.write(result.model_dump_json())
        out.write("\n")


def _summarize(results: Sequence[DetectionResult]) -> None:
    anomalies = [a for r in results for a in r.anomalies]
    if not anomalies:
        logger.info(f"Checked {len(results)} records: no anomalies")
        return
    worst = highest_severity(*(a.severity for a in anomalies))
    logger.info(
        f"Checked {len(results)} records: {len(anomalies)} anomalies, "
        f"highest severity {worst.value}"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    setup_logging("costwatch")

    parser = argparse.ArgumentParser(description="Replay cost anomaly detection over an export")
    parser.add_argument("records", type=Path, help="CSV or JSON export of cost records")
    parser.add_argument("--format", default="auto", choices=["auto", "csv", "json"])
    parser.add_argument("--budgets", type=Path, default=None, help="JSON array of budgets")
    parser.add_argument(
        "--backfill",
        action="store_true",
        help="Mark results as backfill (stored, not alerted)",
    )
    parser.add_argument(
        "--check",
        dest="check_ids",
        action="append",
        default=None,
        help="Only run this check id (repeatable)",
    )
    parser.add_argument("--output", type=Path, default=None, help="Write JSON lines here")
    args = parser.parse_args(argv)

    try:
        raw_rows = list(ingest_cost_records(args.records, format=args.format))
        records, skipped = normalize_cost_records(raw_rows)
        if skipped:
            logger.warning(f"Skipped {skipped} invalid rows in {args.records}")
        budgets = load_budgets(args.budgets) if args.budgets else []
    except CostWatchError as e:
        logger.error(f"Cannot load input: {e}")
        return 1

    engine = AnomalyEngine()
    results = replay(
        records,
        engine,
        budgets=budgets,
        is_backfill=args.backfill,
        check_ids=args.check_ids,
    )

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            write_results(results, f)
    else:
        write_results(results, sys.stdout)

    _summarize(results)
    return 0


if __name__ == "__main__":
    sys.exit(main())
