"""Command line entry point for the commerce analytics engine."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from commerce_analytics.config import ANALYSES, AnalyticsConfig
from commerce_analytics.foundation.errors import IntegrityError
from commerce_analytics.foundation.snapshot import Snapshot, SnapshotLoader
from commerce_analytics.observability import configure_logging, get_logger
from commerce_analytics.pipeline import run_analytics

logger = get_logger(__name__)


MAX_INPUT_BYTES = 25 * 1024 * 1024  # 25 MiB cap to avoid accidental OOM


def _load_snapshot(path: Path) -> Snapshot:
    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, dict):
        raise ValueError("Expected a JSON object with one list per table")

    return SnapshotLoader().from_records(
        customers=payload.get("customers", []),
        products=payload.get("products", []),
        orders=payload.get("orders", []),
        order_items=payload.get("order_items", []),
        categories=payload.get("categories", []),
    )


def _resolve_output(path: Path) -> Path:
    output_path = path.resolve()
    cwd = Path.cwd().resolve()
    try:
        output_path.relative_to(cwd)
    except ValueError:
        raise ValueError(
            f"Output path {output_path} must reside within the current working directory"
        )
    return output_path


def run_analytics_cli(argv: list[str] | None = None) -> int:
    """Run the analytics report over a JSON snapshot.

    The input file holds ``customers``, ``products``, ``orders``,
    ``order_items`` and optionally ``categories`` as lists of records.

    Returns:
        Exit code (0 for success, 1 for an invalid snapshot)
    """
    parser = argparse.ArgumentParser(
        description="Compute e-commerce customer and product analytics from a snapshot"
    )
    parser.add_argument("input", type=Path, help="Path to JSON snapshot file")
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        help="Snapshot date for recency calculations (YYYY-MM-DD, default: today)",
    )
    parser.add_argument(
        "--analysis",
        dest="analyses",
        action="append",
        choices=ANALYSES,
        help="Analysis to run; repeat for several (defaults to all).",
    )
    parser.add_argument(
        "--dense-retention",
        action="store_true",
        help="Zero-fill cohort months without active customers.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional path for writing the report as JSON.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    args = parser.parse_args(argv)
    configure_logging(args.log_level, json_logs=args.json_logs)

    config = AnalyticsConfig(
        as_of=args.as_of,
        analyses=tuple(args.analyses) if args.analyses else ANALYSES,
        dense_retention=args.dense_retention,
    )
    output_path = _resolve_output(args.output) if args.output else None

    try:
        snapshot = _load_snapshot(args.input)
        report = run_analytics(snapshot, config)
    except IntegrityError as exc:
        logger.error(
            "snapshot_integrity_violation",
            table=exc.table,
            row_index=exc.row_index,
            field=exc.field,
            value=str(exc.value),
        )
        return 1

    payload = report.as_dict()
    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, sort_keys=True)
        logger.info("report_written", path=str(output_path), tables=len(report.tables()))
    else:  # stdout fallback enables piping in shell usage.
        json.dump(payload, fp=sys.stdout, indent=2, sort_keys=True)
        print()

    return 0


def main() -> None:  # pragma: no cover - console script shim
    sys.exit(run_analytics_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
