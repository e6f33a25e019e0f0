"""Command line entry points for the customer analytics toolkit.

Two subcommands are provided::

    customer-analytics analyze customers.json --preset last90 --output report.json
    customer-analytics generate-sample sample.json --customers 200 --seed 42

``analyze`` accepts the JSON customer contract or a flat transaction CSV
(selected by file suffix) and writes the current-versus-previous period
comparison as JSON. Logs are emitted as JSON lines on stderr so that stdout
stays clean for the report.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Any, Optional

import structlog

from customer_analytics import __version__
from customer_analytics.analyses.period_analysis import compare_periods, summarize_segments
from customer_analytics.foundation.customers import Customer
from customer_analytics.foundation.importer import customers_to_payload, load_customers
from customer_analytics.foundation.periods import (
    AnalysisPeriod,
    PeriodPair,
    PeriodPreset,
    resolve_preset,
)
from customer_analytics.foundation.rfm import RFMWeights
from customer_analytics.models.clv import CLVConfig
from customer_analytics.pandas import read_transactions_csv
from customer_analytics.synthetic import generate_sample_customers

logger = structlog.get_logger(__name__)

CSV_SUFFIXES = {".csv"}
DATE_ONLY_LENGTH = len("YYYY-MM-DD")


def configure_logging(verbose: bool = False) -> None:
    """Route stdlib and structlog output to stderr as JSON lines."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _parse_date(value: str, end_of_day: bool = False) -> datetime:
    """Parse an ISO date or timestamp; naive values are taken as UTC.

    A bare ``YYYY-MM-DD`` used as a period end is extended to the last
    microsecond of that day so that the whole day is included.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}; expected ISO format") from exc
    if end_of_day and len(value) == DATE_ONLY_LENGTH:
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_end_date(value: str) -> datetime:
    return _parse_date(value, end_of_day=True)


def _load_customers(path: Path) -> list[Customer]:
    if path.suffix.lower() in CSV_SUFFIXES:
        return read_transactions_csv(path)
    return load_customers(path)


def _resolve_periods(args: argparse.Namespace, today: datetime) -> PeriodPair:
    custom = [args.current_start, args.current_end, args.previous_start, args.previous_end]
    if any(value is not None for value in custom):
        if any(value is None for value in custom):
            raise ValueError(
                "Custom periods need all of --current-start, --current-end, "
                "--previous-start and --previous-end"
            )
        return PeriodPair(
            current=AnalysisPeriod(args.current_start, args.current_end),
            previous=AnalysisPeriod(args.previous_start, args.previous_end),
        )
    return resolve_preset(args.preset, today)


def _clv_config(args: argparse.Namespace) -> CLVConfig:
    return CLVConfig(
        churn_rate=args.churn_rate,
        discount_rate=args.discount_rate,
        prediction_months=args.prediction_months,
        gross_margin=args.gross_margin,
        include_acquisition_cost=args.acquisition_cost is not None,
        acquisition_cost=args.acquisition_cost or 0.0,
    )


def _write_json(payload: Any, output: Optional[Path]) -> None:
    text = json.dumps(payload, indent=2)
    if output is None:
        sys.stdout.write(text + "\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")


def _add_analyze_parser(subparsers: Any) -> None:
    parser = subparsers.add_parser(
        "analyze",
        help="Compare RFM, CLV and revenue concentration across two periods",
    )
    parser.add_argument(
        "input", type=Path, help="Customer JSON file or transaction CSV file"
    )
    parser.add_argument(
        "--preset",
        choices=[p.value for p in PeriodPreset],
        default=PeriodPreset.LAST_30_DAYS.value,
        help="Comparison preset (default: last30). Ignored when custom periods are given.",
    )
    parser.add_argument("--current-start", type=_parse_date, help="Current period start (ISO)")
    parser.add_argument("--current-end", type=_parse_end_date, help="Current period end (ISO)")
    parser.add_argument("--previous-start", type=_parse_date, help="Previous period start (ISO)")
    parser.add_argument("--previous-end", type=_parse_end_date, help="Previous period end (ISO)")
    parser.add_argument(
        "--today",
        type=_parse_date,
        help="Anchor date for presets (default: now, UTC)",
    )
    parser.add_argument(
        "--evaluation-instant",
        type=_parse_date,
        help="Instant CLV tenure is measured to (default: --today)",
    )
    parser.add_argument(
        "--weights",
        type=float,
        nargs=3,
        metavar=("R", "F", "M"),
        default=(1.0, 1.0, 1.0),
        help="Recency, frequency and monetary weights (default: 1 1 1)",
    )
    parser.add_argument(
        "--churn-rate",
        type=float,
        default=0.05,
        help="Monthly churn rate (default: 0.05 = 5%%)",
    )
    parser.add_argument(
        "--discount-rate",
        type=float,
        default=0.01,
        help="Monthly discount rate (default: 0.01 = 1%%)",
    )
    parser.add_argument(
        "--prediction-months",
        type=int,
        default=24,
        help="Months in the iterative CLV forecast (default: 24)",
    )
    parser.add_argument(
        "--gross-margin",
        type=float,
        default=0.5,
        help="Gross margin as decimal (default: 0.5 = 50%%)",
    )
    parser.add_argument(
        "--acquisition-cost",
        type=float,
        help="Subtract this one-off acquisition cost from every CLV",
    )
    parser.add_argument(
        "--keep-inactive",
        action="store_true",
        help="Keep customers without transactions in a period (no New/Lost detection)",
    )
    parser.add_argument("--output", type=Path, help="Output JSON path (default: stdout)")
    parser.set_defaults(handler=analyze_cli)


def _add_generate_parser(subparsers: Any) -> None:
    parser = subparsers.add_parser(
        "generate-sample",
        help="Write a synthetic customer JSON file",
    )
    parser.add_argument("output", type=Path, help="Path of the JSON file to write")
    parser.add_argument(
        "--customers", type=int, default=100, help="Number of customers (default: 100)"
    )
    parser.add_argument(
        "--max-transactions",
        type=int,
        default=20,
        help="Maximum transactions per customer (default: 20)",
    )
    parser.add_argument("--seed", type=int, help="Random seed for reproducible output")
    parser.set_defaults(handler=generate_sample_cli)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="customer-analytics",
        description="RFM segmentation, CLV projection and revenue concentration analysis",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_analyze_parser(subparsers)
    _add_generate_parser(subparsers)
    return parser


def analyze_cli(args: argparse.Namespace) -> int:
    """Run the period comparison and write the JSON report.

    Args:
        args: Parsed ``analyze`` arguments

    Returns:
        Exit code (0 for success, 1 for invalid input or parameters)
    """
    try:
        weights = RFMWeights(*args.weights)
        clv_config = _clv_config(args)
        today = args.today or datetime.now(timezone.utc)
        evaluation_instant = args.evaluation_instant or today
        periods = _resolve_periods(args, today)

        logger.info("loading_customers", path=str(args.input))
        customers = _load_customers(args.input)
        if not customers:
            logger.error("no_customers_found", path=str(args.input))
            return 1

        comparison = compare_periods(
            customers,
            periods,
            evaluation_instant,
            weights=weights,
            clv_config=clv_config,
            drop_inactive=not args.keep_inactive,
        )
    except (OSError, ValueError, TypeError) as exc:
        logger.error("analysis_failed", error=str(exc), error_type=type(exc).__name__)
        return 1

    payload = comparison.as_dict()
    payload["segmentSummary"] = [
        s.as_dict()
        for s in summarize_segments(comparison.current.rfm, comparison.current.customers)
    ]
    try:
        _write_json(payload, args.output)
    except OSError as exc:
        logger.error("output_write_failed", path=str(args.output), error=str(exc))
        return 1

    logger.info(
        "analysis_complete",
        current_period=periods.current.label,
        previous_period=periods.previous.label,
        current_customers=len(comparison.current.customers),
        previous_customers=len(comparison.previous.customers),
        new_customers=len(comparison.rfm.new_customers),
        lost_customers=len(comparison.rfm.lost_customers),
        output=str(args.output) if args.output else "stdout",
    )
    return 0


def generate_sample_cli(args: argparse.Namespace) -> int:
    """Write a synthetic customer file in the JSON input format."""

    try:
        customers = generate_sample_customers(
            args.customers,
            args.max_transactions,
            seed=args.seed,
        )
    except ValueError as exc:
        logger.error("generation_failed", error=str(exc))
        return 1

    try:
        _write_json(customers_to_payload(customers), args.output)
    except OSError as exc:
        logger.error("output_write_failed", path=str(args.output), error=str(exc))
        return 1
    logger.info(
        "sample_generated",
        path=str(args.output),
        customers=len(customers),
        transactions=sum(len(c.transactions) for c in customers),
    )
    return 0


def run(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    return args.handler(args)


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main()
