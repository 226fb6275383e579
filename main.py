#!/usr/bin/env python3
"""
green-index - command line entry point.

Reads a CSV of product / brand-year rows, runs the scoring pipeline and
writes the JSON result.

Usage:
    python main.py data.csv                         # JSON to stdout
    python main.py data.csv --output result.json    # JSON to file
    python main.py data.csv --mode categorized --weight 0.7 --top-n 5
    python main.py data.csv --settings settings.json --seed 7
"""
import argparse
import csv
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from greenindex.config import load_pipeline_config
from greenindex.domain.models import ElbowStrategy, RecommendationMode
from greenindex.utils.logging_config import setup_logging
from greenindex.workflows.pipeline import run_pipeline


def read_rows(csv_path: Path) -> list:
    """Read CSV rows as dicts (header row required)."""
    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        return list(csv.DictReader(f))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compute sustainability index scores, clusters and recommendations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("csv", type=str, help="Input CSV file")
    parser.add_argument("--output", type=str, help="Write JSON here instead of stdout")
    parser.add_argument("--settings", type=str, help="settings.json with pipeline overrides")
    parser.add_argument("--seed", type=int, help="Random seed for clustering")
    parser.add_argument("--weight", type=float, help="Priority weight for SIS vs price [0,1]")
    parser.add_argument("--top-n", type=int, help="Recommendations per list")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in RecommendationMode],
        help="Recommendation output shape",
    )
    parser.add_argument(
        "--elbow",
        choices=[s.value for s in ElbowStrategy],
        help="Elbow k-selection strategy",
    )
    parser.add_argument("--max-k", type=int, help="Largest k in the elbow sweep")
    parser.add_argument("--log-dir", type=str, help="Directory for rotating log files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(
        log_dir=args.log_dir,
        console_level=logging.INFO if args.verbose else logging.WARNING,
    )

    csv_path = Path(args.csv)
    if not csv_path.exists():
        print(f"Input file not found: {csv_path}", file=sys.stderr)
        return 1

    config = load_pipeline_config(args.settings) if args.settings else load_pipeline_config()
    overrides = {}
    if args.seed is not None:
        overrides["random_seed"] = args.seed
    if args.weight is not None:
        overrides["priority_weight"] = args.weight
    if args.top_n is not None:
        overrides["top_n"] = args.top_n
    if args.mode is not None:
        overrides["recommendation_mode"] = RecommendationMode(args.mode)
    if args.elbow is not None:
        overrides["elbow_strategy"] = ElbowStrategy(args.elbow)
    if args.max_k is not None:
        overrides["max_k"] = args.max_k

    try:
        config = replace(config, **overrides)
    except ValueError as e:
        print(f"Invalid option: {e}", file=sys.stderr)
        return 1

    try:
        rows = read_rows(csv_path)
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        print(f"Could not read {csv_path}: {e}", file=sys.stderr)
        return 1

    result = run_pipeline(rows, config)
    payload = json.dumps(result.to_dict(), indent=2)

    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"Wrote {len(result.records)} scored records to {args.output}", file=sys.stderr)
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
