"""CLI entry point for submitting a BigQuery -> Kafka pipeline.

Usage:
    python -m flinkgen                         # uses $CONFIG_PATH or ./config.properties
    python -m flinkgen ./config.properties
    python -m flinkgen ./config.yaml --dry-run # print the statements only
    python -m flinkgen ./config.yaml --explain
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from flinkgen.lib.config_loader import resolve_config_path
from flinkgen.lib.env import load_env_file
from flinkgen.lib.errors import FlinkgenError
from flinkgen.lib.observability import setup_logging
from flinkgen.lib.pipeline import load_pipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flinkgen",
        description="Generate and submit Flink SQL for a BigQuery -> Kafka pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Submit using ./config.properties (or $CONFIG_PATH)
    python -m flinkgen

    # Submit using an explicit config file
    python -m flinkgen ./config/stackoverflow.properties

    # Print the generated statements without executing them
    python -m flinkgen ./config.yaml --dry-run

    # Show what the pipeline would do
    python -m flinkgen ./config.yaml --explain
        """,
    )
    parser.add_argument(
        "config",
        nargs="?",
        help="Configuration file (.properties or .yaml); CONFIG_PATH takes precedence",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the generated statements without submitting them",
    )
    parser.add_argument(
        "--explain",
        action="store_true",
        help="Show what the pipeline would do without executing",
    )
    parser.add_argument(
        "--env-file",
        help="Load environment variables from a .env file before reading config",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (includes generated SQL)",
    )
    parser.add_argument(
        "--json-log",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to a file in addition to console",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose, json_format=args.json_log, log_file=args.log_file)

    if args.env_file:
        load_env_file(args.env_file)

    logger.info("Starting BigQuery to Kafka Flink pipeline with externalized configuration")

    try:
        pipeline = load_pipeline(resolve_config_path(args.config))

        if args.explain:
            print(pipeline.explain())
            return 0

        result = pipeline.run(dry_run=args.dry_run)
        if args.dry_run:
            for role, statement in result["statements"].items():
                print(f"-- {role}")
                print(f"{statement};")
                print()
    except FlinkgenError as e:
        logger.error("Pipeline failed at stage '%s'", e.stage, extra={"error": e.to_dict()})
        print(f"Error ({e.stage}): {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
