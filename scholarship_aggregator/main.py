#!/usr/bin/env python3
"""
Command-line entry point for the Scholarship Aggregator pipeline.

Commands:
    run [--category all|scrape|rss|api]   run the registered sources once
    source NAME                           run one registered source
    schedule                              run every SCHEDULE_INTERVAL_HOURS hours

Environment:
    LOG_LEVEL                 logging level (default INFO)
    SOURCE_CATEGORY           default category for "run" and "schedule"
    SCHEDULE_INTERVAL_HOURS   interval for "schedule" (default 6)
    MAX_WORKERS               sources fetched concurrently (default 1)
    SCHOLARSHIP_SOURCES_CONFIG / SCHOLARSHIP_SOURCES_CONFIG_PATH
    RELEVANCE_CONFIG / RELEVANCE_CONFIG_PATH
"""

import argparse
import json
import os
import sys
from typing import List, Optional

from scholarship_aggregator.aggregate import Aggregator
from scholarship_aggregator.errors import ConfigurationError
from scholarship_aggregator.registry import load_source_registry
from scholarship_aggregator.scheduler import DEFAULT_INTERVAL_HOURS, AggregationScheduler
from scholarship_aggregator.utils import (
    get_env_int,
    get_logger,
    load_relevance_config,
    setup_logging,
    validate_relevance_config,
)


# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def build_aggregator() -> Aggregator:
    """Build an Aggregator from environment configuration."""
    logger = get_logger("main")

    relevance = load_relevance_config()
    for warning in validate_relevance_config(relevance):
        logger.warning(warning)

    return Aggregator(
        registry=load_source_registry(),
        max_workers=get_env_int("MAX_WORKERS", default=1),
        relevance=relevance,
    )


def build_parser() -> argparse.ArgumentParser:
    default_category = os.environ.get("SOURCE_CATEGORY", "all").strip() or "all"

    parser = argparse.ArgumentParser(
        prog="scholarship-aggregator",
        description="Aggregate scholarship listings from scraped pages, feeds and APIs."
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run registered sources once")
    run_parser.add_argument("--category", default=default_category)

    source_parser = subparsers.add_parser("source", help="Run one registered source")
    source_parser.add_argument("name")

    schedule_parser = subparsers.add_parser("schedule", help="Run on a fixed interval")
    schedule_parser.add_argument("--category", default=default_category)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command-line arguments, defaults to sys.argv[1:].

    Returns:
        Exit code for the process.
    """
    setup_logging(os.environ.get("LOG_LEVEL", "INFO").upper())
    logger = get_logger("main")

    args = build_parser().parse_args(argv)
    command = args.command or "run"

    try:
        aggregator = build_aggregator()

        if command == "schedule":
            interval = get_env_int("SCHEDULE_INTERVAL_HOURS", default=DEFAULT_INTERVAL_HOURS)
            scheduler = AggregationScheduler(
                aggregator,
                interval_hours=interval,
                category=args.category,
                blocking=True
            )
            scheduler.run_once()
            scheduler.start()
            return EXIT_SUCCESS

        if command == "source":
            batch = aggregator.run_by_name(args.name)
        else:
            batch = aggregator.run(getattr(args, "category", "all"))

        print(json.dumps(
            {"success": True, "count": batch.count, "scholarships": batch.to_dicts()},
            indent=2,
            ensure_ascii=False
        ))
        return EXIT_SUCCESS

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return EXIT_FAILURE

    except Exception as e:
        logger.exception(f"Unexpected error in pipeline: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
