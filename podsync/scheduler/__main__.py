#!/usr/bin/env python3
"""
Sweep worker: re-scan every known source for new videos.

Runs one sweep (--once), or keeps running and sweeps on a fixed interval.

Usage:
    python -m podsync.scheduler --once
    python -m podsync.scheduler --every 60
"""

import argparse
import asyncio
import sys

from podsync.config import get_settings
from podsync.db import configure_database, init_database
from podsync.logger import setup_logging
from podsync.sync import ScheduledSweep

from .worker import SweepWorker, sweep_and_report


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Periodic sweep of known sources")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    parser.add_argument(
        "--every",
        type=int,
        metavar="MINUTES",
        help="Sweep interval (default: SWEEP_INTERVAL_MINUTES, or 60 when unset)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging output")
    return parser.parse_args()


def main():
    args = parse_arguments()
    if args.verbose:
        setup_logging(logger_name="sweep", log_file="logs/scheduler.log", verbose=True)
    settings = get_settings()

    try:
        configure_database(settings.database_url)
        init_database()
    except ValueError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    sweep = ScheduledSweep(settings)
    if args.once:
        report = asyncio.run(sweep_and_report(sweep))
        sys.exit(0 if report is not None else 1)

    worker = SweepWorker(sweep, args.every or settings.sweep_interval_minutes or 60)
    try:
        asyncio.run(worker.run_forever())
    except KeyboardInterrupt:
        print("\nStopped")


if __name__ == "__main__":
    main()
