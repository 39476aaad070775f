#!/usr/bin/env python3
"""
CLI interface for the ingestion pipeline.

Ingest a single video, or every new video of a channel/playlist, from the
terminal. Source runs use the same orchestrator as the HTTP API, with a
detached job printed at the end instead of being polled.

Usage:
    python -m podsync.pipeline --url "https://youtu.be/dQw4w9WgXcQ"
    python -m podsync.pipeline --source-url "https://www.youtube.com/@channel" --max-items 20
    python -m podsync.pipeline --source-url "https://www.youtube.com/@channel" --max-process 5
    python -m podsync.pipeline --source-url "https://www.youtube.com/@channel" --dry-run
"""

import argparse
import asyncio
import sys

from podsync.config import get_settings
from podsync.db import configure_database, init_database
from podsync.errors import UnsupportedUrlError
from podsync.ingestion.urls import normalize_source_url
from podsync.jobs import Job
from podsync.logger import setup_logging

from . import Collaborators, ItemPipeline, OutcomeStatus, filter_new_items
from .orchestrator import BatchOrchestrator


STATUS_MARKS = {
    OutcomeStatus.SUCCESS.value: "✓",
    OutcomeStatus.SKIPPED.value: "-",
    OutcomeStatus.FAILED.value: "✗",
}


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ingest YouTube videos: transcript, summary and storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Target (choose one):
  --url             A single video (watch, youtu.be, shorts, embed or live URL)
  --source-url      A channel or playlist; only videos not yet ingested or skipped run

Notes:
  - Videos without subtitles are recorded as skipped and never retried
    (clear them with DELETE /sources/{source_id}/skipped)
  - Failed videos are retried on the next run
  - Logs written to logs/pipeline.log and logs/orchestrator.log
        """,
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--url", type=str, metavar="URL", help="Video URL to ingest")
    target.add_argument(
        "--source-url", type=str, metavar="URL", help="Channel or playlist URL to ingest"
    )

    options = parser.add_argument_group("options")
    options.add_argument(
        "--max-items",
        type=int,
        metavar="N",
        help="List at most N newest videos of the source (default: DEFAULT_MAX_ITEMS)",
    )
    options.add_argument(
        "--max-process",
        type=int,
        metavar="N",
        help="Process at most N of the new videos in this run",
    )
    options.add_argument(
        "--dry-run",
        action="store_true",
        help="List the source and show the new videos without processing them",
    )
    options.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging output"
    )
    return parser.parse_args()


async def ingest_single(url: str) -> int:
    outcome = await ItemPipeline().process_url(url)
    mark = STATUS_MARKS[outcome.status.value]
    detail = outcome.reason or outcome.error or ""
    print(f"{mark} {outcome.title} [{outcome.status.value}] {detail}".rstrip())
    return 1 if outcome.status == OutcomeStatus.FAILED else 0


async def ingest_source(source_url: str, max_items: int, max_process) -> int:
    job = Job.detached(source_url, results_limit=max(max_process or max_items, 1))
    await BatchOrchestrator().run(job, source_url, max_items=max_items, max_process=max_process)
    status = job.to_status()

    print("=" * 80)
    print(f"Source: {status['sourceId'] or source_url}")
    print(
        f"New: {status['total']}  processed: {status['processed']}  "
        f"skipped: {status['skipped']}  failed: {status['failed']}"
    )
    for result in status["results"]:
        mark = STATUS_MARKS[result["status"]]
        detail = result.get("reason") or result.get("error") or ""
        print(f"  {mark} {result['title']} {detail}".rstrip())
    print("=" * 80)

    if status["status"] == "error":
        print(f"✗ JOB FAILED: {status['error']}", file=sys.stderr)
        return 1
    print("✓ JOB COMPLETED")
    return 0


def print_dry_run(source_url: str, max_items: int) -> None:
    listing = Collaborators().list_source_items(source_url, max_items)
    pending = filter_new_items(listing.items, listing.source_name)
    print("=" * 80)
    print("DRY RUN - No processing will occur")
    print("=" * 80)
    print(f"Source: {listing.source_name or 'unknown'} ({source_url})")
    print(f"Listed: {len(listing.items)}  new: {len(pending)}")
    for item in pending:
        print(f"  → {item.label} ({item.canonical_url})")


def main():
    """Main entry point for the pipeline CLI."""
    args = parse_arguments()
    logger = setup_logging(
        logger_name="pipeline", log_file="logs/pipeline.log", verbose=args.verbose
    )
    settings = get_settings()

    try:
        configure_database(settings.database_url)
        init_database()
    except ValueError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    max_items = args.max_items or settings.default_max_items

    try:
        if args.url:
            exit_code = asyncio.run(ingest_single(args.url))
        else:
            normalize_source_url(args.source_url)
            if args.dry_run:
                print_dry_run(args.source_url, max_items)
                sys.exit(0)
            exit_code = asyncio.run(ingest_source(args.source_url, max_items, args.max_process))
    except UnsupportedUrlError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}")
        print(f"\n✗ PIPELINE FAILED: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
