"""
Long-running sweep worker.

The `schedule` library decides when a sweep is due; sweeps run as tasks on
the worker's single event loop, so the shared OpenAI client and its
connection pool stay bound to one loop for the life of the process.
"""

import asyncio
import sys
from typing import Optional

import schedule

from podsync.logger import setup_logging
from podsync.sync import ScheduledSweep, SweepReport


logger = setup_logging(logger_name="scheduler", log_file="logs/scheduler.log")


def print_report(report: SweepReport) -> None:
    print(
        f"[sweep] sources={report.sources_checked} new={report.new_items_found} "
        f"processed={report.processed} skipped={report.skipped} failed={report.failed} "
        f"enriched={report.enriched}"
    )
    for error in report.errors:
        print(f"  ✗ {error}", file=sys.stderr)


async def sweep_and_report(sweep: ScheduledSweep) -> Optional[SweepReport]:
    """Run one sweep; a crash is logged and the worker keeps going."""
    try:
        report = await sweep.run()
    except Exception as e:
        logger.error(f"Sweep failed: {e}", exc_info=True)
        return None
    print_report(report)
    return report


class SweepWorker:
    """Starts a sweep every `minutes`, never two at once."""

    def __init__(
        self,
        sweep: ScheduledSweep,
        minutes: int,
        scheduler: Optional[schedule.Scheduler] = None,
    ):
        self.sweep = sweep
        self.minutes = minutes
        self.scheduler = scheduler or schedule.Scheduler()
        self.scheduler.every(minutes).minutes.do(self.start_sweep)
        self.task: Optional[asyncio.Task] = None

    def start_sweep(self) -> Optional[asyncio.Task]:
        """Schedule callback; must run inside the worker's event loop."""
        if self.task is not None and not self.task.done():
            logger.warning("Previous sweep still running, skipping this tick")
            return None
        self.task = asyncio.get_running_loop().create_task(sweep_and_report(self.sweep))
        return self.task

    async def run_forever(self, poll_seconds: float = 5.0) -> None:
        logger.info(f"Sweeping every {self.minutes} minutes")
        while True:
            self.scheduler.run_pending()
            await asyncio.sleep(poll_seconds)
