"""
In-memory registry of long-running source ingestion jobs.

A Job moves forward only:
    starting -> fetching_items -> processing -> completed | error

Once terminal it is frozen: every mutator raises JobStateError and its status
snapshot is computed once, so repeated polls return identical payloads.

The registry keeps terminal jobs for a TTL and holds at most `capacity` jobs,
evicting the least recently polled terminal job first. Running jobs are never
evicted.
"""

import logging
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

import uuid_utils as uuid

from podsync.errors import JobStateError
from podsync.pipeline.models import Outcome, OutcomeStatus


logger = logging.getLogger("jobs")


class JobStatus(str, Enum):
    STARTING = "starting"
    FETCHING_ITEMS = "fetching_items"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


_STATUS_ORDER = list(JobStatus)


@dataclass
class Job:
    id: str
    source_url: str
    results_limit: int = 10
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    status: JobStatus = JobStatus.STARTING
    source_id: Optional[str] = None
    total: Optional[int] = None
    processed_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    current_item: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[float] = None
    results: deque = field(init=False)
    _snapshot: Optional[dict[str, Any]] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        self.results = deque(maxlen=self.results_limit)

    @classmethod
    def detached(cls, source_url: str, results_limit: int = 10) -> "Job":
        """A job that is never registered (scheduled sweeps)."""
        return cls(id=str(uuid.uuid7()), source_url=source_url, results_limit=results_limit)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def visited(self) -> int:
        return self.processed_count + self.skipped_count + self.failed_count

    def _ensure_mutable(self) -> None:
        if self.is_terminal:
            raise JobStateError(f"Job {self.id} is {self.status.value} and can no longer change")

    def advance(self, status: JobStatus) -> None:
        """Move to a later non-terminal status."""
        self._ensure_mutable()
        if status.is_terminal:
            raise JobStateError("Use complete() or fail() to finish a job")
        if _STATUS_ORDER.index(status) < _STATUS_ORDER.index(self.status):
            raise JobStateError(
                f"Job {self.id} cannot go back from {self.status.value} to {status.value}"
            )
        self.status = status

    def set_source(self, source_id: Optional[str]) -> None:
        self._ensure_mutable()
        self.source_id = source_id

    def set_total(self, total: int) -> None:
        self._ensure_mutable()
        if total < self.visited:
            raise JobStateError(f"Total {total} is below the {self.visited} items already visited")
        self.total = total

    def begin_item(self, label: str) -> None:
        self._ensure_mutable()
        self.current_item = label

    def record(self, outcome: Outcome) -> None:
        """Count an item outcome and keep it in the bounded history."""
        self._ensure_mutable()
        if self.total is not None and self.visited >= self.total:
            raise JobStateError(f"Job {self.id} already visited all {self.total} items")
        if outcome.status == OutcomeStatus.SUCCESS:
            self.processed_count += 1
        elif outcome.status == OutcomeStatus.SKIPPED:
            self.skipped_count += 1
        else:
            self.failed_count += 1
        self.results.append(outcome.to_result())

    def complete(self) -> None:
        self._ensure_mutable()
        self.status = JobStatus.COMPLETED
        self.current_item = None
        self.finished_at = self.clock()

    def fail(self, message: str) -> None:
        self._ensure_mutable()
        self.status = JobStatus.ERROR
        self.error = message
        self.current_item = None
        self.finished_at = self.clock()

    def to_status(self) -> dict[str, Any]:
        """Pollable view of the job, camelCase keys."""
        if self._snapshot is not None:
            return self._snapshot
        status = {
            "jobId": self.id,
            "sourceUrl": self.source_url,
            "sourceId": self.source_id,
            "status": self.status.value,
            "total": self.total,
            "processed": self.processed_count,
            "skipped": self.skipped_count,
            "failed": self.failed_count,
            "currentItem": self.current_item,
            "results": [dict(result) for result in self.results],
            "error": self.error,
        }
        if self.is_terminal:
            self._snapshot = status
        return status


class JobRegistry:
    """
    Jobs addressable by ID.

    Args:
        capacity: Maximum number of jobs held.
        ttl_seconds: How long a terminal job stays pollable.
        results_limit: Size of each job's result history.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        capacity: int = 200,
        ttl_seconds: float = 3600.0,
        results_limit: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self.results_limit = results_limit
        self.clock = clock
        self._jobs: "OrderedDict[str, Job]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._jobs)

    def create(self, source_url: str) -> Job:
        self._purge_expired()
        while len(self._jobs) >= self.capacity and self._evict_one():
            pass
        if len(self._jobs) >= self.capacity:
            logger.warning(f"Job registry over capacity: {len(self._jobs)} running jobs")

        job = Job(
            id=str(uuid.uuid7()),
            source_url=source_url,
            results_limit=self.results_limit,
            clock=self.clock,
        )
        self._jobs[job.id] = job
        logger.info(f"Created job {job.id} for {source_url}")
        return job

    def get(self, job_id: str) -> Optional[Job]:
        """Return the job, or None if it is unknown or was evicted."""
        self._purge_expired()
        job = self._jobs.get(job_id)
        if job is not None:
            self._jobs.move_to_end(job_id)
        return job

    def _purge_expired(self) -> None:
        now = self.clock()
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.finished_at is not None and now - job.finished_at >= self.ttl_seconds
        ]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            logger.info(f"Evicted {len(expired)} expired jobs")

    def _evict_one(self) -> bool:
        for job_id, job in self._jobs.items():
            if job.is_terminal:
                del self._jobs[job_id]
                logger.info(f"Evicted job {job_id} (capacity {self.capacity})")
                return True
        return False
