import asyncio
import logging
from typing import Coroutine, Optional

from podsync.db import log_event

from .registry import Job


logger = logging.getLogger("jobs")


class JobSupervisor:
    """
    Owns the asyncio task of every background job.

    A task that ends without moving its job to a terminal state (crash or
    cancellation) moves the job to `error` so pollers never wait forever.
    """

    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}

    def submit(self, job: Job, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro, name=f"job-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda done: self._on_done(job, done))
        return task

    def task_for(self, job_id: str) -> Optional[asyncio.Task]:
        return self._tasks.get(job_id)

    @property
    def running(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel every running job task and wait for them."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _on_done(self, job: Job, task: asyncio.Task) -> None:
        self._tasks.pop(job.id, None)
        exc = None if task.cancelled() else task.exception()
        if job.is_terminal:
            if exc is not None:
                logger.error(f"Job {job.id} raised after finishing: {exc}")
            return
        if task.cancelled():
            message = "Job was cancelled"
        else:
            message = f"Job crashed: {exc}" if exc else "Job ended without finishing"
        logger.error(f"Job {job.id} for {job.source_url}: {message}")
        job.fail(message)
        log_event("error", message, {"jobId": job.id, "sourceUrl": job.source_url})
