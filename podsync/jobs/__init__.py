# Jobs module - pollable background jobs and their supervision

from podsync.jobs.registry import Job, JobRegistry, JobStatus
from podsync.jobs.supervisor import JobSupervisor

__all__ = ["Job", "JobRegistry", "JobStatus", "JobSupervisor"]
