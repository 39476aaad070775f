# Sync module - incremental synchronization of known sources

from podsync.sync.checker import SyncChecker, SyncDecision, SyncReason, decide_sync
from podsync.sync.sweep import ScheduledSweep, SweepReport

__all__ = [
    "ScheduledSweep",
    "SweepReport",
    "SyncChecker",
    "SyncDecision",
    "SyncReason",
    "decide_sync",
]
