"""Tri-state result of running one item through the pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from podsync.db import Item


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class Outcome:
    """
    What happened to one item.

    SKIPPED outcomes carry a durable reason (see SkipReason); FAILED outcomes
    carry the error message and are retried on the next run.
    """

    status: OutcomeStatus
    title: str
    item_id: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    item: Optional[Item] = None

    @classmethod
    def success(cls, item: Item) -> "Outcome":
        return cls(OutcomeStatus.SUCCESS, title=item.title, item_id=item.item_id, item=item)

    @classmethod
    def skipped(cls, title: str, reason: str, item_id: Optional[str] = None) -> "Outcome":
        return cls(OutcomeStatus.SKIPPED, title=title, item_id=item_id, reason=reason)

    @classmethod
    def failed(cls, title: str, error: str, item_id: Optional[str] = None) -> "Outcome":
        return cls(OutcomeStatus.FAILED, title=title, item_id=item_id, error=error)

    def to_result(self) -> dict[str, Any]:
        """Compact form stored in a job's result history."""
        result: dict[str, Any] = {"title": self.title, "status": self.status.value}
        if self.item is not None:
            result["id"] = self.item.id
        if self.reason:
            result["reason"] = self.reason
        if self.error:
            result["error"] = self.error
        return result
