# Pipeline module - per-item processing and the dedup filter
#
# The batch orchestrator lives in podsync.pipeline.orchestrator and is
# imported from there; it depends on podsync.jobs, which depends on this
# package's models.

from podsync.pipeline.dedup import filter_new_items
from podsync.pipeline.item_pipeline import Collaborators, ItemPipeline
from podsync.pipeline.models import Outcome, OutcomeStatus

__all__ = ["Collaborators", "ItemPipeline", "Outcome", "OutcomeStatus", "filter_new_items"]
