import logging
from typing import Optional

from podsync.db import log_event, store
from podsync.ingestion.models import ItemRef
from podsync.logger import log_function


logger = logging.getLogger("pipeline")


@log_function(logger_name="pipeline", log_execution_time=True)
def filter_new_items(candidates: list[ItemRef], source_id: Optional[str] = None) -> list[ItemRef]:
    """
    Drop candidates already in the item store or in the skip ledger.

    Both stores are read once, in bulk, keyed by the candidate set. Order is
    preserved and repeated candidates are kept only once.

    Args:
        candidates: Listed items, newest first.
        source_id: Channel the candidates come from (reporting only).

    Returns:
        Candidates that still need processing.
    """
    if not candidates:
        return []

    known_urls = store.existing_canonical_urls(list({c.canonical_url for c in candidates}))
    skipped_ids = store.skipped_item_ids(list({c.item_id for c in candidates}))

    conflicts = sorted(
        {c.item_id for c in candidates if c.canonical_url in known_urls and c.item_id in skipped_ids}
    )
    if conflicts:
        log_event(
            "error",
            f"Items both ingested and skipped for source {source_id}",
            {"sourceId": source_id, "itemIds": conflicts},
        )

    pending = []
    seen = set()
    for candidate in candidates:
        if candidate.item_id in seen:
            continue
        seen.add(candidate.item_id)
        if candidate.canonical_url in known_urls or candidate.item_id in skipped_ids:
            continue
        pending.append(candidate)

    logger.info(
        f"Dedup for {source_id}: {len(candidates)} candidates, "
        f"{len(known_urls)} already ingested, {len(skipped_ids)} skipped, {len(pending)} pending"
    )
    return pending
