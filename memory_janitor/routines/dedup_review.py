# memory_janitor/routines/dedup_review.py

"""
Weekly interactive memory review.

Finds junk items and near-duplicates with a looser threshold than the
nightly cleanup, saves the candidate ids as a pending proposal (24h TTL) and
asks the user to Confirm or Skip. Nothing is deleted here; deletion happens
in whichever process receives the confirm callback.
"""

from __future__ import annotations

import logging

from ..config import CleanupConfig
from ..dedup.clustering import cluster_groups, collect_candidate_ids, group_items
from ..dedup.junk import detect_junk_items
from ..errors import NotificationError
from ..models import MEMORY_TYPES, ReviewProposal
from ..notify.telegram import Notifier
from ..reports import build_confirmation_message, build_review_actions, build_review_summary
from ..review.pending import PendingDedupStore
from ..storage.qdrant_store import SimilaritySearch
from ..storage.sqlite_store import SqliteStore

logger = logging.getLogger(__name__)


async def run_review(
    config: CleanupConfig,
    store: SqliteStore,
    search: SimilaritySearch,
    pending_store: PendingDedupStore,
    notifier: Notifier,
) -> ReviewProposal:
    logger.info(
        "[review] starting (dry_run=%s, threshold=%s)",
        config.dry_run,
        config.similarity_threshold,
    )

    fetched = store.query_active(MEMORY_TYPES)
    items = fetched.items
    logger.info("[review] fetched %d active memory items", len(items))

    junk = detect_junk_items(items, config.min_content_length)
    junk_ids = {j.id for j in junk}
    non_junk = [i for i in items if i.id not in junk_ids]

    clusters = await cluster_groups(group_items(non_junk), config, search)
    dup_count = sum(len(c.duplicates) for c in clusters)
    logger.info(
        "[review] junk: %d, near-duplicate clusters: %d (%d items to remove)",
        len(junk),
        len(clusters),
        dup_count,
    )

    ids = collect_candidate_ids(junk, clusters)
    proposal = ReviewProposal(
        ids=ids,
        junk_count=len(junk),
        duplicate_count=dup_count,
        dry_run=config.dry_run,
    )
    if not ids:
        logger.info("[review] memory is clean, nothing to propose")
        return proposal

    proposal.summary = build_review_summary(len(junk), dup_count)
    proposal.message = build_confirmation_message(junk, clusters)

    if config.dry_run:
        logger.info("[DRY RUN] Would save %d candidate ids: %s", len(ids), ", ".join(ids))
    else:
        pending_store.save(ids, proposal.summary)
        proposal.saved = True
        logger.info("[review] saved %d candidate ids to %s", len(ids), pending_store.path)

    try:
        await notifier.deliver(proposal.message, build_review_actions(len(ids)))
        proposal.notified = True
    except NotificationError as e:
        logger.error("[review] could not send review message: %s", e)

    return proposal
