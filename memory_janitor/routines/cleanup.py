# memory_janitor/routines/cleanup.py

"""
Nightly memory cleanup.

Removes junk items and semantic near-duplicates (keeping the oldest item of
each cluster) without asking, then archives completed goals and runs the
decay-based demotion pass. Deletions are capped by config.max_deletes.
"""

from __future__ import annotations

import logging

from ..config import CleanupConfig
from ..dedup.clustering import cluster_groups, group_items
from ..dedup.executor import delete_items
from ..dedup.junk import detect_junk_items
from ..models import MEMORY_TYPES, CleanupResult, DeletionRecord, TypeStats
from ..reports import build_report
from ..storage.qdrant_store import SimilaritySearch
from ..storage.sqlite_store import SqliteStore
from ..temporal.engine import TemporalEngine

logger = logging.getLogger(__name__)


async def run_cleanup(
    config: CleanupConfig,
    store: SqliteStore,
    search: SimilaritySearch,
    engine: TemporalEngine | None = None,
) -> CleanupResult:
    engine = engine or TemporalEngine(metadata_store=store)
    store_errors: list[str] = []

    logger.info(
        "[cleanup] starting (dry_run=%s, threshold=%s, max_deletes=%s)",
        config.dry_run,
        config.similarity_threshold,
        config.max_deletes,
    )

    fetched = store.query_active(MEMORY_TYPES)
    if not fetched.ok:
        store_errors.append("fetch_active")
    items = fetched.items
    logger.info("[cleanup] fetched %d active memory items", len(items))

    by_type = {t: TypeStats() for t in MEMORY_TYPES}
    for item in items:
        if item.type in by_type:
            by_type[item.type].scanned += 1

    # 1. Junk, then near-duplicates among what is left
    junk = detect_junk_items(items, config.min_content_length)
    junk_ids = {j.id for j in junk}
    remaining = [i for i in items if i.id not in junk_ids]
    clusters = await cluster_groups(group_items(remaining), config, search)
    logger.info("[cleanup] %d junk items, %d duplicate clusters", len(junk), len(clusters))

    # 2. Capped deletion set: junk first, then cluster duplicates
    deletions: list[DeletionRecord] = []
    ids_to_delete: list[str] = []
    skipped = 0
    duplicates_found = 0

    for item in junk:
        if len(ids_to_delete) >= config.max_deletes:
            skipped += 1
            continue
        deletions.append(
            DeletionRecord(
                reason="junk",
                deleted_id=item.id,
                deleted_snippet=item.content,
                type=item.type,
                chat_id=item.chat_id,
            )
        )
        ids_to_delete.append(item.id)

    for cluster in clusters:
        for member in cluster.duplicates:
            duplicates_found += 1
            if len(ids_to_delete) >= config.max_deletes:
                skipped += 1
                continue
            deletions.append(
                DeletionRecord(
                    kept_id=cluster.keeper.id,
                    deleted_id=member.item.id,
                    similarity=member.similarity,
                    kept_snippet=cluster.keeper.content,
                    deleted_snippet=member.item.content,
                    type=cluster.keeper.type,
                    chat_id=cluster.keeper.chat_id,
                )
            )
            ids_to_delete.append(member.item.id)
            if cluster.keeper.type in by_type:
                by_type[cluster.keeper.type].duplicates_found += 1

    # 3. Execute
    deleted = delete_items(store, ids_to_delete, config.dry_run)

    # The store only reports an aggregate count, so attribute it in order.
    for record in deletions[:deleted]:
        if record.type in by_type:
            by_type[record.type].deleted += 1

    # 4. Lifecycle passes; a failure here never undoes the dedup results above
    completed_goals = 0
    try:
        completed_goals = engine.archive_completed_goals(config.dry_run)
    except Exception as e:
        logger.error("[cleanup] completed-goal archival failed: %s", e)
        store_errors.append("archive_completed_goals")

    demotion_candidates = demotion_archived = 0
    try:
        demotion = engine.run_demotion_pass(config.dry_run, max_archives=config.max_archives)
        demotion_candidates, demotion_archived = demotion.candidates, demotion.archived
    except Exception as e:
        logger.error("[cleanup] demotion pass failed: %s", e)
        store_errors.append("demotion")
    logger.info(
        "[cleanup] demotion pass: %d archived of %d candidates",
        demotion_archived,
        demotion_candidates,
    )

    result = CleanupResult(
        scanned=len(items),
        duplicates_found=duplicates_found,
        junk_found=len(junk),
        deleted=deleted,
        skipped=skipped,
        dry_run=config.dry_run,
        by_type=by_type,
        deletions=deletions,
        capped_at=config.max_deletes if skipped > 0 else None,
        demotion_candidates=demotion_candidates,
        demotion_archived=demotion_archived,
        completed_goals_archived=completed_goals,
        store_errors=store_errors,
    )

    logger.info("\n%s", build_report(result))
    return result
