# memory_janitor/dedup/clustering.py

from __future__ import annotations

import asyncio
import logging

from ..config import CleanupConfig
from ..models import ClusterMember, DuplicateCluster, MemoryItem, SearchMatch
from ..storage.qdrant_store import SimilaritySearch
from ..timeutil import parse_iso
from .junk import content_length

logger = logging.getLogger(__name__)


def group_key(item: MemoryItem) -> str:
    return f"{item.type}::{item.chat_id if item.chat_id is not None else 'null'}"


def group_items(items: list[MemoryItem]) -> dict[str, list[MemoryItem]]:
    """Group items by (type, chat scope), keeping input order inside each group."""
    groups: dict[str, list[MemoryItem]] = {}
    for item in items:
        groups.setdefault(group_key(item), []).append(item)
    return groups


def _creation_order(items: list[MemoryItem]) -> list[MemoryItem]:
    # Unparseable timestamps sort first; sort is stable so ties keep store order.
    def key(item: MemoryItem) -> float:
        dt = parse_iso(item.created_at)
        return dt.timestamp() if dt else float("-inf")

    return sorted(items, key=key)


async def search_similar(
    search: SimilaritySearch,
    item: MemoryItem,
    config: CleanupConfig,
) -> list[SearchMatch]:
    """
    Fail-open similarity search.

    Any error or timeout is logged and treated as "no matches" so that a
    search outage never aborts a cleanup run.
    """
    try:
        matches = await asyncio.wait_for(
            search.search(
                item,
                item.chat_id,
                config.similarity_threshold,
                config.search_top_k,
            ),
            timeout=config.search_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "[search] timed out after %ss for item %s", config.search_timeout_seconds, item.id
        )
        return []
    except Exception as e:
        logger.warning("[search] failed for item %s: %s", item.id, e)
        return []

    return [
        m
        for m in matches or []
        if m.type == item.type
        and m.id != item.id
        and m.similarity >= config.similarity_threshold
    ]


async def cluster_duplicates(
    items: list[MemoryItem],
    config: CleanupConfig,
    search: SimilaritySearch,
) -> list[DuplicateCluster]:
    """
    Greedy single-pass clustering of one (type, chat) group.

    Items are visited oldest first. The first unabsorbed item to find fresh
    matches becomes the keeper of a new cluster and every match is absorbed,
    so it can never be a keeper or appear in a later cluster. No transitive
    closure: if A~B and B~C but not A~C, whichever cluster forms first wins.

    Only matches that are members of `items` count. The vector index can lag
    behind the store, so a hit on a deleted or archived id is dropped here.
    """
    clusters: list[DuplicateCluster] = []
    by_id = {item.id: item for item in items}
    keepers: set[str] = set()
    absorbed: set[str] = set()

    for item in _creation_order(items):
        if item.id in absorbed:
            continue
        if content_length(item) < config.min_content_length:
            continue
        if item.id in keepers:
            continue

        keepers.add(item.id)

        matches = await search_similar(search, item, config)
        if not matches:
            continue

        fresh: list[SearchMatch] = []
        seen: set[str] = set()
        for m in matches:
            if m.id in absorbed or m.id in keepers or m.id in seen:
                continue
            if m.id not in by_id:
                logger.info("[cluster] ignoring stale match %s for item %s", m.id, item.id)
                continue
            seen.add(m.id)
            fresh.append(m)
        if not fresh:
            continue

        cluster = DuplicateCluster(
            keeper=item,
            duplicates=[ClusterMember(item=by_id[m.id], similarity=m.similarity) for m in fresh],
        )
        absorbed.update(m.id for m in fresh)
        clusters.append(cluster)

    return clusters


async def cluster_groups(
    groups: dict[str, list[MemoryItem]],
    config: CleanupConfig,
    search: SimilaritySearch,
) -> list[DuplicateCluster]:
    """
    Cluster every group. Groups run concurrently (bounded), each group keeps
    a single search in flight. Results are returned in group order.
    """
    semaphore = asyncio.Semaphore(max(1, config.max_concurrent_groups))

    async def run(key: str, group: list[MemoryItem]) -> list[DuplicateCluster]:
        async with semaphore:
            logger.info('[cluster] group "%s" (%d items)', key, len(group))
            return await cluster_duplicates(group, config, search)

    per_group = await asyncio.gather(*(run(k, g) for k, g in groups.items()))
    return [c for clusters in per_group for c in clusters]


def collect_candidate_ids(
    junk: list[MemoryItem],
    clusters: list[DuplicateCluster],
) -> list[str]:
    """
    Ids to delete: every junk item plus every cluster duplicate, each id
    once, in first-seen order. A keeper is never a candidate, even if it was
    also flagged as junk.
    """
    keepers = {c.keeper.id for c in clusters}
    ids: dict[str, None] = {}
    for item in junk:
        ids[item.id] = None
    for cluster in clusters:
        for member in cluster.duplicates:
            ids[member.item.id] = None
    return [i for i in ids if i not in keepers]
