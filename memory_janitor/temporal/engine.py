# memory_janitor/temporal/engine.py

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta

from ..errors import ArchiveError, StoreError
from ..models import CONSTRAINT_CATEGORY, DemotionResult, MemoryItem
from ..storage.sqlite_store import SqliteStore  # noqa: TC001
from ..timeutil import days_between, now_utc, parse_iso, to_iso

logger = logging.getLogger(__name__)

DEFAULT_IMPORTANCE = 0.7
DEFAULT_STABILITY = 0.7
AGE_DECAY_DAYS = 90
RECENCY_DECAY_DAYS = 60
MAX_ACCESS_BOOST = 2.0
ACCESS_BOOST_STEP = 0.1
ARCHIVE_SCORE_THRESHOLD = 0.05
MIN_AGE_DAYS = 30
DEFAULT_MAX_ARCHIVES = 100


def decay_score(
    age_days: float,
    last_used_days: float,
    importance: float = DEFAULT_IMPORTANCE,
    stability: float = DEFAULT_STABILITY,
    access_count: int = 0,
) -> float:
    age_factor = math.exp(-age_days / AGE_DECAY_DAYS)
    access_boost = min(MAX_ACCESS_BOOST, 1 + ACCESS_BOOST_STEP * access_count)
    recency_factor = math.exp(-last_used_days / RECENCY_DECAY_DAYS)
    return importance * stability * age_factor * access_boost * recency_factor


class TemporalEngine:
    """
    Responsible for:
    - Decay scoring (age, recency of use, access count)
    - Demoting stale items to "archived"
    - Archiving goals that were marked completed
    """

    def __init__(self, metadata_store: SqliteStore) -> None:
        self.metadata_store = metadata_store

    # ------------------------------------------------------------------ #
    # Scoring
    # ------------------------------------------------------------------ #

    def compute_effective_score(self, item: MemoryItem, now: datetime | None = None) -> float:
        now = now or now_utc()
        created = parse_iso(item.created_at) or now
        age_days = max(0.0, days_between(created, now))

        last_used = parse_iso(item.last_used_at)
        # never used counts the same as its age
        last_used_days = max(0.0, days_between(last_used, now)) if last_used else age_days

        return decay_score(
            age_days=age_days,
            last_used_days=last_used_days,
            importance=item.importance if item.importance is not None else DEFAULT_IMPORTANCE,
            stability=item.stability if item.stability is not None else DEFAULT_STABILITY,
            access_count=item.access_count or 0,
        )

    def select_for_archive(
        self,
        candidates: list[MemoryItem],
        max_archives: int = DEFAULT_MAX_ARCHIVES,
        now: datetime | None = None,
    ) -> list[str]:
        """Ids scoring under the archive threshold, stopping once the cap is reached."""
        now = now or now_utc()
        to_archive: list[str] = []
        for item in candidates:
            if len(to_archive) >= max_archives:
                break
            # the store filter already excludes these; keep the check for other call paths
            if item.category == CONSTRAINT_CATEGORY or item.status != "active":
                continue
            if self.compute_effective_score(item, now) < ARCHIVE_SCORE_THRESHOLD:
                to_archive.append(item.id)
        return to_archive

    # ------------------------------------------------------------------ #
    # Passes
    # ------------------------------------------------------------------ #

    def run_demotion_pass(
        self,
        dry_run: bool,
        max_archives: int = DEFAULT_MAX_ARCHIVES,
        now: datetime | None = None,
    ) -> DemotionResult:
        """
        Archive active, non-constraint items older than 30 days whose decay
        score fell below 0.05. Dry run reports candidates but archives nothing.
        """
        now = now or now_utc()
        cutoff = to_iso(now - timedelta(days=MIN_AGE_DAYS))

        result = self.metadata_store.query_demotion_candidates(cutoff)
        if not result.ok:
            logger.error("[Demotion] candidate query failed: %s", result.error)
            return DemotionResult(candidates=0, archived=0, dry_run=dry_run)
        candidates = result.items
        if not candidates:
            return DemotionResult(candidates=0, archived=0, dry_run=dry_run)

        to_archive = self.select_for_archive(candidates, max_archives=max_archives, now=now)

        if not dry_run and to_archive:
            try:
                self._archive(to_archive)
            except ArchiveError as e:
                logger.error("[Demotion] archive error: %s", e)
                return DemotionResult(candidates=len(candidates), archived=0, dry_run=dry_run)

        return DemotionResult(
            candidates=len(candidates),
            archived=0 if dry_run else len(to_archive),
            dry_run=dry_run,
        )

    def archive_completed_goals(self, dry_run: bool) -> int:
        """Archive every active completed_goal item. Returns how many were (or would be) archived."""
        result = self.metadata_store.query_by_type("completed_goal", status="active")
        if not result.ok:
            logger.error("[CompletedGoals] query failed: %s", result.error)
            return 0
        ids = [item.id for item in result.items]
        if not ids:
            return 0

        if dry_run:
            logger.info("[DRY RUN] Would archive %d completed goals", len(ids))
            return len(ids)

        try:
            self._archive(ids)
        except ArchiveError as e:
            logger.error("[CompletedGoals] archive error: %s", e)
            return 0
        return len(ids)

    def _archive(self, ids: list[str]) -> None:
        try:
            self.metadata_store.update_status(ids, "archived")
        except StoreError as e:
            raise ArchiveError(str(e)) from e
