import logging

from ..errors import StoreError
from ..storage.sqlite_store import SqliteStore

logger = logging.getLogger(__name__)


def delete_items(
    store: SqliteStore,
    ids: list[str],
    dry_run: bool,
    raise_on_error: bool = False,
) -> int:
    """
    Delete the given ids in one bulk call, or only log them in dry run.

    Returns the number of items removed (dry run: the number that would be).
    A store failure is logged and counts as 0 unless raise_on_error=True.
    When the store removes fewer rows than requested, the shortfall is
    logged and only visible in the returned count.
    """
    if not ids:
        return 0

    if dry_run:
        logger.info("[DRY RUN] Would delete %d items: %s", len(ids), ", ".join(ids))
        return len(ids)

    try:
        deleted = store.delete(ids)
    except StoreError as e:
        logger.error("[delete_items] store error: %s", e)
        if raise_on_error:
            raise
        return 0

    if deleted < len(ids):
        logger.warning("[delete_items] requested %d deletions, store removed %d", len(ids), deleted)
    return deleted
