# memory_janitor/review/callbacks.py

import logging

from ..dedup.executor import delete_items
from ..errors import StoreError
from ..models import ReviewOutcome
from ..reports import CONFIRM_TOKEN, SKIP_TOKEN, pluralize
from ..storage.sqlite_store import SqliteStore
from .pending import PendingDedupStore

logger = logging.getLogger(__name__)

EXPIRED_MESSAGE = "⏰ This review has expired (>24h). The next review runs on Friday at 4 PM."


def confirm_pending(
    pending_store: PendingDedupStore,
    store: SqliteStore | None,
    dry_run: bool = False,
) -> ReviewOutcome:
    """
    The user tapped Confirm: delete exactly the persisted candidate ids,
    then clear the pending record.
    """
    pending = pending_store.load()
    if pending is None:
        return ReviewOutcome(status="expired", message=EXPIRED_MESSAGE)

    if store is None:
        return ReviewOutcome(status="failed", message="❌ Item store not configured - cannot delete.")

    try:
        deleted = delete_items(store, pending.ids, dry_run=dry_run, raise_on_error=True)
    except StoreError as e:
        pending_store.clear()
        logger.error("[review] delete failed: %s", e)
        return ReviewOutcome(
            status="failed",
            message="❌ Delete failed. Please try manually with /facts, /goals, /prefs.",
        )

    pending_store.clear()
    logger.info("[review] deleted %d items via %s (%s)", deleted, CONFIRM_TOKEN, pending.summary)
    return ReviewOutcome(
        status="confirmed",
        deleted=deleted,
        message=f"✅ Memory cleaned! Deleted {pluralize(deleted, 'item')} ({pending.summary}).",
    )


def skip_pending(pending_store: PendingDedupStore) -> ReviewOutcome:
    """The user tapped Skip: forget the proposal and leave memory unchanged."""
    pending_store.clear()
    logger.info("[review] user skipped dedup review (%s)", SKIP_TOKEN)
    return ReviewOutcome(status="skipped", message="⏭️ Skipped. Memory left unchanged.")


def handle_callback(
    token: str,
    pending_store: PendingDedupStore,
    store: SqliteStore | None,
    dry_run: bool = False,
) -> ReviewOutcome | None:
    """Dispatch a callback token routed back from the chat transport. Unknown tokens return None."""
    if token == CONFIRM_TOKEN:
        return confirm_pending(pending_store, store, dry_run=dry_run)
    if token == SKIP_TOKEN:
        return skip_pending(pending_store)
    return None
