# memory_janitor/janitor.py

from __future__ import annotations

import logging
from typing import Any

from .config import (
    REVIEW_MAX_DELETES,
    REVIEW_SIMILARITY_THRESHOLD,
    CleanupConfig,
    config_from_dict,
)
from .embedding.openai_embedder import OpenAIEmbedder
from .errors import NotificationError
from .models import CleanupResult, ReviewOutcome, ReviewProposal
from .notify.telegram import LogNotifier, Notifier, TelegramNotifier
from .reports import build_failure_message, build_user_message
from .review import callbacks
from .review.pending import PendingDedupStore
from .routines.cleanup import run_cleanup
from .routines.dedup_review import run_review
from .storage.qdrant_store import QdrantSearch, SimilaritySearch
from .storage.sqlite_store import SqliteStore
from .temporal.engine import TemporalEngine

logger = logging.getLogger(__name__)


class MemoryJanitor:
    """
    Public facade.

    - cleanup(): nightly junk + duplicate removal, completed-goal archival,
      demotion pass, then a short summary message when anything was found.
    - review(): weekly proposal; saves pending ids and asks Confirm/Skip.
    - confirm() / skip() / handle_callback(): resolve the pending proposal.

    Every collaborator can be injected; anything not given is built from
    the config.
    """

    def __init__(
        self,
        config: CleanupConfig | dict[str, Any] | None = None,
        *,
        store: SqliteStore | None = None,
        search: SimilaritySearch | None = None,
        notifier: Notifier | None = None,
        pending_store: PendingDedupStore | None = None,
    ) -> None:
        if not isinstance(config, CleanupConfig):
            config = config_from_dict(config)
        self.config = config

        # Core components
        self.store = store or SqliteStore(path=config.sqlite_path)
        self.temporal_engine = TemporalEngine(metadata_store=self.store)
        self.pending_store = pending_store or PendingDedupStore(path=config.pending_path)

        # Embedding + vector search
        self.search = search or QdrantSearch(
            embedder=OpenAIEmbedder(api_key=config.openai_api_key, model=config.embed_model),
            host=config.qdrant_host,
            port=config.qdrant_port,
            collection=config.qdrant_collection,
        )

        self.notifier = notifier or self._build_notifier(config)

    @staticmethod
    def _build_notifier(config: CleanupConfig) -> Notifier:
        if config.dry_run or not (config.telegram_bot_token and config.telegram_chat_id):
            if not config.dry_run:
                logger.warning("[MemoryJanitor] Telegram not configured, messages go to the log")
            return LogNotifier()
        return TelegramNotifier(
            bot_token=config.telegram_bot_token,
            chat_id=config.telegram_chat_id,
            topic_id=config.telegram_topic_id,
        )

    # ------------------------------------------------------------------ #
    # Routines
    # ------------------------------------------------------------------ #

    async def cleanup(self) -> CleanupResult:
        result = await run_cleanup(self.config, self.store, self.search, self.temporal_engine)

        if result.duplicates_found == 0 and result.junk_found == 0:
            logger.info("[MemoryJanitor.cleanup] nothing removed, no message sent")
            return result

        try:
            await self.notifier.deliver(build_user_message(result))
        except NotificationError as e:
            logger.error("[MemoryJanitor.cleanup] summary not sent: %s", e)
        return result

    async def review(self) -> ReviewProposal:
        review_config = self.config.model_copy(
            update={
                "similarity_threshold": REVIEW_SIMILARITY_THRESHOLD,
                "max_deletes": REVIEW_MAX_DELETES,
            }
        )
        return await run_review(
            review_config,
            self.store,
            self.search,
            self.pending_store,
            self.notifier,
        )

    async def notify_failure(self, routine: str, error: BaseException) -> None:
        """Best-effort failure message; never raises."""
        try:
            await self.notifier.deliver(build_failure_message(routine, error))
        except Exception as e:
            logger.error("[MemoryJanitor] failure notification not sent: %s", e)

    # ------------------------------------------------------------------ #
    # Confirmation callbacks
    # ------------------------------------------------------------------ #

    def confirm(self) -> ReviewOutcome:
        return callbacks.confirm_pending(self.pending_store, self.store, dry_run=self.config.dry_run)

    def skip(self) -> ReviewOutcome:
        return callbacks.skip_pending(self.pending_store)

    def handle_callback(self, token: str) -> ReviewOutcome | None:
        return callbacks.handle_callback(
            token, self.pending_store, self.store, dry_run=self.config.dry_run
        )

    async def close(self) -> None:
        close = getattr(self.search, "close", None)
        if close is not None:
            await close()
        self.store.close()
