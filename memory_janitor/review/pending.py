# memory_janitor/review/pending.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from ..config import DEFAULT_PENDING_FILE
from ..models import PendingDedup
from ..timeutil import now_utc, parse_iso, to_iso

logger = logging.getLogger(__name__)

PENDING_TTL = timedelta(hours=24)


class PendingDedupStore:
    """
    File-backed slot holding the one outstanding dedup proposal.

    The weekly review saves candidate ids here; the process that receives
    the confirm/skip callback loads and clears it. Last writer wins: saving
    a new proposal replaces the old one, and there is no locking between
    processes.
    """

    def __init__(
        self,
        path: str | Path = DEFAULT_PENDING_FILE,
        ttl: timedelta = PENDING_TTL,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.path = Path(path)
        self.ttl = ttl
        self.clock = clock

    def save(self, ids: list[str], summary: str) -> PendingDedup:
        record = PendingDedup(
            ids=list(ids),
            count=len(ids),
            expires_at=to_iso(self.clock() + self.ttl),
            summary=summary,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(record.model_dump(by_alias=True), indent=2),
            encoding="utf-8",
        )
        return record

    def load(self) -> PendingDedup | None:
        """The pending record, or None if there is none, it is unreadable, or it has expired."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("[PendingDedup] unexpected error reading %s: %s", self.path, e)
            return None

        try:
            record = PendingDedup.model_validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as e:
            logger.warning("[PendingDedup] ignoring malformed pending file %s: %s", self.path, e)
            return None

        expires_at = parse_iso(record.expires_at)
        if expires_at is None or self.clock() > expires_at:
            return None
        return record

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
