import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from memory_janitor.config import CleanupConfig
from memory_janitor.errors import SearchError
from memory_janitor.models import MemoryItem, SearchMatch
from memory_janitor.storage.sqlite_store import SqliteStore
from memory_janitor.timeutil import to_iso

NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def days_ago(days: float, now: datetime = NOW) -> str:
    return to_iso(now - timedelta(days=days))


def make_item(**overrides) -> MemoryItem:
    data = {
        "id": "item-1",
        "content": "This is a memory item content",
        "type": "fact",
        "created_at": "2024-01-01T00:00:00Z",
        "confidence": 0.9,
        "chat_id": None,
    }
    data.update(overrides)
    return MemoryItem(**data)


def match_for(item: MemoryItem, similarity: float) -> SearchMatch:
    return SearchMatch(
        id=item.id,
        content=item.content,
        type=item.type,
        created_at=item.created_at,
        similarity=similarity,
    )


class FakeSearch:
    """
    Canned similarity search: `results` maps a query item id to the matches
    it returns. Ids in `fail_for` raise, ids in `hang_for` never answer in time.
    """

    def __init__(self, results=None, fail_for=(), hang_for=()):
        self.results = results or {}
        self.fail_for = set(fail_for)
        self.hang_for = set(hang_for)
        self.calls = []

    async def search(self, item, scope_filter, threshold, top_k):
        self.calls.append((item.id, scope_filter, threshold, top_k))
        if item.id in self.fail_for:
            raise SearchError("search backend down")
        if item.id in self.hang_for:
            await asyncio.sleep(5)
        return list(self.results.get(item.id, []))

    @property
    def queried_ids(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def config(tmp_path) -> CleanupConfig:
    return CleanupConfig(
        sqlite_path=str(tmp_path / "memory.db"),
        pending_path=str(tmp_path / "data" / "pending-dedup.json"),
        search_timeout_seconds=0.05,
    )


@pytest.fixture
def store(tmp_path):
    s = SqliteStore(path=str(tmp_path / "memory.db"))
    yield s
    s.close()
