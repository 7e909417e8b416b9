import asyncio

import pytest

from conftest import FakeSearch, make_item, match_for
from memory_janitor.errors import NotificationError
from memory_janitor.notify.telegram import LogNotifier
from memory_janitor.review.pending import PendingDedupStore
from memory_janitor.routines.dedup_review import run_review


class FailingNotifier:
    async def deliver(self, text, actions=None):
        raise NotificationError("chat unreachable")


@pytest.fixture
def pending(config):
    return PendingDedupStore(path=config.pending_path)


@pytest.fixture
def seeded(store):
    keeper = make_item(id="k", content="User works at GovTech", created_at="2024-01-01T00:00:00Z")
    dup = make_item(id="d", content="User is employed at GovTech", created_at="2024-02-01T00:00:00Z")
    store.insert(keeper)
    store.insert(dup)
    store.insert(make_item(id="j", content="not specified"))
    return FakeSearch({"k": [match_for(dup, 0.87)]})


def test_review_saves_proposal_and_asks_user(config, store, pending, seeded):
    config.similarity_threshold = 0.85
    notifier = LogNotifier()

    proposal = asyncio.run(run_review(config, store, seeded, pending, notifier))

    assert proposal.ids == ["j", "d"]
    assert proposal.summary == "1 junk, 1 near-duplicates"
    assert proposal.saved and proposal.notified

    record = pending.load()
    assert record.ids == ["j", "d"]
    assert record.count == 2

    [(text, actions)] = notifier.sent
    assert "1 junk item, 1 near-duplicate" in text
    assert [a.label for a in actions] == ["Confirm Delete (2 items)", "Skip"]
    # nothing deleted until the user confirms
    assert len(store.list_by_ids(["k", "d", "j"])) == 3


def test_junk_items_are_not_searched(config, store, pending, seeded):
    config.similarity_threshold = 0.85
    asyncio.run(run_review(config, store, seeded, pending, LogNotifier()))
    assert "j" not in seeded.queried_ids


def test_strict_threshold_finds_fewer_duplicates(config, store, pending, seeded):
    # nightly threshold 0.92 rejects the 0.87 match
    proposal = asyncio.run(run_review(config, store, seeded, pending, LogNotifier()))
    assert proposal.ids == ["j"]


def test_dry_run_does_not_save(config, store, pending, seeded):
    config.similarity_threshold = 0.85
    config.dry_run = True
    notifier = LogNotifier()

    proposal = asyncio.run(run_review(config, store, seeded, pending, notifier))

    assert proposal.ids == ["j", "d"]
    assert not proposal.saved
    assert pending.load() is None
    assert len(notifier.sent) == 1


def test_clean_memory_sends_nothing(config, store, pending):
    store.insert(make_item(id="a", content="User works at GovTech"))
    notifier = LogNotifier()

    proposal = asyncio.run(run_review(config, store, FakeSearch(), pending, notifier))

    assert proposal.ids == []
    assert notifier.sent == []
    assert pending.load() is None


def test_new_review_replaces_pending_proposal(config, store, pending, seeded):
    pending.save(["stale-1", "stale-2", "stale-3"], "3 junk")
    config.similarity_threshold = 0.85

    asyncio.run(run_review(config, store, seeded, pending, LogNotifier()))

    assert pending.load().ids == ["j", "d"]


def test_notification_failure_keeps_proposal(config, store, pending, seeded):
    proposal = asyncio.run(run_review(config, store, seeded, pending, FailingNotifier()))
    assert proposal.saved
    assert not proposal.notified
    assert pending.load() is not None
