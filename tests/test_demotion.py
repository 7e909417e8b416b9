import pytest

from conftest import NOW, days_ago, make_item
from memory_janitor.errors import StoreError
from memory_janitor.models import QueryResult
from memory_janitor.temporal.engine import TemporalEngine, decay_score


@pytest.fixture
def engine(store):
    return TemporalEngine(metadata_store=store)


def _stale(item_id, **overrides):
    data = {"id": item_id, "created_at": days_ago(400), "status": "active"}
    data.update(overrides)
    return make_item(**data)


def _status(store, item_id):
    return store.get_by_id(item_id).status


# ------------------------------------------------------------------ #
# Scoring
# ------------------------------------------------------------------ #


def test_fresh_item_uses_defaults():
    # importance 0.7 * stability 0.7, no decay yet, no access boost
    assert decay_score(age_days=0, last_used_days=0) == pytest.approx(0.49)


def test_access_boost_is_capped_at_two():
    assert decay_score(0, 0, access_count=10) == pytest.approx(0.98)
    assert decay_score(0, 0, access_count=50) == pytest.approx(0.98)


def test_score_strictly_decreases_with_age():
    scores = [decay_score(age_days=d, last_used_days=10, access_count=3) for d in (0, 10, 31, 90, 365)]
    assert all(a > b for a, b in zip(scores, scores[1:]))


def test_score_strictly_decreases_with_last_used():
    scores = [decay_score(age_days=100, last_used_days=d, access_count=3) for d in (0, 5, 30, 60, 200)]
    assert all(a > b for a, b in zip(scores, scores[1:]))


def test_never_used_counts_as_age(engine):
    never = make_item(created_at=days_ago(45), last_used_at=None)
    used_at_creation = make_item(created_at=days_ago(45), last_used_at=days_ago(45))
    assert engine.compute_effective_score(never, NOW) == pytest.approx(
        engine.compute_effective_score(used_at_creation, NOW)
    )


def test_item_score_respects_importance_and_stability(engine):
    item = make_item(created_at=days_ago(0), importance=0.2, stability=0.5)
    assert engine.compute_effective_score(item, NOW) == pytest.approx(0.1)


# ------------------------------------------------------------------ #
# Candidate selection
# ------------------------------------------------------------------ #


def test_constraint_items_are_never_selected(engine):
    items = [
        _stale("c1", category="constraint"),
        _stale("c2", category="constraint", importance=0.0),
        _stale("x"),
    ]
    assert engine.select_for_archive(items, now=NOW) == ["x"]


def test_selection_stops_at_cap(engine):
    items = [_stale(f"s{i}") for i in range(5)]
    assert engine.select_for_archive(items, max_archives=2, now=NOW) == ["s0", "s1"]


def test_recently_used_items_survive(engine):
    item = make_item(created_at=days_ago(31), last_used_at=days_ago(1), access_count=10)
    assert engine.select_for_archive([item], now=NOW) == []


# ------------------------------------------------------------------ #
# Demotion pass against the store
# ------------------------------------------------------------------ #


def test_demotion_pass_archives_stale_items(store, engine):
    store.insert(_stale("stale"))
    store.insert(_stale("rule", category="constraint"))
    store.insert(make_item(id="young", created_at=days_ago(5)))
    store.insert(make_item(id="busy", created_at=days_ago(40), last_used_at=days_ago(1), access_count=10))

    result = engine.run_demotion_pass(dry_run=False, now=NOW)

    # young items are not candidates, constraints are filtered by the query
    assert result.candidates == 2
    assert result.archived == 1
    assert _status(store, "stale") == "archived"
    assert _status(store, "rule") == "active"
    assert _status(store, "busy") == "active"
    assert _status(store, "young") == "active"


def test_demotion_pass_skips_archived_items(store, engine):
    store.insert(_stale("old", status="archived"))
    result = engine.run_demotion_pass(dry_run=False, now=NOW)
    assert result.candidates == 0
    assert result.archived == 0


def test_demotion_dry_run_reports_zero_archived(store, engine):
    store.insert(_stale("a"))
    store.insert(_stale("b"))

    result = engine.run_demotion_pass(dry_run=True, now=NOW)

    assert (result.candidates, result.archived, result.dry_run) == (2, 0, True)
    assert _status(store, "a") == "active"
    assert _status(store, "b") == "active"


def test_demotion_respects_max_archives(store, engine):
    for i in range(4):
        store.insert(_stale(f"s{i}"))
    result = engine.run_demotion_pass(dry_run=False, max_archives=3, now=NOW)
    assert result.archived == 3
    assert [i.status for i in store.list_by_ids([f"s{i}" for i in range(4)])].count("archived") == 3


def test_archive_failure_reports_zero(store, engine, monkeypatch):
    store.insert(_stale("a"))

    def boom(ids, status):
        raise StoreError("disk full")

    monkeypatch.setattr(store, "update_status", boom)
    result = engine.run_demotion_pass(dry_run=False, now=NOW)
    assert (result.candidates, result.archived) == (1, 0)


def test_query_failure_means_no_candidates(store, engine, monkeypatch):
    monkeypatch.setattr(store, "query_demotion_candidates", lambda cutoff: QueryResult(error="offline"))
    result = engine.run_demotion_pass(dry_run=False, now=NOW)
    assert (result.candidates, result.archived) == (0, 0)


# ------------------------------------------------------------------ #
# Completed goals
# ------------------------------------------------------------------ #


def test_completed_goals_are_archived(store, engine):
    for i in range(3):
        store.insert(make_item(id=f"cg{i}", type="completed_goal", content="Ship the beta release"))
    store.insert(make_item(id="goal", type="goal", content="Ship the 1.0 release"))

    assert engine.archive_completed_goals(dry_run=False) == 3
    assert [store.get_by_id(f"cg{i}").status for i in range(3)] == ["archived"] * 3
    assert _status(store, "goal") == "active"


def test_completed_goals_dry_run_does_not_mutate(store, engine):
    store.insert(make_item(id="cg", type="completed_goal"))
    assert engine.archive_completed_goals(dry_run=True) == 1
    assert _status(store, "cg") == "active"


def test_completed_goals_none_or_failed_query(store, engine, monkeypatch):
    assert engine.archive_completed_goals(dry_run=False) == 0
    monkeypatch.setattr(store, "query_by_type", lambda t, status="active": QueryResult(error="boom"))
    assert engine.archive_completed_goals(dry_run=False) == 0
