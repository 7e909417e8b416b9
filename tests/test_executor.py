import pytest

from conftest import make_item
from memory_janitor.dedup.executor import delete_items
from memory_janitor.errors import StoreError

@pytest.fixture
def seeded(store):
    for i in range(3):
        store.insert(make_item(id=f"m{i}"))
    return store

def test_empty_list_is_a_no_op(seeded):
    assert delete_items(seeded, [], dry_run=False) == 0

def test_dry_run_reports_full_count_without_deleting(seeded):
    assert delete_items(seeded, ["m0", "m1"], dry_run=True) == 2
    assert len(seeded.list_by_ids(["m0", "m1", "m2"])) == 3

def test_live_run_deletes(seeded):
    assert delete_items(seeded, ["m0", "m1"], dry_run=False) == 2
    assert [i.id for i in seeded.list_by_ids(["m0", "m1", "m2"])] == ["m2"]

def test_partial_deletion_is_only_visible_in_the_count(seeded):
    assert delete_items(seeded, ["m0", "gone"], dry_run=False) == 1

def test_store_error_counts_as_zero(seeded, monkeypatch):
    def boom(ids):
        raise StoreError("connection reset")

    monkeypatch.setattr(seeded, "delete", boom)
    assert delete_items(seeded, ["m0"], dry_run=False) == 0
    with pytest.raises(StoreError):
        delete_items(seeded, ["m0"], dry_run=False, raise_on_error=True)
